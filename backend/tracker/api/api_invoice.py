import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..crud import crud_invoice
from ..database import get_db
from ..schemas.invoice import (
    InvoiceCreate,
    InvoiceCreateResponse,
    InvoiceDetail,
    InvoiceRead,
    StripeConfigStatus,
)
from ..services import invoicing, reconciliation
from ..services.stripe_client import StripeClient, StripeError
from ..utils.errors import STRIPE_KEYS_REQUIRED, error_response, stripe_error_response
from .dependencies import get_current_user, get_optional_stripe_client, get_stripe_client

router = APIRouter(tags=["invoices"])
logger = logging.getLogger(__name__)


def _get_owned_invoice(db: Session, user: models.User, invoice_id: int) -> models.Invoice:
    invoice = crud_invoice.get_invoice_for_user(db, user.id, invoice_id)
    if invoice is None:
        raise error_response(
            "Invoice not found",
            {"invoice_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    return invoice


@router.get("/stripe-config", response_model=StripeConfigStatus)
def read_stripe_config(current_user: models.User = Depends(get_current_user)):
    """Tell the dashboard whether invoicing is usable for this account."""
    if current_user.has_stripe_config:
        return StripeConfigStatus(
            has_stripe_config=True,
            publishable_key=current_user.stripe_publishable_key,
            message="Stripe is configured",
        )
    return StripeConfigStatus(has_stripe_config=False, message=STRIPE_KEYS_REQUIRED)


@router.get("/", response_model=List[InvoiceRead])
def list_invoices(
    status_filter: Optional[models.InvoiceStatus] = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    stripe: Optional[StripeClient] = Depends(get_optional_stripe_client),
):
    """List invoices newest first, refreshing the most recent ones from Stripe."""
    invoices = crud_invoice.list_invoices_for_user(
        db, current_user.id, status=status_filter, skip=skip, limit=limit
    )
    if stripe is not None and invoices:
        updated = reconciliation.sync_recent_invoices(
            db, stripe, invoices, settings.INVOICE_SYNC_LIMIT
        )
        if updated:
            logger.info("Pull sync refreshed %d invoice(s) for user %s", updated, current_user.id)
            if status_filter is not None:
                # Synced rows may have left the filter; refill the page.
                invoices = crud_invoice.list_invoices_for_user(
                    db, current_user.id, status=status_filter, skip=skip, limit=limit
                )
    return invoices


@router.post("/", response_model=InvoiceCreateResponse, status_code=status.HTTP_201_CREATED)
def create_invoice(
    payload: InvoiceCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    stripe: StripeClient = Depends(get_stripe_client),
):
    try:
        result = invoicing.create_invoice(db, stripe, current_user, payload)
    except invoicing.ContactNotFoundError:
        raise error_response(
            "Contact not found",
            {"contact_id": "not_found"},
            status.HTTP_404_NOT_FOUND,
        )
    except invoicing.InvoiceValidationError as exc:
        raise error_response(exc.message, exc.field_errors, status.HTTP_400_BAD_REQUEST)
    except StripeError as exc:
        db.rollback()
        raise stripe_error_response(exc, "Invoice creation failed")

    invoice = crud_invoice.get_invoice_for_user(db, current_user.id, result.invoice.id)
    return InvoiceCreateResponse(
        invoice=InvoiceDetail.model_validate(invoice),
        invoice_url=result.invoice_url,
        stripe_customer_id=result.stripe_customer_id,
        customer_created=result.customer_created,
        collection_method=invoice.collection_method,
        message="Invoice created and finalized",
    )


@router.get("/{invoice_id}", response_model=InvoiceDetail)
def read_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    stripe: Optional[StripeClient] = Depends(get_optional_stripe_client),
):
    invoice = _get_owned_invoice(db, current_user, invoice_id)
    if stripe is not None:
        try:
            reconciliation.sync_invoice(db, stripe, invoice)
        except StripeError as exc:
            # Serve the local copy; the next read retries.
            logger.warning("Could not sync invoice %s: %s", invoice.stripe_invoice_id, exc)
    return invoice


@router.post("/{invoice_id}/send", response_model=InvoiceDetail)
def send_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    stripe: StripeClient = Depends(get_stripe_client),
):
    """Email the invoice to the customer through Stripe."""
    invoice = _get_owned_invoice(db, current_user, invoice_id)
    if invoice.collection_method != models.CollectionMethod.SEND_INVOICE:
        raise error_response(
            "Only send_invoice invoices can be emailed",
            {"collection_method": invoice.collection_method.value},
            status.HTTP_400_BAD_REQUEST,
        )
    try:
        remote = stripe.send_invoice(invoice.stripe_invoice_id)
    except StripeError as exc:
        raise stripe_error_response(exc, "Sending invoice failed")

    changes = {}
    remote_status = models.InvoiceStatus.from_provider(remote.get("status"))
    if remote_status is not None:
        changes["status"] = remote_status
    if remote.get("hosted_invoice_url"):
        changes["hosted_invoice_url"] = remote["hosted_invoice_url"]
    if crud_invoice.apply_changes(invoice, changes):
        db.commit()
    logger.info("Sent invoice %s", invoice.stripe_invoice_id)
    return invoice


@router.post("/{invoice_id}/void", response_model=InvoiceDetail)
def void_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    stripe: StripeClient = Depends(get_stripe_client),
):
    invoice = _get_owned_invoice(db, current_user, invoice_id)
    if invoice.status == models.InvoiceStatus.PAID:
        raise error_response(
            "Paid invoices cannot be voided",
            {"status": invoice.status.value},
            status.HTTP_400_BAD_REQUEST,
        )
    try:
        stripe.void_invoice(invoice.stripe_invoice_id)
    except StripeError as exc:
        raise stripe_error_response(exc, "Voiding invoice failed")

    if crud_invoice.apply_changes(invoice, {"status": models.InvoiceStatus.VOID}):
        db.commit()
    logger.info("Voided invoice %s", invoice.stripe_invoice_id)
    return invoice
