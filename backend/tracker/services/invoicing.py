"""Create Stripe invoices and their local mirrors.

The flow is strictly sequential: resolve the customer, create the invoice,
attach one invoice item per line, finalize, then persist. A provider failure
at any step propagates to the caller; remote objects created before the
failure are left in place.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud import crud_contact, crud_watch
from ..models import CollectionMethod, Contact, Invoice, InvoiceItem, InvoiceStatus, User
from ..models.base import utcnow
from ..schemas.invoice import CustomerInfo, InvoiceCreate
from .stripe_client import (
    StripeClient,
    StripeNotFoundError,
    expandable_id,
    from_minor_units,
    minor_unit,
    to_minor_units,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class InvoiceValidationError(ValueError):
    def __init__(self, message: str, field_errors: dict) -> None:
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors


class ContactNotFoundError(LookupError):
    pass


@dataclass
class PreparedLine:
    description: str
    quantity: int
    unit_price: Decimal
    total_amount: Decimal
    watch_id: Optional[int] = None


@dataclass
class InvoiceCreationResult:
    invoice: Invoice
    invoice_url: Optional[str]
    stripe_customer_id: str
    customer_created: bool


def quantize_money(value, currency: Optional[str] = None) -> Decimal:
    return Decimal(str(value)).quantize(minor_unit(currency), rounding=ROUND_HALF_UP)


def timestamp_to_datetime(value) -> Optional[datetime]:
    """Stripe epoch seconds to a naive UTC datetime."""
    if value in (None, "", 0):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def prepare_lines(
    db: Session, user: User, payload: InvoiceCreate, currency: Optional[str] = None
) -> List[PreparedLine]:
    """Resolve watch defaults, price every line and append the tax line.

    Amounts are rounded to the currency's minor unit so the local total
    matches what Stripe bills.
    """
    errors: dict = {}
    lines: List[PreparedLine] = []
    for idx, item in enumerate(payload.items):
        watch = None
        if item.watch_id is not None:
            watch = crud_watch.get_watch(db, user.id, item.watch_id)
            if watch is None:
                errors[f"items.{idx}.watch_id"] = "not_found"
                continue
        description = (item.description or "").strip()
        if not description and watch is not None:
            description = watch.display_name
        unit_price = item.unit_price
        if unit_price is None and watch is not None:
            unit_price = watch.sale_price
        if unit_price is not None:
            unit_price = quantize_money(unit_price, currency)
        line_errors = {}
        if not description:
            line_errors[f"items.{idx}.description"] = "required"
        if unit_price is None or unit_price <= 0:
            line_errors[f"items.{idx}.unit_price"] = "must be greater than 0"
        if line_errors:
            errors.update(line_errors)
            continue
        lines.append(
            PreparedLine(
                description=description,
                quantity=item.quantity,
                unit_price=unit_price,
                total_amount=quantize_money(unit_price * item.quantity, currency),
                watch_id=item.watch_id,
            )
        )
    if errors:
        raise InvoiceValidationError("Invalid invoice items", errors)

    if payload.tax_rate:
        subtotal = sum((line.total_amount for line in lines), Decimal("0"))
        tax = quantize_money(subtotal * Decimal(payload.tax_rate) / Decimal(100), currency)
        if tax > 0:
            rate = Decimal(payload.tax_rate).normalize()
            lines.append(PreparedLine(f"Tax ({rate:f}%)", 1, tax, tax))
    return lines


def build_customer_params(
    contact: Optional[Contact], info: Optional[CustomerInfo], user: User
) -> dict:
    """Merge contact fields with manual overrides into Stripe customer params."""
    params: dict = {}
    address: dict = {}
    if contact is not None:
        params.update(
            name=contact.full_name or None,
            email=contact.email,
            phone=contact.phone,
        )
        address = {
            "line1": contact.street_address,
            "city": contact.city,
            "state": contact.state,
            "postal_code": contact.zip_code,
            "country": contact.country,
        }
    if info is not None:
        for field in ("name", "email", "phone"):
            value = getattr(info, field)
            if value:
                params[field] = value
        if info.address is not None:
            address.update(
                {k: v for k, v in info.address.model_dump().items() if v}
            )
    address = {k: v for k, v in address.items() if v}
    if address:
        params["address"] = address
    params["metadata"] = {
        "user_id": user.id,
        "contact_id": contact.id if contact is not None else "",
        "source": "watch-tracker",
    }
    return {k: v for k, v in params.items() if v is not None}


def resolve_customer(
    stripe: StripeClient, params: dict, candidate_id: Optional[str]
) -> Tuple[dict, bool]:
    """Return ``(customer, created)``.

    Order: the stored or supplied customer id, then a lookup by email, then a
    new customer. Concurrent calls for the same contact can still both create.
    """
    if candidate_id:
        try:
            stripe.retrieve_customer(candidate_id)
            customer = stripe.update_customer(candidate_id, params)
            logger.info("Reusing Stripe customer %s", candidate_id)
            return customer, False
        except StripeNotFoundError:
            logger.warning(
                "Stored Stripe customer %s no longer exists; falling back to email lookup",
                candidate_id,
            )

    email = params.get("email")
    if email:
        found = stripe.find_customer_by_email(email)
        if found:
            customer = stripe.update_customer(found["id"], params)
            logger.info("Matched Stripe customer %s by email", found["id"])
            return customer, False

    customer = stripe.create_customer(params)
    logger.info("Created Stripe customer %s", customer.get("id"))
    return customer, True


def _due_date_timestamp(due: date) -> int:
    # End of day UTC so "due today" is still in the future for Stripe.
    return int(datetime.combine(due, time(23, 59, 59), tzinfo=timezone.utc).timestamp())


def validate_request(payload: InvoiceCreate, contact: Optional[Contact]) -> None:
    errors: dict = {}
    email = (payload.customer.email if payload.customer else None) or (
        contact.email if contact is not None else None
    )
    has_customer_ref = bool(
        payload.existing_stripe_customer_id
        or (contact is not None and contact.stripe_customer_id)
    )
    if not email and not has_customer_ref:
        errors["customer.email"] = "required"
    if payload.collection_method == CollectionMethod.SEND_INVOICE:
        if payload.due_date is None:
            errors["due_date"] = "required for send_invoice"
        elif payload.due_date < datetime.now(timezone.utc).date():
            errors["due_date"] = "must not be in the past"
        if not email:
            errors["customer.email"] = "required for send_invoice"
    if errors:
        raise InvoiceValidationError("Invalid invoice request", errors)


def create_invoice(
    db: Session, stripe: StripeClient, user: User, payload: InvoiceCreate
) -> InvoiceCreationResult:
    contact: Optional[Contact] = None
    if payload.contact_id is not None:
        contact = crud_contact.get_contact(db, user.id, payload.contact_id)
        if contact is None:
            raise ContactNotFoundError(payload.contact_id)

    validate_request(payload, contact)
    currency = (payload.currency or settings.DEFAULT_CURRENCY).lower()
    lines = prepare_lines(db, user, payload, currency)

    customer_params = build_customer_params(contact, payload.customer, user)
    candidate_id = payload.existing_stripe_customer_id or (
        contact.stripe_customer_id if contact is not None else None
    )
    customer, created = resolve_customer(stripe, customer_params, candidate_id)
    customer_id = customer["id"]
    if contact is not None and contact.stripe_customer_id != customer_id:
        crud_contact.link_stripe_customer(db, contact, customer_id)
    elif contact is not None:
        contact.last_stripe_sync = utcnow()
        db.commit()

    invoice_params: dict = {
        "customer": customer_id,
        "collection_method": payload.collection_method.value,
        "auto_advance": False,
        "currency": currency,
        "pending_invoice_items_behavior": "exclude",
        "description": payload.notes,
        "metadata": {
            "user_id": user.id,
            "contact_id": contact.id if contact is not None else "",
        },
    }
    if payload.collection_method == CollectionMethod.SEND_INVOICE and payload.due_date:
        invoice_params["due_date"] = _due_date_timestamp(payload.due_date)
    remote_invoice = stripe.create_invoice(invoice_params)
    remote_id = remote_invoice["id"]
    logger.info("Created Stripe invoice %s for customer %s", remote_id, customer_id)

    remote_item_ids: List[Optional[str]] = []
    for line in lines:
        remote_item = stripe.create_invoice_item(
            {
                "customer": customer_id,
                "invoice": remote_id,
                "currency": currency,
                "amount": to_minor_units(line.total_amount, currency),
                "description": line.description,
                "metadata": {
                    "watch_id": line.watch_id or "",
                    "quantity": line.quantity,
                    "unit_price": f"{line.unit_price:.2f}",
                },
            }
        )
        remote_item_ids.append(remote_item.get("id"))

    finalized = stripe.finalize_invoice(remote_id)
    status = InvoiceStatus.from_provider(finalized.get("status")) or InvoiceStatus.OPEN
    total = sum((line.total_amount for line in lines), Decimal("0")).quantize(CENT)
    remote_total = from_minor_units(finalized.get("total"), currency)
    if remote_total is not None and remote_total != total:
        logger.warning(
            "Stripe invoice %s total %s differs from local total %s",
            remote_id,
            remote_total,
            total,
        )
    transitions = finalized.get("status_transitions") or {}

    invoice = Invoice(
        user_id=user.id,
        contact_id=contact.id if contact is not None else None,
        stripe_invoice_id=remote_id,
        stripe_customer_id=customer_id,
        invoice_number=finalized.get("number"),
        status=status,
        collection_method=payload.collection_method,
        total_amount=total,
        currency=currency,
        due_date=payload.due_date,
        description=payload.notes,
        hosted_invoice_url=finalized.get("hosted_invoice_url"),
        invoice_pdf=finalized.get("invoice_pdf"),
        payment_intent_id=expandable_id(finalized.get("payment_intent")),
        finalized_at=timestamp_to_datetime(transitions.get("finalized_at")) or utcnow(),
        payment_attempt_count=0,
    )
    for line, remote_item_id in zip(lines, remote_item_ids):
        invoice.items.append(
            InvoiceItem(
                watch_id=line.watch_id,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_amount=line.total_amount,
                stripe_invoice_item_id=remote_item_id,
            )
        )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    logger.info(
        "Stored invoice %s (%s) total=%s status=%s",
        invoice.id,
        remote_id,
        total,
        status.value,
    )
    return InvoiceCreationResult(
        invoice=invoice,
        invoice_url=invoice.hosted_invoice_url,
        stripe_customer_id=customer_id,
        customer_created=created,
    )
