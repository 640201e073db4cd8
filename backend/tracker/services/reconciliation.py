"""Keep local invoice rows in step with Stripe.

Two paths feed the same rows. Webhook events push changes as they happen,
and listing invoices pulls the current state of the most recent ones.
Neither path locks the row; the last write wins.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from ..crud import crud_invoice
from ..models import Invoice, InvoiceStatus
from ..models.base import utcnow
from .invoicing import timestamp_to_datetime
from .stripe_client import (
    StripeAuthenticationError,
    StripeClient,
    StripeError,
    expandable_id,
    from_minor_units,
)

logger = logging.getLogger(__name__)

UPDATED = "updated"
UNCHANGED = "unchanged"
UNMATCHED = "unmatched"
IGNORED = "ignored"

_ANY = frozenset(InvoiceStatus)
_FROM_OPEN = frozenset(
    {
        InvoiceStatus.OPEN,
        InvoiceStatus.PAID,
        InvoiceStatus.VOID,
        InvoiceStatus.UNCOLLECTIBLE,
        InvoiceStatus.PAYMENT_FAILED,
    }
)

# Statuses a webhook may move an invoice to, keyed by its current status.
# Paid and void are final. A failed payment can still be retried to paid;
# Stripe reporting the invoice as open in between does not clear the failure.
ALLOWED_TRANSITIONS: Dict[InvoiceStatus, frozenset] = {
    InvoiceStatus.DRAFT: _ANY,
    InvoiceStatus.OPEN: _FROM_OPEN,
    InvoiceStatus.PAYMENT_FAILED: _FROM_OPEN - {InvoiceStatus.OPEN},
    InvoiceStatus.UNCOLLECTIBLE: frozenset(
        {InvoiceStatus.UNCOLLECTIBLE, InvoiceStatus.PAID, InvoiceStatus.VOID}
    ),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.PAID}),
    InvoiceStatus.VOID: frozenset({InvoiceStatus.VOID}),
}


# Fields that only make sense together with the status they arrive with
_STATUS_FIELDS = ("status", "paid_at", "amount_paid", "last_payment_error", "payment_attempt_count")


@dataclass
class ReconcileOutcome:
    outcome: str
    event_type: str
    invoice_id: Optional[int] = None
    status: Optional[str] = None


def can_transition(current: Optional[InvoiceStatus], new: InvoiceStatus) -> bool:
    if current is None:
        return True
    return new in ALLOWED_TRANSITIONS.get(current, _ANY)


def _document_fields(obj: dict) -> dict:
    """URLs and identifiers worth copying whenever Stripe sends them."""
    fields = {
        "hosted_invoice_url": obj.get("hosted_invoice_url"),
        "invoice_pdf": obj.get("invoice_pdf"),
        "invoice_number": obj.get("number"),
        "payment_intent_id": expandable_id(obj.get("payment_intent")),
    }
    return {k: v for k, v in fields.items() if v}


def _paid_fields(obj: dict, event_created: Optional[datetime]) -> dict:
    transitions = obj.get("status_transitions") or {}
    fields = {
        "status": InvoiceStatus.PAID,
        "paid_at": timestamp_to_datetime(transitions.get("paid_at")) or event_created or utcnow(),
    }
    amount_paid = from_minor_units(obj.get("amount_paid"), obj.get("currency"))
    if amount_paid is not None:
        fields["amount_paid"] = amount_paid
    return fields


def _error_message(obj: dict) -> str:
    err = obj.get("last_payment_error") or obj.get("last_finalization_error") or {}
    if isinstance(err, dict) and err.get("message"):
        return err["message"]
    return "Payment attempt failed"


def _invoice_changes(event_type: str, obj: dict, created: Optional[datetime]) -> Optional[dict]:
    if event_type == "invoice.finalized":
        transitions = obj.get("status_transitions") or {}
        return {
            "status": InvoiceStatus.OPEN,
            "finalized_at": timestamp_to_datetime(transitions.get("finalized_at")) or created or utcnow(),
            **_document_fields(obj),
        }
    if event_type in ("invoice.payment_succeeded", "invoice.paid"):
        return {**_document_fields(obj), **_paid_fields(obj, created)}
    if event_type == "invoice.payment_failed":
        changes = {
            "status": InvoiceStatus.PAYMENT_FAILED,
            "last_payment_error": _error_message(obj),
            **_document_fields(obj),
        }
        if obj.get("attempt_count") is not None:
            changes["payment_attempt_count"] = int(obj["attempt_count"])
        return changes
    if event_type == "invoice.updated":
        changes = _document_fields(obj)
        status = InvoiceStatus.from_provider(obj.get("status"))
        if status == InvoiceStatus.PAID:
            changes.update(_paid_fields(obj, created))
        elif status is not None:
            changes["status"] = status
        return changes
    if event_type == "invoice.voided":
        return {"status": InvoiceStatus.VOID, **_document_fields(obj)}
    if event_type == "invoice.marked_uncollectible":
        return {"status": InvoiceStatus.UNCOLLECTIBLE, **_document_fields(obj)}
    return None


def _payment_intent_changes(event_type: str, obj: dict, created: Optional[datetime]) -> Optional[dict]:
    if event_type == "payment_intent.succeeded":
        changes = {
            "status": InvoiceStatus.PAID,
            "paid_at": created or utcnow(),
            "payment_intent_id": obj.get("id"),
        }
        received = from_minor_units(obj.get("amount_received"), obj.get("currency"))
        if received is not None:
            changes["amount_paid"] = received
        return changes
    if event_type == "payment_intent.payment_failed":
        return {
            "status": InvoiceStatus.PAYMENT_FAILED,
            "last_payment_error": _error_message(obj),
            "payment_intent_id": obj.get("id"),
        }
    return None


def _find_for_payment_intent(db: Session, obj: dict) -> Optional[Invoice]:
    invoice = crud_invoice.get_invoice_by_payment_intent(db, obj.get("id"))
    if invoice is None:
        invoice = crud_invoice.get_invoice_by_stripe_id(db, expandable_id(obj.get("invoice")))
    return invoice


def _apply(db: Session, invoice: Invoice, changes: dict, event_type: str) -> ReconcileOutcome:
    new_status = changes.get("status")
    if new_status is not None and not can_transition(invoice.status, new_status):
        logger.info(
            "Ignoring %s for invoice %s: %s -> %s is not a valid transition",
            event_type,
            invoice.stripe_invoice_id,
            invoice.status.value,
            new_status.value,
        )
        changes = {k: v for k, v in changes.items() if k not in _STATUS_FIELDS}
    elif new_status == InvoiceStatus.PAID and invoice.paid_at is not None:
        # Invoice and payment-intent events both report the payment; the
        # first recorded time stays.
        changes.pop("paid_at", None)

    changed = crud_invoice.apply_changes(invoice, changes)
    if not changed:
        return ReconcileOutcome(UNCHANGED, event_type, invoice.id, invoice.status.value)
    db.add(invoice)
    db.commit()
    logger.info(
        "Invoice %s updated from %s: %s",
        invoice.stripe_invoice_id,
        event_type,
        ", ".join(changed),
    )
    return ReconcileOutcome(UPDATED, event_type, invoice.id, invoice.status.value)


def apply_stripe_event(db: Session, event: dict) -> ReconcileOutcome:
    """Apply one Stripe webhook event to the matching local invoice.

    Unknown event types and events for invoices this system never created are
    logged and reported back without raising, so Stripe stops retrying them.
    """
    event_type = event.get("type") or ""
    obj = (event.get("data") or {}).get("object") or {}
    created = timestamp_to_datetime(event.get("created"))

    if event_type.startswith("payment_intent."):
        changes = _payment_intent_changes(event_type, obj, created)
        invoice = _find_for_payment_intent(db, obj) if changes is not None else None
    else:
        changes = _invoice_changes(event_type, obj, created) if event_type.startswith("invoice.") else None
        invoice = crud_invoice.get_invoice_by_stripe_id(db, obj.get("id")) if changes is not None else None

    if changes is None:
        logger.info("Unhandled Stripe event type %s (%s)", event_type, event.get("id"))
        return ReconcileOutcome(IGNORED, event_type)
    if invoice is None:
        logger.warning(
            "No local invoice for Stripe event %s (%s, object %s)",
            event.get("id"),
            event_type,
            obj.get("id"),
        )
        return ReconcileOutcome(UNMATCHED, event_type)
    return _apply(db, invoice, changes, event_type)


def sync_invoice(db: Session, stripe: StripeClient, invoice: Invoice) -> bool:
    """Overwrite the local row with Stripe's current view of the invoice.

    Returns True when anything changed. Stripe keeps a failed invoice
    ``open``, so a local ``payment_failed`` is not reset by an open status.
    """
    remote = stripe.retrieve_invoice(invoice.stripe_invoice_id)
    changes = _document_fields(remote)
    status = InvoiceStatus.from_provider(remote.get("status"))
    if status == InvoiceStatus.PAID:
        changes.update(_paid_fields(remote, invoice.paid_at))
    elif status is not None and not (
        status == InvoiceStatus.OPEN and invoice.status == InvoiceStatus.PAYMENT_FAILED
    ):
        changes["status"] = status

    changed = crud_invoice.apply_changes(invoice, changes)
    if changed:
        db.add(invoice)
        db.commit()
        logger.info("Synced invoice %s from Stripe: %s", invoice.stripe_invoice_id, ", ".join(changed))
    return bool(changed)


def sync_recent_invoices(
    db: Session, stripe: StripeClient, invoices: Iterable[Invoice], limit: int
) -> int:
    """Pull-sync the first ``limit`` invoices; returns how many changed.

    A failure on one invoice is logged and skipped. A rejected API key stops
    the pass since every remaining call would fail the same way.
    """
    updated = 0
    for invoice in list(invoices)[: max(limit, 0)]:
        try:
            if sync_invoice(db, stripe, invoice):
                updated += 1
        except StripeAuthenticationError as exc:
            logger.warning("Stopping invoice sync, Stripe rejected the key: %s", exc)
            break
        except StripeError as exc:
            logger.warning("Could not sync invoice %s: %s", invoice.stripe_invoice_id, exc)
    return updated
