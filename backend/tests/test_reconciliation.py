from decimal import Decimal

import pytest

from tracker.models import Invoice, InvoiceStatus
from tracker.services import reconciliation
from tracker.services.reconciliation import apply_stripe_event, can_transition, sync_invoice

from factories import load_invoice, seed_invoice
from stripe_fake import VALID_KEY


@pytest.mark.parametrize(
    "current,new,allowed",
    [
        (InvoiceStatus.DRAFT, InvoiceStatus.PAID, True),
        (InvoiceStatus.OPEN, InvoiceStatus.PAYMENT_FAILED, True),
        (InvoiceStatus.PAYMENT_FAILED, InvoiceStatus.PAID, True),
        (InvoiceStatus.PAYMENT_FAILED, InvoiceStatus.OPEN, False),
        (InvoiceStatus.UNCOLLECTIBLE, InvoiceStatus.PAID, True),
        (InvoiceStatus.UNCOLLECTIBLE, InvoiceStatus.OPEN, False),
        (InvoiceStatus.PAID, InvoiceStatus.OPEN, False),
        (InvoiceStatus.PAID, InvoiceStatus.VOID, False),
        (InvoiceStatus.VOID, InvoiceStatus.PAID, False),
        (None, InvoiceStatus.OPEN, True),
    ],
)
def test_can_transition(current, new, allowed):
    assert can_transition(current, new) is allowed


def test_event_without_data_object_is_unmatched(session_factory):
    db = session_factory()
    outcome = apply_stripe_event(db, {"id": "evt_x", "type": "invoice.paid"})
    assert outcome.outcome == reconciliation.UNMATCHED
    db.close()


def test_updated_event_mirrors_remote_status(session_factory, dealer):
    invoice = seed_invoice(session_factory, dealer)
    db = session_factory()
    outcome = apply_stripe_event(
        db,
        {
            "id": "evt_upd",
            "type": "invoice.updated",
            "created": 1760000000,
            "data": {
                "object": {
                    "id": "in_test_1",
                    "status": "paid",
                    "amount_paid": 1200000,
                    "status_transitions": {"paid_at": 1759990000},
                }
            },
        },
    )
    db.close()
    assert outcome.outcome == reconciliation.UPDATED
    assert outcome.status == "paid"
    stored = load_invoice(session_factory, invoice.id)
    assert stored.amount_paid == Decimal("12000.00")
    # The provider's own paid time wins over the event time
    assert stored.paid_at.isoformat() == "2025-10-09T06:06:40"


def test_sync_invoice_overwrites_from_provider(session_factory, dealer, fake_stripe):
    invoice = seed_invoice(session_factory, dealer, stripe_invoice_id="in_remote")
    fake_stripe.invoices["in_remote"] = {
        "id": "in_remote",
        "status": "uncollectible",
        "number": "INV-0042",
        "hosted_invoice_url": "https://invoice.stripe.com/i/in_remote",
        "invoice_pdf": "https://pay.stripe.com/invoice/in_remote/pdf",
        "payment_intent": {"id": "pi_expanded"},
        "status_transitions": {},
    }
    db = session_factory()
    row = db.get(Invoice, invoice.id)
    with fake_stripe.client_for(VALID_KEY) as stripe:
        assert sync_invoice(db, stripe, row) is True
        assert sync_invoice(db, stripe, row) is False
    db.close()

    stored = load_invoice(session_factory, invoice.id)
    assert stored.status == InvoiceStatus.UNCOLLECTIBLE
    assert stored.invoice_number == "INV-0042"
    assert stored.payment_intent_id == "pi_expanded"
