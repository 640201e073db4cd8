from decimal import Decimal

from tracker.models import CollectionMethod, Invoice, InvoiceItem, InvoiceStatus

ROLEX = {
    "customer": {"email": "buyer@example.com", "name": "Alex Buyer"},
    "items": [
        {"description": "Rolex Submariner 126610LN", "quantity": 1, "unit_price": 13500.00}
    ],
}


def seed_invoice(session_factory, user, **fields):
    """Insert a finalized invoice row as if it had been created earlier."""
    values = dict(
        user_id=user.id,
        stripe_invoice_id="in_test_1",
        stripe_customer_id="cus_test_1",
        invoice_number="INV-0001",
        status=InvoiceStatus.OPEN,
        collection_method=CollectionMethod.CHARGE_AUTOMATICALLY,
        total_amount=Decimal("13500.00"),
        currency="usd",
        payment_intent_id="pi_test_1",
        hosted_invoice_url="https://invoice.stripe.com/i/in_test_1",
    )
    values.update(fields)
    db = session_factory()
    invoice = Invoice(**values)
    invoice.items.append(
        InvoiceItem(
            description="Rolex Submariner 126610LN",
            quantity=1,
            unit_price=values["total_amount"],
            total_amount=values["total_amount"],
        )
    )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    db.close()
    return invoice


def load_invoice(session_factory, invoice_id):
    db = session_factory()
    invoice = db.get(Invoice, invoice_id)
    db.close()
    return invoice
