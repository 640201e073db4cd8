from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from .. import models


def get_invoice(db: Session, invoice_id: int) -> Optional[models.Invoice]:
    return db.query(models.Invoice).filter(models.Invoice.id == invoice_id).first()


def get_invoice_for_user(db: Session, user_id: int, invoice_id: int) -> Optional[models.Invoice]:
    return (
        db.query(models.Invoice)
        .options(joinedload(models.Invoice.items), joinedload(models.Invoice.contact))
        .filter(models.Invoice.id == invoice_id, models.Invoice.user_id == user_id)
        .first()
    )


def list_invoices_for_user(
    db: Session,
    user_id: int,
    status: Optional[models.InvoiceStatus] = None,
    skip: int = 0,
    limit: int = 50,
) -> List[models.Invoice]:
    """Return the user's invoices, newest first, with their contact loaded."""
    query = (
        db.query(models.Invoice)
        .options(joinedload(models.Invoice.contact))
        .filter(models.Invoice.user_id == user_id)
    )
    if status:
        query = query.filter(models.Invoice.status == status)
    return (
        query.order_by(models.Invoice.created_at.desc(), models.Invoice.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_invoice_by_stripe_id(db: Session, stripe_invoice_id: str) -> Optional[models.Invoice]:
    if not stripe_invoice_id:
        return None
    return (
        db.query(models.Invoice)
        .filter(models.Invoice.stripe_invoice_id == stripe_invoice_id)
        .first()
    )


def get_invoice_by_payment_intent(db: Session, payment_intent_id: str) -> Optional[models.Invoice]:
    if not payment_intent_id:
        return None
    return (
        db.query(models.Invoice)
        .filter(models.Invoice.payment_intent_id == payment_intent_id)
        .first()
    )


def apply_changes(invoice: models.Invoice, changes: dict) -> List[str]:
    """Set each changed attribute and return the names that actually changed."""
    changed: List[str] = []
    for field, value in changes.items():
        if getattr(invoice, field) != value:
            setattr(invoice, field, value)
            changed.append(field)
    return changed
