from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, schemas
from ..models.base import utcnow


def get_contact(db: Session, user_id: int, contact_id: int) -> Optional[models.Contact]:
    return (
        db.query(models.Contact)
        .filter(models.Contact.id == contact_id, models.Contact.user_id == user_id)
        .first()
    )


def list_contacts(
    db: Session,
    user_id: int,
    q: Optional[str] = None,
    contact_type: Optional[models.ContactType] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Contact]:
    query = db.query(models.Contact).filter(models.Contact.user_id == user_id)
    if contact_type:
        query = query.filter(models.Contact.contact_type == contact_type)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(
            or_(
                models.Contact.first_name.ilike(like),
                models.Contact.last_name.ilike(like),
                models.Contact.email.ilike(like),
                models.Contact.company.ilike(like),
            )
        )
    return (
        query.order_by(models.Contact.last_name, models.Contact.first_name)
        .offset(skip)
        .limit(limit)
        .all()
    )


def create_contact(db: Session, user_id: int, data: schemas.ContactCreate) -> models.Contact:
    contact = models.Contact(user_id=user_id, **data.model_dump())
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def update_contact(
    db: Session, contact: models.Contact, data: schemas.ContactUpdate
) -> models.Contact:
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(contact, field, value)
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def delete_contact(db: Session, contact: models.Contact) -> None:
    # Invoices keep their history; only the link to the contact goes away.
    for invoice in contact.invoices:
        invoice.contact_id = None
    db.delete(contact)
    db.commit()


def link_stripe_customer(db: Session, contact: models.Contact, customer_id: str) -> models.Contact:
    contact.stripe_customer_id = customer_id
    contact.last_stripe_sync = utcnow()
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact
