from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import models
from ..crud import crud_contact
from ..database import get_db
from ..schemas.contact import ContactCreate, ContactRead, ContactUpdate
from ..utils.errors import error_response
from .dependencies import get_current_user

router = APIRouter(tags=["contacts"])


def _get_owned_contact(db: Session, user: models.User, contact_id: int) -> models.Contact:
    contact = crud_contact.get_contact(db, user.id, contact_id)
    if contact is None:
        raise error_response("Contact not found", {"contact_id": "not_found"}, status.HTTP_404_NOT_FOUND)
    return contact


@router.get("/", response_model=List[ContactRead])
def list_contacts(
    q: Optional[str] = None,
    contact_type: Optional[models.ContactType] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud_contact.list_contacts(db, current_user.id, q=q, contact_type=contact_type, skip=skip, limit=limit)


@router.post("/", response_model=ContactRead, status_code=status.HTTP_201_CREATED)
def create_contact(
    data: ContactCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud_contact.create_contact(db, current_user.id, data)


@router.get("/{contact_id}", response_model=ContactRead)
def read_contact(
    contact_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return _get_owned_contact(db, current_user, contact_id)


@router.put("/{contact_id}", response_model=ContactRead)
def update_contact(
    contact_id: int,
    data: ContactUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    contact = _get_owned_contact(db, current_user, contact_id)
    return crud_contact.update_contact(db, contact, data)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contact(
    contact_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    contact = _get_owned_contact(db, current_user, contact_id)
    crud_contact.delete_contact(db, contact)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
