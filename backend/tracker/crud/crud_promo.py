from typing import Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..utils.auth import normalize_email


def get_signup_by_email(db: Session, email: str) -> Optional[models.PromoSignup]:
    return (
        db.query(models.PromoSignup)
        .filter(models.PromoSignup.email == normalize_email(email))
        .first()
    )


def create_signup(
    db: Session, data: schemas.PromoSignupCreate, ip_address: Optional[str] = None
) -> models.PromoSignup:
    payload = data.model_dump()
    payload["email"] = normalize_email(payload["email"])
    signup = models.PromoSignup(ip_address=ip_address, status="pending", **payload)
    db.add(signup)
    db.commit()
    db.refresh(signup)
    return signup
