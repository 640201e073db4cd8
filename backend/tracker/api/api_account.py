import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models
from ..crud import crud_user
from ..database import get_db
from ..schemas.user import StripeSettingsRead, StripeSettingsUpdate
from ..utils.errors import error_response
from .dependencies import get_current_user

router = APIRouter(tags=["account"])
logger = logging.getLogger(__name__)


def _settings_view(user: models.User) -> StripeSettingsRead:
    return StripeSettingsRead(
        has_stripe_config=user.has_stripe_config,
        publishable_key=user.stripe_publishable_key or "",
        secret_key_configured=bool(user.stripe_secret_key),
    )


@router.get("/stripe", response_model=StripeSettingsRead)
def read_stripe_settings(current_user: models.User = Depends(get_current_user)):
    return _settings_view(current_user)


@router.put("/stripe", response_model=StripeSettingsRead)
def update_stripe_settings(
    data: StripeSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    secret_key = data.secret_key.strip()
    publishable_key = data.publishable_key.strip()
    field_errors = {}
    if not secret_key.startswith("sk_"):
        field_errors["secret_key"] = "must start with sk_"
    if not publishable_key.startswith("pk_"):
        field_errors["publishable_key"] = "must start with pk_"
    if field_errors:
        raise error_response("Invalid Stripe key format", field_errors, status.HTTP_400_BAD_REQUEST)
    user = crud_user.user.set_stripe_keys(db, current_user, secret_key, publishable_key)
    logger.info("Stripe keys updated for user %s", user.id)
    return _settings_view(user)


@router.delete("/stripe", response_model=StripeSettingsRead)
def clear_stripe_settings(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    user = crud_user.user.set_stripe_keys(db, current_user, None, None)
    logger.info("Stripe keys cleared for user %s", user.id)
    return _settings_view(user)
