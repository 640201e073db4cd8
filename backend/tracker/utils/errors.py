from typing import Dict
from fastapi import HTTPException, status
import logging

from ..services.stripe_client import StripeAuthenticationError, StripeError

logger = logging.getLogger(__name__)

STRIPE_KEYS_REQUIRED = "Set Stripe API Keys to use this feature"
STRIPE_AUTH_REMEDIATION = (
    "Your Stripe secret key was rejected. Update it under Account > Stripe settings."
)


def error_response(
    message: str,
    field_errors: Dict[str, str],
    code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    return HTTPException(status_code=code, detail=detail)


def stripe_error_response(exc: Exception, action: str) -> HTTPException:
    """Translate a Stripe client failure into the API error shape.

    Rejected credentials become a 401 carrying remediation text; anything
    else the provider reports is a 502 with Stripe's message passed through.
    """
    if isinstance(exc, StripeAuthenticationError):
        return error_response(
            STRIPE_AUTH_REMEDIATION,
            {"stripe": "authentication_failed"},
            status.HTTP_401_UNAUTHORIZED,
        )
    field_errors: Dict[str, str] = {}
    if isinstance(exc, StripeError):
        if exc.param:
            field_errors[exc.param] = exc.code or "invalid"
        elif exc.code:
            field_errors["stripe"] = exc.code
    return error_response(
        f"{action}: {exc}",
        field_errors,
        status.HTTP_502_BAD_GATEWAY,
    )
