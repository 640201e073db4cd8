import json
import logging

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import get_db
from ..services.reconciliation import apply_stripe_event
from ..services.stripe_client import SignatureVerificationError, verify_signature

router = APIRouter(tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    stripe_signature: str | None = Header(default=None),
):
    """Receive Stripe events and mirror invoice state locally.

    - Verifies ``Stripe-Signature`` (HMAC SHA256 over ``"{t}.{body}"``) with
      STRIPE_WEBHOOK_SECRET. Without a secret, deliveries are refused unless
      STRIPE_WEBHOOK_ALLOW_UNSIGNED is set for local development.
    - Recognised, unknown and unmatched events are all acknowledged with 200
      so Stripe does not retry them.
    """
    raw = await request.body()
    secret = settings.STRIPE_WEBHOOK_SECRET
    if secret:
        try:
            verify_signature(raw, stripe_signature, secret, settings.STRIPE_WEBHOOK_TOLERANCE)
        except SignatureVerificationError as exc:
            logger.warning("Stripe webhook signature rejected: %s", exc)
            return ORJSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": {"message": "Invalid signature", "field_errors": {}}},
            )
    elif not settings.STRIPE_WEBHOOK_ALLOW_UNSIGNED:
        logger.error("Stripe webhook received but STRIPE_WEBHOOK_SECRET is not configured")
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": {"message": "Webhook signing secret not configured", "field_errors": {}}},
        )
    else:
        logger.warning("Accepting unsigned Stripe webhook (STRIPE_WEBHOOK_ALLOW_UNSIGNED)")

    try:
        event = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("Stripe webhook body is not valid JSON")
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": {"message": "Invalid payload", "field_errors": {}}},
        )
    if not isinstance(event, dict):
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": {"message": "Invalid payload", "field_errors": {}}},
        )

    logger.info("Stripe webhook %s (%s)", event.get("type"), event.get("id"))
    outcome = apply_stripe_event(db, event)
    return {"received": True, "outcome": outcome.outcome, "invoice_id": outcome.invoice_id}
