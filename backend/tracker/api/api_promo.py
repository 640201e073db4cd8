import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..crud import crud_promo
from ..database import get_db
from ..schemas.promo import PromoSignupCreate, PromoSignupResponse
from ..services.rate_limiter import RateLimiter
from ..utils.auth import normalize_email
from ..utils.errors import error_response
from .dependencies import get_promo_rate_limiter

router = APIRouter(tags=["promo"])
logger = logging.getLogger(__name__)


@router.post(
    "/operandi-challenge",
    response_model=PromoSignupResponse,
    status_code=status.HTTP_201_CREATED,
)
def promo_signup(
    data: PromoSignupCreate,
    request: Request,
    db: Session = Depends(get_db),
    limiter: RateLimiter = Depends(get_promo_rate_limiter),
):
    """Public signup for the Operandi Challenge promotion."""
    ip = request.client.host if request.client else "unknown"
    email = normalize_email(data.email)
    result = limiter.hit(f"{email}:{ip}")
    if not result.allowed:
        logger.info("Promo signup rate limited for %s from %s", email, ip)
        return ORJSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "detail": {
                    "message": "Too many signup attempts. Please try again later.",
                    "field_errors": {},
                },
                "retry_after": result.retry_after,
            },
            headers={"Retry-After": str(result.retry_after)},
        )

    if crud_promo.get_signup_by_email(db, email):
        raise error_response(
            "This email is already registered for the challenge",
            {"email": "duplicate"},
            status.HTTP_409_CONFLICT,
        )
    try:
        signup = crud_promo.create_signup(db, data, ip_address=ip)
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email
        db.rollback()
        raise error_response(
            "This email is already registered for the challenge",
            {"email": "duplicate"},
            status.HTTP_409_CONFLICT,
        )
    logger.info("Promo signup %s created for %s", signup.id, signup.business_name)
    return PromoSignupResponse(
        id=signup.id,
        message="Thanks for signing up! We'll be in touch soon.",
    )
