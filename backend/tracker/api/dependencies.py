from typing import Callable, Iterator, Optional

from fastapi import Depends, HTTPException, status
from jose import JWTError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..crud import crud_user
from ..database import get_db
from ..models.user import User
from ..services.rate_limiter import RateLimiter
from ..services.stripe_client import StripeClient
from ..utils.auth import decode_access_token, oauth2_scheme
from ..utils.errors import STRIPE_KEYS_REQUIRED, error_response
from ..utils.redis_client import get_redis_client

StripeClientFactory = Callable[[str], StripeClient]


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception
    try:
        payload = decode_access_token(token)
        email: Optional[str] = payload.get("sub")
        if email is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    user = crud_user.user.get_user_by_email(db, email)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


def get_stripe_client_factory() -> StripeClientFactory:
    """Build Stripe clients from a secret key; tests swap in a fake transport."""
    return StripeClient


def get_stripe_client(
    current_user: User = Depends(get_current_user),
    factory: StripeClientFactory = Depends(get_stripe_client_factory),
) -> Iterator[StripeClient]:
    """Stripe client for the caller's own account; 400 when no key is stored."""
    if not current_user.stripe_secret_key:
        raise error_response(
            STRIPE_KEYS_REQUIRED,
            {"stripe_secret_key": "required"},
            status.HTTP_400_BAD_REQUEST,
        )
    client = factory(current_user.stripe_secret_key)
    try:
        yield client
    finally:
        client.close()


def get_optional_stripe_client(
    current_user: User = Depends(get_current_user),
    factory: StripeClientFactory = Depends(get_stripe_client_factory),
) -> Iterator[Optional[StripeClient]]:
    """Like ``get_stripe_client`` but yields None so read paths still work."""
    if not current_user.stripe_secret_key:
        yield None
        return
    client = factory(current_user.stripe_secret_key)
    try:
        yield client
    finally:
        client.close()


def get_login_rate_limiter() -> RateLimiter:
    return RateLimiter(
        get_redis_client(),
        max_attempts=settings.MAX_LOGIN_ATTEMPTS,
        window=settings.LOGIN_ATTEMPT_WINDOW,
        prefix="login_fail",
    )


def get_promo_rate_limiter() -> RateLimiter:
    return RateLimiter(
        get_redis_client(),
        max_attempts=settings.PROMO_MAX_ATTEMPTS,
        window=settings.PROMO_ATTEMPT_WINDOW,
        prefix="promo_signup",
    )
