# backend/tracker/api/auth.py

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
import logging

from ..crud import crud_user
from ..database import get_db
from ..models.user import User
from ..schemas.user import Token, UserCreate, UserResponse
from ..services.rate_limiter import RateLimiter
from ..utils.auth import create_access_token, normalize_email, verify_password
from .dependencies import get_current_user, get_login_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    if crud_user.user.get_user_by_email(db, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="That email already has an account. Sign in instead.",
        )
    db_user = crud_user.user.create_user(db, user_data)
    logger.info("Registered user %s", db_user.id)
    return db_user


@router.post("/login", response_model=Token)
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    limiter: RateLimiter = Depends(get_login_rate_limiter),
):
    ip = request.client.host if request.client else "unknown"
    email = normalize_email(form_data.username)
    user_key = f"user:{email}"
    ip_key = f"ip:{ip}"
    if limiter.is_blocked(user_key) or limiter.is_blocked(ip_key):
        logger.info("Login locked out for %s from %s", email, ip)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Try again later.",
        )

    user = crud_user.user.get_user_by_email(db, email)
    if not user or not verify_password(form_data.password, user.password):
        limiter.record(user_key)
        limiter.record(ip_key)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    limiter.reset(user_key)
    limiter.reset(ip_key)
    return Token(access_token=create_access_token({"sub": user.email}))


@router.get("/me", response_model=UserResponse)
def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user
