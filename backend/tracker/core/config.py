from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Any, ClassVar
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", case_sensitive=True)

    API_V1_STR: str = "/api/v1"

    # JWT configuration (provide a fallback for local development)
    SECRET_KEY: str = "fallback_secret_for_dev_only"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Database URL
    # Use an absolute path so running the app from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'tracker.db'}"

    # Redis backs the login lockout and promo signup counters
    REDIS_URL: str = "redis://localhost:6379/0"

    # CORS origins
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_ALL: bool = False

    # Base frontend URL; always allowed as a CORS origin
    FRONTEND_URL: str = "http://localhost:3000"

    # Stripe. API keys are stored per user; only the webhook secret is global.
    STRIPE_API_BASE: str = "https://api.stripe.com/v1"
    STRIPE_TIMEOUT: float = 10.0
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_WEBHOOK_TOLERANCE: int = 300  # seconds
    # Accept unsigned webhook deliveries when no secret is configured.
    # Local development only.
    STRIPE_WEBHOOK_ALLOW_UNSIGNED: bool = False

    # Invoicing
    DEFAULT_CURRENCY: str = "usd"
    INVOICE_SYNC_LIMIT: int = 10

    # Login rate limiting
    MAX_LOGIN_ATTEMPTS: int = 5
    LOGIN_ATTEMPT_WINDOW: int = 300  # seconds

    # Promo signup rate limiting (per email + client IP)
    PROMO_MAX_ATTEMPTS: int = 3
    PROMO_ATTEMPT_WINDOW: int = 3600  # seconds

    LOG_LEVEL: str = "INFO"
    ENABLE_TRACING: bool = False
    ENABLE_CONSOLE_TRACING: bool = True

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("FRONTEND_URL", "STRIPE_WEBHOOK_SECRET", "STRIPE_API_BASE", mode="before")
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("DEFAULT_CURRENCY", mode="before")
    def lower_currency(cls, v: Any) -> Any:
        # Stripe expects lowercase ISO codes
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(cls, values: "Settings") -> "Settings":
        if values.CORS_ALLOW_ALL:
            values.CORS_ORIGINS = ["*"]
        return values


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env")))


settings = load_settings()


def _dedupe(seq: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item in seq:
        key = item.strip().rstrip("/")
        if not key or key in seen:
            continue
        seen.add(key)
        ordered.append(key)
    return ordered


def _collect_frontend_origins() -> list[str]:
    origins: list[str] = list(settings.CORS_ORIGINS or [])
    base = (settings.FRONTEND_URL or "").strip()
    if base:
        origins.append(base)
    return _dedupe(origins)


FRONTEND_ORIGINS = _collect_frontend_origins()
