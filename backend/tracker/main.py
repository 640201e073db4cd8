# backend/tracker/main.py

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as SA_TimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401  registers tables on Base.metadata
from .api import (
    api_account,
    api_contacts,
    api_invoice,
    api_promo,
    api_watches,
    api_webhooks,
    auth,
)
from .core.config import FRONTEND_ORIGINS, settings
from .core.observability import setup_logging, setup_tracer
from .database import Base, engine, get_db_session
from .db_utils import ensure_schema
from .utils.redis_client import close_redis_client

# Configure logging before creating any loggers
setup_logging()
logger = logging.getLogger(__name__)

_BOOT_TS = time.time()

Base.metadata.create_all(bind=engine)
ensure_schema(engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Closing Redis client")
    close_redis_client()


app = FastAPI(title="Watch Tracker API", default_response_class=ORJSONResponse, lifespan=lifespan)
setup_tracer(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", FRONTEND_ORIGINS)


@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    """Return JSON responses for unhandled errors and log them."""
    try:
        response = await call_next(request)
    except StarletteHTTPException as exc:  # return the original status and detail
        logger.error(
            "HTTP error %s at %s: %s", exc.status_code, request.url.path, exc.detail
        )
        response = ORJSONResponse(
            status_code=exc.status_code, content={"detail": exc.detail}
        )
    except SA_TimeoutError as exc:  # DB pool timeout -> 503 to reduce retry storms
        logger.error("DB timeout at %s: %s", request.url.path, str(exc))
        response = ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database busy, please retry"},
        )
    except Exception as exc:  # pragma: no cover - generic handler
        logger.exception("Unhandled error: %s", exc)
        response = ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return validation errors with details and log them for debugging."""
    errors = exc.errors()
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    field_errors = {
        ".".join(str(p) for p in err.get("loc", ())[1:]) or "body": err.get("msg", "invalid")
        for err in errors
    }
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": {"message": "Validation failed", "field_errors": field_errors},
            "errors": jsonable_errors(errors),
        },
    )


def jsonable_errors(errors: list) -> list:
    # ``ctx`` may hold exception instances that orjson cannot encode
    cleaned = []
    for err in errors:
        item = {k: v for k, v in err.items() if k not in ("ctx", "url", "input")}
        item["loc"] = list(item.get("loc", ()))
        cleaned.append(item)
    return cleaned


@app.get("/healthz", tags=["health"])
def healthz():
    """Readiness probe: pings the database."""
    started = time.perf_counter()
    try:
        with get_db_session() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check DB ping failed: %s", exc)
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "reason": "db_unavailable"},
        )
    return {
        "status": "ok",
        "db_ping_ms": round((time.perf_counter() - started) * 1000.0, 1),
        "uptime_s": round(time.time() - _BOOT_TS, 1),
    }


api_prefix = settings.API_V1_STR  # usually "/api/v1"

# ─── AUTH ROUTES (no version prefix) ─────────────────────────────────────────
app.include_router(auth.router, prefix="/auth", tags=["auth"])

# ─── PROVIDER CALLBACKS ──────────────────────────────────────────────────────
app.include_router(api_webhooks.router, prefix="/webhooks", tags=["webhooks"])

# ─── DASHBOARD API ───────────────────────────────────────────────────────────
app.include_router(api_invoice.router, prefix=f"{api_prefix}/invoices", tags=["invoices"])
app.include_router(api_account.router, prefix=f"{api_prefix}/account", tags=["account"])
app.include_router(api_contacts.router, prefix=f"{api_prefix}/contacts", tags=["contacts"])
app.include_router(api_watches.router, prefix=f"{api_prefix}/watches", tags=["watches"])
app.include_router(api_promo.router, prefix=f"{api_prefix}/promo", tags=["promo"])
