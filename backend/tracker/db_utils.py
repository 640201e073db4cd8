"""Startup schema patches for databases created before the Stripe columns.

These mirror the Alembic migrations so an existing SQLite file keeps working
when the app starts without ``alembic upgrade`` having been run.
"""

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def add_column_if_missing(engine: Engine, table: str, column: str, ddl: str) -> bool:
    """Add a column to *table* if it does not exist; returns True when added."""

    inspector = inspect(engine)
    if table not in inspector.get_table_names():
        return False
    column_names = [col["name"] for col in inspector.get_columns(table)]
    if column in column_names:
        return False
    normalized = ddl
    if engine.dialect.name == "postgresql":
        normalized = normalized.replace(" DATETIME", " TIMESTAMP").replace(" datetime", " timestamp")
    with engine.connect() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {normalized}"))
        conn.commit()
    logger.info("Added column %s.%s", table, column)
    return True


def ensure_user_stripe_columns(engine: Engine) -> None:
    """Per-user Stripe keys were added after the first release."""
    add_column_if_missing(engine, "users", "stripe_secret_key", "stripe_secret_key VARCHAR")
    add_column_if_missing(engine, "users", "stripe_publishable_key", "stripe_publishable_key VARCHAR")


def ensure_contact_stripe_columns(engine: Engine) -> None:
    add_column_if_missing(engine, "user_contacts", "stripe_customer_id", "stripe_customer_id VARCHAR")
    add_column_if_missing(engine, "user_contacts", "last_stripe_sync", "last_stripe_sync DATETIME")


def ensure_invoice_payment_columns(engine: Engine) -> None:
    """Payment tracking fields written by the Stripe webhook."""
    add_column_if_missing(engine, "invoices", "payment_intent_id", "payment_intent_id VARCHAR")
    add_column_if_missing(engine, "invoices", "paid_at", "paid_at DATETIME")
    add_column_if_missing(engine, "invoices", "amount_paid", "amount_paid NUMERIC(10, 2)")
    add_column_if_missing(engine, "invoices", "finalized_at", "finalized_at DATETIME")
    add_column_if_missing(engine, "invoices", "last_payment_error", "last_payment_error TEXT")
    add_column_if_missing(
        engine,
        "invoices",
        "payment_attempt_count",
        "payment_attempt_count INTEGER NOT NULL DEFAULT 0",
    )


def ensure_schema(engine: Engine) -> None:
    ensure_user_stripe_columns(engine)
    ensure_contact_stripe_columns(engine)
    ensure_invoice_payment_columns(engine)
