from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from tracker.db_utils import (
    add_column_if_missing,
    ensure_contact_stripe_columns,
    ensure_invoice_payment_columns,
    ensure_schema,
    ensure_user_stripe_columns,
)


def setup_engine() -> Engine:
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        conn.execute(
            text(
                """
                CREATE TABLE users (
                    id INTEGER PRIMARY KEY,
                    email VARCHAR,
                    password VARCHAR
                )
                """
            )
        )
        conn.execute(
            text(
                """
                CREATE TABLE user_contacts (
                    id INTEGER PRIMARY KEY,
                    user_id INTEGER,
                    first_name VARCHAR
                )
                """
            )
        )
        conn.execute(
            text(
                """
                CREATE TABLE invoices (
                    id INTEGER PRIMARY KEY,
                    user_id INTEGER,
                    stripe_invoice_id VARCHAR,
                    status VARCHAR
                )
                """
            )
        )
        conn.execute(text("INSERT INTO invoices (id, user_id, stripe_invoice_id, status) VALUES (1, 1, 'in_1', 'open')"))
    return engine


def columns(engine, table):
    return [col["name"] for col in inspect(engine).get_columns(table)]


def test_add_user_stripe_columns():
    engine = setup_engine()
    ensure_user_stripe_columns(engine)
    assert {"stripe_secret_key", "stripe_publishable_key"} <= set(columns(engine, "users"))


def test_add_contact_stripe_columns():
    engine = setup_engine()
    ensure_contact_stripe_columns(engine)
    assert {"stripe_customer_id", "last_stripe_sync"} <= set(columns(engine, "user_contacts"))


def test_add_invoice_payment_columns_backfills_attempt_count():
    engine = setup_engine()
    ensure_invoice_payment_columns(engine)
    names = columns(engine, "invoices")
    for name in ("payment_intent_id", "paid_at", "amount_paid", "finalized_at", "last_payment_error"):
        assert name in names
    with engine.connect() as conn:
        count = conn.execute(text("SELECT payment_attempt_count FROM invoices WHERE id = 1")).scalar()
    assert count == 0


def test_add_column_is_idempotent():
    engine = setup_engine()
    assert add_column_if_missing(engine, "users", "company_name", "company_name VARCHAR") is True
    assert add_column_if_missing(engine, "users", "company_name", "company_name VARCHAR") is False
    assert add_column_if_missing(engine, "missing_table", "x", "x VARCHAR") is False
    ensure_schema(engine)
    ensure_schema(engine)
    assert columns(engine, "users").count("stripe_secret_key") == 1
