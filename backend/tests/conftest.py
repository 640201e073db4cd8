import os

# tracker.database picks its engine at import time
os.environ.setdefault("PYTEST_RUN", "1")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("REDIS_URL", "disabled")

from pathlib import Path

import fakeredis
import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Load environment variables for tests
load_dotenv(Path(__file__).resolve().parents[1] / ".env.test")

from tracker.api import dependencies  # noqa: E402
from tracker.database import Base, get_db  # noqa: E402
from tracker.main import app  # noqa: E402
from tracker.models import User  # noqa: E402
from tracker.utils.auth import create_access_token, get_password_hash  # noqa: E402

from stripe_fake import VALID_KEY, FakeStripe  # noqa: E402


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)

    def override_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    yield Session
    app.dependency_overrides.pop(get_db, None)
    engine.dispose()


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Back every rate limiter with an isolated fakeredis instance."""
    fake = fakeredis.FakeStrictRedis(decode_responses=True)
    monkeypatch.setattr(dependencies, "get_redis_client", lambda: fake)
    return fake


@pytest.fixture
def fake_stripe():
    fake = FakeStripe()
    app.dependency_overrides[dependencies.get_stripe_client_factory] = lambda: fake.client_for
    yield fake
    app.dependency_overrides.pop(dependencies.get_stripe_client_factory, None)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(session_factory):
    def _make_user(email="dealer@example.com", password="secret123", secret_key=VALID_KEY,
                   publishable_key="pk_test_dealer", is_active=True):
        db = session_factory()
        user = User(
            email=email,
            password=get_password_hash(password),
            first_name="Dana",
            last_name="Dealer",
            company_name="Dana's Timepieces",
            is_active=is_active,
            stripe_secret_key=secret_key,
            stripe_publishable_key=publishable_key if secret_key else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        db.close()
        return user

    return _make_user


@pytest.fixture
def dealer(make_user):
    return make_user()


def auth_headers(user) -> dict:
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def headers(dealer):
    return auth_headers(dealer)
