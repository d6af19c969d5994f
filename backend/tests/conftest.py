"""Shared test fixtures for all test modules."""

import hashlib
import hmac
import time

import pytest
from sqlalchemy.orm import sessionmaker

import storefront.models  # noqa: F401  registers tables on Base.metadata
from storefront.core import database as db_module
from storefront.core.database import Base, build_engine

# In-memory engine: build_engine pins it to one shared connection so every
# session sees the same data.
_test_engine = build_engine("sqlite://")
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

WEBHOOK_SECRET = "whsec_test_secret"


def sign_stripe_payload(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Build a ``Stripe-Signature`` header the way Stripe signs webhooks."""
    timestamp = int(time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture(autouse=True)
def setup_database(monkeypatch):
    """Point the app at the in-memory database with fresh tables per test."""
    monkeypatch.setattr(db_module, "engine", _test_engine)
    monkeypatch.setattr(db_module, "SessionLocal", _TestSessionLocal)
    Base.metadata.create_all(bind=_test_engine)
    yield
    Base.metadata.drop_all(bind=_test_engine)


@pytest.fixture
def db_session():
    """Session bound to the test database, closed after the test."""
    db = db_module.SessionLocal()
    try:
        yield db
    finally:
        db.close()
