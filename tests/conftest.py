"""
Shared fixtures for the inquiry service tests.
Runs against a local SQLite file; no SMTP server or Postgres required.
Run: pytest tests/ -v
"""
import os
from datetime import datetime, timedelta
from typing import Optional

# Environment must be in place before the app is imported
os.environ["DATABASE_URL"] = "sqlite:///./test_inquiries.db"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["ADMIN_EMAIL"] = "admin@morph-test.com"
os.environ["ADMIN_PASSWORD"] = "correct-horse-battery"
os.environ["MAIL_PROVIDER"] = "none"
os.environ["SEND_EMAIL_NOTIFICATIONS"] = "false"
os.environ["SEND_ADMIN_NOTIFICATIONS"] = "false"
os.environ.pop("ADMIN_PASSWORD_HASH", None)

import pytest
from fastapi.testclient import TestClient

from inquiry_service import service
from inquiry_service.adapters.base import Mailer
from inquiry_service.auth import create_access_token
from inquiry_service.database import Base, SessionLocal, engine
from inquiry_service.email_service import reset_mailer
from inquiry_service.main import app
from inquiry_service.models import Inquiry


VALID_INQUIRY = {
    "company": "Acme Agro Pvt Ltd",
    "name": "Jane Doe",
    "email": "jane@acme-agro.com",
    "phone": "+91 (22) 4000-1234",
    "interest": "biofertilizer",
    "volume": 5000,
    "message": "Need a quote for the coming season.",
}


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    reset_mailer()
    yield
    Base.metadata.drop_all(bind=engine)
    reset_mailer()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """Test client for FastAPI."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers():
    token = create_access_token("admin@morph-test.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_inquiry(db):
    """Create an inquiry through the service, optionally backdating it."""

    def _make(created_at: Optional[datetime] = None, **overrides) -> Inquiry:
        data = {**VALID_INQUIRY, **overrides}
        data = {key: value for key, value in data.items() if value is not None}
        inquiry = service.create_inquiry(db, data)
        if created_at is not None:
            inquiry.created_at = created_at
            db.commit()
            db.refresh(inquiry)
        return inquiry

    return _make


@pytest.fixture
def make_many(make_inquiry):
    """Create n inquiries one minute apart; index 0 is the oldest."""

    def _make_many(n: int, **overrides):
        base = datetime.utcnow() - timedelta(hours=1)
        return [
            make_inquiry(created_at=base + timedelta(minutes=i), company=f"Company {i:02d}", **overrides)
            for i in range(n)
        ]

    return _make_many


class FakeMailer(Mailer):
    """Records every send; recipients listed in fail_for get a failure result."""

    provider = "fake"

    def __init__(self, fail_for=(), raise_for=()):
        self.sent = []
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)

    def send(self, to, subject, html, text=None):
        if to in self.raise_for:
            raise ConnectionError(f"connection reset while sending to {to}")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        if to in self.fail_for:
            return {"success": False, "message": f"Mailbox unavailable: {to}"}
        return {"success": True, "message": f"Email sent to {to}"}
