"""
Pytest configuration and fixtures for the PayU bridge tests.

Credentials and a throwaway SQLite ledger are put in the environment before any
application module is imported; core.database reads DATABASE_URL at import time.
"""
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="payu-ledger-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'ledger.db')}"
os.environ["PAYU_MERCHANT_KEY"] = "gtKFFx"
os.environ["PAYU_MERCHANT_SALT"] = "eCwWELxi"
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["APP_BASE_URL"] = "https://wanderhub.ai"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from core.config import get_settings, load_settings  # noqa: E402
from core.database import Base, SessionLocal, engine  # noqa: E402
import models.ledger  # noqa: E402,F401
import models.catalog  # noqa: E402,F401
from utils import emailing  # noqa: E402
from utils.payu_hash import PayUCredentials  # noqa: E402
from payu_fixtures import KEY, SALT  # noqa: E402

import main  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_ledger():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    get_settings.cache_clear()
    main.app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Replace the Resend call with a recorder."""
    sent = []

    async def _fake_send(to_addr, subject, html, **kwargs):
        sent.append({"to": to_addr, "subject": subject, "html": html, **kwargs})
        return True

    monkeypatch.setattr(emailing, "send_email_resend", _fake_send)
    return sent


@pytest.fixture
def settings():
    return load_settings()


@pytest.fixture
def creds():
    return PayUCredentials(KEY, SALT)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(main.app, follow_redirects=False)
