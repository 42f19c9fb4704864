"""Pytest configuration and shared fixtures."""

import json
import os

# Settings are read at import time by the app and session modules
os.environ.setdefault("JWT_SECRET", "test-signing-secret-0123456789abcdef")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.core.config import Settings
from marketplace.core.tokens import CapabilityTokenCodec, TokenSettings
from marketplace.db.base import Base
from marketplace.db.store import BusinessStore
from marketplace.services.notifications import ApprovalNotifier

TEST_SECRET = "test-signing-secret-0123456789abcdef"
FRONTEND_URL = "https://providers.example.test"


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def store(db_session):
    return BusinessStore(db_session)


@pytest.fixture
def token_settings():
    return TokenSettings(secret=TEST_SECRET, base_url=FRONTEND_URL)


@pytest.fixture
def codec(token_settings):
    return CapabilityTokenCodec(token_settings)


@pytest.fixture
def sent_emails():
    """JSON payloads posted to the email provider."""
    return []


@pytest.fixture
def email_transport(sent_emails):
    def handler(request: httpx.Request) -> httpx.Response:
        sent_emails.append(json.loads(request.content))
        return httpx.Response(200, json={"id": "email_123"})

    return httpx.MockTransport(handler)


@pytest.fixture
def email_settings():
    return Settings(
        _env_file=None,
        resend_api_key="re_test_key",
        frontend_url=FRONTEND_URL,
    )


@pytest.fixture
def notifier(email_settings, email_transport):
    return ApprovalNotifier(email_settings, transport=email_transport)


@pytest.fixture
def client(db_session, codec, notifier):
    """Test client wired to the in-memory database and mocked email transport."""
    from marketplace.api.main import app
    from marketplace.api.deps import get_db, get_notifier, get_token_codec

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_codec] = lambda: codec
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
