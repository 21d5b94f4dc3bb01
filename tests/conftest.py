"""
pytest Fixtures for RottenBikes API Tests

Shared fixtures used across all test files.

DATABASE STRATEGY:
==================
The services own their transactions: they commit on success and roll back
on failure. Wrapping a test in an outer transaction would not survive a
service-level rollback, so each test gets its own in-memory SQLite engine
with freshly created tables instead.

FIXTURE SCOPES:
- engine, db_session, client: function (full isolation between tests)
- sample data: function, built on top of db_session
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
# Request rate limiting would trip on the many calls a test run makes
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_SENDER_TOKEN_MAILTRAP"] = ""

from collections.abc import Generator
from dataclasses import dataclass
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from rottenbikes.database import Base, get_db
from rottenbikes.main import app
from rottenbikes.models import Bike, Poster
from rottenbikes.services.email import EmailSender, get_email_sender
from rottenbikes.utils.timeutils import add_months, utcnow

# =============================================================================
# DATABASE FIXTURES
# =============================================================================
# SQLite in-memory for speed. Row locks (FOR UPDATE) and statement timeouts
# are no-ops here; test_concurrency.py covers them on PostgreSQL.


@pytest.fixture
def engine():
    """
    Create a SQLite in-memory database engine with all tables.

    StaticPool keeps the single connection alive for the whole test.
    Without it, the in-memory database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    """Session bound to the test engine, configured like SessionLocal."""
    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )
    session = TestSessionLocal()

    yield session

    session.close()


# =============================================================================
# EMAIL FIXTURES
# =============================================================================


@dataclass
class SentEmail:
    to: str
    subject: str
    body: str


class RecordingSender(EmailSender):
    """Keeps sent messages in memory for assertions."""

    name = "recording"

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []

    def send_email(self, to: str, subject: str, body: str) -> None:
        self.sent.append(SentEmail(to=to, subject=subject, body=body))


@pytest.fixture
def email_sender() -> RecordingSender:
    return RecordingSender()


# =============================================================================
# CLIENT FIXTURE
# =============================================================================


@pytest.fixture
def client(
    db_session: Session,
    email_sender: RecordingSender,
) -> Generator[TestClient, None, None]:
    """
    Create a test client wired to the test database and the recording sender.

    We override the get_db and get_email_sender dependencies.
    """

    def override_get_db():
        """Provide test database session instead of real one."""
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: email_sender

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


def make_poster(
    db_session: Session,
    username: str,
    email: str,
    verified: bool = True,
    api_token: str | None = None,
    expires_at: datetime | None = None,
) -> Poster:
    """Insert a poster directly, bypassing the magic link flow."""
    now = utcnow()
    poster = Poster(
        username=username,
        email=email,
        email_verified=verified,
        api_token=api_token,
        api_token_expires_at=expires_at or (add_months(now, 2) if api_token else None),
        created_at=now,
    )
    db_session.add(poster)
    db_session.commit()
    db_session.refresh(poster)
    return poster


@pytest.fixture
def sample_poster(db_session: Session) -> Poster:
    """A verified poster holding a live API token."""
    return make_poster(
        db_session,
        username="alice.rides",
        email="alice@example.com",
        api_token="a" * 64,
    )


@pytest.fixture
def second_poster(db_session: Session) -> Poster:
    """A second verified poster for ownership scenarios."""
    return make_poster(
        db_session,
        username="bob",
        email="bob@example.com",
        api_token="b" * 64,
    )


@pytest.fixture
def unverified_poster(db_session: Session) -> Poster:
    """A poster with a token who never confirmed a magic link."""
    return make_poster(
        db_session,
        username="carol",
        email="carol@example.com",
        verified=False,
        api_token="c" * 64,
    )


@pytest.fixture
def expired_poster(db_session: Session) -> Poster:
    """A verified poster whose API token has expired."""
    return make_poster(
        db_session,
        username="dave",
        email="dave@example.com",
        api_token="d" * 64,
        expires_at=utcnow() - timedelta(days=1),
    )


@pytest.fixture
def auth_headers(sample_poster: Poster) -> dict:
    return {"Authorization": f"Bearer {sample_poster.api_token}"}


@pytest.fixture
def second_auth_headers(second_poster: Poster) -> dict:
    return {"Authorization": f"Bearer {second_poster.api_token}"}


def make_bike(
    db_session: Session,
    numerical_id: int,
    hash_id: str | None = None,
    is_electric: bool = False,
    creator_id: int | None = None,
) -> Bike:
    now = utcnow()
    bike = Bike(
        numerical_id=numerical_id,
        hash_id=hash_id,
        is_electric=is_electric,
        creator_id=creator_id,
        created_at=now,
        updated_at=now,
    )
    db_session.add(bike)
    db_session.commit()
    db_session.refresh(bike)
    return bike


@pytest.fixture
def sample_bike(db_session: Session, sample_poster: Poster) -> Bike:
    """An electric bike registered by sample_poster."""
    return make_bike(
        db_session,
        numerical_id=4021,
        hash_id="a9F3kQ",
        is_electric=True,
        creator_id=sample_poster.poster_id,
    )


@pytest.fixture
def second_bike(db_session: Session, second_poster: Poster) -> Bike:
    """A regular bike registered by second_poster."""
    return make_bike(
        db_session,
        numerical_id=5150,
        creator_id=second_poster.poster_id,
    )
