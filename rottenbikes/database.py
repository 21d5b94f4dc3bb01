"""
Database Configuration Module

This module sets up SQLAlchemy 2.0 with PostgreSQL for the RottenBikes API.

We use SYNCHRONOUS SQLAlchemy with psycopg2. FastAPI runs sync endpoints on
its threadpool, which gives the thread-per-request model the service layer
is written for: each request owns one session, and all cross-request
coordination happens in PostgreSQL (transactions and row locks).

Session Management Pattern
==========================
We use the "session per request" pattern:
1. Request arrives → create a new session (get_db)
2. Every multi-statement operation runs inside transaction()
3. Commit on success, rollback on any failure
4. Close session when request ends

Deadlines
=========
transaction() takes an optional timeout that bounds the whole transaction.
On PostgreSQL every statement runs with SET LOCAL statement_timeout set to
what is left of it, so a slow statement is cancelled by the server once the
transaction as a whole is out of time. A transaction that is past its
deadline by the time it would commit is rolled back instead. Both surface as
OperationTimeout.
"""

import logging
from collections.abc import Generator, Iterator, Mapping
from contextlib import contextmanager
from time import monotonic

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from rottenbikes.config import get_settings
from rottenbikes.exceptions import OperationTimeout

logger = logging.getLogger(__name__)

settings = get_settings()

# SQLSTATE raised by PostgreSQL when statement_timeout fires
QUERY_CANCELED = "57014"


# =============================================================================
# Database Engine
# =============================================================================
# - pool_pre_ping: Test connection health before using (prevents stale connections)
# - echo: Log all SQL statements in debug mode

engine = create_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
    echo=settings.debug,
)


# =============================================================================
# Session Factory
# =============================================================================
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# =============================================================================
# Base Model Class
# =============================================================================
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Alembic uses Base.metadata to discover models for migrations.
    """
    pass


# =============================================================================
# Dependency Injection
# =============================================================================
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI.

    Yields a session for the duration of one request and closes it
    afterwards, even when the route raised.

    Yields:
        SQLAlchemy Session instance
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# Transactions
# =============================================================================
def _is_statement_timeout(exc: OperationalError) -> bool:
    return getattr(exc.orig, "pgcode", None) == QUERY_CANCELED


def violated_constraint(exc: IntegrityError, columns: Mapping[str, str]) -> str | None:
    """
    Name of the unique constraint an IntegrityError violated.

    psycopg2 reports the constraint name directly. SQLite only reports the
    column ("UNIQUE constraint failed: posters.email"), so `columns` maps each
    constraint name we care about to its "table.column".

    Args:
        exc: The IntegrityError raised on flush/commit
        columns: {constraint name: "table.column"}

    Returns:
        The constraint name, or None if it cannot be determined
    """
    diag = getattr(exc.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name

    message = str(exc.orig)
    for constraint, column in columns.items():
        if constraint in message or column in message:
            return constraint
    return None


def _remaining_time_setter(deadline: float):
    """
    before_cursor_execute hook giving each statement only the time left
    before `deadline` (a monotonic() value).

    statement_timeout = 0 disables the limit, so an exhausted deadline is
    clamped to 1 ms and the server cancels the statement straight away.
    """

    def set_statement_timeout(conn, cursor, statement, parameters, context, executemany):
        remaining_ms = int((deadline - monotonic()) * 1000)
        cursor.execute(f"SET LOCAL statement_timeout = {max(remaining_ms, 1)}")

    return set_statement_timeout


@contextmanager
def transaction(db: Session, timeout: float | None = None) -> Iterator[Session]:
    """
    Run a block of statements as one all-or-nothing unit.

    Commits when the block exits normally. Any exception rolls the whole
    transaction back and is re-raised, so a failure half way through never
    leaves partial rows behind.

    The timeout is a deadline for the transaction as a whole. Statements
    share it, so three slow statements cannot each take the full timeout.

    Usage:
        with transaction(db, settings.write_timeout_seconds):
            db.add(review)
            recompute_aggregates_for_bike(db, review.bike_numerical_id)

    Args:
        db: Session to run in
        timeout: Deadline in seconds for the whole transaction

    Raises:
        OperationTimeout: If the deadline passed before the transaction
            could commit, or PostgreSQL cancelled a statement because of it
    """
    deadline = monotonic() + timeout if timeout is not None else None
    connection = None
    hook = None

    try:
        if deadline is not None and db.get_bind().dialect.name == "postgresql":
            connection = db.connection()
            hook = _remaining_time_setter(deadline)
            event.listen(connection, "before_cursor_execute", hook)
        yield db
        if deadline is not None and monotonic() > deadline:
            raise OperationTimeout()
        db.commit()
    except OperationTimeout:
        db.rollback()
        logger.warning(f"Transaction exceeded its {timeout}s deadline")
        raise
    except OperationalError as exc:
        db.rollback()
        if _is_statement_timeout(exc):
            logger.warning(f"Transaction exceeded its {timeout}s deadline")
            raise OperationTimeout() from exc
        raise
    except Exception:
        db.rollback()
        raise
    finally:
        if hook is not None:
            event.remove(connection, "before_cursor_execute", hook)


# =============================================================================
# Utility Functions
# =============================================================================
def create_tables() -> None:
    """
    Create all database tables.

    WARNING: In production, use Alembic migrations instead!
    """
    Base.metadata.create_all(bind=engine)


def drop_tables() -> None:
    """
    Drop all database tables.

    DANGER: This deletes all data! Never use in production.
    """
    Base.metadata.drop_all(bind=engine)
