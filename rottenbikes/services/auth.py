"""
Authentication Service

Passwordless sign-in with emailed magic links and long-lived API tokens.

Flow:
=====
1. register() or create_magic_link() issues a single-use magic link token
   (emailed to the poster) and makes sure the poster holds a live API token,
   refreshing its expiry if it already has one.
2. confirm_magic_link() redeems the link: marks the email as verified and
   returns the API token. A link can be redeemed once, within its TTL.
3. Clients send the API token as a Bearer credential;
   get_poster_by_api_token() resolves it to a poster.
4. A client that started the flow elsewhere (e.g. on another device) can
   poll check_magic_link_status() with the magic token until it is confirmed.

Tokens:
=======
Both tokens are 32 random bytes, hex encoded (64 chars), from secrets.
Magic links live magic_link_ttl_minutes; API tokens api_token_lifetime_months.
A poster can request at most magic_link_daily_limit links per trailing 24h.

Concurrency:
============
confirm_magic_link() locks the link row and then the poster row with
SELECT ... FOR UPDATE, so of several concurrent confirmations of the same
token exactly one succeeds and the others see it as already used.
"""

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rottenbikes.config import get_settings
from rottenbikes.database import transaction, violated_constraint
from rottenbikes.exceptions import (
    EmailAlreadyExists,
    EmailNotVerified,
    InvalidInputError,
    InvalidToken,
    MagicLinkExpired,
    RateLimitExceeded,
    TokenExpired,
    UserNotFound,
    UsernameAlreadyExists,
)
from rottenbikes.models import MagicLink, Poster
from rottenbikes.utils.timeutils import add_months, as_utc, utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9.]+$")

_email_adapter = TypeAdapter(EmailStr)

POSTER_UNIQUE_COLUMNS = {
    "posters_email_key": "posters.email",
    "posters_username_key": "posters.username",
}


# =============================================================================
# Data Types
# =============================================================================


class IdentifierKind(str, Enum):
    EMAIL = "email"
    USERNAME = "username"


@dataclass(frozen=True)
class PosterIdentifier:
    """
    How a poster asked to be found: by email or by username.

    Resolved once, here, into a single WHERE clause. Usernames cannot contain
    "@", so anything with one is treated as an email address.
    """

    kind: IdentifierKind
    value: str

    @classmethod
    def parse(cls, raw: str) -> "PosterIdentifier":
        value = raw.strip()
        if "@" in value:
            return cls(IdentifierKind.EMAIL, value)
        return cls(IdentifierKind.USERNAME, value)

    @classmethod
    def email(cls, value: str) -> "PosterIdentifier":
        return cls(IdentifierKind.EMAIL, value.strip())

    @classmethod
    def username(cls, value: str) -> "PosterIdentifier":
        return cls(IdentifierKind.USERNAME, value.strip())

    def condition(self):
        column = Poster.email if self.kind is IdentifierKind.EMAIL else Poster.username
        return column == self.value


@dataclass
class ConfirmResult:
    """Outcome of a successful magic link confirmation."""

    api_token: str
    email: str
    api_token_expires_at: datetime


@dataclass
class AuthenticatedPoster:
    """The poster behind a valid API token."""

    poster_id: int
    email: str
    username: str


# =============================================================================
# Token Helpers
# =============================================================================


def generate_token() -> str:
    """
    Generate a new random token.

    Returns:
        32 random bytes as 64 hex characters
    """
    return secrets.token_hex(32)


def _has_live_api_token(poster: Poster, now: datetime) -> bool:
    expires_at = as_utc(poster.api_token_expires_at)
    return bool(poster.api_token) and expires_at is not None and expires_at > now


def _mint_api_token(poster: Poster, now: datetime) -> None:
    poster.api_token = generate_token()
    poster.api_token_expires_at = add_months(now, settings.api_token_lifetime_months)


def _issue_magic_link(db: Session, poster: Poster, now: datetime) -> str:
    """
    Prepare the poster's API token and add a fresh magic link.

    A live API token keeps its value and gets its expiry pushed out; anything
    else (no token, expired token) is replaced with a new one. Runs inside
    the caller's transaction.

    Returns:
        The new magic link token
    """
    if _has_live_api_token(poster, now):
        poster.api_token_expires_at = add_months(now, settings.api_token_lifetime_months)
    else:
        _mint_api_token(poster, now)

    magic_token = generate_token()
    db.add(
        MagicLink(
            token=magic_token,
            poster_id=poster.poster_id,
            created_at=now,
            expires_at=now + timedelta(minutes=settings.magic_link_ttl_minutes),
        )
    )
    return magic_token


# =============================================================================
# Registration & Magic Links
# =============================================================================


def validate_registration(username: str, email: str) -> None:
    """
    Check the format of a new poster's username and email.

    Raises:
        InvalidInputError: With a message naming the offending field
    """
    if not username or not USERNAME_PATTERN.match(username):
        raise InvalidInputError(
            "invalid username: only letters, numbers and dots are allowed"
        )
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        raise InvalidInputError("invalid email format")


def register(
    db: Session,
    username: str,
    email: str,
    now: datetime | None = None,
) -> str:
    """
    Create a poster and issue their first magic link, atomically.

    Args:
        db: Database session
        username: Letters, digits and dots only
        email: Where the magic link will be sent
        now: Registration time (defaults to the current time)

    Returns:
        The magic link token to email to the new poster

    Raises:
        InvalidInputError: Malformed username or email
        EmailAlreadyExists: Email is taken
        UsernameAlreadyExists: Username is taken
    """
    username = username.strip()
    email = email.strip()
    validate_registration(username, email)
    now = now or utcnow()

    try:
        with transaction(db, settings.write_timeout_seconds):
            poster = Poster(username=username, email=email, created_at=now)
            db.add(poster)
            db.flush()
            magic_token = _issue_magic_link(db, poster, now)
    except IntegrityError as exc:
        constraint = violated_constraint(exc, POSTER_UNIQUE_COLUMNS)
        if constraint == "posters_email_key":
            raise EmailAlreadyExists() from exc
        if constraint == "posters_username_key":
            raise UsernameAlreadyExists() from exc
        raise

    logger.info(f"Registered poster '{username}'")
    return magic_token


def create_magic_link(
    db: Session,
    identifier: PosterIdentifier | str,
    now: datetime | None = None,
) -> tuple[str, str]:
    """
    Issue a new magic link for an existing poster.

    Args:
        db: Database session
        identifier: Email or username (a raw string is parsed)
        now: Request time (defaults to the current time)

    Returns:
        (magic link token, the poster's email address)

    Raises:
        UserNotFound: No poster matches the identifier
        RateLimitExceeded: The poster already got the daily maximum of links
    """
    if isinstance(identifier, str):
        identifier = PosterIdentifier.parse(identifier)
    now = now or utcnow()

    with transaction(db, settings.write_timeout_seconds):
        poster = db.execute(
            select(Poster).where(identifier.condition())
        ).scalar_one_or_none()
        if poster is None:
            raise UserNotFound()

        recent_links = db.execute(
            select(func.count())
            .select_from(MagicLink)
            .where(
                MagicLink.poster_id == poster.poster_id,
                MagicLink.created_at > now - timedelta(hours=24),
            )
        ).scalar_one()
        if recent_links >= settings.magic_link_daily_limit:
            logger.warning(f"Daily magic link limit reached for poster {poster.poster_id}")
            raise RateLimitExceeded()

        magic_token = _issue_magic_link(db, poster, now)
        email = poster.email

    return magic_token, email


def confirm_magic_link(
    db: Session,
    token: str,
    now: datetime | None = None,
) -> ConfirmResult:
    """
    Redeem a magic link and return the poster's API token.

    The link and poster rows are locked for the duration of the
    transaction. The link is stamped consumed (with the API token it handed
    out) in the same transaction that verifies the poster.

    Raises:
        InvalidToken: No link with this token
        MagicLinkExpired: The link was already used or is past its expiry
    """
    now = now or utcnow()

    with transaction(db, settings.write_timeout_seconds):
        link = db.execute(
            select(MagicLink)
            .where(MagicLink.token == token)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if link is None:
            raise InvalidToken()
        if link.consumed_at is not None or as_utc(link.expires_at) <= now:
            raise MagicLinkExpired()

        poster = db.execute(
            select(Poster)
            .where(Poster.poster_id == link.poster_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

        if not _has_live_api_token(poster, now):
            _mint_api_token(poster, now)
        poster.email_verified = True

        link.consumed_at = now
        link.api_token = poster.api_token

        poster_id = poster.poster_id
        result = ConfirmResult(
            api_token=poster.api_token,
            email=poster.email,
            api_token_expires_at=as_utc(poster.api_token_expires_at),
        )

    logger.info(f"Magic link confirmed for poster {poster_id}")
    return result


# =============================================================================
# Verification
# =============================================================================


def get_poster_by_api_token(
    db: Session,
    token: str,
    now: datetime | None = None,
) -> AuthenticatedPoster:
    """
    Resolve a Bearer token to its poster.

    Checks, in order: the token exists, the poster's email is verified, the
    token has not expired. The HTTP layer reports all three as 401.

    Raises:
        InvalidToken: Unknown token
        EmailNotVerified: The poster never confirmed a magic link
        TokenExpired: The token's expiry is unset or has passed
    """
    if not token:
        raise InvalidToken()
    now = now or utcnow()

    with transaction(db, settings.read_timeout_seconds):
        poster = db.execute(
            select(Poster).where(Poster.api_token == token)
        ).scalar_one_or_none()
        if poster is None:
            raise InvalidToken()
        if not poster.email_verified:
            raise EmailNotVerified()

        expires_at = as_utc(poster.api_token_expires_at)
        if expires_at is None or expires_at <= now:
            raise TokenExpired()

        return AuthenticatedPoster(
            poster_id=poster.poster_id,
            email=poster.email,
            username=poster.username,
        )


def check_magic_link_status(db: Session, token: str) -> str:
    """
    Poll whether a magic link has been confirmed.

    Returns:
        The API token issued on confirmation, or "" while not yet confirmed
        (unknown tokens also give "")
    """
    stmt = select(MagicLink.consumed_at, MagicLink.api_token).where(
        MagicLink.token == token
    )
    with transaction(db, settings.read_timeout_seconds):
        row = db.execute(stmt).first()

    if row is None or row.consumed_at is None:
        return ""
    return row.api_token or ""
