"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle, and tests swap them
out through app.dependency_overrides.

Provided here:
- DbSession: Per-request SQLAlchemy session
- CurrentPoster: Poster behind the "Authorization: Bearer <api_token>" header
- EmailSenderDep: Configured email sender
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from rottenbikes.database import get_db
from rottenbikes.exceptions import InvalidToken
from rottenbikes.services.auth import AuthenticatedPoster, get_poster_by_api_token
from rottenbikes.services.email import EmailSender, get_email_sender

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
# Instead of writing:
#   def list_bikes(db: Session = Depends(get_db)):
#
# You can write:
#   def list_bikes(db: DbSession):

DbSession = Annotated[Session, Depends(get_db)]

EmailSenderDep = Annotated[EmailSender, Depends(get_email_sender)]


# =============================================================================
# Bearer Token Authentication
# =============================================================================
# auto_error=False: a missing header goes through the same UnauthorizedError
# path (401) as a bad token, instead of HTTPBearer's own error response.

bearer_scheme = HTTPBearer(
    auto_error=False,
    description="API token obtained from /auth/confirm",
)


def get_current_poster(
    db: DbSession,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedPoster:
    """
    Resolve the Bearer token to a poster.

    Args:
        db: Database session
        credentials: Parsed Authorization header, None when absent

    Returns:
        The authenticated poster

    Raises:
        UnauthorizedError: Missing, unknown, unverified or expired token
            (answered with 401 by the handler in main.py)
    """
    if credentials is None or not credentials.credentials:
        raise InvalidToken("missing bearer token")

    return get_poster_by_api_token(db, credentials.credentials)


CurrentPoster = Annotated[AuthenticatedPoster, Depends(get_current_poster)]
