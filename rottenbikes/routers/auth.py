"""
Authentication Router

Passwordless sign-in endpoints.

Endpoints:
- POST /auth/register - Create an account, email the first magic link
- POST /auth/request-magic-link - Email a magic link to an existing poster
- GET /auth/confirm?token=... and GET /auth/confirm/{token} - Redeem a link
- GET /auth/poll?token=... - Fetch the API token once the link is redeemed
- GET /auth/verify - Check a Bearer token

Flow:
1. Client registers (or requests a link) and keeps the returned magic_token
2. Poster opens the emailed link; the UI calls /auth/confirm/{token}
3. Either the UI gets the api_token from confirm, or the original client
   polls /auth/poll with its magic_token until it appears
4. Client sends "Authorization: Bearer <api_token>" on authenticated calls
"""

import logging

from fastapi import APIRouter, HTTPException, Query, Request, status

from rottenbikes.config import get_settings
from rottenbikes.dependencies import CurrentPoster, DbSession, EmailSenderDep
from rottenbikes.exceptions import UnauthorizedError
from rottenbikes.schemas.auth import (
    ConfirmResponse,
    MagicLinkRequest,
    MagicLinkSentResponse,
    PollResponse,
    RegisterRequest,
    VerifyResponse,
)
from rottenbikes.services import auth as auth_service
from rottenbikes.services.auth import PosterIdentifier
from rottenbikes.services.email import (
    MAGIC_LINK_SUBJECT,
    REGISTRATION_SUBJECT,
    build_confirmation_url,
    magic_link_body,
    registration_body,
)
from rottenbikes.services.rate_limiter import limiter

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
)


# =============================================================================
# Issuing Magic Links
# =============================================================================


@router.post(
    "/register",
    response_model=MagicLinkSentResponse,
    summary="Register a new poster",
    responses={
        400: {"description": "Invalid username or email"},
        409: {"description": "Email or username already taken"},
    },
)
@limiter.limit(settings.rate_limit_auth)
def register(
    request: Request,
    payload: RegisterRequest,
    db: DbSession,
    email_sender: EmailSenderDep,
) -> MagicLinkSentResponse:
    """
    Create a poster account and email a confirmation magic link.

    Returns:
        The magic token, so this client can poll for the API token
    """
    magic_token = auth_service.register(db, payload.username, payload.email)

    confirmation_url = build_confirmation_url(magic_token, payload.origin)
    logger.debug(f"Confirmation link for {payload.email}: {confirmation_url}")

    email_sender.send_email(
        payload.email,
        REGISTRATION_SUBJECT,
        registration_body(payload.username.strip(), confirmation_url),
    )

    return MagicLinkSentResponse(
        message="confirmation email sent",
        magic_token=magic_token,
    )


@router.post(
    "/request-magic-link",
    response_model=MagicLinkSentResponse,
    summary="Request a magic link",
    responses={
        404: {"description": "No poster with this email or username"},
        429: {"description": "Daily magic link limit reached"},
    },
)
@limiter.limit(settings.rate_limit_auth)
def request_magic_link(
    request: Request,
    payload: MagicLinkRequest,
    db: DbSession,
    email_sender: EmailSenderDep,
) -> MagicLinkSentResponse:
    """Email a sign-in link to the poster identified by email or username."""
    if payload.email:
        identifier = PosterIdentifier.email(payload.email)
    else:
        identifier = PosterIdentifier.username(payload.username)

    magic_token, target_email = auth_service.create_magic_link(db, identifier)

    confirmation_url = build_confirmation_url(magic_token, payload.origin)
    logger.debug(f"Confirmation link for {target_email}: {confirmation_url}")

    email_sender.send_email(
        target_email,
        MAGIC_LINK_SUBJECT,
        magic_link_body(confirmation_url),
    )

    return MagicLinkSentResponse(
        message="magic link email sent",
        magic_token=magic_token,
    )


# =============================================================================
# Redeeming Magic Links
# =============================================================================


def _confirm(db: DbSession, token: str) -> ConfirmResponse:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="token is required",
        )
    try:
        result = auth_service.confirm_magic_link(db, token)
    except UnauthorizedError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="invalid or expired token",
        )
    return ConfirmResponse.model_validate(result)


@router.get(
    "/confirm",
    response_model=ConfirmResponse,
    summary="Confirm a magic link (query form)",
    responses={400: {"description": "Invalid, used or expired token"}},
)
def confirm_magic_link_query(
    db: DbSession,
    token: str = Query(default="", description="Magic link token"),
) -> ConfirmResponse:
    """Redeem a magic link passed as ?token=..."""
    return _confirm(db, token.strip())


@router.get(
    "/confirm/{token}",
    response_model=ConfirmResponse,
    summary="Confirm a magic link",
    responses={400: {"description": "Invalid, used or expired token"}},
)
def confirm_magic_link(token: str, db: DbSession) -> ConfirmResponse:
    """
    Redeem a magic link.

    A link works once and only within its lifetime. Success marks the
    poster's email as verified and returns their API token.
    """
    return _confirm(db, token.strip())


@router.get(
    "/poll",
    response_model=PollResponse,
    summary="Poll magic link status",
    responses={404: {"description": "Not confirmed yet"}},
)
def poll_magic_link(
    db: DbSession,
    token: str = Query(..., min_length=1, description="Magic link token"),
) -> PollResponse:
    """Return the API token once the magic link has been confirmed, 404 before that."""
    api_token = auth_service.check_magic_link_status(db, token)
    if not api_token:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="not confirmed",
        )
    return PollResponse(api_token=api_token)


@router.get(
    "/verify",
    response_model=VerifyResponse,
    summary="Verify an API token",
    responses={401: {"description": "Missing, invalid, unverified or expired token"}},
)
def verify_token(current_poster: CurrentPoster) -> VerifyResponse:
    """Echo the identity behind the Bearer token."""
    return VerifyResponse(
        poster_id=current_poster.poster_id,
        username=current_poster.username,
    )
