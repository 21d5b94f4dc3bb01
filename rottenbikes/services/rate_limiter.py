"""
Request Rate Limiting

Per-client-IP request limits using slowapi, on top of the business limits
enforced in the services (daily magic link cap, review cooldown).

Rate Limit Tiers:
=================
- Default (reads): settings.rate_limit_default
- Writes (bikes, reviews, account deletion): settings.rate_limit_write
- Auth (register, request-magic-link): settings.rate_limit_auth

Storage defaults to memory:// (per process). Point RATE_LIMIT_STORAGE_URI at
redis:// when running several workers.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from rottenbikes.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting.

    Honors X-Forwarded-For / X-Real-IP set by a reverse proxy and falls back
    to the direct connection address.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First entry is the original client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """
    Create and configure the rate limiter.

    Returns:
        Configured Limiter instance
    """
    limiter = Limiter(
        key_func=get_client_ip,
        default_limits=[settings.rate_limit_default],
        storage_uri=settings.rate_limit_storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )

    logger.info(
        f"Rate limiter initialized - enabled: {settings.rate_limit_enabled}, "
        f"default: {settings.rate_limit_default}"
    )

    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for slowapi's RateLimitExceeded.

    Returns 429 with a Retry-After header, in the same {"detail": ...} shape
    as every other error response.
    """
    limit_detail = str(exc.detail)

    response = JSONResponse(
        status_code=429,
        content={"detail": "too many requests, please slow down"},
    )
    response.headers["Retry-After"] = str(60)
    response.headers["X-RateLimit-Limit"] = limit_detail

    logger.warning(
        f"Rate limit exceeded for {get_client_ip(request)}: {limit_detail}"
    )

    return response
