"""
Posters Router

Endpoints:
- DELETE /posters/me?delete_content=false - Delete the caller's account
"""

import logging

from fastapi import APIRouter, Query, Request, status

from rottenbikes.config import get_settings
from rottenbikes.dependencies import CurrentPoster, DbSession
from rottenbikes.services.posters import delete_poster
from rottenbikes.services.rate_limiter import limiter

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(
    prefix="/posters",
    tags=["Posters"],
)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete my account",
)
@limiter.limit(settings.rate_limit_write)
def delete_my_account(
    request: Request,
    db: DbSession,
    current_poster: CurrentPoster,
    delete_content: bool = Query(
        default=False,
        description="Also delete my reviews and the bikes I registered",
    ),
) -> None:
    """
    Delete the authenticated poster.

    With delete_content=true the poster's reviews and bikes go too and the
    affected bikes' ratings are recomputed; otherwise they stay, without an
    owner.
    """
    delete_poster(db, current_poster.poster_id, delete_content=delete_content)
