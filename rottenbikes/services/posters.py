"""
Posters Service

Account deletion. The poster picks what happens to what they wrote:

- delete_content=True  (hard delete): their reviews and scores are removed,
  the aggregates of every bike they reviewed are rebuilt, and the bikes they
  registered are removed along with everything attached to them.
- delete_content=False (orphan): bikes and reviews stay, their creator_id /
  poster_id become NULL. Orphaned reviews still count towards aggregates.

Either way the poster's magic links and the poster row are deleted, and the
whole thing is one transaction.
"""

import logging
from collections.abc import Callable

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from rottenbikes.config import get_settings
from rottenbikes.database import transaction
from rottenbikes.exceptions import UserNotFound
from rottenbikes.models import Bike, MagicLink, Poster, Review, ReviewRating
from rottenbikes.services.bikes import delete_bikes_with_content
from rottenbikes.services.ratings import recompute_aggregates_for_bike

logger = logging.getLogger(__name__)
settings = get_settings()

NO_SYNC = {"synchronize_session": False}


def _delete_content(db: Session, poster_id: int) -> None:
    reviewed_bikes = set(
        db.execute(
            select(Review.bike_numerical_id)
            .where(Review.poster_id == poster_id)
            .distinct()
        ).scalars()
    )
    own_reviews = select(Review.review_id).where(Review.poster_id == poster_id)

    db.execute(
        delete(ReviewRating).where(ReviewRating.review_id.in_(own_reviews)),
        execution_options=NO_SYNC,
    )
    db.execute(
        delete(Review).where(Review.poster_id == poster_id),
        execution_options=NO_SYNC,
    )

    created_bikes = set(
        db.execute(
            select(Bike.numerical_id).where(Bike.creator_id == poster_id)
        ).scalars()
    )
    for bike_id in sorted(reviewed_bikes - created_bikes):
        recompute_aggregates_for_bike(db, bike_id)

    delete_bikes_with_content(db, sorted(created_bikes))


def _orphan_content(db: Session, poster_id: int) -> None:
    db.execute(
        update(Bike).where(Bike.creator_id == poster_id).values(creator_id=None),
        execution_options=NO_SYNC,
    )
    db.execute(
        update(Review).where(Review.poster_id == poster_id).values(poster_id=None),
        execution_options=NO_SYNC,
    )


CONTENT_STRATEGIES: dict[bool, Callable[[Session, int], None]] = {
    True: _delete_content,
    False: _orphan_content,
}


def delete_poster(db: Session, poster_id: int, delete_content: bool = False) -> None:
    """
    Delete a poster account.

    Args:
        db: Database session
        poster_id: Account to delete
        delete_content: Remove the poster's reviews and bikes instead of
            keeping them without an owner

    Raises:
        UserNotFound: No such poster
    """
    handle_content = CONTENT_STRATEGIES[bool(delete_content)]

    with transaction(db, settings.delete_poster_timeout_seconds):
        if db.get(Poster, poster_id) is None:
            raise UserNotFound()

        handle_content(db, poster_id)

        db.execute(
            delete(MagicLink).where(MagicLink.poster_id == poster_id),
            execution_options=NO_SYNC,
        )
        db.execute(
            delete(Poster).where(Poster.poster_id == poster_id),
            execution_options=NO_SYNC,
        )

    logger.info(
        f"Poster {poster_id} deleted ({'content removed' if delete_content else 'content orphaned'})"
    )
