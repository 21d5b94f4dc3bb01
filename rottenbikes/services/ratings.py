"""
Ratings Service

Maintains the rating_aggregates table and serves rating reads.

rating_aggregates holds one row per (bike, subcategory) with the sum, count
and two-decimal average of every score given to that bike. It is rebuilt,
never patched: recompute_aggregates_for_bike() deletes the bike's rows and
re-inserts them from review_ratings ⋈ reviews. Review mutations call it
inside their own transaction, so readers see either the old aggregates or
the new ones, never a mix.

Windowed averages (last week, last two weeks) are not materialized; they
are computed on demand from the raw scores.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import case, delete, func, insert, select
from sqlalchemy.orm import Session

from rottenbikes.config import get_settings
from rottenbikes.database import transaction
from rottenbikes.models import Bike, RatingAggregate, Review, ReviewRating
from rottenbikes.utils.timeutils import utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

WINDOW_OVERALL = "overall"
WINDOW_ONE_WEEK = "1w"
WINDOW_TWO_WEEKS = "2w"


@dataclass
class AggregateRating:
    """Average score of one subcategory of one bike over a time window."""

    bike_numerical_id: int
    subcategory: str
    average_rating: float
    window: str = WINDOW_OVERALL


# =============================================================================
# Recompute
# =============================================================================


def recompute_aggregates_for_bike(db: Session, bike_id: int) -> None:
    """
    Rebuild the aggregate rows of one bike from the live scores.

    Must be called inside the caller's open transaction, after pending
    rating changes have been flushed. It never commits: if the caller's
    transaction rolls back, so does the rebuild.

    The bike row is locked first, so two transactions rebuilding the same
    bike run one after the other and the second sees the first's scores.
    The lock is FOR NO KEY UPDATE, which does not conflict with the FOR KEY
    SHARE lock a review insert holds on its bike through the foreign key.

    Args:
        db: Database session with an open transaction
        bike_id: numerical_id of the bike whose scores changed
    """
    db.execute(
        select(Bike.numerical_id)
        .where(Bike.numerical_id == bike_id)
        .with_for_update(key_share=True)
    )
    db.execute(
        delete(RatingAggregate).where(RatingAggregate.bike_numerical_id == bike_id)
    )

    live_scores = (
        select(
            Review.bike_numerical_id,
            ReviewRating.subcategory,
            func.sum(ReviewRating.score),
            func.count(),
            func.round(func.avg(ReviewRating.score), 2),
        )
        .join(Review, Review.review_id == ReviewRating.review_id)
        .where(Review.bike_numerical_id == bike_id)
        .group_by(Review.bike_numerical_id, ReviewRating.subcategory)
    )
    db.execute(
        insert(RatingAggregate.__table__).from_select(
            [
                "bike_numerical_id",
                "subcategory",
                "rating_sum",
                "rating_count",
                "average_rating",
            ],
            live_scores,
        )
    )


def recompute_all_aggregates(db: Session) -> int:
    """
    Rebuild aggregates for every bike in one transaction.

    Useful after data migrations or manual fixes.

    Returns:
        Number of bikes recomputed
    """
    with transaction(db):
        bike_ids = db.execute(select(Bike.numerical_id)).scalars().all()
        for bike_id in bike_ids:
            recompute_aggregates_for_bike(db, bike_id)

    logger.info(f"Recomputed rating aggregates for {len(bike_ids)} bikes")
    return len(bike_ids)


# =============================================================================
# Reads
# =============================================================================


def _to_aggregate(row: RatingAggregate) -> AggregateRating:
    return AggregateRating(
        bike_numerical_id=row.bike_numerical_id,
        subcategory=row.subcategory,
        average_rating=float(row.average_rating),
    )


def list_rating_aggregates(db: Session) -> list[AggregateRating]:
    """List the aggregates of every bike, ordered by bike then subcategory."""
    stmt = select(RatingAggregate).order_by(
        RatingAggregate.bike_numerical_id,
        RatingAggregate.subcategory,
    )
    with transaction(db, settings.read_timeout_seconds):
        rows = db.execute(stmt).scalars().all()
        return [_to_aggregate(row) for row in rows]


def list_rating_aggregates_by_bike(db: Session, bike_id: int) -> list[AggregateRating]:
    """List one bike's aggregates ordered by subcategory. Unknown bikes give []."""
    stmt = (
        select(RatingAggregate)
        .where(RatingAggregate.bike_numerical_id == bike_id)
        .order_by(RatingAggregate.subcategory)
    )
    with transaction(db, settings.read_timeout_seconds):
        rows = db.execute(stmt).scalars().all()
        return [_to_aggregate(row) for row in rows]


def list_windowed_rating_aggregates_by_bike(
    db: Session,
    bike_id: int,
    now: datetime | None = None,
) -> list[AggregateRating]:
    """
    Per-subcategory averages of one bike over the last week, the last two
    weeks and all time, computed from the raw scores.

    A window with no scores in it is left out rather than reported as 0.

    Args:
        db: Database session
        bike_id: Bike to summarize
        now: Reference time for the windows (defaults to the current time)

    Returns:
        Entries ordered by subcategory, then 1w, 2w, overall
    """
    now = now or utcnow()
    one_week_ago = now - timedelta(weeks=1)
    two_weeks_ago = now - timedelta(weeks=2)

    stmt = (
        select(
            ReviewRating.subcategory,
            func.round(
                func.avg(case((Review.created_at >= one_week_ago, ReviewRating.score))), 2
            ).label("avg_1w"),
            func.round(
                func.avg(case((Review.created_at >= two_weeks_ago, ReviewRating.score))), 2
            ).label("avg_2w"),
            func.round(func.avg(ReviewRating.score), 2).label("avg_overall"),
        )
        .join(Review, Review.review_id == ReviewRating.review_id)
        .where(Review.bike_numerical_id == bike_id)
        .group_by(ReviewRating.subcategory)
        .order_by(ReviewRating.subcategory)
    )

    aggregates: list[AggregateRating] = []
    with transaction(db, settings.read_timeout_seconds):
        for row in db.execute(stmt):
            for window, value in (
                (WINDOW_ONE_WEEK, row.avg_1w),
                (WINDOW_TWO_WEEKS, row.avg_2w),
                (WINDOW_OVERALL, row.avg_overall),
            ):
                if value is not None:
                    aggregates.append(
                        AggregateRating(
                            bike_numerical_id=bike_id,
                            subcategory=row.subcategory,
                            average_rating=float(value),
                            window=window,
                        )
                    )
    return aggregates
