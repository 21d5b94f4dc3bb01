"""
Reviews Service

Creates, edits, deletes and reads reviews together with their per-subcategory
scores.

Every mutation runs in a single transaction that ends by rebuilding the
affected bike's rating aggregates, so reviews, review_ratings and
rating_aggregates never disagree after a call returns. Any failure inside the
transaction (a score outside 1-5, a vanished bike, a timeout) rolls back all
of it, including the review row itself.

Ownership:
    update/delete look the review up by (review_id, poster_id). A review that
    exists but belongs to someone else is reported exactly like a missing one.

Cooldown:
    A poster may review the same bike again only after review_cooldown_minutes.
    The check is a plain read before the write transaction, so two requests
    racing each other can both pass it.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from rottenbikes.config import get_settings
from rottenbikes.database import transaction
from rottenbikes.exceptions import (
    BikeNotFound,
    InvalidInputError,
    InvalidScore,
    ReviewNotFound,
    TooFrequentReview,
)
from rottenbikes.models import Bike, Poster, RatingSubcategory, Review, ReviewRating
from rottenbikes.models.review_rating import MAX_SCORE, MIN_SCORE
from rottenbikes.services.ratings import recompute_aggregates_for_bike
from rottenbikes.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

Scores = Mapping[RatingSubcategory | str, int | None]


@dataclass
class ReviewWithRatings:
    """A review joined with its author's username and its scores."""

    review_id: int
    poster_id: int | None
    poster_username: str | None
    bike_numerical_id: int
    comment: str | None
    bike_img: str | None
    created_at: datetime
    ratings: dict[str, int] = field(default_factory=dict)


# =============================================================================
# Helper Functions
# =============================================================================


def _ordered_scores(ratings: Scores | None) -> list[tuple[RatingSubcategory, int]]:
    """
    Normalize a {subcategory: score} mapping into a list in write order.

    Keys may be RatingSubcategory members or their string values. Entries
    whose score is None mean "not provided" and are skipped.

    Raises:
        InvalidInputError: For an unknown subcategory name
    """
    if not ratings:
        return []

    provided: dict[RatingSubcategory, int] = {}
    for key, score in ratings.items():
        try:
            subcategory = RatingSubcategory(key)
        except ValueError:
            raise InvalidInputError(f"unknown rating subcategory: {key}")
        if score is not None:
            provided[subcategory] = score

    return [(sub, provided[sub]) for sub in RatingSubcategory if sub in provided]


def _validate_score(subcategory: RatingSubcategory, score: int) -> None:
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidScore(f"{subcategory.value} score must be an integer")
    if not MIN_SCORE <= score <= MAX_SCORE:
        raise InvalidScore(
            f"{subcategory.value} score must be between {MIN_SCORE} and {MAX_SCORE}, got {score}"
        )


def _upsert_rating(db: Session, review_id: int, subcategory: RatingSubcategory, score: int) -> None:
    """Insert a score, or overwrite the existing one for that subcategory."""
    values = {"review_id": review_id, "subcategory": subcategory.value, "score": score}
    dialect = db.get_bind().dialect.name

    if dialect == "postgresql":
        stmt = postgresql.insert(ReviewRating.__table__).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(ReviewRating.__table__).values(**values)
    else:
        db.merge(ReviewRating(**values))
        db.flush()
        return

    db.execute(
        stmt.on_conflict_do_update(
            index_elements=["review_id", "subcategory"],
            set_={"score": stmt.excluded.score},
        )
    )


def _get_owned_review(db: Session, review_id: int, poster_id: int) -> Review:
    stmt = select(Review).where(
        Review.review_id == review_id,
        Review.poster_id == poster_id,
    )
    review = db.execute(stmt).scalar_one_or_none()
    if review is None:
        raise ReviewNotFound()
    return review


def _ensure_cooldown_elapsed(db: Session, poster_id: int, bike_id: int, now: datetime) -> None:
    stmt = select(func.max(Review.created_at)).where(
        Review.poster_id == poster_id,
        Review.bike_numerical_id == bike_id,
    )
    latest = as_utc(db.execute(stmt).scalar())
    cooldown = timedelta(minutes=settings.review_cooldown_minutes)

    if latest is not None and now - latest < cooldown:
        raise TooFrequentReview(
            f"you can only review this bike every {settings.review_cooldown_minutes} minutes"
        )


# =============================================================================
# Mutations
# =============================================================================


def create_review_with_ratings(
    db: Session,
    poster_id: int,
    bike_id: int,
    comment: str | None = None,
    bike_img: str | None = None,
    ratings: Scores | None = None,
    now: datetime | None = None,
) -> int:
    """
    Create a review with optional per-subcategory scores.

    Args:
        db: Database session
        poster_id: Author of the review
        bike_id: numerical_id of the reviewed bike
        comment: Optional review text
        bike_img: Optional image reference
        ratings: {subcategory: score} for any of the six subcategories
        now: Creation time (defaults to the current time)

    Returns:
        The new review_id

    Raises:
        TooFrequentReview: The poster reviewed this bike within the cooldown
        BikeNotFound: No bike with this numerical_id
        InvalidScore: A score outside 1-5 (nothing is written)
    """
    now = now or utcnow()
    scores = _ordered_scores(ratings)

    _ensure_cooldown_elapsed(db, poster_id, bike_id, now)

    with transaction(db, settings.write_timeout_seconds):
        if db.get(Bike, bike_id) is None:
            raise BikeNotFound()

        review = Review(
            poster_id=poster_id,
            bike_numerical_id=bike_id,
            comment=comment,
            bike_img=bike_img,
            created_at=now,
        )
        db.add(review)
        db.flush()

        for subcategory, score in scores:
            _validate_score(subcategory, score)
            db.add(
                ReviewRating(
                    review_id=review.review_id,
                    subcategory=subcategory.value,
                    score=score,
                )
            )
        db.flush()

        recompute_aggregates_for_bike(db, bike_id)
        review_id = review.review_id

    logger.info(f"Poster {poster_id} reviewed bike {bike_id} (review {review_id})")
    return review_id


def update_review_with_ratings(
    db: Session,
    review_id: int,
    poster_id: int,
    comment: str | None = None,
    bike_img: str | None = None,
    ratings: Scores | None = None,
) -> None:
    """
    Edit a review owned by poster_id.

    comment and bike_img are only overwritten when given. Each provided score
    replaces the existing score for its subcategory, or adds one; scores that
    are not provided stay as they are.

    Raises:
        ReviewNotFound: No such review, or it belongs to another poster
        InvalidScore: A score outside 1-5 (nothing is written)
    """
    scores = _ordered_scores(ratings)

    with transaction(db, settings.write_timeout_seconds):
        review = _get_owned_review(db, review_id, poster_id)

        if comment is not None:
            review.comment = comment
        if bike_img is not None:
            review.bike_img = bike_img
        db.flush()

        for subcategory, score in scores:
            _validate_score(subcategory, score)
            _upsert_rating(db, review_id, subcategory, score)

        recompute_aggregates_for_bike(db, review.bike_numerical_id)


def delete_review(db: Session, review_id: int, poster_id: int) -> None:
    """
    Delete a review owned by poster_id along with its scores.

    Raises:
        ReviewNotFound: No such review, or it belongs to another poster
    """
    with transaction(db, settings.write_timeout_seconds):
        review = _get_owned_review(db, review_id, poster_id)
        bike_id = review.bike_numerical_id

        db.execute(delete(ReviewRating).where(ReviewRating.review_id == review_id))
        db.execute(delete(Review).where(Review.review_id == review_id))

        recompute_aggregates_for_bike(db, bike_id)

    logger.info(f"Poster {poster_id} deleted review {review_id}")


# =============================================================================
# Reads
# =============================================================================


def _review_rows_query():
    # Outer joins keep reviews without scores and reviews whose author is gone
    return (
        select(
            Review.review_id,
            Review.poster_id,
            Poster.username,
            Review.bike_numerical_id,
            Review.comment,
            Review.bike_img,
            Review.created_at,
            ReviewRating.subcategory,
            ReviewRating.score,
        )
        .select_from(Review)
        .outerjoin(Poster, Poster.poster_id == Review.poster_id)
        .outerjoin(ReviewRating, ReviewRating.review_id == Review.review_id)
        .order_by(
            Review.bike_numerical_id,
            Review.review_id,
            ReviewRating.subcategory,
        )
    )


def _fold_rows(rows: Iterable) -> list[ReviewWithRatings]:
    """Collapse one-row-per-score results into one entry per review, keeping row order."""
    reviews: dict[int, ReviewWithRatings] = {}
    for row in rows:
        review = reviews.get(row.review_id)
        if review is None:
            review = ReviewWithRatings(
                review_id=row.review_id,
                poster_id=row.poster_id,
                poster_username=row.username,
                bike_numerical_id=row.bike_numerical_id,
                comment=row.comment,
                bike_img=row.bike_img,
                created_at=as_utc(row.created_at),
            )
            reviews[row.review_id] = review
        if row.subcategory is not None:
            review.ratings[row.subcategory] = row.score
    return list(reviews.values())


def list_reviews_with_ratings(db: Session) -> list[ReviewWithRatings]:
    """List every review, ordered by bike then review."""
    with transaction(db, settings.read_timeout_seconds):
        return _fold_rows(db.execute(_review_rows_query()))


def list_reviews_with_ratings_by_bike(db: Session, bike_id: int) -> list[ReviewWithRatings]:
    """List the reviews of one bike. Unknown bikes give []."""
    stmt = _review_rows_query().where(Review.bike_numerical_id == bike_id)
    with transaction(db, settings.read_timeout_seconds):
        return _fold_rows(db.execute(stmt))


def get_review_with_ratings(db: Session, review_id: int) -> ReviewWithRatings:
    """
    Get a single review with its scores.

    Raises:
        ReviewNotFound: No review with this id
    """
    stmt = _review_rows_query().where(Review.review_id == review_id)
    with transaction(db, settings.read_timeout_seconds):
        reviews = _fold_rows(db.execute(stmt))

    if not reviews:
        raise ReviewNotFound()
    return reviews[0]
