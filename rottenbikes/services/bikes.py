"""
Bikes Service

CRUD for the bike catalogue.

Bike reads carry the bike's overall average (the "overall" row of
rating_aggregates, NULL when nobody has rated it yet) so list pages never
need a second query.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rottenbikes.config import get_settings
from rottenbikes.database import transaction, violated_constraint
from rottenbikes.exceptions import BikeAlreadyExists, BikeNotFound
from rottenbikes.models import (
    Bike,
    RatingAggregate,
    RatingSubcategory,
    Review,
    ReviewRating,
)
from rottenbikes.services.ratings import AggregateRating, list_rating_aggregates_by_bike
from rottenbikes.services.reviews import ReviewWithRatings, list_reviews_with_ratings_by_bike
from rottenbikes.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

BIKE_UNIQUE_COLUMNS = {
    "bikes_pkey": "bikes.numerical_id",
    "bikes_hash_id_key": "bikes.hash_id",
}


@dataclass
class BikeWithRating:
    numerical_id: int
    hash_id: str | None
    is_electric: bool
    average_rating: float | None
    created_at: datetime
    updated_at: datetime


@dataclass
class BikeDetails(BikeWithRating):
    """A bike with its rating aggregates and all of its reviews."""

    ratings: list[AggregateRating] = field(default_factory=list)
    reviews: list[ReviewWithRatings] = field(default_factory=list)


# =============================================================================
# Helper Functions
# =============================================================================


def _bikes_query():
    return select(Bike, RatingAggregate.average_rating).outerjoin(
        RatingAggregate,
        and_(
            RatingAggregate.bike_numerical_id == Bike.numerical_id,
            RatingAggregate.subcategory == RatingSubcategory.OVERALL.value,
        ),
    )


def _to_bike(bike: Bike, average_rating) -> BikeWithRating:
    return BikeWithRating(
        numerical_id=bike.numerical_id,
        hash_id=bike.hash_id,
        is_electric=bike.is_electric,
        average_rating=float(average_rating) if average_rating is not None else None,
        created_at=as_utc(bike.created_at),
        updated_at=as_utc(bike.updated_at),
    )


def _normalize_hash_id(hash_id: str | None) -> str | None:
    if hash_id is None:
        return None
    return hash_id.strip() or None


def _conflict_from(exc: IntegrityError) -> BikeAlreadyExists | None:
    constraint = violated_constraint(exc, BIKE_UNIQUE_COLUMNS)
    if constraint == "bikes_pkey":
        return BikeAlreadyExists(
            "bike with this numerical_id already exists", field="numerical_id"
        )
    if constraint == "bikes_hash_id_key":
        return BikeAlreadyExists(
            "bike with this hash_id already exists", field="hash_id"
        )
    return None


def delete_bikes_with_content(db: Session, bike_ids: Sequence[int]) -> None:
    """
    Delete bikes together with every review, score and aggregate row that
    points at them. Runs inside the caller's transaction.
    """
    if not bike_ids:
        return

    bike_reviews = select(Review.review_id).where(Review.bike_numerical_id.in_(bike_ids))
    no_sync = {"synchronize_session": False}

    db.execute(
        delete(ReviewRating).where(ReviewRating.review_id.in_(bike_reviews)),
        execution_options=no_sync,
    )
    db.execute(
        delete(Review).where(Review.bike_numerical_id.in_(bike_ids)),
        execution_options=no_sync,
    )
    db.execute(
        delete(RatingAggregate).where(RatingAggregate.bike_numerical_id.in_(bike_ids)),
        execution_options=no_sync,
    )
    db.execute(
        delete(Bike).where(Bike.numerical_id.in_(bike_ids)),
        execution_options=no_sync,
    )


# =============================================================================
# Operations
# =============================================================================


def list_bikes(db: Session) -> list[BikeWithRating]:
    """List every bike ordered by numerical_id."""
    stmt = _bikes_query().order_by(Bike.numerical_id)
    with transaction(db, settings.read_timeout_seconds):
        return [_to_bike(bike, avg) for bike, avg in db.execute(stmt)]


def get_bike(db: Session, bike_id: int) -> BikeWithRating:
    """
    Get a bike by numerical_id.

    Raises:
        BikeNotFound: No such bike
    """
    stmt = _bikes_query().where(Bike.numerical_id == bike_id)
    with transaction(db, settings.read_timeout_seconds):
        row = db.execute(stmt).first()
        if row is None:
            raise BikeNotFound()
        return _to_bike(row[0], row[1])


def get_bike_details(db: Session, bike_id: int) -> BikeDetails:
    """
    Get a bike with its rating aggregates and reviews.

    Raises:
        BikeNotFound: No such bike
    """
    bike = get_bike(db, bike_id)
    return BikeDetails(
        **vars(bike),
        ratings=list_rating_aggregates_by_bike(db, bike_id),
        reviews=list_reviews_with_ratings_by_bike(db, bike_id),
    )


def create_bike(
    db: Session,
    numerical_id: int,
    hash_id: str | None = None,
    is_electric: bool = False,
    creator_id: int | None = None,
    now: datetime | None = None,
) -> BikeWithRating:
    """
    Register a bike.

    Args:
        db: Database session
        numerical_id: Frame number, becomes the primary key
        hash_id: Optional QR alias; blank values are stored as NULL
        is_electric: Electric assist
        creator_id: Poster registering the bike
        now: Creation time (defaults to the current time)

    Returns:
        The created bike

    Raises:
        BikeAlreadyExists: numerical_id or hash_id is taken (see .field)
    """
    now = now or utcnow()
    try:
        with transaction(db, settings.write_timeout_seconds):
            db.execute(
                insert(Bike).values(
                    numerical_id=numerical_id,
                    hash_id=_normalize_hash_id(hash_id),
                    is_electric=is_electric,
                    creator_id=creator_id,
                    created_at=now,
                    updated_at=now,
                )
            )
    except IntegrityError as exc:
        conflict = _conflict_from(exc)
        if conflict is None:
            raise
        raise conflict from exc

    logger.info(f"Bike {numerical_id} created by poster {creator_id}")
    return get_bike(db, numerical_id)


def update_bike(
    db: Session,
    bike_id: int,
    hash_id: str | None = None,
    is_electric: bool | None = None,
    now: datetime | None = None,
) -> None:
    """
    Update a bike's hash_id and/or is_electric. Omitted fields keep their value.

    Raises:
        BikeNotFound: No such bike
        BikeAlreadyExists: The new hash_id belongs to another bike
    """
    values: dict = {"updated_at": now or utcnow()}
    if hash_id is not None:
        values["hash_id"] = _normalize_hash_id(hash_id)
    if is_electric is not None:
        values["is_electric"] = is_electric

    try:
        with transaction(db, settings.write_timeout_seconds):
            result = db.execute(
                update(Bike).where(Bike.numerical_id == bike_id).values(**values),
                execution_options={"synchronize_session": False},
            )
            if result.rowcount == 0:
                raise BikeNotFound()
    except IntegrityError as exc:
        conflict = _conflict_from(exc)
        if conflict is None:
            raise
        raise conflict from exc


def delete_bike(db: Session, bike_id: int) -> None:
    """
    Delete a bike with its reviews, scores and aggregates.

    Raises:
        BikeNotFound: No such bike
    """
    with transaction(db, settings.write_timeout_seconds):
        if db.get(Bike, bike_id) is None:
            raise BikeNotFound()
        delete_bikes_with_content(db, [bike_id])

    logger.info(f"Bike {bike_id} deleted")
