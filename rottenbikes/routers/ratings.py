"""
Ratings Router

Read-only endpoints over the rating aggregates.

Endpoints:
- GET /bikes/ratings - Aggregates of every bike
- GET /bikes/{bike_id}/ratings - Aggregates of one bike
- GET /bikes/{bike_id}/ratings/windowed - Last week / two weeks / all time
"""

from fastapi import APIRouter

from rottenbikes.dependencies import DbSession
from rottenbikes.schemas.rating import RatingAggregateResponse
from rottenbikes.services import ratings as rating_service

router = APIRouter(
    prefix="/bikes",
    tags=["Ratings"],
)


@router.get(
    "/ratings",
    response_model=list[RatingAggregateResponse],
    summary="List rating aggregates of all bikes",
)
def list_all_ratings(db: DbSession) -> list[RatingAggregateResponse]:
    return [
        RatingAggregateResponse.model_validate(a)
        for a in rating_service.list_rating_aggregates(db)
    ]


@router.get(
    "/{bike_id}/ratings",
    response_model=list[RatingAggregateResponse],
    summary="List rating aggregates of a bike",
)
def list_bike_ratings(bike_id: int, db: DbSession) -> list[RatingAggregateResponse]:
    return [
        RatingAggregateResponse.model_validate(a)
        for a in rating_service.list_rating_aggregates_by_bike(db, bike_id)
    ]


@router.get(
    "/{bike_id}/ratings/windowed",
    response_model=list[RatingAggregateResponse],
    summary="List windowed averages of a bike",
)
def list_bike_windowed_ratings(bike_id: int, db: DbSession) -> list[RatingAggregateResponse]:
    """
    Averages over the last week ("1w"), the last two weeks ("2w") and all
    time ("overall"), computed live. Windows without scores are omitted.
    """
    return [
        RatingAggregateResponse.model_validate(a)
        for a in rating_service.list_windowed_rating_aggregates_by_bike(db, bike_id)
    ]
