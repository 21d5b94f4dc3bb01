"""
Bikes Router

CRUD endpoints for the bike catalogue.

Endpoints:
- GET /bikes - List bikes with their overall rating
- POST /bikes - Register a bike (authenticated)
- GET /bikes/{bike_id} - Get a bike
- GET /bikes/{bike_id}/details - Bike with rating aggregates and reviews
- PUT /bikes/{bike_id} - Update hash_id / is_electric (authenticated)
- DELETE /bikes/{bike_id} - Delete a bike and its reviews (authenticated)

bike_id is the bike's numerical_id.
"""

import logging

from fastapi import APIRouter, Request, status

from rottenbikes.config import get_settings
from rottenbikes.dependencies import CurrentPoster, DbSession
from rottenbikes.schemas.bike import (
    BikeCreate,
    BikeDetailsResponse,
    BikeResponse,
    BikeUpdate,
)
from rottenbikes.services import bikes as bike_service
from rottenbikes.services.rate_limiter import limiter

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(
    prefix="/bikes",
    tags=["Bikes"],
    responses={
        404: {"description": "Bike not found"},
    },
)


@router.get(
    "",
    response_model=list[BikeResponse],
    summary="List bikes",
)
def list_bikes(db: DbSession) -> list[BikeResponse]:
    """List every bike, ordered by numerical_id."""
    return [BikeResponse.model_validate(b) for b in bike_service.list_bikes(db)]


@router.post(
    "",
    response_model=BikeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a bike",
    responses={409: {"description": "numerical_id or hash_id already taken"}},
)
@limiter.limit(settings.rate_limit_write)
def create_bike(
    request: Request,
    bike_data: BikeCreate,
    db: DbSession,
    current_poster: CurrentPoster,
) -> BikeResponse:
    """
    Register a bike. The caller is recorded as its creator.

    Raises:
        409 if numerical_id or hash_id is already taken
    """
    bike = bike_service.create_bike(
        db,
        numerical_id=bike_data.numerical_id,
        hash_id=bike_data.hash_id,
        is_electric=bike_data.is_electric,
        creator_id=current_poster.poster_id,
    )
    return BikeResponse.model_validate(bike)


@router.get(
    "/{bike_id}",
    response_model=BikeResponse,
    summary="Get a bike",
)
def get_bike(bike_id: int, db: DbSession) -> BikeResponse:
    return BikeResponse.model_validate(bike_service.get_bike(db, bike_id))


@router.get(
    "/{bike_id}/details",
    response_model=BikeDetailsResponse,
    summary="Get a bike with ratings and reviews",
)
def get_bike_details(bike_id: int, db: DbSession) -> BikeDetailsResponse:
    """Everything a bike page needs in one call."""
    return BikeDetailsResponse.model_validate(bike_service.get_bike_details(db, bike_id))


@router.put(
    "/{bike_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Update a bike",
    responses={409: {"description": "hash_id already taken"}},
)
@limiter.limit(settings.rate_limit_write)
def update_bike(
    request: Request,
    bike_id: int,
    bike_data: BikeUpdate,
    db: DbSession,
    current_poster: CurrentPoster,
) -> None:
    """Update hash_id and/or is_electric. numerical_id cannot change."""
    bike_service.update_bike(
        db,
        bike_id,
        hash_id=bike_data.hash_id,
        is_electric=bike_data.is_electric,
    )


@router.delete(
    "/{bike_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a bike",
)
@limiter.limit(settings.rate_limit_write)
def delete_bike(
    request: Request,
    bike_id: int,
    db: DbSession,
    current_poster: CurrentPoster,
) -> None:
    """Delete a bike together with its reviews and ratings."""
    bike_service.delete_bike(db, bike_id)
    logger.info(f"Poster {current_poster.poster_id} deleted bike {bike_id}")
