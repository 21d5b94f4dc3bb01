"""
Reviews Router

Endpoints for bike reviews and their scores.

Endpoints:
- GET /bikes/reviews - All reviews of all bikes
- GET /bikes/{bike_id}/reviews - Reviews of one bike
- POST /bikes/{bike_id}/reviews - Review a bike (authenticated)
- GET /reviews/{review_id} - Get a review
- PUT /reviews/{review_id} - Edit a review (author only)
- DELETE /reviews/{review_id} - Delete a review (author only)

Business Rules:
- A poster can review the same bike again only after the cooldown (429)
- Editing or deleting someone else's review answers 404, as if it did not exist
"""

import logging

from fastapi import APIRouter, Request, status

from rottenbikes.config import get_settings
from rottenbikes.dependencies import CurrentPoster, DbSession
from rottenbikes.schemas.review import (
    ReviewCreate,
    ReviewCreatedResponse,
    ReviewResponse,
    ReviewUpdate,
)
from rottenbikes.services import reviews as review_service
from rottenbikes.services.rate_limiter import limiter

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(
    tags=["Reviews"],
    responses={
        404: {"description": "Review or bike not found"},
    },
)


# =============================================================================
# Bike Review Endpoints
# =============================================================================


@router.get(
    "/bikes/reviews",
    response_model=list[ReviewResponse],
    summary="List all reviews",
)
def list_all_reviews(db: DbSession) -> list[ReviewResponse]:
    """List every review, ordered by bike then review."""
    reviews = review_service.list_reviews_with_ratings(db)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.get(
    "/bikes/{bike_id}/reviews",
    response_model=list[ReviewResponse],
    summary="List reviews for a bike",
)
def list_bike_reviews(bike_id: int, db: DbSession) -> list[ReviewResponse]:
    reviews = review_service.list_reviews_with_ratings_by_bike(db, bike_id)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.post(
    "/bikes/{bike_id}/reviews",
    response_model=ReviewCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Review a bike",
    responses={429: {"description": "Reviewed this bike too recently"}},
)
@limiter.limit(settings.rate_limit_write)
def create_review(
    request: Request,
    bike_id: int,
    review_data: ReviewCreate,
    db: DbSession,
    current_poster: CurrentPoster,
) -> ReviewCreatedResponse:
    """
    Create a review with optional scores for the bike.

    Args:
        bike_id: numerical_id of the bike
        review_data: Comment, image and any of the six scores
        current_poster: Authenticated author

    Returns:
        The new review's id
    """
    review_id = review_service.create_review_with_ratings(
        db,
        poster_id=current_poster.poster_id,
        bike_id=bike_id,
        comment=review_data.comment,
        bike_img=review_data.bike_img,
        ratings=review_data.ratings(),
    )
    return ReviewCreatedResponse(review_id=review_id)


# =============================================================================
# Single Review Endpoints
# =============================================================================


@router.get(
    "/reviews/{review_id}",
    response_model=ReviewResponse,
    summary="Get a review",
)
def get_review(review_id: int, db: DbSession) -> ReviewResponse:
    return ReviewResponse.model_validate(
        review_service.get_review_with_ratings(db, review_id)
    )


@router.put(
    "/reviews/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Edit a review",
)
@limiter.limit(settings.rate_limit_write)
def update_review(
    request: Request,
    review_id: int,
    review_data: ReviewUpdate,
    db: DbSession,
    current_poster: CurrentPoster,
) -> None:
    """Edit your own review. Omitted fields and scores keep their value."""
    review_service.update_review_with_ratings(
        db,
        review_id=review_id,
        poster_id=current_poster.poster_id,
        comment=review_data.comment,
        bike_img=review_data.bike_img,
        ratings=review_data.ratings(),
    )


@router.delete(
    "/reviews/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a review",
)
@limiter.limit(settings.rate_limit_write)
def delete_review(
    request: Request,
    review_id: int,
    db: DbSession,
    current_poster: CurrentPoster,
) -> None:
    """Delete your own review and its scores."""
    review_service.delete_review(db, review_id, current_poster.poster_id)
