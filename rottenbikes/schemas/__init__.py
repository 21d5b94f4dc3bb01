"""
Pydantic Schemas Package

This package contains Pydantic models for request/response validation.

WHY Separate Schemas from SQLAlchemy Models?
============================================
1. Security: Control exactly what data is exposed in API responses
   (a poster's api_token is only ever returned by confirm/poll)
2. Validation: Different rules for create vs update vs response
3. Documentation: Schemas generate OpenAPI documentation

Schema Naming Convention:
- XxxCreate: Fields required when creating a new record
- XxxUpdate: Fields allowed when updating (all optional)
- XxxResponse: Fields returned in API responses
"""

from rottenbikes.schemas.auth import (
    ConfirmResponse,
    MagicLinkRequest,
    MagicLinkSentResponse,
    PollResponse,
    RegisterRequest,
    VerifyResponse,
)
from rottenbikes.schemas.bike import (
    BikeCreate,
    BikeDetailsResponse,
    BikeResponse,
    BikeUpdate,
)
from rottenbikes.schemas.rating import RatingAggregateResponse
from rottenbikes.schemas.review import (
    ReviewCreate,
    ReviewCreatedResponse,
    ReviewResponse,
    ReviewUpdate,
)

__all__ = [
    "ConfirmResponse",
    "MagicLinkRequest",
    "MagicLinkSentResponse",
    "PollResponse",
    "RegisterRequest",
    "VerifyResponse",
    "BikeCreate",
    "BikeDetailsResponse",
    "BikeResponse",
    "BikeUpdate",
    "RatingAggregateResponse",
    "ReviewCreate",
    "ReviewCreatedResponse",
    "ReviewResponse",
    "ReviewUpdate",
]
