"""
Bike Pydantic Schemas

Schemas:
- BikeCreate: Register a bike
- BikeUpdate: Change hash_id / is_electric
- BikeResponse: A bike with its overall average rating
- BikeDetailsResponse: A bike with its aggregates and reviews
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rottenbikes.schemas.rating import RatingAggregateResponse
from rottenbikes.schemas.review import ReviewResponse

HASH_ID_PATTERN = r"^[A-Za-z0-9]*$"


class BikeCreate(BaseModel):
    """
    Schema for registering a bike.

    Example request body:
    {
        "numerical_id": 4021,
        "hash_id": "a9F3kQ",
        "is_electric": true
    }
    """

    numerical_id: int = Field(
        ...,
        ge=1000,
        le=999999,
        description="Number painted on the frame (4-6 digits)",
        examples=[4021],
    )
    hash_id: str | None = Field(
        default=None,
        max_length=64,
        pattern=HASH_ID_PATTERN,
        description="Alphanumeric code from the QR sticker",
        examples=["a9F3kQ"],
    )
    is_electric: bool = Field(default=False)

    @field_validator("hash_id", mode="before")
    @classmethod
    def strip_hash_id(cls, v):
        """Strip surrounding whitespace before the pattern check."""
        return v.strip() if isinstance(v, str) else v


class BikeUpdate(BaseModel):
    """All fields optional; omitted fields keep their value."""

    hash_id: str | None = Field(
        default=None,
        max_length=64,
        pattern=HASH_ID_PATTERN,
    )
    is_electric: bool | None = None

    @field_validator("hash_id", mode="before")
    @classmethod
    def strip_hash_id(cls, v):
        return v.strip() if isinstance(v, str) else v


class BikeResponse(BaseModel):
    numerical_id: int
    hash_id: str | None
    is_electric: bool
    average_rating: float | None = Field(
        default=None,
        description="Overall average, null until the bike has been rated",
    )
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BikeDetailsResponse(BikeResponse):
    ratings: list[RatingAggregateResponse] = Field(default_factory=list)
    reviews: list[ReviewResponse] = Field(default_factory=list)
