"""
Review Pydantic Schemas

Schemas:
- ReviewScores: The six optional subcategory scores
- ReviewCreate: Create a review for a bike
- ReviewUpdate: Edit a review (omitted fields keep their value)
- ReviewCreatedResponse: id of a new review
- ReviewResponse: A review with its scores

Business Rules:
- Every score is optional; a given score must be 1-5
- A poster can review the same bike again only after the cooldown
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rottenbikes.models import RatingSubcategory


def _score_field(label: str):
    return Field(
        default=None,
        ge=1,
        le=5,
        description=f"{label} score from 1 to 5",
        examples=[4],
    )


class ReviewScores(BaseModel):
    """Optional per-subcategory scores, flat in the request body."""

    overall: int | None = _score_field("Overall")
    breaks: int | None = _score_field("Brakes")
    seat: int | None = _score_field("Seat")
    sturdiness: int | None = _score_field("Sturdiness")
    power: int | None = _score_field("Power (electric assist)")
    pedals: int | None = _score_field("Pedals")

    def ratings(self) -> dict[RatingSubcategory, int]:
        """Provided scores keyed by subcategory."""
        return {
            subcategory: getattr(self, subcategory.value)
            for subcategory in RatingSubcategory
            if getattr(self, subcategory.value) is not None
        }


class ReviewBase(ReviewScores):
    comment: str | None = Field(
        default=None,
        max_length=5000,
        description="Review text",
        examples=["Brakes squeak but the seat is comfy."],
    )
    bike_img: str | None = Field(
        default=None,
        max_length=2048,
        description="Image reference (URL or storage key)",
    )

    @field_validator("comment")
    @classmethod
    def comment_must_not_be_empty_if_provided(cls, v: str | None) -> str | None:
        """Treat a whitespace-only comment as not provided."""
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class ReviewCreate(ReviewBase):
    """
    Schema for creating a review.

    Example request body:
    {
        "comment": "Solid ride",
        "overall": 4,
        "seat": 3
    }
    """

    pass


class ReviewUpdate(ReviewBase):
    """
    Schema for editing a review.

    Omitted fields keep their current value; provided scores overwrite the
    existing score for that subcategory.
    """

    pass


class ReviewCreatedResponse(BaseModel):
    review_id: int


class ReviewResponse(BaseModel):
    """A review with its scores, as returned by every review read."""

    review_id: int
    poster_id: int | None = Field(..., description="NULL once the author deleted their account")
    poster_username: str | None
    bike_numerical_id: int
    comment: str | None
    bike_img: str | None
    created_at: datetime
    ratings: dict[str, int] = Field(
        default_factory=dict,
        description="Scores keyed by subcategory",
        examples=[{"overall": 4, "seat": 3}],
    )

    model_config = ConfigDict(from_attributes=True)
