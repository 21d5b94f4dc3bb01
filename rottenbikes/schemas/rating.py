"""
Rating Pydantic Schemas
"""

from pydantic import BaseModel, ConfigDict, Field


class RatingAggregateResponse(BaseModel):
    """
    Average score of one subcategory of one bike.

    window is "overall" for the materialized aggregates, or "1w" / "2w" for
    the windowed view.
    """

    bike_numerical_id: int
    subcategory: str = Field(..., examples=["overall", "seat"])
    average_rating: float = Field(..., examples=[3.67])
    window: str = Field(default="overall", examples=["overall", "1w", "2w"])

    model_config = ConfigDict(from_attributes=True)
