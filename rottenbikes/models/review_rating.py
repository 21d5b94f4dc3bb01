"""
Review Rating Model

One score per (review, subcategory).
"""

from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from rottenbikes.database import Base

MIN_SCORE = 1
MAX_SCORE = 5


class RatingSubcategory(str, Enum):
    """
    Aspects of a bike that can be scored.

    Declaration order is the order ratings are written in.
    """
    OVERALL = "overall"
    BREAKS = "breaks"
    SEAT = "seat"
    STURDINESS = "sturdiness"
    POWER = "power"
    PEDALS = "pedals"


class ReviewRating(Base):
    """
    Review rating model.

    Table: review_ratings

    Composite primary key (review_id, subcategory): a review has at most one
    score per subcategory, and updates overwrite it in place.
    """

    __tablename__ = "review_ratings"

    review_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("reviews.review_id", ondelete="CASCADE"),
        primary_key=True,
    )
    subcategory: Mapped[str] = mapped_column(String(16), primary_key=True)
    score: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    __table_args__ = (
        CheckConstraint(
            f"score >= {MIN_SCORE} AND score <= {MAX_SCORE}",
            name="ck_review_ratings_score_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<ReviewRating(review_id={self.review_id}, {self.subcategory}={self.score})>"
