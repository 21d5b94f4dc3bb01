"""
Review Model

A poster's free-text review of a bike. Scores live in review_ratings, one
row per subcategory, so a review may carry anywhere from zero to six scores.

Business Rules:
- A poster may review the same bike many times, but not more often than
  once per cooldown window (enforced in services.reviews, not by a constraint)
- Only the author can edit or delete a review
- When the author deletes their account without removing content, poster_id
  becomes NULL and the review stays visible
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rottenbikes.database import Base
from rottenbikes.utils.timeutils import utcnow


class Review(Base):
    """
    Review model.

    Attributes:
        review_id: Primary key
        poster_id: Author, NULL after the author account was removed
        bike_numerical_id: Reviewed bike
        comment: Optional review text
        bike_img: Optional image reference
        created_at: Used for the cooldown and windowed averages
    """

    __tablename__ = "reviews"

    review_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    poster_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("posters.poster_id"),
        nullable=True,
        index=True,
    )
    bike_numerical_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("bikes.numerical_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    bike_img: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Review(review_id={self.review_id}, bike={self.bike_numerical_id}, poster_id={self.poster_id})>"
