"""
Rating Aggregate Model

Per-bike, per-subcategory rating summary kept next to the raw scores so bike
listings never have to run AVG over review_ratings.

The table is a materialized view: rows for a bike are deleted and rebuilt
from review_ratings ⋈ reviews inside the same transaction as every review
mutation (see services.ratings.recompute_aggregates_for_bike). Nothing ever
updates a row in place.
"""

from decimal import Decimal

from sqlalchemy import BigInteger, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from rottenbikes.database import Base


class RatingAggregate(Base):
    """
    Rating aggregate model.

    Table: rating_aggregates
    """

    __tablename__ = "rating_aggregates"

    bike_numerical_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("bikes.numerical_id", ondelete="CASCADE"),
        primary_key=True,
    )
    subcategory: Mapped[str] = mapped_column(String(16), primary_key=True)

    rating_sum: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False)

    # Numeric(3, 2) holds 1.00 to 5.00
    average_rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<RatingAggregate(bike={self.bike_numerical_id}, "
            f"{self.subcategory}={self.average_rating} over {self.rating_count})>"
        )
