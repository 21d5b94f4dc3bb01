"""
SQLAlchemy Models Package

This package contains all database models for the RottenBikes API.

Model Relationships:
- Poster -> MagicLink: One-to-Many (sign-in links issued to a poster)
- Poster -> Bike: One-to-Many via creator_id (nullable)
- Poster -> Review: One-to-Many via poster_id (nullable)
- Bike -> Review: One-to-Many
- Review -> ReviewRating: One-to-Many (at most one per subcategory)
- Bike -> RatingAggregate: One-to-Many (one per rated subcategory)

Import all models here so Alembic discovers them for migrations.
"""

from rottenbikes.models.poster import Poster
from rottenbikes.models.magic_link import MagicLink
from rottenbikes.models.bike import Bike
from rottenbikes.models.review import Review
from rottenbikes.models.review_rating import RatingSubcategory, ReviewRating
from rottenbikes.models.rating_aggregate import RatingAggregate

__all__ = [
    "Poster",
    "MagicLink",
    "Bike",
    "Review",
    "RatingSubcategory",
    "ReviewRating",
    "RatingAggregate",
]
