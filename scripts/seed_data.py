#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample posters, bikes and reviews for
development.

USAGE:
    # Make sure you're in the project root with venv activated
    python scripts/seed_data.py

    # Keep existing rows
    python scripts/seed_data.py --keep

This script:
1. Connects to the database using app settings
2. Clears existing data (unless --keep)
3. Creates verified posters with ready-to-use API tokens
4. Registers bikes and reviews them through the services, so the
   rating aggregates are built exactly as the API would build them
"""

import sys
from datetime import timedelta
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete
from sqlalchemy.orm import Session

from rottenbikes.database import SessionLocal, create_tables
from rottenbikes.models import (
    Bike,
    MagicLink,
    Poster,
    RatingAggregate,
    Review,
    ReviewRating,
)
from rottenbikes.services import bikes as bike_service
from rottenbikes.services import reviews as review_service
from rottenbikes.services.auth import generate_token
from rottenbikes.utils.timeutils import add_months, utcnow


def clear_data(db: Session) -> None:
    """Clear all existing data, children first."""
    print("Clearing existing data...")
    for model in (ReviewRating, RatingAggregate, Review, Bike, MagicLink, Poster):
        db.execute(delete(model))
    db.commit()
    print("Data cleared.")


def create_posters(db: Session) -> dict[str, Poster]:
    """Create verified posters that can call the API right away."""
    print("Creating posters...")
    now = utcnow()
    posters = {}
    for username, email in [
        ("alice.rides", "alice@example.com"),
        ("bob", "bob@example.com"),
        ("carla.v", "carla@example.com"),
    ]:
        poster = Poster(
            username=username,
            email=email,
            email_verified=True,
            api_token=generate_token(),
            api_token_expires_at=add_months(now, 2),
            created_at=now,
        )
        db.add(poster)
        posters[username] = poster

    db.commit()
    for poster in posters.values():
        db.refresh(poster)

    print(f"Created {len(posters)} posters.")
    return posters


def create_bikes(db: Session, posters: dict[str, Poster]) -> list[int]:
    """Register sample bikes."""
    print("Creating bikes...")
    bikes_data = [
        {"numerical_id": 4021, "hash_id": "a9F3kQ", "is_electric": True, "creator": "alice.rides"},
        {"numerical_id": 5150, "hash_id": "Zt81mB", "is_electric": False, "creator": "bob"},
        {"numerical_id": 10777, "hash_id": None, "is_electric": True, "creator": "carla.v"},
        {"numerical_id": 20304, "hash_id": "Qq4Lw0", "is_electric": False, "creator": "alice.rides"},
    ]

    bike_ids = []
    for data in bikes_data:
        creator = posters[data.pop("creator")]
        bike = bike_service.create_bike(db, creator_id=creator.poster_id, **data)
        bike_ids.append(bike.numerical_id)

    print(f"Created {len(bike_ids)} bikes.")
    return bike_ids


def create_reviews(db: Session, posters: dict[str, Poster]) -> int:
    """Review the bikes, spread over the last three weeks."""
    print("Creating reviews...")
    now = utcnow()
    reviews_data = [
        ("alice.rides", 4021, 20, "Battery lasts all day.", {"overall": 4, "power": 5, "seat": 3}),
        ("bob", 4021, 9, "Brakes squeal going downhill.", {"overall": 3, "breaks": 2}),
        ("carla.v", 4021, 2, None, {"overall": 5, "pedals": 4}),
        ("alice.rides", 5150, 12, "Seat is stuck in the lowest position.", {"overall": 2, "seat": 1}),
        ("carla.v", 5150, 1, "Solid frame, nothing fancy.", {"sturdiness": 4}),
        ("bob", 10777, 5, "Great assist on hills.", {"overall": 5, "power": 5, "breaks": 4}),
        ("bob", 20304, 3, "Just a note: chain was oiled recently.", None),
    ]

    for username, bike_id, days_ago, comment, ratings in reviews_data:
        review_service.create_review_with_ratings(
            db,
            poster_id=posters[username].poster_id,
            bike_id=bike_id,
            comment=comment,
            ratings=ratings,
            now=now - timedelta(days=days_ago),
        )

    print(f"Created {len(reviews_data)} reviews.")
    return len(reviews_data)


def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    # Create tables if they don't exist
    create_tables()

    db = SessionLocal()

    try:
        if clear_existing:
            clear_data(db)

        posters = create_posters(db)
        bike_ids = create_bikes(db, posters)
        review_count = create_reviews(db, posters)

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print("\nSummary:")
        print(f"  - Posters: {len(posters)}")
        print(f"  - Bikes: {len(bike_ids)}")
        print(f"  - Reviews: {review_count}")
        print("\nAPI tokens (Authorization: Bearer <token>):")
        for poster in posters.values():
            print(f"  - {poster.username}: {poster.api_token}")
        print("\nAPI documentation at http://localhost:8080/docs")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database(clear_existing="--keep" not in sys.argv)
