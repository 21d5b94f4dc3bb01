"""
Tests for Poster Account Deletion

Tests both content strategies:
- delete_content=False: bikes and reviews stay without an owner
- delete_content=True: reviews and registered bikes are removed and the
  aggregates of the other reviewed bikes are rebuilt
"""

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rottenbikes.exceptions import UserNotFound
from rottenbikes.models import Bike, MagicLink, Poster, RatingAggregate, Review
from rottenbikes.services import auth as auth_service
from rottenbikes.services import reviews as review_service
from rottenbikes.services.posters import delete_poster


def count(db: Session, model, *where) -> int:
    stmt = select(func.count()).select_from(model)
    if where:
        stmt = stmt.where(*where)
    return db.execute(stmt).scalar_one()


def overall_average(db: Session, bike_id: int) -> float | None:
    value = db.execute(
        select(RatingAggregate.average_rating).where(
            RatingAggregate.bike_numerical_id == bike_id,
            RatingAggregate.subcategory == "overall",
        )
    ).scalar_one_or_none()
    return float(value) if value is not None else None


@pytest.fixture
def reviewed_bikes(
    db_session: Session,
    sample_poster: Poster,
    second_poster: Poster,
    sample_bike: Bike,
    second_bike: Bike,
) -> None:
    """
    alice registered 4021 and reviewed both bikes; bob registered 5150 and
    reviewed it too.
    """
    alice, bob = sample_poster.poster_id, second_poster.poster_id
    review_service.create_review_with_ratings(db_session, alice, 4021, ratings={"overall": 5})
    review_service.create_review_with_ratings(db_session, alice, 5150, ratings={"overall": 1})
    review_service.create_review_with_ratings(db_session, bob, 5150, ratings={"overall": 3})
    auth_service.create_magic_link(db_session, "alice.rides")


class TestOrphanContent:
    """delete_content=False"""

    def test_content_kept_without_owner(
        self, db_session: Session, sample_poster: Poster, reviewed_bikes
    ):
        alice = sample_poster.poster_id

        delete_poster(db_session, alice, delete_content=False)

        assert db_session.get(Poster, alice) is None
        assert count(db_session, MagicLink, MagicLink.poster_id == alice) == 0
        assert count(db_session, Review) == 3
        assert count(db_session, Review, Review.poster_id.is_(None)) == 2
        assert db_session.execute(
            select(Bike.creator_id).where(Bike.numerical_id == 4021)
        ).scalar_one() is None

    def test_orphaned_scores_still_count(
        self, db_session: Session, sample_poster: Poster, reviewed_bikes
    ):
        delete_poster(db_session, sample_poster.poster_id)

        assert overall_average(db_session, 5150) == pytest.approx(2.0)
        assert overall_average(db_session, 4021) == pytest.approx(5.0)


class TestDeleteContent:
    """delete_content=True"""

    def test_reviews_and_bikes_removed(
        self,
        db_session: Session,
        sample_poster: Poster,
        second_poster: Poster,
        reviewed_bikes,
    ):
        alice, bob = sample_poster.poster_id, second_poster.poster_id

        delete_poster(db_session, alice, delete_content=True)

        assert db_session.get(Poster, alice) is None
        assert db_session.get(Bike, 4021) is None
        assert count(db_session, Review, Review.poster_id == alice) == 0
        assert count(db_session, Review, Review.poster_id == bob) == 1
        assert count(db_session, RatingAggregate, RatingAggregate.bike_numerical_id == 4021) == 0

    def test_other_bikes_recomputed(
        self, db_session: Session, sample_poster: Poster, reviewed_bikes
    ):
        """5150 only keeps bob's score after alice's review is gone."""
        delete_poster(db_session, sample_poster.poster_id, delete_content=True)

        assert overall_average(db_session, 5150) == pytest.approx(3.0)

    def test_other_posters_reviews_on_deleted_bike_go_too(
        self,
        db_session: Session,
        sample_poster: Poster,
        second_poster: Poster,
        sample_bike: Bike,
    ):
        review_service.create_review_with_ratings(
            db_session, second_poster.poster_id, 4021, ratings={"overall": 4}
        )

        delete_poster(db_session, sample_poster.poster_id, delete_content=True)

        assert count(db_session, Review) == 0


class TestDeletePosterErrors:
    def test_missing_poster(self, db_session: Session):
        with pytest.raises(UserNotFound):
            delete_poster(db_session, 12345)


class TestDeleteAccountEndpoint:
    """Tests for DELETE /api/v1/posters/me"""

    def test_delete_me(
        self,
        client: TestClient,
        db_session: Session,
        sample_poster: Poster,
        auth_headers: dict,
    ):
        alice = sample_poster.poster_id

        response = client.delete("/api/v1/posters/me", headers=auth_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert db_session.get(Poster, alice) is None

        # The token died with the account
        response = client.get("/api/v1/auth/verify", headers=auth_headers)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_delete_me_with_content(
        self,
        client: TestClient,
        db_session: Session,
        sample_bike: Bike,
        auth_headers: dict,
    ):
        response = client.delete(
            "/api/v1/posters/me",
            params={"delete_content": "true"},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert db_session.get(Bike, 4021) is None

    def test_delete_me_requires_auth(self, client: TestClient):
        response = client.delete("/api/v1/posters/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
