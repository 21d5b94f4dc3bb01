"""
Tests for the Reviews Service

Tests the review lifecycle at the service layer:
- Create a review with any subset of the six scores
- Cooldown between two reviews of the same bike by the same poster
- A bad score rolls back the whole review
- Edit and delete are limited to the author
- Reads fold scores into one entry per review

Business Rules:
- Scores are 1-5
- A poster can review the same bike again only after the cooldown
- Someone else's review looks exactly like a missing one
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rottenbikes.exceptions import (
    BikeNotFound,
    InvalidInputError,
    InvalidScore,
    ReviewNotFound,
    TooFrequentReview,
)
from rottenbikes.models import Bike, Poster, RatingAggregate, Review, ReviewRating
from rottenbikes.models.review_rating import RatingSubcategory
from rottenbikes.services import reviews as review_service
from rottenbikes.utils.timeutils import utcnow


def count(db: Session, model) -> int:
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def overall_average(db: Session, bike_id: int) -> float | None:
    value = db.execute(
        select(RatingAggregate.average_rating).where(
            RatingAggregate.bike_numerical_id == bike_id,
            RatingAggregate.subcategory == "overall",
        )
    ).scalar_one_or_none()
    return float(value) if value is not None else None


# =============================================================================
# Create
# =============================================================================


class TestCreateReview:
    """Tests for create_review_with_ratings"""

    def test_create_with_scores(
        self, db_session: Session, sample_bike: Bike, sample_poster: Poster
    ):
        """The review and one row per provided score are written."""
        review_id = review_service.create_review_with_ratings(
            db_session,
            sample_poster.poster_id,
            4021,
            comment="Brakes squeak",
            ratings={RatingSubcategory.OVERALL: 4, "breaks": 2},
        )

        review = review_service.get_review_with_ratings(db_session, review_id)
        assert review.comment == "Brakes squeak"
        assert review.poster_username == "alice.rides"
        assert review.ratings == {"breaks": 2, "overall": 4}
        assert overall_average(db_session, 4021) == pytest.approx(4.0)

    def test_create_without_scores(
        self, db_session: Session, sample_bike: Bike, sample_poster: Poster
    ):
        """A review with no scores is valid and leaves aggregates empty."""
        review_id = review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, comment="Just a note"
        )

        review = review_service.get_review_with_ratings(db_session, review_id)
        assert review.ratings == {}
        assert count(db_session, RatingAggregate) == 0

    def test_none_scores_are_skipped(
        self, db_session: Session, sample_bike: Bike, sample_poster: Poster
    ):
        review_id = review_service.create_review_with_ratings(
            db_session,
            sample_poster.poster_id,
            4021,
            ratings={"overall": 3, "seat": None},
        )

        assert review_service.get_review_with_ratings(db_session, review_id).ratings == {
            "overall": 3
        }

    def test_unknown_bike(self, db_session: Session, sample_poster: Poster):
        with pytest.raises(BikeNotFound):
            review_service.create_review_with_ratings(
                db_session, sample_poster.poster_id, 999999, ratings={"overall": 3}
            )

        assert count(db_session, Review) == 0

    @pytest.mark.parametrize("bad_score", [0, 6, -1])
    def test_invalid_score_writes_nothing(
        self,
        db_session: Session,
        sample_bike: Bike,
        sample_poster: Poster,
        bad_score: int,
    ):
        """A score outside 1-5 rolls back the review and its valid scores."""
        with pytest.raises(InvalidScore):
            review_service.create_review_with_ratings(
                db_session,
                sample_poster.poster_id,
                4021,
                comment="should not persist",
                ratings={"overall": 4, "pedals": bad_score},
            )

        assert count(db_session, Review) == 0
        assert count(db_session, ReviewRating) == 0
        assert count(db_session, RatingAggregate) == 0

    def test_unknown_subcategory(
        self, db_session: Session, sample_bike: Bike, sample_poster: Poster
    ):
        with pytest.raises(InvalidInputError):
            review_service.create_review_with_ratings(
                db_session, sample_poster.poster_id, 4021, ratings={"wheels": 3}
            )

        assert count(db_session, Review) == 0


# =============================================================================
# Cooldown
# =============================================================================


class TestReviewCooldown:
    """A poster can review the same bike again only after the cooldown."""

    def test_second_review_inside_cooldown(
        self, db_session: Session, sample_bike: Bike, sample_poster: Poster
    ):
        t0 = utcnow()
        review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, ratings={"overall": 4}, now=t0
        )

        with pytest.raises(TooFrequentReview):
            review_service.create_review_with_ratings(
                db_session,
                sample_poster.poster_id,
                4021,
                ratings={"overall": 1},
                now=t0 + timedelta(minutes=5),
            )

        assert count(db_session, Review) == 1
        assert overall_average(db_session, 4021) == pytest.approx(4.0)

    def test_second_review_after_cooldown(
        self, db_session: Session, sample_bike: Bike, sample_poster: Poster
    ):
        t0 = utcnow()
        review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, ratings={"overall": 4}, now=t0
        )
        review_service.create_review_with_ratings(
            db_session,
            sample_poster.poster_id,
            4021,
            ratings={"overall": 2},
            now=t0 + timedelta(minutes=11),
        )

        assert count(db_session, Review) == 2
        assert overall_average(db_session, 4021) == pytest.approx(3.0)

    def test_cooldown_is_per_bike(
        self,
        db_session: Session,
        sample_bike: Bike,
        second_bike: Bike,
        sample_poster: Poster,
    ):
        t0 = utcnow()
        review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, now=t0
        )
        review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 5150, now=t0 + timedelta(minutes=1)
        )

        assert count(db_session, Review) == 2

    def test_cooldown_is_per_poster(
        self,
        db_session: Session,
        sample_bike: Bike,
        sample_poster: Poster,
        second_poster: Poster,
    ):
        t0 = utcnow()
        review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, now=t0
        )
        review_service.create_review_with_ratings(
            db_session, second_poster.poster_id, 4021, now=t0 + timedelta(minutes=1)
        )

        assert count(db_session, Review) == 2


# =============================================================================
# Update
# =============================================================================


class TestUpdateReview:
    """Tests for update_review_with_ratings"""

    @pytest.fixture
    def review_id(self, db_session: Session, sample_bike: Bike, sample_poster: Poster) -> int:
        return review_service.create_review_with_ratings(
            db_session,
            sample_poster.poster_id,
            4021,
            comment="first take",
            ratings={"overall": 2, "seat": 3},
        )

    def test_update_overwrites_and_adds_scores(
        self, db_session: Session, sample_poster: Poster, review_id: int
    ):
        """Provided scores replace or add; the rest stay."""
        review_service.update_review_with_ratings(
            db_session,
            review_id,
            sample_poster.poster_id,
            ratings={"overall": 5, "pedals": 4},
        )

        review = review_service.get_review_with_ratings(db_session, review_id)
        assert review.ratings == {"overall": 5, "pedals": 4, "seat": 3}
        assert review.comment == "first take"
        assert overall_average(db_session, 4021) == pytest.approx(5.0)

    def test_update_comment_only(
        self, db_session: Session, sample_poster: Poster, review_id: int
    ):
        review_service.update_review_with_ratings(
            db_session, review_id, sample_poster.poster_id, comment="second take"
        )

        review = review_service.get_review_with_ratings(db_session, review_id)
        assert review.comment == "second take"
        assert review.ratings == {"overall": 2, "seat": 3}

    def test_update_someone_elses_review(
        self, db_session: Session, second_poster: Poster, review_id: int
    ):
        """Editing another poster's review looks like editing a missing one."""
        with pytest.raises(ReviewNotFound):
            review_service.update_review_with_ratings(
                db_session, review_id, second_poster.poster_id, comment="hijack"
            )

        review = review_service.get_review_with_ratings(db_session, review_id)
        assert review.comment == "first take"

    def test_update_invalid_score_rolls_back(
        self, db_session: Session, sample_poster: Poster, review_id: int
    ):
        with pytest.raises(InvalidScore):
            review_service.update_review_with_ratings(
                db_session,
                review_id,
                sample_poster.poster_id,
                comment="changed",
                ratings={"overall": 4, "seat": 9},
            )

        review = review_service.get_review_with_ratings(db_session, review_id)
        assert review.comment == "first take"
        assert review.ratings == {"overall": 2, "seat": 3}
        assert overall_average(db_session, 4021) == pytest.approx(2.0)


# =============================================================================
# Delete
# =============================================================================


class TestDeleteReview:
    """Tests for delete_review"""

    def test_delete_recomputes_aggregates(
        self,
        db_session: Session,
        sample_bike: Bike,
        sample_poster: Poster,
        second_poster: Poster,
    ):
        first = review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, ratings={"overall": 1}
        )
        review_service.create_review_with_ratings(
            db_session, second_poster.poster_id, 4021, ratings={"overall": 5}
        )
        assert overall_average(db_session, 4021) == pytest.approx(3.0)

        review_service.delete_review(db_session, first, sample_poster.poster_id)

        assert overall_average(db_session, 4021) == pytest.approx(5.0)
        assert count(db_session, ReviewRating) == 1

    def test_delete_last_review_clears_aggregates(
        self, db_session: Session, sample_bike: Bike, sample_poster: Poster
    ):
        review_id = review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, ratings={"overall": 4}
        )

        review_service.delete_review(db_session, review_id, sample_poster.poster_id)

        assert count(db_session, RatingAggregate) == 0

    def test_delete_someone_elses_review(
        self,
        db_session: Session,
        sample_bike: Bike,
        sample_poster: Poster,
        second_poster: Poster,
    ):
        review_id = review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, ratings={"overall": 4}
        )

        with pytest.raises(ReviewNotFound):
            review_service.delete_review(db_session, review_id, second_poster.poster_id)

        assert count(db_session, Review) == 1

    def test_delete_missing_review(self, db_session: Session, sample_poster: Poster):
        with pytest.raises(ReviewNotFound):
            review_service.delete_review(db_session, 12345, sample_poster.poster_id)


# =============================================================================
# Reads
# =============================================================================


class TestReadReviews:
    """Tests for the review listing functions."""

    def test_list_ordered_by_bike_then_review(
        self,
        db_session: Session,
        sample_bike: Bike,
        second_bike: Bike,
        sample_poster: Poster,
        second_poster: Poster,
    ):
        r1 = review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 5150, ratings={"overall": 3}
        )
        r2 = review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, ratings={"seat": 4, "overall": 2}
        )
        r3 = review_service.create_review_with_ratings(
            db_session, second_poster.poster_id, 4021
        )

        reviews = review_service.list_reviews_with_ratings(db_session)

        assert [r.review_id for r in reviews] == [r2, r3, r1]
        assert reviews[0].ratings == {"overall": 2, "seat": 4}
        assert reviews[1].ratings == {}

    def test_list_by_bike(
        self,
        db_session: Session,
        sample_bike: Bike,
        second_bike: Bike,
        sample_poster: Poster,
    ):
        review_service.create_review_with_ratings(db_session, sample_poster.poster_id, 5150)
        review_id = review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021
        )

        reviews = review_service.list_reviews_with_ratings_by_bike(db_session, 4021)

        assert [r.review_id for r in reviews] == [review_id]

    def test_list_by_unknown_bike(self, db_session: Session):
        assert review_service.list_reviews_with_ratings_by_bike(db_session, 999999) == []

    def test_orphaned_review_is_listed(
        self, db_session: Session, sample_bike: Bike, sample_poster: Poster
    ):
        """Reviews whose author left still show up, without a username."""
        review_id = review_service.create_review_with_ratings(
            db_session, sample_poster.poster_id, 4021, ratings={"overall": 4}
        )
        db_session.get(Review, review_id).poster_id = None
        db_session.commit()

        review = review_service.get_review_with_ratings(db_session, review_id)

        assert review.poster_id is None
        assert review.poster_username is None
        assert review.ratings == {"overall": 4}

    def test_get_missing_review(self, db_session: Session):
        with pytest.raises(ReviewNotFound):
            review_service.get_review_with_ratings(db_session, 12345)
