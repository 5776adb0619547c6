"""
Review gating: only the renter of a completed booking, once; app reviews once per user.
"""

import pytest

from toolshare.core.exceptions import (
    InvalidReviewInputException,
    NotFoundException,
    ReviewNotAllowedException,
)
from toolshare.models.review import AppReview, ToolReview
from toolshare.repositories.review_repository import AppReviewRepository, ToolReviewRepository
from toolshare.services.review_eligibility import ReviewEligibilityGate
from toolshare.services.review_service import ReviewService

from ..factories.booking_builders import (
    NOW,
    OWNER_ID,
    RENTER_ID,
    complete_rental,
    create_booking,
    event_types,
    start_rental,
)


@pytest.fixture
def review_service(db) -> ReviewService:
    return ReviewService(db)


@pytest.fixture
def completed_booking(service):
    return complete_rental(service, start_rental(service, create_booking(service)))


def test_renter_reviews_completed_booking(db, review_service, completed_booking):
    review = review_service.submit_tool_review(
        reviewer_id=RENTER_ID,
        booking_id=completed_booking.id,
        rating=5,
        comment="  Great drill, clean and charged  ",
        now=NOW,
    )

    assert review.reviewee_id == OWNER_ID
    assert review.tool_id == completed_booking.tool_id
    assert review.comment == "Great drill, clean and charged"
    assert "review.submitted" in event_types(db, completed_booking.id)


def test_second_tool_review_is_refused(db, review_service, completed_booking):
    review_service.submit_tool_review(
        reviewer_id=RENTER_ID, booking_id=completed_booking.id, rating=4, comment="Fine", now=NOW
    )

    with pytest.raises(ReviewNotAllowedException):
        review_service.submit_tool_review(
            reviewer_id=RENTER_ID,
            booking_id=completed_booking.id,
            rating=1,
            comment="Changed my mind",
            now=NOW,
        )
    assert db.query(ToolReview).count() == 1


def test_owner_cannot_review_own_rental(review_service, completed_booking):
    with pytest.raises(ReviewNotAllowedException):
        review_service.submit_tool_review(
            reviewer_id=OWNER_ID, booking_id=completed_booking.id, rating=5, comment="Nice", now=NOW
        )


def test_booking_not_completed_cannot_be_reviewed(db, review_service, ongoing_booking):
    with pytest.raises(ReviewNotAllowedException):
        review_service.submit_tool_review(
            reviewer_id=RENTER_ID, booking_id=ongoing_booking.id, rating=5, comment="Good", now=NOW
        )
    assert db.query(ToolReview).count() == 0


def test_unknown_booking_is_not_found(review_service):
    with pytest.raises(NotFoundException):
        review_service.submit_tool_review(
            reviewer_id=RENTER_ID, booking_id="missing", rating=5, comment="Good", now=NOW
        )


@pytest.mark.parametrize(
    "rating, comment, field",
    [
        (0, "Fine tool", "rating"),
        (6, "Fine tool", "rating"),
        ("5", "Fine tool", "rating"),
        (True, "Fine tool", "rating"),
        (4.5, "Fine tool", "rating"),
        (4, None, "comment"),
        (4, "  a  ", "comment"),
        (4, "x" * 1001, "comment"),
    ],
)
def test_malformed_input_is_rejected_before_eligibility(
    db, review_service, completed_booking, rating, comment, field
):
    with pytest.raises(InvalidReviewInputException) as exc_info:
        review_service.submit_tool_review(
            reviewer_id=RENTER_ID,
            booking_id=completed_booking.id,
            rating=rating,
            comment=comment,
            now=NOW,
        )

    assert exc_info.value.details["field"] == field
    assert db.query(ToolReview).count() == 0


def test_app_review_once_per_user(db, review_service):
    review_service.submit_app_review(reviewer_id=RENTER_ID, rating=4, comment="Handy", now=NOW)

    with pytest.raises(ReviewNotAllowedException):
        review_service.submit_app_review(reviewer_id=RENTER_ID, rating=5, comment="Again", now=NOW)

    assert db.query(AppReview).count() == 1
    assert review_service.get_eligibility(RENTER_ID).can_review_app is False
    assert review_service.get_eligibility(OWNER_ID).can_review_app is True


def test_eligibility_reports_tool_review_state(review_service, completed_booking):
    before = review_service.get_eligibility(RENTER_ID, completed_booking.id)
    assert before.can_review_tool is True

    review_service.submit_tool_review(
        reviewer_id=RENTER_ID, booking_id=completed_booking.id, rating=5, comment="Great", now=NOW
    )

    after = review_service.get_eligibility(RENTER_ID, completed_booking.id)
    assert after.can_review_tool is False
    assert review_service.get_eligibility(OWNER_ID, completed_booking.id).can_review_tool is False


def test_explicit_comment_minimum_is_not_replaced_by_default(db):
    gate = ReviewEligibilityGate(
        ToolReviewRepository(db), AppReviewRepository(db), min_comment_chars=0
    )
    assert gate.min_comment_chars == 0
