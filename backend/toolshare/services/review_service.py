# backend/toolshare/services/review_service.py
"""
ReviewService: submission of tool and app reviews.

Eligibility and input checks run through ReviewEligibilityGate before any
row is written; the unique constraints on the review tables back them up
against concurrent double submissions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, RepositoryException, ReviewNotAllowedException
from ..core.timezone_utils import ensure_utc
from ..events.booking_events import ReviewSubmitted
from ..events.publisher import EventPublisher
from ..models.booking import Booking
from ..models.review import AppReview, ToolReview
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .review_eligibility import ReviewEligibilityGate


@dataclass(frozen=True)
class ReviewEligibility:
    can_review_app: bool
    can_review_tool: Optional[bool] = None
    booking_id: Optional[str] = None


class ReviewService(BaseService):
    """Service layer for reviews."""

    def __init__(self, db: Session, gate: Optional[ReviewEligibilityGate] = None) -> None:
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.tool_review_repository = RepositoryFactory.create_tool_review_repository(db)
        self.app_review_repository = RepositoryFactory.create_app_review_repository(db)
        self.gate = gate or ReviewEligibilityGate(
            self.tool_review_repository, self.app_review_repository
        )
        self.event_publisher = EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @BaseService.measure_operation("get_review_eligibility")
    def get_eligibility(self, user_id: str, booking_id: Optional[str] = None) -> ReviewEligibility:
        can_review_tool = None
        if booking_id is not None:
            can_review_tool = self.gate.can_review_tool(user_id, self._get_booking(booking_id))
        return ReviewEligibility(
            can_review_app=self.gate.can_review_app(user_id),
            can_review_tool=can_review_tool,
            booking_id=booking_id,
        )

    @BaseService.measure_operation("submit_tool_review")
    def submit_tool_review(
        self,
        *,
        reviewer_id: str,
        booking_id: str,
        rating: Any,
        comment: Any,
        now: datetime,
    ) -> ToolReview:
        """Submit a review for a completed booking."""
        text = self.gate.validate_input(rating, comment)
        booking = self._get_booking(booking_id)
        if not self.gate.can_review_tool(reviewer_id, booking):
            raise ReviewNotAllowedException(
                "This booking cannot be reviewed by you",
                details={"booking_id": booking_id, "current_status": booking.status},
            )

        with self.transaction():
            try:
                review = self.tool_review_repository.create(
                    booking_id=booking.id,
                    tool_id=booking.tool_id,
                    reviewer_id=reviewer_id,
                    reviewee_id=booking.owner_id,
                    rating=rating,
                    comment=text,
                    created_at=ensure_utc(now),
                )
            except RepositoryException as exc:
                raise ReviewNotAllowedException(
                    "A review already exists for this booking",
                    details={"booking_id": booking_id},
                ) from exc
            self.event_publisher.publish(
                ReviewSubmitted(
                    review_id=review.id,
                    review_kind="tool",
                    reviewer_id=reviewer_id,
                    rating=rating,
                    booking_id=booking.id,
                ),
                now=now,
            )

        self.logger.info(
            "Tool review submitted",
            extra={"booking_id": booking.id, "reviewer_id": reviewer_id, "rating": rating},
        )
        return review

    @BaseService.measure_operation("submit_app_review")
    def submit_app_review(
        self,
        *,
        reviewer_id: str,
        rating: Any,
        comment: Any,
        now: datetime,
    ) -> AppReview:
        text = self.gate.validate_input(rating, comment)
        if not self.gate.can_review_app(reviewer_id):
            raise ReviewNotAllowedException(
                "You have already reviewed the app", details={"reviewer_id": reviewer_id}
            )

        with self.transaction():
            try:
                review = self.app_review_repository.create(
                    reviewer_id=reviewer_id,
                    rating=rating,
                    comment=text,
                    created_at=ensure_utc(now),
                )
            except RepositoryException as exc:
                raise ReviewNotAllowedException(
                    "You have already reviewed the app", details={"reviewer_id": reviewer_id}
                ) from exc
            self.event_publisher.publish(
                ReviewSubmitted(
                    review_id=review.id,
                    review_kind="app",
                    reviewer_id=reviewer_id,
                    rating=rating,
                ),
                now=now,
            )
        return review
