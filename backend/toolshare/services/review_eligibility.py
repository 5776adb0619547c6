"""
Review eligibility gate.

Decides whether a user may leave an app review or a tool review for a
booking, and validates rating and comment before anything is persisted.
Only the renter reviews a completed rental.
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.config import settings
from ..core.constants import MAX_REVIEW_COMMENT_LENGTH
from ..core.exceptions import InvalidReviewInputException
from ..models.booking import Booking, BookingStatus
from ..repositories.review_repository import AppReviewRepository, ToolReviewRepository


class ReviewEligibilityGate:
    def __init__(
        self,
        tool_review_repository: ToolReviewRepository,
        app_review_repository: AppReviewRepository,
        min_comment_chars: Optional[int] = None,
    ):
        self.tool_review_repository = tool_review_repository
        self.app_review_repository = app_review_repository
        self.min_comment_chars = (
            settings.review_min_comment_chars if min_comment_chars is None else min_comment_chars
        )

    def can_review_app(self, user_id: str) -> bool:
        return not self.app_review_repository.exists_for_reviewer(user_id)

    def can_review_tool(self, user_id: str, booking: Booking) -> bool:
        if booking.status != BookingStatus.COMPLETED.value:
            return False
        if booking.renter_id != user_id:
            return False
        return not self.tool_review_repository.exists_for_reviewer_and_booking(user_id, booking.id)

    def validate_input(self, rating: Any, comment: Any) -> str:
        """
        Check rating and comment; return the trimmed comment.

        Raises:
            InvalidReviewInputException: rating outside 1..5 or comment too short/long
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidReviewInputException(
                "Rating must be an integer between 1 and 5", field="rating"
            )
        if not isinstance(comment, str):
            raise InvalidReviewInputException("A comment is required", field="comment")
        text = comment.strip()
        if sum(1 for ch in text if not ch.isspace()) < self.min_comment_chars:
            raise InvalidReviewInputException(
                f"Comment must contain at least {self.min_comment_chars} non-blank characters",
                field="comment",
            )
        if len(text) > MAX_REVIEW_COMMENT_LENGTH:
            raise InvalidReviewInputException(
                f"Comment cannot exceed {MAX_REVIEW_COMMENT_LENGTH} characters", field="comment"
            )
        return text
