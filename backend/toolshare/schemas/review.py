"""Review schemas."""

from datetime import datetime
from typing import Any, Optional

from ..models.review import AppReview, ToolReview
from ..services.review_service import ReviewEligibility
from ._strict_base import StrictModel, StrictRequestModel


class ToolReviewCreate(StrictRequestModel):
    """
    Tool review request.

    Rating and comment are typed loosely here so that malformed values reach
    the eligibility gate and come back as INVALID_REVIEW_INPUT.
    """

    booking_id: str
    rating: Any = None
    comment: Any = None


class AppReviewCreate(StrictRequestModel):
    rating: Any = None
    comment: Any = None


class ReviewResponse(StrictModel):
    id: str
    kind: str
    reviewer_id: str
    rating: int
    comment: str
    booking_id: Optional[str] = None
    tool_id: Optional[str] = None
    reviewee_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_tool_review(cls, review: ToolReview) -> "ReviewResponse":
        return cls(
            id=review.id,
            kind="tool",
            reviewer_id=review.reviewer_id,
            rating=review.rating,
            comment=review.comment,
            booking_id=review.booking_id,
            tool_id=review.tool_id,
            reviewee_id=review.reviewee_id,
            created_at=review.created_at,
        )

    @classmethod
    def from_app_review(cls, review: AppReview) -> "ReviewResponse":
        return cls(
            id=review.id,
            kind="app",
            reviewer_id=review.reviewer_id,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
        )


class ReviewEligibilityResponse(StrictModel):
    can_review_app: bool
    can_review_tool: Optional[bool] = None
    booking_id: Optional[str] = None

    @classmethod
    def from_eligibility(cls, eligibility: ReviewEligibility) -> "ReviewEligibilityResponse":
        return cls(
            can_review_app=eligibility.can_review_app,
            can_review_tool=eligibility.can_review_tool,
            booking_id=eligibility.booking_id,
        )
