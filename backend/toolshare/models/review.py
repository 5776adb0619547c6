# backend/toolshare/models/review.py
"""
Review models for ToolShare.

Design notes:
- ULID string IDs everywhere (26 chars)
- Timezone-aware timestamps
- Tool reviews: at most one per (reviewer, booking), enforced by a DB unique constraint
- App reviews: at most one per reviewer, ever
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy import UniqueConstraint
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ToolReview(Base):
    """Review of a rented tool (and its owner) tied to one completed booking."""

    __tablename__ = "tool_reviews"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    tool_id = Column(String(26), nullable=False, index=True)
    reviewer_id = Column(String(26), nullable=False, index=True)
    reviewee_id = Column(String(26), nullable=False, index=True)

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (
        UniqueConstraint("reviewer_id", "booking_id", name="uq_tool_reviews_reviewer_booking"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_tool_reviews_rating_range"),
        Index("idx_tool_reviews_tool_created", "tool_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ToolReview {self.id} booking={self.booking_id} rating={self.rating}>"


class AppReview(Base):
    """Review of the marketplace itself; one per user."""

    __tablename__ = "app_reviews"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    reviewer_id = Column(String(26), nullable=False, unique=True)

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_app_reviews_rating_range"),
    )

    def __repr__(self) -> str:
        return f"<AppReview {self.id} reviewer={self.reviewer_id} rating={self.rating}>"
