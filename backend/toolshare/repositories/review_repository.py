# backend/toolshare/repositories/review_repository.py
"""Review repositories: tool reviews per booking and one-per-user app reviews."""

from sqlalchemy.orm import Session

from ..models.review import AppReview, ToolReview
from .base_repository import BaseRepository


class ToolReviewRepository(BaseRepository[ToolReview]):
    def __init__(self, db: Session):
        super().__init__(db, ToolReview)

    def exists_for_reviewer_and_booking(self, reviewer_id: str, booking_id: str) -> bool:
        return self.exists(reviewer_id=reviewer_id, booking_id=booking_id)


class AppReviewRepository(BaseRepository[AppReview]):
    def __init__(self, db: Session):
        super().__init__(db, AppReview)

    def exists_for_reviewer(self, reviewer_id: str) -> bool:
        return self.exists(reviewer_id=reviewer_id)
