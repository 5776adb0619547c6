# backend/toolshare/repositories/dispute_repository.py
"""Dispute Repository for ToolShare."""

from sqlalchemy.orm import Session

from ..models.dispute import Dispute, DisputeStatus
from .base_repository import BaseRepository


class DisputeRepository(BaseRepository[Dispute]):
    """Repository for dispute data access."""

    def __init__(self, db: Session):
        super().__init__(db, Dispute)

    def count_open_for_booking(self, booking_id: str) -> int:
        return self.count(booking_id=booking_id, status=DisputeStatus.OPEN.value)
