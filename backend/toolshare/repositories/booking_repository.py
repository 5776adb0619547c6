# backend/toolshare/repositories/booking_repository.py
"""
Booking Repository for ToolShare

Data access for bookings: party-scoped listings and the candidate
query behind the return grace-period sweep.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ActorRole
from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_for_update(self, booking_id: str) -> Optional[Booking]:
        """
        Load a booking with a row lock where the dialect supports it.

        SQLite has no SELECT ... FOR UPDATE; there the version check on
        flush is the only guard.
        """
        try:
            query = self.db.query(Booking).filter(Booking.id == booking_id)
            if self.dialect_name == "postgresql":
                query = query.with_for_update()
            return query.populate_existing().first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def list_for_user(
        self,
        user_id: str,
        *,
        role: Optional[ActorRole] = None,
        status: Optional[BookingStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Booking]:
        """
        Bookings where the user is a party, newest start date first.

        Args:
            user_id: Viewer
            role: Restrict to the renter view or the owner view
            status: Optional status filter
        """
        try:
            query = self.db.query(Booking)
            if role == ActorRole.RENTER:
                query = query.filter(Booking.renter_id == user_id)
            elif role == ActorRole.OWNER:
                query = query.filter(Booking.owner_id == user_id)
            else:
                query = query.filter(or_(Booking.renter_id == user_id, Booking.owner_id == user_id))
            if status is not None:
                query = query.filter(Booking.status == status.value)
            return (
                query.order_by(Booking.start_date.desc(), Booking.id.desc())
                .offset(skip)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def find_auto_complete_candidates(self, returned_before: datetime, limit: int) -> List[Booking]:
        """
        ONGOING bookings the renter returned before the cutoff that the owner
        has neither acknowledged nor claimed.
        """
        try:
            return (
                self.db.query(Booking)
                .filter(
                    Booking.status == BookingStatus.ONGOING.value,
                    Booking.renter_has_returned.is_(True),
                    Booking.pickup_tool.is_(False),
                    Booking.has_active_claim.is_(False),
                    Booking.returned_at.isnot(None),
                    Booking.returned_at <= returned_before,
                )
                .order_by(Booking.returned_at.asc(), Booking.id.asc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding auto-complete candidates: {str(e)}")
            raise RepositoryException(f"Failed to find auto-complete candidates: {str(e)}")
