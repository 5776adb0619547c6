"""
Return confirmation workflow.

Two independent acknowledgements close a rental: the renter declares the
tool returned (once), and the owner acknowledges it or raises a claim.
If the owner stays silent for the grace period after the renter's
declaration, the booking becomes due for automatic completion.

This component only reads and sets flags on the booking; status changes
are applied by the lifecycle service.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Optional

from ..core.config import settings
from ..core.exceptions import AlreadyConfirmedException
from ..core.timezone_utils import ensure_utc
from ..models.booking import Booking, BookingStatus

logger = logging.getLogger(__name__)


class ReturnConfirmationWorkflow:
    def __init__(self, grace_period_hours: Optional[int] = None):
        hours = (
            settings.return_grace_period_hours if grace_period_hours is None else grace_period_hours
        )
        self.grace_period = timedelta(hours=hours)

    def record_renter_return(self, booking: Booking, now: datetime) -> None:
        """
        Set the renter's one-shot return flag.

        Raises:
            AlreadyConfirmedException: the return button was already used
        """
        if booking.has_used_return_button:
            raise AlreadyConfirmedException(current_status=booking.status)
        booking.has_used_return_button = True
        booking.renter_has_returned = True
        booking.returned_at = ensure_utc(now)

    def record_owner_acknowledgement(self, booking: Booking, now: datetime) -> None:
        """Set the owner's acknowledgement; repeated calls keep the first timestamp."""
        if booking.pickup_tool:
            return
        booking.pickup_tool = True
        booking.owner_acknowledged_at = ensure_utc(now)

    def is_ready_to_complete(self, booking: Booking) -> bool:
        """Both sides agree the tool is back and nothing is under dispute."""
        return bool(
            booking.status == BookingStatus.ONGOING.value
            and booking.renter_has_returned
            and booking.pickup_tool
            and not booking.has_active_claim
        )

    def auto_complete_deadline(self, booking: Booking) -> Optional[datetime]:
        if not booking.renter_has_returned or booking.returned_at is None:
            return None
        return ensure_utc(booking.returned_at) + self.grace_period

    def is_auto_complete_due(self, booking: Booking, now: datetime) -> bool:
        """
        True when the owner let the grace period lapse without acknowledging
        or claiming.
        """
        if booking.status != BookingStatus.ONGOING.value:
            return False
        if booking.pickup_tool or booking.has_active_claim:
            return False
        deadline = self.auto_complete_deadline(booking)
        return deadline is not None and ensure_utc(now) >= deadline
