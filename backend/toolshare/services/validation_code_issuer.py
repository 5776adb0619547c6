"""
Pickup validation codes.

The owner accepts a booking, a code is generated and stored with it; at
pickup the renter reads the code out and the owner types it in, which is
what moves the rental to ONGOING.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import secrets
from typing import Optional

from ..core.config import settings
from ..core.constants import VALIDATION_CODE_ALPHABET
from ..core.timezone_utils import get_marketplace_today
from ..models.booking import Booking, BookingStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodeReveal:
    """Result of asking to display a booking's code."""

    code: Optional[str]
    hidden: bool


def normalize_code(raw: str) -> str:
    return raw.strip().upper()


class ValidationCodeIssuer:
    """Generates, reveals and redeems pickup validation codes."""

    def __init__(self, length: Optional[int] = None):
        self.length = settings.validation_code_length if length is None else length

    def issue(self, booking: Booking) -> str:
        """
        Generate a fresh code and store it on the booking.

        The alphabet omits 0/O and 1/I so the code survives being read aloud.
        """
        code = "".join(secrets.choice(VALIDATION_CODE_ALPHABET) for _ in range(self.length))
        booking.validation_code = code
        logger.debug("Validation code issued", extra={"booking_id": booking.id})
        return code

    def reveal(self, booking: Booking, now: datetime) -> CodeReveal:
        """
        Return the code for display, or a hidden marker before the start date.

        This only decides what the renter's screen shows; it is not a
        confidentiality boundary.
        """
        if booking.status != BookingStatus.ACCEPTED.value or not booking.validation_code:
            return CodeReveal(code=None, hidden=True)
        if get_marketplace_today(now) < booking.start_date:
            return CodeReveal(code=None, hidden=True)
        return CodeReveal(code=booking.validation_code, hidden=False)

    def redeem(self, booking: Booking, supplied_code: str) -> bool:
        """Constant-time comparison of the supplied code against the stored one."""
        stored = booking.validation_code
        if not stored or not supplied_code:
            return False
        return secrets.compare_digest(
            normalize_code(supplied_code).encode("utf-8"), stored.encode("utf-8")
        )
