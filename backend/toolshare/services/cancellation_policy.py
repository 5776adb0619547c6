"""
Cancellation policy.

Pure evaluation of whether a booking may be cancelled right now and which
refund tier applies. Nothing here reads the clock or writes to the
database; the caller passes ``now`` in.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from ..core.config import settings
from ..core.enums import ActorRole
from ..core.timezone_utils import combine_in_marketplace, ensure_utc
from ..models.booking import Booking, BookingStatus, RefundTier


@dataclass(frozen=True)
class CancellationDecision:
    allowed: bool
    refund_tier: RefundTier
    policy_basis: str = ""
    cutoff: Optional[datetime] = None

    def to_payload(self) -> dict[str, object]:
        return {
            "allowed": self.allowed,
            "refund_tier": self.refund_tier.value,
            "policy_basis": self.policy_basis,
            "cutoff": self.cutoff.isoformat() if self.cutoff else None,
        }


def start_datetime(booking: Booking) -> datetime:
    """Pickup instant in UTC; bookings without a pickup hour start at local midnight."""
    return combine_in_marketplace(booking.start_date, booking.pickup_hour)


def refund_amount(booking: Booking, tier: RefundTier) -> Decimal:
    """
    Amount returned to the renter on cancellation.

    The deposit always comes back; only a resolved dispute can retain it.
    """
    rental_part = Decimal(booking.total_price) if tier == RefundTier.FULL else Decimal("0")
    return rental_part + Decimal(booking.deposit)


class CancellationPolicy:
    """Determines cancellation eligibility and refund tier."""

    def __init__(self, notice_hours: Optional[int] = None):
        self.notice = timedelta(
            hours=settings.cancellation_notice_hours if notice_hours is None else notice_hours
        )

    def evaluate(
        self,
        booking: Booking,
        now: datetime,
        actor: ActorRole = ActorRole.RENTER,
    ) -> CancellationDecision:
        status = booking.status
        if status == BookingStatus.PENDING.value:
            return CancellationDecision(
                allowed=True,
                refund_tier=RefundTier.FULL,
                policy_basis="Request not yet accepted: full refund",
            )

        if status != BookingStatus.ACCEPTED.value:
            return CancellationDecision(
                allowed=False,
                refund_tier=RefundTier.NONE,
                policy_basis=f"Bookings in status {status} cannot be cancelled",
            )

        cutoff = start_datetime(booking) - self.notice
        if ensure_utc(now) < cutoff:
            return CancellationDecision(
                allowed=True,
                refund_tier=RefundTier.FULL,
                policy_basis="Cancelled before the notice window: full refund",
                cutoff=cutoff,
            )

        if actor == ActorRole.OWNER:
            return CancellationDecision(
                allowed=True,
                refund_tier=RefundTier.NONE,
                policy_basis="Owner cancellation inside the notice window: no rental refund",
                cutoff=cutoff,
            )

        return CancellationDecision(
            allowed=False,
            refund_tier=RefundTier.NONE,
            policy_basis="Inside the notice window before pickup",
            cutoff=cutoff,
        )
