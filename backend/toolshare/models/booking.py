# backend/toolshare/models/booking.py
"""
Booking model for the ToolShare marketplace.

A booking is one reservation of a tool by a renter from its owner for a
calendar date range. The row is the single authoritative record of the
rental: pricing is snapshotted at request time and every lifecycle flag
(validation code, return acknowledgements, claim state, cancellation and
refusal records) lives on it directly.

Concurrent writers are serialized by an optimistic version counter; a
flush against a stale version raises StaleDataError.
"""

from datetime import date
from enum import Enum
import logging
from typing import Any, Dict, FrozenSet, cast

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"  # Requested by the renter, awaiting the owner
    ACCEPTED = "ACCEPTED"  # Owner agreed, validation code issued
    ONGOING = "ONGOING"  # Tool handed over
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED}
)

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.ACCEPTED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
    ),
    BookingStatus.ACCEPTED: frozenset({BookingStatus.ONGOING, BookingStatus.CANCELLED}),
    BookingStatus.ONGOING: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
}


class RefundTier(str, Enum):
    """Coarse refund classification decided at cancellation time."""

    FULL = "FULL"
    NONE = "NONE"


class Booking(Base):
    """
    Self-contained rental record between a renter and a tool owner.

    Status only moves along ALLOWED_TRANSITIONS. Once COMPLETED, CANCELLED
    or REJECTED the row is frozen; reviews and disputes reference it
    without altering it.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Parties
    owner_id = Column(String(26), nullable=False, index=True)
    renter_id = Column(String(26), nullable=False, index=True)
    tool_id = Column(String(26), nullable=False, index=True)

    # Scheduling (calendar values in the marketplace timezone)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False)
    pickup_hour = Column(String(5), nullable=True)

    # Pricing snapshot
    daily_price = Column(Numeric(10, 2), nullable=False)
    rental_days = Column(Integer, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    service_fee = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    deposit = Column(Numeric(10, 2), nullable=False, default=0)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    # Pickup verification
    validation_code = Column(String(16), nullable=True)

    # Return confirmation
    renter_has_returned = Column(Boolean, nullable=False, default=False)
    has_used_return_button = Column(Boolean, nullable=False, default=False)
    returned_at = Column(DateTime(timezone=True), nullable=True)
    pickup_tool = Column(
        Boolean, nullable=False, default=False, comment="Owner acknowledged the tool came back"
    )
    owner_acknowledged_at = Column(DateTime(timezone=True), nullable=True)

    # Claims
    has_active_claim = Column(Boolean, nullable=False, default=False)

    # Cancellation record
    cancellation_reason = Column(String(50), nullable=True)
    cancellation_message = Column(Text, nullable=True)
    cancelled_by_role = Column(String(20), nullable=True)
    refund_tier = Column(String(10), nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=True)

    # Refusal record
    refusal_reason = Column(String(50), nullable=True)
    refusal_message = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency counter
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'ACCEPTED', 'ONGOING', 'COMPLETED', 'CANCELLED', 'REJECTED')",
            name="ck_bookings_status",
        ),
        CheckConstraint("end_date >= start_date", name="check_date_order"),
        CheckConstraint("owner_id <> renter_id", name="check_distinct_parties"),
        CheckConstraint("daily_price > 0", name="check_daily_price_positive"),
        CheckConstraint("total_price >= 0", name="check_price_non_negative"),
        CheckConstraint("deposit >= 0", name="check_deposit_non_negative"),
        CheckConstraint(
            "refund_tier IS NULL OR refund_tier IN ('FULL', 'NONE')",
            name="ck_bookings_refund_tier",
        ),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Booking {self.id}: renter={self.renter_id}, owner={self.owner_id}, "
            f"tool={self.tool_id}, dates={self.start_date}..{self.end_date}, status={self.status}>"
        )

    @property
    def current_status(self) -> BookingStatus:
        return BookingStatus(cast(str, self.status))

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATUSES

    def can_transition_to(self, target: BookingStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.current_status]

    @property
    def amount_paid(self) -> Any:
        """What the renter was charged: rental total plus the refundable deposit."""
        return self.total_price + self.deposit

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.owner_id, self.renter_id)

    def has_ended(self, today: date) -> bool:
        """True once the rental period is over (strictly after end_date)."""
        return cast(date, self.end_date) < today

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for event payloads."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "renter_id": self.renter_id,
            "tool_id": self.tool_id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "pickup_hour": self.pickup_hour,
            "total_price": str(self.total_price),
            "deposit": str(self.deposit),
            "status": self.status,
        }


Index("ix_bookings_owner_status", Booking.owner_id, Booking.status)
Index("ix_bookings_renter_status", Booking.renter_id, Booking.status)
