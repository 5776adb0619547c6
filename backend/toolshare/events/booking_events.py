"""
Booking domain events.

Each event names its outbox ``event_type``, the aggregate it belongs to and
a stable idempotency key so that a retried operation never emits twice.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, Optional


@dataclass
class _DomainEvent:
    event_type: ClassVar[str] = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def aggregate_id(self) -> str:
        return str(getattr(self, "booking_id"))

    @property
    def idempotency_key(self) -> str:
        return f"{self.event_type}:{self.aggregate_id}"


@dataclass
class BookingCreated(_DomainEvent):
    """Fired after a renter requests a booking."""

    event_type: ClassVar[str] = "booking.created"

    booking_id: str
    renter_id: str
    owner_id: str
    tool_id: str
    total_price: Decimal
    deposit: Decimal
    created_at: datetime


@dataclass
class BookingAccepted(_DomainEvent):
    """Fired after the owner accepts a booking request."""

    event_type: ClassVar[str] = "booking.accepted"

    booking_id: str
    renter_id: str
    owner_id: str
    accepted_at: datetime


@dataclass
class BookingRejected(_DomainEvent):
    """Fired after the owner refuses a booking request."""

    event_type: ClassVar[str] = "booking.rejected"

    booking_id: str
    renter_id: str
    reason: str
    rejected_at: datetime


@dataclass
class BookingActivated(_DomainEvent):
    """Fired once the tool is handed over and the rental is ongoing."""

    event_type: ClassVar[str] = "booking.activated"

    booking_id: str
    activated_at: datetime


@dataclass
class BookingCancelled(_DomainEvent):
    """Fired after a booking is cancelled."""

    event_type: ClassVar[str] = "booking.cancelled"

    booking_id: str
    cancelled_by: str  # 'renter' or 'owner'
    reason: str
    refund_tier: str
    cancelled_at: datetime
    refund_amount: Optional[Decimal] = None


@dataclass
class ReturnConfirmed(_DomainEvent):
    """Fired when the renter declares the tool returned."""

    event_type: ClassVar[str] = "booking.return_confirmed"

    booking_id: str
    owner_id: str
    returned_at: datetime


@dataclass
class BookingCompleted(_DomainEvent):
    """Fired after a booking is marked complete."""

    event_type: ClassVar[str] = "booking.completed"

    booking_id: str
    completed_by: str  # 'owner' or 'system'
    completed_at: datetime


@dataclass
class RefundRequested(_DomainEvent):
    """Refund instruction for the payment collaborator."""

    event_type: ClassVar[str] = "refund.requested"

    booking_id: str
    amount: Decimal
    refund_tier: str


@dataclass
class DisputeOpened(_DomainEvent):
    """Fired when a claim is raised against a booking."""

    event_type: ClassVar[str] = "dispute.opened"

    dispute_id: str
    booking_id: str
    opened_by: str
    reason: str
    evidence_count: int

    @property
    def idempotency_key(self) -> str:
        return f"{self.event_type}:{self.dispute_id}"


@dataclass
class DisputeResolved(_DomainEvent):
    """Fired when a moderator closes a dispute."""

    event_type: ClassVar[str] = "dispute.resolved"

    dispute_id: str
    booking_id: str
    outcome: str
    resolved_at: datetime

    @property
    def idempotency_key(self) -> str:
        return f"{self.event_type}:{self.dispute_id}"


@dataclass
class DepositSettlementRequested(_DomainEvent):
    """Deposit split instruction issued when a dispute is resolved."""

    event_type: ClassVar[str] = "deposit.settlement_requested"

    dispute_id: str
    booking_id: str
    retained_amount: Decimal
    released_amount: Decimal

    @property
    def idempotency_key(self) -> str:
        return f"{self.event_type}:{self.dispute_id}"


@dataclass
class ReviewSubmitted(_DomainEvent):
    """Fired after a tool or app review is stored."""

    event_type: ClassVar[str] = "review.submitted"

    review_id: str
    review_kind: str  # 'tool' or 'app'
    reviewer_id: str
    rating: int
    booking_id: Optional[str] = None

    @property
    def aggregate_id(self) -> str:
        return self.booking_id or self.reviewer_id

    @property
    def idempotency_key(self) -> str:
        return f"{self.event_type}:{self.review_id}"
