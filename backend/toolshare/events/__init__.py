"""Domain events and the outbox publisher."""

from .booking_events import (
    BookingAccepted,
    BookingActivated,
    BookingCancelled,
    BookingCompleted,
    BookingCreated,
    BookingRejected,
    DepositSettlementRequested,
    DisputeOpened,
    DisputeResolved,
    RefundRequested,
    ReturnConfirmed,
    ReviewSubmitted,
)
from .publisher import EventPublisher

__all__ = [
    "BookingAccepted",
    "BookingActivated",
    "BookingCancelled",
    "BookingCompleted",
    "BookingCreated",
    "BookingRejected",
    "DepositSettlementRequested",
    "DisputeOpened",
    "DisputeResolved",
    "EventPublisher",
    "RefundRequested",
    "ReturnConfirmed",
    "ReviewSubmitted",
]
