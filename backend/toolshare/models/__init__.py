# backend/toolshare/models/__init__.py
"""
Models package for ToolShare.

Importing this package registers every table on Base.metadata.
"""

from .booking import ALLOWED_TRANSITIONS, TERMINAL_STATUSES, Booking, BookingStatus, RefundTier
from .dispute import Dispute, DisputeOutcome, DisputeStatus
from .event_outbox import EventOutbox, EventOutboxStatus
from .review import AppReview, ToolReview

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "AppReview",
    "Booking",
    "BookingStatus",
    "Dispute",
    "DisputeOutcome",
    "DisputeStatus",
    "EventOutbox",
    "EventOutboxStatus",
    "RefundTier",
    "ToolReview",
]
