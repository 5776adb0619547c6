# backend/toolshare/repositories/__init__.py
"""
Repository layer for ToolShare.

Repositories encapsulate data access; services own transactions.
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .dispute_repository import DisputeRepository
from .event_outbox_repository import EventOutboxRepository
from .factory import RepositoryFactory
from .review_repository import AppReviewRepository, ToolReviewRepository

__all__ = [
    "AppReviewRepository",
    "BaseRepository",
    "BookingRepository",
    "DisputeRepository",
    "EventOutboxRepository",
    "RepositoryFactory",
    "ToolReviewRepository",
]
