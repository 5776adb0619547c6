# backend/toolshare/repositories/factory.py
"""
Repository Factory for ToolShare

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .dispute_repository import DisputeRepository
    from .event_outbox_repository import EventOutboxRepository
    from .review_repository import AppReviewRepository, ToolReviewRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_dispute_repository(db: Session) -> "DisputeRepository":
        """Create repository for dispute operations."""
        from .dispute_repository import DisputeRepository

        return DisputeRepository(db)

    @staticmethod
    def create_tool_review_repository(db: Session) -> "ToolReviewRepository":
        from .review_repository import ToolReviewRepository

        return ToolReviewRepository(db)

    @staticmethod
    def create_app_review_repository(db: Session) -> "AppReviewRepository":
        from .review_repository import AppReviewRepository

        return AppReviewRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> "EventOutboxRepository":
        """Create repository for the domain event outbox."""
        from .event_outbox_repository import EventOutboxRepository

        return EventOutboxRepository(db)
