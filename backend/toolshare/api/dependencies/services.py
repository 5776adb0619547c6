# backend/toolshare/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.booking_lifecycle_service import BookingLifecycleService
from ...services.review_service import ReviewService
from .database import get_db


def get_booking_lifecycle_service(db: Session = Depends(get_db)) -> BookingLifecycleService:
    """Get booking lifecycle service instance for dependency injection."""
    return BookingLifecycleService(db)


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Get review service instance for dependency injection."""
    return ReviewService(db)
