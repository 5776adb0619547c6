# backend/toolshare/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_user_id, get_now, require_moderator
from .database import get_db
from .services import get_booking_lifecycle_service, get_review_service

__all__ = [
    # Auth & clock
    "get_current_user_id",
    "get_now",
    "require_moderator",
    # Database
    "get_db",
    # Services
    "get_booking_lifecycle_service",
    "get_review_service",
]
