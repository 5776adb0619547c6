# backend/toolshare/routes/v1/__init__.py
"""Versioned API routers mounted under /api/v1."""

from . import bookings, disputes, reviews

__all__ = ["bookings", "disputes", "reviews"]
