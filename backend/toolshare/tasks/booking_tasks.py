# backend/toolshare/tasks/booking_tasks.py
"""
Periodic booking maintenance.

The task body lives in ``run_auto_complete`` so it can be exercised with
an explicit session and clock; the Celery task only supplies defaults.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..services.booking_lifecycle_service import BookingLifecycleService
from .celery_app import celery_app

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def run_auto_complete(
    db: Session,
    *,
    clock: Optional[Callable[[], datetime]] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    now = (clock or _utcnow)()
    completed = BookingLifecycleService(db).auto_complete_returned(now, limit=limit)
    return {"completed": completed, "run_at": now.isoformat()}


@celery_app.task(
    name="bookings.auto_complete_returned",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def auto_complete_returned_bookings(self: Any, limit: Optional[int] = None) -> Dict[str, Any]:
    """Complete returned bookings past their grace period."""
    db = SessionLocal()
    try:
        result = run_auto_complete(db, limit=limit)
        logger.info("Auto-complete sweep finished", extra=result)
        return result
    except Exception as exc:
        logger.error("Auto-complete sweep failed: %s", exc, exc_info=True)
        raise self.retry(exc=exc)
    finally:
        db.close()
