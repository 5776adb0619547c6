# backend/toolshare/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for ToolShare.
"""

from typing import Any, Dict

from celery.schedules import crontab

CELERYBEAT_SCHEDULE: Dict[str, Dict[str, Any]] = {
    # Complete returned bookings whose owner never acknowledged within the grace period
    "auto-complete-returned-bookings": {
        "task": "bookings.auto_complete_returned",
        "schedule": crontab(minute=15),  # Hourly at :15
        "options": {"queue": "bookings", "priority": 5},
    },
}


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    return dict(CELERYBEAT_SCHEDULE)
