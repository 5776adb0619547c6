# backend/toolshare/tasks/celery_app.py
"""
Celery application configuration for ToolShare.

This module sets up the Celery app with Redis as the broker and backend,
configures task serialization and timezone, and wires the beat schedule.
"""

import logging
import os
from typing import Any, Type, cast

from celery import Celery, Task
from celery.signals import setup_logging

from ..core.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Returns:
        Celery: Configured Celery application instance
    """
    # Priority: CELERY_BROKER_URL -> REDIS_URL -> settings.redis_url
    broker_url = os.getenv("CELERY_BROKER_URL") or os.getenv("REDIS_URL") or settings.redis_url
    # Ensure Redis URL includes database number
    if not any(broker_url.endswith(f"/{i}") for i in range(16)):
        broker_url = f"{broker_url}/0"

    result_backend = os.getenv("CELERY_RESULT_BACKEND") or broker_url

    celery_app = Celery("toolshare", broker=broker_url, backend=result_backend)

    celery_app.conf.update(
        {
            # Task settings
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": settings.celery_timezone,
            "enable_utc": True,
            # Worker settings
            "worker_prefetch_multiplier": 1,
            "worker_max_tasks_per_child": 1000,
            # Task execution settings
            "task_soft_time_limit": 300,  # 5 minutes soft limit
            "task_time_limit": 600,  # 10 minutes hard limit
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "task_default_retry_delay": 60,
            "task_max_retries": 3,
            "worker_hijack_root_logger": False,
            "broker_transport_options": {"visibility_timeout": 3600},
        }
    )

    celery_app.conf.imports = ("toolshare.tasks.booking_tasks",)
    celery_app.conf.task_routes = {"bookings.*": {"queue": "bookings"}}

    from .beat_schedule import get_beat_schedule

    celery_app.conf.beat_schedule = get_beat_schedule()

    return celery_app


# Disable Celery's default logging configuration
@setup_logging.connect  # type: ignore[misc]
def config_loggers(*args: Any, **kwargs: Any) -> None:
    """Configure logging to integrate with the application's logging setup."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


celery_app = create_celery_app()


class BaseTask(Task):  # type: ignore[misc]
    """Base task with failure and retry logging."""

    def on_failure(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        logging.getLogger(__name__).error(
            f"Task {self.name}[{task_id}] failed with exception: {exc}",
            exc_info=True,
            extra={"task_id": task_id, "task_name": self.name},
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_retry(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        logging.getLogger(__name__).warning(
            f"Task {self.name}[{task_id}] retry {self.request.retries} due to: {exc}",
            extra={"task_id": task_id, "task_name": self.name},
        )
        super().on_retry(exc, task_id, args, kwargs, einfo)


celery_app.Task = cast(Type[Task], BaseTask)
