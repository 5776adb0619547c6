"""
Per-booking mutex backed by Redis.

Serializes operations on one booking across API workers and the Celery
sweep. The lock is advisory: when Redis is unreachable (or the lock is
disabled) callers proceed and rely on the optimistic version check on the
booking row. A lock held by someone else is reported, never waited on.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Iterator, Optional

from redis import Redis

from .config import settings
from .exceptions import ConflictException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(booking_id: str) -> str:
    return f"booking:{booking_id}:mutex"


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=1,
            )
            client.ping()
        except Exception as exc:
            logger.warning("booking_lock_sync_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def acquire_booking_lock_sync(booking_id: str, ttl_s: Optional[int] = None) -> bool:
    if not settings.booking_lock_enabled:
        return True
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_booking_lock("acquire", "redis_unavailable")
        return True
    ttl = ttl_s or settings.booking_lock_ttl_seconds
    try:
        acquired = bool(
            client.set(_namespaced_key(_lock_key(booking_id)), str(time.time()), nx=True, ex=ttl)
        )
    except Exception as exc:
        prometheus_metrics.record_booking_lock("acquire", "error")
        logger.warning(
            "booking_lock_sync_failed",
            extra={
                "booking_id": booking_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return True
    prometheus_metrics.record_booking_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_booking_lock_sync(booking_id: str) -> None:
    if not settings.booking_lock_enabled:
        return
    client = _get_sync_redis()
    if client is None:
        return
    try:
        deleted = client.delete(_namespaced_key(_lock_key(booking_id)))
        prometheus_metrics.record_booking_lock("release", "success" if deleted else "not_found")
    except Exception as exc:
        prometheus_metrics.record_booking_lock("release", "error")
        logger.warning(
            "booking_lock_sync_release_failed",
            extra={
                "booking_id": booking_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )


@contextmanager
def booking_lock_sync(booking_id: str, ttl_s: Optional[int] = None) -> Iterator[None]:
    """Hold the booking mutex for the duration of one operation."""
    acquired = acquire_booking_lock_sync(booking_id, ttl_s=ttl_s)
    if not acquired:
        raise ConflictException(
            "Another operation is in progress for this booking",
            code="BOOKING_BUSY",
            details={"booking_id": booking_id},
        )
    try:
        yield
    finally:
        release_booking_lock_sync(booking_id)
