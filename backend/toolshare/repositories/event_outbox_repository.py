# backend/toolshare/repositories/event_outbox_repository.py
"""
Repository for the domain event outbox.

Implements transactional, idempotent enqueue and the pending fetch used by
the downstream dispatcher.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Optional, cast

from sqlalchemy import Select, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm import Session
import ulid

from ..database import get_dialect_name
from ..models.event_outbox import EventOutbox, EventOutboxStatus

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    """Return timezone-aware utcnow suitable for DB comparisons."""
    return datetime.now(timezone.utc)


class EventOutboxRepository:
    """Data access helpers for event outbox rows."""

    def __init__(self, db: Session):
        self.db = db
        self._dialect = get_dialect_name(db, default="postgresql").lower()

    # ------------------------------------------------------------------ enqueue
    def enqueue(
        self,
        event_type: str,
        aggregate_id: str,
        payload: Optional[dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
        next_attempt_at: Optional[datetime] = None,
    ) -> EventOutbox:
        """
        Insert a new outbox row if one does not already exist for the idempotency key.

        Returns the persisted row (existing or newly created).
        """
        payload = payload or {}
        next_attempt = next_attempt_at or _now_utc()
        key = idempotency_key or f"{event_type}:{aggregate_id}:{int(next_attempt.timestamp())}"

        values = {
            "id": str(ulid.ULID()),
            "event_type": event_type,
            "aggregate_id": aggregate_id,
            "payload": payload,
            "idempotency_key": key,
            "status": EventOutboxStatus.PENDING.value,
            "attempt_count": 0,
            "next_attempt_at": next_attempt,
        }

        inserted_id: Optional[str] = None

        if self._dialect == "postgresql":
            pg_stmt = (
                pg_insert(EventOutbox)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["idempotency_key"])
                .returning(EventOutbox.id)
            )
            inserted_value = self.db.execute(pg_stmt).scalar_one_or_none()
            if inserted_value is not None:
                inserted_id = cast(str, inserted_value)
        else:
            stmt = insert(EventOutbox).values(**values)
            if self._dialect == "sqlite":
                stmt = stmt.prefix_with("OR IGNORE")
            result = self.db.execute(stmt)
            if getattr(result, "rowcount", 0):
                inserted_id = values["id"]

        if inserted_id:
            self.db.flush()
            row = cast(Optional[EventOutbox], self.db.get(EventOutbox, inserted_id))
            if row is None:
                raise RuntimeError("Inserted outbox row could not be reloaded")
            return row

        # Existing row - fetch and return without mutating attempt counters
        logger.debug("Outbox event already enqueued", extra={"idempotency_key": key})
        existing = cast(
            Optional[EventOutbox],
            self.db.execute(
                select(EventOutbox).where(EventOutbox.idempotency_key == key)
            ).scalar_one_or_none(),
        )
        if existing is None:
            raise RuntimeError("Outbox row not found after enqueue conflict")
        return existing

    # ---------------------------------------------------------------- fetchers
    def fetch_pending(self, limit: int = 200) -> list[EventOutbox]:
        """Return pending events eligible for delivery ordered by attempt time."""
        now = _now_utc()
        stmt: Select[Any] = (
            select(EventOutbox)
            .where(EventOutbox.status == EventOutboxStatus.PENDING.value)
            .where(EventOutbox.next_attempt_at <= now)
            .order_by(EventOutbox.next_attempt_at.asc(), EventOutbox.id.asc())
            .limit(limit)
        )
        if self._dialect == "postgresql":
            stmt = stmt.with_for_update(skip_locked=True)

        return cast(list[EventOutbox], self.db.execute(stmt).scalars().all())

    def list_for_aggregate(self, aggregate_id: str) -> list[EventOutbox]:
        """All events recorded for one aggregate, oldest first."""
        stmt = (
            select(EventOutbox)
            .where(EventOutbox.aggregate_id == aggregate_id)
            .order_by(EventOutbox.created_at.asc(), EventOutbox.id.asc())
        )
        return cast(list[EventOutbox], self.db.execute(stmt).scalars().all())
