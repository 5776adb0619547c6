"""Event publisher - records domain events in the transactional outbox."""

from datetime import date, datetime
from decimal import Decimal
import logging
from typing import Any, Dict, Optional, Protocol

from ..core.timezone_utils import ensure_utc
from ..repositories.event_outbox_repository import EventOutboxRepository

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    event_type: str

    @property
    def aggregate_id(self) -> str:
        ...

    @property
    def idempotency_key(self) -> str:
        ...

    def to_dict(self) -> Dict[str, Any]:
        ...


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class EventPublisher:
    """
    Publishes domain events to the outbox.

    Rows are written on the caller's session, so an event only becomes
    visible to the dispatcher if the surrounding transaction commits.
    """

    def __init__(self, outbox_repository: EventOutboxRepository):
        self.outbox_repo = outbox_repository

    def publish(self, event: Event, now: Optional[datetime] = None) -> None:
        """Queue the event; ``now`` becomes its first delivery attempt time."""
        payload = {key: _json_safe(value) for key, value in event.to_dict().items()}
        self.outbox_repo.enqueue(
            event_type=event.event_type,
            aggregate_id=event.aggregate_id,
            payload=payload,
            idempotency_key=event.idempotency_key,
            next_attempt_at=ensure_utc(now) if now is not None else None,
        )
        logger.debug(
            "Domain event queued",
            extra={"event_type": event.event_type, "aggregate_id": event.aggregate_id},
        )
