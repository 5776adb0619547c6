from toolshare.core.timezone_utils import ensure_utc
from toolshare.models.event_outbox import EventOutbox, EventOutboxStatus
from toolshare.repositories.event_outbox_repository import EventOutboxRepository

from ..factories.booking_builders import NOW, create_booking


def test_enqueue_is_idempotent_per_key(db):
    repo = EventOutboxRepository(db)

    first = repo.enqueue("booking.accepted", "b1", {"a": 1}, idempotency_key="booking.accepted:b1")
    second = repo.enqueue("booking.accepted", "b1", {"a": 2}, idempotency_key="booking.accepted:b1")

    assert first.id == second.id
    assert second.payload == {"a": 1}
    assert db.query(EventOutbox).count() == 1


def test_pending_events_are_fetched_for_dispatch(db):
    repo = EventOutboxRepository(db)
    repo.enqueue("refund.requested", "b1", {"amount": "92.40"}, idempotency_key="refund:b1")
    repo.enqueue("booking.cancelled", "b1", {}, idempotency_key="cancel:b1")

    pending = repo.fetch_pending()

    assert {row.event_type for row in pending} == {"refund.requested", "booking.cancelled"}
    assert all(row.status == EventOutboxStatus.PENDING.value for row in pending)
    assert len(repo.list_for_aggregate("b1")) == 2
    assert repo.list_for_aggregate("b2") == []


def test_published_events_use_the_operation_clock(db, service):
    booking = create_booking(service)

    rows = EventOutboxRepository(db).list_for_aggregate(booking.id)

    assert [ensure_utc(row.next_attempt_at) for row in rows] == [NOW]
