from datetime import timedelta

from toolshare.models.booking import Booking, BookingStatus
from toolshare.tasks import booking_tasks
from toolshare.tasks.beat_schedule import get_beat_schedule
from toolshare.tasks.celery_app import celery_app

from ..factories.booking_builders import RENTER_ID, at


def _returned(service, booking):
    returned_at = at(booking.end_date, 18)
    service.confirm_return(booking.id, RENTER_ID, returned_at)
    return returned_at


def test_beat_schedule_targets_registered_task():
    entry = get_beat_schedule()["auto-complete-returned-bookings"]

    assert entry["task"] == "bookings.auto_complete_returned"
    assert entry["task"] in celery_app.tasks
    assert entry["options"]["queue"] == "bookings"


def test_run_auto_complete_after_grace_period(db, service, ongoing_booking):
    returned_at = _returned(service, ongoing_booking)

    early = booking_tasks.run_auto_complete(db, clock=lambda: returned_at + timedelta(hours=71))
    late = booking_tasks.run_auto_complete(
        db, clock=lambda: returned_at + timedelta(hours=72, minutes=1)
    )

    assert early["completed"] == 0
    assert late["completed"] == 1
    db.expire_all()
    assert db.get(Booking, ongoing_booking.id).status == BookingStatus.COMPLETED.value


def test_celery_task_uses_its_own_session(monkeypatch, session_factory, service, ongoing_booking):
    returned_at = _returned(service, ongoing_booking)
    monkeypatch.setattr(booking_tasks, "SessionLocal", session_factory)
    monkeypatch.setattr(booking_tasks, "_utcnow", lambda: returned_at + timedelta(days=4))

    result = booking_tasks.auto_complete_returned_bookings()

    assert result["completed"] == 1
    assert result["run_at"].startswith((returned_at + timedelta(days=4)).date().isoformat())
