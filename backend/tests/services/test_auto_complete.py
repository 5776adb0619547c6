"""
Grace-period sweep: returned bookings the owner never answered are completed.
"""

from datetime import timedelta

from toolshare.core.config import settings
from toolshare.core.exceptions import ConflictException
from toolshare.models.booking import Booking, BookingStatus
from toolshare.services import booking_lifecycle_service as lifecycle_module

from ..factories.booking_builders import OWNER_ID, RENTER_ID, at, event_types

GRACE = timedelta(hours=settings.return_grace_period_hours)


def _returned(service, booking):
    returned_at = at(booking.end_date, 18)
    service.confirm_return(booking.id, RENTER_ID, returned_at)
    return returned_at


def test_sweep_completes_after_grace_period(db, service, ongoing_booking):
    returned_at = _returned(service, ongoing_booking)

    assert service.auto_complete_returned(returned_at + GRACE - timedelta(minutes=1)) == 0
    assert service.auto_complete_returned(returned_at + GRACE) == 1

    db.expire_all()
    booking = db.get(Booking, ongoing_booking.id)
    assert booking.status == BookingStatus.COMPLETED.value
    assert booking.pickup_tool is False


def test_sweep_is_idempotent(db, service, ongoing_booking):
    returned_at = _returned(service, ongoing_booking)
    later = returned_at + GRACE + timedelta(hours=1)

    assert service.auto_complete_returned(later) == 1
    assert service.auto_complete_returned(later) == 0
    assert event_types(db, ongoing_booking.id).count("booking.completed") == 1


def test_sweep_skips_acknowledged_or_claimed_bookings(service, ongoing_booking):
    returned_at = _returned(service, ongoing_booking)
    service.open_return_claim(
        ongoing_booking.id,
        OWNER_ID,
        reason="damaged",
        description="Bent blade",
        evidence=[],
        now=returned_at + timedelta(hours=1),
    )

    assert service.auto_complete_returned(returned_at + GRACE * 2) == 0


def test_sweep_ignores_bookings_without_renter_return(service, ongoing_booking):
    assert service.auto_complete_returned(at(ongoing_booking.end_date) + GRACE * 10) == 0


def test_busy_booking_is_skipped_not_fatal(db, service, ongoing_booking, monkeypatch):
    returned_at = _returned(service, ongoing_booking)

    def _busy(booking_id, ttl_s=None):
        raise ConflictException("busy", code="BOOKING_BUSY")

    monkeypatch.setattr(lifecycle_module, "booking_lock_sync", _busy)

    assert service.auto_complete_returned(returned_at + GRACE) == 0
    db.expire_all()
    assert db.get(Booking, ongoing_booking.id).status == BookingStatus.ONGOING.value
