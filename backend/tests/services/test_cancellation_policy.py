"""
Tests for the cancellation policy (notice window before pickup).
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from toolshare.core.config import settings
from toolshare.core.enums import ActorRole
from toolshare.models.booking import Booking, BookingStatus, RefundTier
from toolshare.services.cancellation_policy import (
    CancellationPolicy,
    refund_amount,
    start_datetime,
)

from ..factories.booking_builders import at

START = date(2026, 3, 13)


def _booking(status: BookingStatus, pickup_hour="10:00") -> Booking:
    return Booking(
        id="b1",
        owner_id="o",
        renter_id="r",
        tool_id="t",
        start_date=START,
        end_date=START + timedelta(days=2),
        pickup_hour=pickup_hour,
        total_price=Decimal("42.40"),
        deposit=Decimal("50.00"),
        status=status.value,
    )


@pytest.fixture
def policy() -> CancellationPolicy:
    return CancellationPolicy(notice_hours=24)


def test_pending_booking_is_always_fully_refundable(policy):
    decision = policy.evaluate(_booking(BookingStatus.PENDING), at(START, 9))
    assert decision.allowed is True
    assert decision.refund_tier is RefundTier.FULL


def test_renter_cancelling_25h_before_pickup_gets_full_refund(policy):
    pickup = at(START, 10)
    decision = policy.evaluate(_booking(BookingStatus.ACCEPTED), pickup - timedelta(hours=25))

    assert decision.allowed is True
    assert decision.refund_tier is RefundTier.FULL
    assert decision.cutoff == pickup - timedelta(hours=24)


def test_renter_cancelling_23h_before_pickup_is_refused(policy):
    pickup = at(START, 10)
    decision = policy.evaluate(_booking(BookingStatus.ACCEPTED), pickup - timedelta(hours=23))

    assert decision.allowed is False
    assert decision.refund_tier is RefundTier.NONE


def test_cutoff_instant_itself_is_inside_the_window(policy):
    pickup = at(START, 10)
    decision = policy.evaluate(_booking(BookingStatus.ACCEPTED), pickup - timedelta(hours=24))
    assert decision.allowed is False


def test_owner_inside_window_may_cancel_without_rental_refund(policy):
    pickup = at(START, 10)
    decision = policy.evaluate(
        _booking(BookingStatus.ACCEPTED), pickup - timedelta(hours=2), ActorRole.OWNER
    )

    assert decision.allowed is True
    assert decision.refund_tier is RefundTier.NONE


@pytest.mark.parametrize(
    "status",
    [
        BookingStatus.ONGOING,
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.REJECTED,
    ],
)
def test_other_statuses_cannot_be_cancelled(policy, status):
    decision = policy.evaluate(_booking(status), at(START - timedelta(days=10)))
    assert decision.allowed is False


def test_missing_pickup_hour_means_local_midnight():
    assert start_datetime(_booking(BookingStatus.ACCEPTED, pickup_hour=None)) == at(START)


def test_pickup_is_interpreted_in_marketplace_timezone(policy, monkeypatch):
    monkeypatch.setattr(settings, "marketplace_timezone", "America/New_York")
    booking = _booking(BookingStatus.ACCEPTED)
    # 10:00 EDT on 2026-03-13 is 14:00 UTC (DST started 2026-03-08)
    assert start_datetime(booking) == at(START, 14)
    assert policy.evaluate(booking, at(START - timedelta(days=1), 13, 30)).allowed is True
    assert policy.evaluate(booking, at(START - timedelta(days=1), 14, 30)).allowed is False


def test_refund_amount_always_returns_the_deposit():
    booking = _booking(BookingStatus.ACCEPTED)
    assert refund_amount(booking, RefundTier.FULL) == Decimal("92.40")
    assert refund_amount(booking, RefundTier.NONE) == Decimal("50.00")


def test_default_notice_comes_from_settings():
    assert CancellationPolicy().notice == timedelta(hours=settings.cancellation_notice_hours)
