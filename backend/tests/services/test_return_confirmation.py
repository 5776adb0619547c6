from datetime import date, timedelta

import pytest

from toolshare.core.exceptions import AlreadyConfirmedException
from toolshare.models.booking import Booking, BookingStatus
from toolshare.services.return_confirmation import ReturnConfirmationWorkflow

from ..factories.booking_builders import at

RETURNED_AT = at(date(2026, 3, 15), 18)


def _ongoing() -> Booking:
    return Booking(
        id="b1",
        status=BookingStatus.ONGOING.value,
        renter_has_returned=False,
        has_used_return_button=False,
        pickup_tool=False,
        has_active_claim=False,
    )


@pytest.fixture
def workflow() -> ReturnConfirmationWorkflow:
    return ReturnConfirmationWorkflow(grace_period_hours=72)


def test_renter_return_is_one_shot(workflow):
    booking = _ongoing()
    workflow.record_renter_return(booking, RETURNED_AT)

    assert booking.renter_has_returned is True
    assert booking.has_used_return_button is True
    assert booking.returned_at == RETURNED_AT

    with pytest.raises(AlreadyConfirmedException):
        workflow.record_renter_return(booking, RETURNED_AT + timedelta(hours=1))
    assert booking.returned_at == RETURNED_AT


def test_owner_acknowledgement_is_idempotent(workflow):
    booking = _ongoing()
    workflow.record_owner_acknowledgement(booking, RETURNED_AT)
    workflow.record_owner_acknowledgement(booking, RETURNED_AT + timedelta(hours=5))

    assert booking.pickup_tool is True
    assert booking.owner_acknowledged_at == RETURNED_AT


def test_ready_only_when_both_sides_agree_and_no_claim(workflow):
    booking = _ongoing()
    workflow.record_renter_return(booking, RETURNED_AT)
    assert workflow.is_ready_to_complete(booking) is False

    workflow.record_owner_acknowledgement(booking, RETURNED_AT)
    assert workflow.is_ready_to_complete(booking) is True

    booking.has_active_claim = True
    assert workflow.is_ready_to_complete(booking) is False


def test_auto_complete_due_after_grace_period(workflow):
    booking = _ongoing()
    workflow.record_renter_return(booking, RETURNED_AT)

    assert workflow.auto_complete_deadline(booking) == RETURNED_AT + timedelta(hours=72)
    assert workflow.is_auto_complete_due(booking, RETURNED_AT + timedelta(hours=71)) is False
    assert workflow.is_auto_complete_due(booking, RETURNED_AT + timedelta(hours=72)) is True


@pytest.mark.parametrize("flag", ["pickup_tool", "has_active_claim"])
def test_auto_complete_not_due_when_owner_responded(workflow, flag):
    booking = _ongoing()
    workflow.record_renter_return(booking, RETURNED_AT)
    setattr(booking, flag, True)

    assert workflow.is_auto_complete_due(booking, RETURNED_AT + timedelta(days=30)) is False


def test_auto_complete_not_due_without_renter_return(workflow):
    assert workflow.auto_complete_deadline(_ongoing()) is None
    assert workflow.is_auto_complete_due(_ongoing(), RETURNED_AT + timedelta(days=30)) is False
