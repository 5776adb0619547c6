from datetime import date, timedelta

from toolshare.core.constants import VALIDATION_CODE_ALPHABET
from toolshare.models.booking import Booking, BookingStatus
from toolshare.services.validation_code_issuer import ValidationCodeIssuer

from ..factories.booking_builders import at

START = date(2026, 3, 13)


def _accepted_booking() -> Booking:
    return Booking(
        id="b1",
        start_date=START,
        end_date=START + timedelta(days=1),
        status=BookingStatus.ACCEPTED.value,
    )


def test_issued_code_uses_unambiguous_alphabet():
    booking = _accepted_booking()
    code = ValidationCodeIssuer(length=8).issue(booking)

    assert len(code) == 8
    assert set(code) <= set(VALIDATION_CODE_ALPHABET)
    assert booking.validation_code == code


def test_code_is_hidden_before_start_date():
    issuer = ValidationCodeIssuer()
    booking = _accepted_booking()
    issuer.issue(booking)

    reveal = issuer.reveal(booking, at(START - timedelta(days=1), 23, 59))

    assert reveal.hidden is True
    assert reveal.code is None


def test_code_is_revealed_from_start_date():
    issuer = ValidationCodeIssuer()
    booking = _accepted_booking()
    code = issuer.issue(booking)

    reveal = issuer.reveal(booking, at(START, 0, 1))

    assert reveal.hidden is False
    assert reveal.code == code


def test_code_is_hidden_once_rental_is_ongoing():
    issuer = ValidationCodeIssuer()
    booking = _accepted_booking()
    issuer.issue(booking)
    booking.status = BookingStatus.ONGOING.value

    assert issuer.reveal(booking, at(START, 12)).hidden is True


def test_redeem_is_case_and_whitespace_insensitive():
    issuer = ValidationCodeIssuer()
    booking = _accepted_booking()
    code = issuer.issue(booking)

    assert issuer.redeem(booking, f"  {code.lower()} ") is True
    assert issuer.redeem(booking, "WRONG123") is False
    assert issuer.redeem(booking, "") is False


def test_redeem_without_stored_code_fails():
    booking = _accepted_booking()
    assert ValidationCodeIssuer().redeem(booking, "ABCDEFGH") is False


def test_redeem_rejects_non_ascii_input():
    issuer = ValidationCodeIssuer()
    booking = _accepted_booking()
    issuer.issue(booking)

    assert issuer.redeem(booking, "CAFÉ1234") is False
    assert issuer.redeem(booking, "代码代码代码代码") is False


def test_explicit_length_is_not_replaced_by_default():
    assert ValidationCodeIssuer(length=6).length == 6
