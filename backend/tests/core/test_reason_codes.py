"""Reason codes are a closed enumeration per decision kind."""

import pytest

from toolshare.core.enums import REASONS_BY_KIND, ReasonCode, ReasonKind, parse_reason
from toolshare.core.exceptions import InvalidReasonCodeException


@pytest.mark.parametrize(
    "kind, raw, expected",
    [
        (ReasonKind.CANCELLATION, "schedule_conflict", ReasonCode.SCHEDULE_CONFLICT),
        (ReasonKind.REFUSAL, "already-booked", ReasonCode.ALREADY_BOOKED),
        (ReasonKind.REFUSAL, "  Maintenance ", ReasonCode.MAINTENANCE),
        (ReasonKind.DISPUTE, "no-show", ReasonCode.NO_SHOW),
        (ReasonKind.DISPUTE, ReasonCode.DAMAGED, ReasonCode.DAMAGED),
    ],
)
def test_parse_reason_accepts_known_spellings(kind, raw, expected):
    assert parse_reason(kind, raw) is expected


def test_other_is_valid_for_every_kind():
    for kind in ReasonKind:
        assert parse_reason(kind, "other") is ReasonCode.OTHER


@pytest.mark.parametrize(
    "kind, raw",
    [
        (ReasonKind.CANCELLATION, "damaged"),  # dispute-only code
        (ReasonKind.REFUSAL, "no_longer_needed"),  # cancellation-only code
        (ReasonKind.DISPUTE, "made_up_reason"),
        (ReasonKind.DISPUTE, ""),
        (ReasonKind.CANCELLATION, None),
        (ReasonKind.CANCELLATION, 3),
    ],
)
def test_parse_reason_rejects_codes_outside_the_kind(kind, raw):
    with pytest.raises(InvalidReasonCodeException) as exc_info:
        parse_reason(kind, raw)

    assert exc_info.value.code == "INVALID_REASON_CODE"
    assert exc_info.value.details["kind"] == kind.value
    assert sorted(code.value for code in REASONS_BY_KIND[kind]) == exc_info.value.details["allowed"]
    assert exc_info.value.to_http_exception().status_code == 400
