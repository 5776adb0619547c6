# backend/toolshare/core/enums.py
"""
Core enums for the ToolShare platform.

Reason codes are presentation-agnostic identifiers. The client renders
localized labels for them; the backend only ever stores and validates
the code itself.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet

from .exceptions import InvalidReasonCodeException


class ActorRole(str, Enum):
    """Party attributed with a booking operation."""

    RENTER = "renter"
    OWNER = "owner"
    SYSTEM = "system"


class BookingAction(str, Enum):
    """User-facing operations on a booking, reported back as allowed actions."""

    ACCEPT = "accept"
    REJECT = "reject"
    ACTIVATE = "activate"
    CANCEL = "cancel"
    CONFIRM_RETURN = "confirm_return"
    ACKNOWLEDGE_RETURN = "acknowledge_return"
    OPEN_RETURN_CLAIM = "open_return_claim"
    OPEN_DISPUTE = "open_dispute"
    COMPLETE = "complete"
    REVIEW = "review"


class ReasonKind(str, Enum):
    """Which decision a reason code explains."""

    CANCELLATION = "cancellation"
    REFUSAL = "refusal"
    DISPUTE = "dispute"


class ReasonCode(str, Enum):
    """Closed set of reason codes shared by cancellations, refusals and disputes."""

    # Cancellation
    SCHEDULE_CONFLICT = "schedule_conflict"
    NO_LONGER_NEEDED = "no_longer_needed"
    FOUND_ALTERNATIVE = "found_alternative"
    TOOL_UNAVAILABLE = "tool_unavailable"

    # Refusal
    MAINTENANCE = "maintenance"
    ALREADY_BOOKED = "already_booked"

    # Dispute
    NO_SHOW = "no_show"
    LATE = "late"
    MISUSE = "misuse"
    DAMAGED = "damaged"
    MISSING_PARTS = "missing_parts"
    NOT_AS_DESCRIBED = "not_as_described"
    PAYMENT = "payment"
    SUSPICIOUS = "suspicious"
    BEHAVIOR = "behavior"
    TERMS = "terms"
    CONTACT = "contact"

    # Shared
    OTHER = "other"


REASONS_BY_KIND: Dict[ReasonKind, FrozenSet[ReasonCode]] = {
    ReasonKind.CANCELLATION: frozenset(
        {
            ReasonCode.SCHEDULE_CONFLICT,
            ReasonCode.NO_LONGER_NEEDED,
            ReasonCode.FOUND_ALTERNATIVE,
            ReasonCode.TOOL_UNAVAILABLE,
            ReasonCode.OTHER,
        }
    ),
    ReasonKind.REFUSAL: frozenset(
        {ReasonCode.MAINTENANCE, ReasonCode.ALREADY_BOOKED, ReasonCode.OTHER}
    ),
    ReasonKind.DISPUTE: frozenset(
        {
            ReasonCode.NO_SHOW,
            ReasonCode.LATE,
            ReasonCode.MISUSE,
            ReasonCode.DAMAGED,
            ReasonCode.MISSING_PARTS,
            ReasonCode.NOT_AS_DESCRIBED,
            ReasonCode.PAYMENT,
            ReasonCode.SUSPICIOUS,
            ReasonCode.BEHAVIOR,
            ReasonCode.TERMS,
            ReasonCode.CONTACT,
            ReasonCode.OTHER,
        }
    ),
}


def parse_reason(kind: ReasonKind, raw: Any) -> ReasonCode:
    """
    Validate a client-supplied reason code for the given kind.

    Older clients send hyphenated spellings ("already-booked", "no-show");
    those are normalized before lookup. Anything outside the kind's set fails.
    """
    allowed = REASONS_BY_KIND[kind]
    allowed_values = [code.value for code in allowed]
    if isinstance(raw, ReasonCode):
        candidate = raw.value
    elif isinstance(raw, str):
        candidate = raw.strip().lower().replace("-", "_")
    else:
        raise InvalidReasonCodeException(kind.value, raw, allowed_values)

    try:
        code = ReasonCode(candidate)
    except ValueError:
        raise InvalidReasonCodeException(kind.value, raw, allowed_values) from None
    if code not in allowed:
        raise InvalidReasonCodeException(kind.value, raw, allowed_values)
    return code
