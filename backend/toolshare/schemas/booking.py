# backend/toolshare/schemas/booking.py
"""
Booking schemas for ToolShare.

Request DTOs validate shape only; reason codes are passed through as raw
strings and checked against the closed enumeration by the service, so
legacy spellings are normalized in one place.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from ..core.constants import MAX_REASON_MESSAGE_LENGTH, PICKUP_HOUR_PATTERN
from ..services.booking_lifecycle_service import BookingView
from ..services.cancellation_policy import CancellationDecision
from ..services.validation_code_issuer import CodeReveal
from ._strict_base import StrictModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """Renter's booking request for a tool."""

    owner_id: str = Field(..., min_length=1, max_length=26)
    tool_id: str = Field(..., min_length=1, max_length=26)
    start_date: date
    end_date: date
    pickup_hour: Optional[str] = Field(None, pattern=PICKUP_HOUR_PATTERN, examples=["09:30"])
    daily_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    deposit: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)

    @model_validator(mode="after")
    def _check_dates(self) -> "BookingCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class BookingReasonRequest(StrictRequestModel):
    """Reason code plus optional free text, shared by cancel and reject."""

    reason: str = Field(..., min_length=1, max_length=50)
    message: Optional[str] = Field(None, max_length=MAX_REASON_MESSAGE_LENGTH)


class BookingActivateRequest(StrictRequestModel):
    validation_code: str = Field(..., min_length=1, max_length=32)


class BookingResponse(StrictModel):
    """Booking as returned to one of its parties."""

    id: str
    owner_id: str
    renter_id: str
    tool_id: str
    start_date: date
    end_date: date
    pickup_hour: Optional[str] = None
    daily_price: Decimal
    rental_days: int
    subtotal: Decimal
    service_fee: Decimal
    total_price: Decimal
    deposit: Decimal
    status: str
    renter_has_returned: bool
    has_used_return_button: bool
    owner_acknowledged_return: bool
    has_active_claim: bool
    cancellation_reason: Optional[str] = None
    cancellation_message: Optional[str] = None
    cancelled_by_role: Optional[str] = None
    refund_tier: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    refusal_reason: Optional[str] = None
    refusal_message: Optional[str] = None
    created_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    viewer_role: Optional[str] = None
    allowed_actions: List[str] = Field(default_factory=list)

    @classmethod
    def from_view(cls, view: BookingView) -> "BookingResponse":
        booking = view.booking
        return cls(
            id=booking.id,
            owner_id=booking.owner_id,
            renter_id=booking.renter_id,
            tool_id=booking.tool_id,
            start_date=booking.start_date,
            end_date=booking.end_date,
            pickup_hour=booking.pickup_hour,
            daily_price=booking.daily_price,
            rental_days=booking.rental_days,
            subtotal=booking.subtotal,
            service_fee=booking.service_fee,
            total_price=booking.total_price,
            deposit=booking.deposit,
            status=booking.status,
            renter_has_returned=bool(booking.renter_has_returned),
            has_used_return_button=bool(booking.has_used_return_button),
            owner_acknowledged_return=bool(booking.pickup_tool),
            has_active_claim=bool(booking.has_active_claim),
            cancellation_reason=booking.cancellation_reason,
            cancellation_message=booking.cancellation_message,
            cancelled_by_role=booking.cancelled_by_role,
            refund_tier=booking.refund_tier,
            refund_amount=booking.refund_amount,
            refusal_reason=booking.refusal_reason,
            refusal_message=booking.refusal_message,
            created_at=booking.created_at,
            returned_at=booking.returned_at,
            completed_at=booking.completed_at,
            cancelled_at=booking.cancelled_at,
            viewer_role=view.viewer_role.value,
            allowed_actions=list(view.allowed_actions),
        )


class BookingListResponse(StrictModel):
    items: List[BookingResponse]
    skip: int
    limit: int


class ValidationCodeResponse(StrictModel):
    """
    Pickup code for the renter's screen.

    ``hidden`` is true before the start date; this is display gating only.
    """

    code: Optional[str] = None
    hidden: bool

    @classmethod
    def from_reveal(cls, reveal: CodeReveal) -> "ValidationCodeResponse":
        return cls(code=reveal.code, hidden=reveal.hidden)


class CancellationPolicyResponse(StrictModel):
    allowed: bool
    refund_tier: str
    policy_basis: str
    cutoff: Optional[datetime] = None

    @classmethod
    def from_decision(cls, decision: CancellationDecision) -> "CancellationPolicyResponse":
        return cls(
            allowed=decision.allowed,
            refund_tier=decision.refund_tier.value,
            policy_basis=decision.policy_basis,
            cutoff=decision.cutoff,
        )
