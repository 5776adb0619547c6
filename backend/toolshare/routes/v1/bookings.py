# backend/toolshare/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingLifecycleService.

Endpoints:
    POST / - Request a booking (renter)
    GET / - List the caller's bookings
    GET /{booking_id} - Booking details with the caller's allowed actions
    GET /{booking_id}/validation-code - Pickup code (renter)
    GET /{booking_id}/cancellation-policy - Preview the cancellation decision
    POST /{booking_id}/accept - Accept a request (owner)
    POST /{booking_id}/reject - Refuse a request (owner)
    POST /{booking_id}/activate - Confirm pickup with the validation code (owner)
    POST /{booking_id}/cancel - Cancel a booking
    POST /{booking_id}/confirm-return - Declare the tool returned (renter)
    POST /{booking_id}/acknowledge-return - Acknowledge the return (owner)
    POST /{booking_id}/return-claim - Dispute the return (owner, multipart)
    POST /{booking_id}/complete - Close a rental after its end date (owner)
"""

import asyncio
from datetime import datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Path, Query, UploadFile, status

from ...api.dependencies import get_booking_lifecycle_service, get_current_user_id, get_now
from ...core.constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from ...core.enums import ActorRole
from ...core.exceptions import DomainException
from ...models.booking import BookingStatus
from ...schemas.booking import (
    BookingActivateRequest,
    BookingCreate,
    BookingListResponse,
    BookingReasonRequest,
    BookingResponse,
    CancellationPolicyResponse,
    ValidationCodeResponse,
)
from ...schemas.dispute import DisputeResponse
from ...services.booking_lifecycle_service import BookingLifecycleService
from ..errors import EXAMPLE_ULID, ULID_PATH_PATTERN, handle_domain_exception
from .evidence import read_evidence

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


async def _respond(
    service: BookingLifecycleService, booking_id: str, user_id: str, now: datetime
) -> BookingResponse:
    view = await asyncio.to_thread(service.get_booking, booking_id, user_id, now)
    return BookingResponse.from_view(view)


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    """Request a tool rental; the booking starts PENDING."""
    try:
        booking = await asyncio.to_thread(
            lambda: service.create_booking(
                renter_id=current_user_id,
                owner_id=payload.owner_id,
                tool_id=payload.tool_id,
                start_date=payload.start_date,
                end_date=payload.end_date,
                daily_price=payload.daily_price,
                deposit=payload.deposit,
                pickup_hour=payload.pickup_hour,
                now=now,
            )
        )
        return await _respond(service, booking.id, current_user_id, now)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/", response_model=BookingListResponse)
async def list_bookings(
    role: Optional[ActorRole] = Query(None, description="renter or owner view"),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingListResponse:
    """List bookings where the caller is renter or owner."""
    try:
        views = await asyncio.to_thread(
            lambda: service.list_bookings(
                current_user_id, now, role=role, status=status_filter, skip=skip, limit=limit
            )
        )
        return BookingListResponse(
            items=[BookingResponse.from_view(view) for view in views], skip=skip, limit=limit
        )
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Booking-scoped reads
# ============================================================================


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}},
)
async def get_booking(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        return await _respond(service, booking_id, current_user_id, now)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{booking_id}/validation-code", response_model=ValidationCodeResponse)
async def get_validation_code(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> ValidationCodeResponse:
    """Pickup code for the renter; hidden before the start date."""
    try:
        reveal = await asyncio.to_thread(
            service.reveal_validation_code, booking_id, current_user_id, now
        )
        return ValidationCodeResponse.from_reveal(reveal)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{booking_id}/cancellation-policy", response_model=CancellationPolicyResponse)
async def get_cancellation_policy(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> CancellationPolicyResponse:
    """What cancelling right now would mean for the caller. Changes nothing."""
    try:
        decision = await asyncio.to_thread(
            service.evaluate_cancellation, booking_id, current_user_id, now
        )
        return CancellationPolicyResponse.from_decision(decision)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 3: Transitions
# ============================================================================


@router.post("/{booking_id}/accept", response_model=BookingResponse)
async def accept_booking(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        await asyncio.to_thread(service.accept_booking, booking_id, current_user_id, now)
        return await _respond(service, booking_id, current_user_id, now)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    payload: BookingReasonRequest = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        await asyncio.to_thread(
            service.reject_booking,
            booking_id,
            current_user_id,
            payload.reason,
            now,
            payload.message,
        )
        return await _respond(service, booking_id, current_user_id, now)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/activate", response_model=BookingResponse)
async def activate_booking(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    payload: BookingActivateRequest = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        await asyncio.to_thread(
            service.activate_booking, booking_id, current_user_id, payload.validation_code, now
        )
        return await _respond(service, booking_id, current_user_id, now)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    payload: BookingReasonRequest = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    """Cancel a booking; the refund decision is fixed at this moment."""
    try:
        await asyncio.to_thread(
            service.cancel_booking,
            booking_id,
            current_user_id,
            payload.reason,
            now,
            payload.message,
        )
        return await _respond(service, booking_id, current_user_id, now)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/confirm-return", response_model=BookingResponse)
async def confirm_return(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        await asyncio.to_thread(service.confirm_return, booking_id, current_user_id, now)
        return await _respond(service, booking_id, current_user_id, now)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/acknowledge-return", response_model=BookingResponse)
async def acknowledge_return(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    try:
        await asyncio.to_thread(service.acknowledge_return, booking_id, current_user_id, now)
        return await _respond(service, booking_id, current_user_id, now)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{booking_id}/return-claim",
    response_model=DisputeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def open_return_claim(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    reason: str = Form(...),
    description: str = Form(...),
    files: Optional[List[UploadFile]] = File(None),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> DisputeResponse:
    """Owner raises a claim about the returned tool instead of acknowledging it."""
    try:
        evidence = await read_evidence(files)
        dispute = await asyncio.to_thread(
            lambda: service.open_return_claim(
                booking_id,
                current_user_id,
                reason=reason,
                description=description,
                evidence=evidence,
                now=now,
            )
        )
        return DisputeResponse.from_dispute(dispute)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str = Path(
        ..., description="Booking ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingResponse:
    """Owner closes an ongoing rental once its end date has passed."""
    try:
        await asyncio.to_thread(service.complete_booking, booking_id, current_user_id, now)
        return await _respond(service, booking_id, current_user_id, now)
    except DomainException as e:
        handle_domain_exception(e)
