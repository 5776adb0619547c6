# backend/toolshare/routes/v1/disputes.py
"""
Dispute routes - API v1

Endpoints:
    POST / - Open a dispute on a booking (multipart with evidence files)
    GET /{dispute_id} - Dispute details (booking parties only)
    POST /{dispute_id}/resolve - Close a dispute (moderators)
"""

import asyncio
from datetime import datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Path, UploadFile, status

from ...api.dependencies import (
    get_booking_lifecycle_service,
    get_current_user_id,
    get_now,
    require_moderator,
)
from ...core.exceptions import DomainException
from ...schemas.dispute import DisputeResolveRequest, DisputeResponse
from ...services.booking_lifecycle_service import BookingLifecycleService
from ..errors import EXAMPLE_ULID, ULID_PATH_PATTERN, handle_domain_exception
from .evidence import read_evidence

logger = logging.getLogger(__name__)

router = APIRouter(tags=["disputes-v1"])


@router.post("/", response_model=DisputeResponse, status_code=status.HTTP_201_CREATED)
async def open_dispute(
    booking_id: str = Form(..., pattern=ULID_PATH_PATTERN),
    reason: str = Form(...),
    description: str = Form(...),
    files: Optional[List[UploadFile]] = File(None),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> DisputeResponse:
    """
    Open a dispute as either party.

    Nothing is stored when any file is over the size limit or when the
    booking already has an unresolved dispute.
    """
    try:
        evidence = await read_evidence(files)
        dispute = await asyncio.to_thread(
            lambda: service.open_dispute(
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


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: str = Path(
        ..., description="Dispute ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    current_user_id: str = Depends(get_current_user_id),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> DisputeResponse:
    try:
        dispute = await asyncio.to_thread(service.get_dispute, dispute_id, current_user_id)
        return DisputeResponse.from_dispute(dispute)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: str = Path(
        ..., description="Dispute ULID", pattern=ULID_PATH_PATTERN, examples=[EXAMPLE_ULID]
    ),
    payload: DisputeResolveRequest = Body(...),
    moderator_id: str = Depends(require_moderator),
    now: datetime = Depends(get_now),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> DisputeResponse:
    try:
        dispute = await asyncio.to_thread(
            lambda: service.resolve_dispute(
                dispute_id,
                moderator_id,
                outcome=payload.outcome,
                now=now,
                deposit_retained=payload.deposit_retained,
                note=payload.note,
            )
        )
        logger.info(
            "Dispute resolved by moderator",
            extra={"dispute_id": dispute_id, "moderator_id": moderator_id},
        )
        return DisputeResponse.from_dispute(dispute)
    except DomainException as e:
        handle_domain_exception(e)
