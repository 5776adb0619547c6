# backend/toolshare/routes/v1/reviews.py
"""
Review routes - API v1

Endpoints:
    GET /eligibility - What the caller may review
    POST /tool - Review a completed rental (renter)
    POST /app - One-time review of the platform
"""

import asyncio
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_current_user_id, get_now, get_review_service
from ...core.exceptions import DomainException
from ...schemas.review import (
    AppReviewCreate,
    ReviewEligibilityResponse,
    ReviewResponse,
    ToolReviewCreate,
)
from ...services.review_service import ReviewService
from ..errors import ULID_PATH_PATTERN, handle_domain_exception

router = APIRouter(tags=["reviews-v1"])


# =============================================================================
# Static routes first (before dynamic routes with path parameters)
# =============================================================================


@router.get("/eligibility", response_model=ReviewEligibilityResponse)
async def get_review_eligibility(
    booking_id: Optional[str] = Query(None, pattern=ULID_PATH_PATTERN),
    current_user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewEligibilityResponse:
    try:
        eligibility = await asyncio.to_thread(service.get_eligibility, current_user_id, booking_id)
        return ReviewEligibilityResponse.from_eligibility(eligibility)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/tool", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def submit_tool_review(
    payload: ToolReviewCreate = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    try:
        review = await asyncio.to_thread(
            lambda: service.submit_tool_review(
                reviewer_id=current_user_id,
                booking_id=payload.booking_id,
                rating=payload.rating,
                comment=payload.comment,
                now=now,
            )
        )
        return ReviewResponse.from_tool_review(review)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/app", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def submit_app_review(
    payload: AppReviewCreate = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    try:
        review = await asyncio.to_thread(
            lambda: service.submit_app_review(
                reviewer_id=current_user_id,
                rating=payload.rating,
                comment=payload.comment,
                now=now,
            )
        )
        return ReviewResponse.from_app_review(review)
    except DomainException as e:
        handle_domain_exception(e)
