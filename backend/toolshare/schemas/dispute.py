"""Dispute schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ..core.constants import MAX_REASON_MESSAGE_LENGTH
from ..models.dispute import Dispute, DisputeOutcome
from ._strict_base import StrictModel, StrictRequestModel


class EvidenceItem(StrictModel):
    filename: str
    content_type: str
    size_bytes: int
    storage_key: str


class DisputeResponse(StrictModel):
    id: str
    booking_id: str
    opened_by_id: str
    opened_by_role: str
    reason: str
    description: str
    evidence: List[EvidenceItem] = Field(default_factory=list)
    status: str
    outcome: Optional[str] = None
    deposit_retained: Optional[Decimal] = None
    resolution_note: Optional[str] = None
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_dispute(cls, dispute: Dispute) -> "DisputeResponse":
        return cls(
            id=dispute.id,
            booking_id=dispute.booking_id,
            opened_by_id=dispute.opened_by_id,
            opened_by_role=dispute.opened_by_role,
            reason=dispute.reason,
            description=dispute.description,
            evidence=[EvidenceItem(**item) for item in dispute.evidence_items],
            status=dispute.status,
            outcome=dispute.outcome,
            deposit_retained=dispute.deposit_retained,
            resolution_note=dispute.resolution_note,
            created_at=dispute.created_at,
            resolved_at=dispute.resolved_at,
        )


class DisputeResolveRequest(StrictRequestModel):
    """Moderator decision closing a dispute."""

    outcome: DisputeOutcome
    deposit_retained: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    note: Optional[str] = Field(None, max_length=MAX_REASON_MESSAGE_LENGTH)
