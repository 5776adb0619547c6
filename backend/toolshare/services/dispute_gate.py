"""
Dispute gate.

Keeps at most one open dispute per booking and validates claim
submissions before anything is written. The booking's ``has_active_claim``
flag is recomputed from the dispute table whenever a dispute opens or
closes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Sequence

import ulid

from ..core.config import settings
from ..core.constants import MAX_DISPUTE_DESCRIPTION_LENGTH
from ..core.enums import ActorRole, ReasonKind, parse_reason
from ..core.exceptions import (
    ConflictException,
    DisputeAlreadyActiveException,
    EvidenceTooLargeException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc
from ..models.booking import Booking
from ..models.dispute import Dispute, DisputeOutcome, DisputeStatus
from ..repositories.dispute_repository import DisputeRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvidenceFile:
    """An uploaded evidence file as seen by the gate; content lives with the upload store."""

    filename: str
    content_type: str
    size_bytes: int


class DisputeGate:
    def __init__(
        self,
        dispute_repository: DisputeRepository,
        max_evidence_bytes: Optional[int] = None,
    ):
        self.dispute_repository = dispute_repository
        self.max_evidence_bytes = (
            settings.max_evidence_bytes if max_evidence_bytes is None else max_evidence_bytes
        )

    def has_open_dispute(self, booking: Booking) -> bool:
        return bool(booking.has_active_claim) or (
            self.dispute_repository.count_open_for_booking(booking.id) > 0
        )

    def validate_evidence(self, evidence: Sequence[EvidenceFile]) -> None:
        """Reject the whole submission if any single file is over the limit."""
        for item in evidence:
            if item.size_bytes > self.max_evidence_bytes:
                raise EvidenceTooLargeException(
                    item.filename, item.size_bytes, self.max_evidence_bytes
                )

    def open_dispute(
        self,
        booking: Booking,
        *,
        opened_by_id: str,
        opened_by_role: ActorRole,
        reason: Any,
        description: str,
        evidence: Sequence[EvidenceFile],
        now: datetime,
    ) -> Dispute:
        """
        Create an OPEN dispute and flag the booking.

        Every check runs before the first write, so a rejected submission
        leaves neither a dispute row nor a flag behind.
        """
        if self.has_open_dispute(booking):
            raise DisputeAlreadyActiveException(booking.id, current_status=booking.status)

        reason_code = parse_reason(ReasonKind.DISPUTE, reason)
        text = (description or "").strip()
        if not text:
            raise ValidationException(
                "A description of the problem is required", code="INVALID_DISPUTE"
            )
        if len(text) > MAX_DISPUTE_DESCRIPTION_LENGTH:
            raise ValidationException(
                f"Description must be at most {MAX_DISPUTE_DESCRIPTION_LENGTH} characters",
                code="INVALID_DISPUTE",
            )
        self.validate_evidence(evidence)

        dispute_id = str(ulid.ULID())
        dispute = self.dispute_repository.create(
            id=dispute_id,
            booking_id=booking.id,
            opened_by_id=opened_by_id,
            opened_by_role=opened_by_role.value,
            reason=reason_code.value,
            description=text,
            evidence=self._describe_evidence(dispute_id, evidence),
            status=DisputeStatus.OPEN.value,
            created_at=ensure_utc(now),
        )
        booking.has_active_claim = True
        logger.info(
            "Dispute opened",
            extra={"dispute_id": dispute_id, "booking_id": booking.id, "reason": reason_code.value},
        )
        return dispute

    def resolve_dispute(
        self,
        dispute: Dispute,
        booking: Booking,
        *,
        outcome: DisputeOutcome,
        resolved_by_id: str,
        now: datetime,
        deposit_retained: Optional[Decimal] = None,
        note: Optional[str] = None,
    ) -> Dispute:
        """Close a dispute and recompute the booking's claim flag."""
        if not dispute.is_open:
            raise ConflictException(
                "This dispute has already been resolved",
                code="DISPUTE_ALREADY_RESOLVED",
                details={"dispute_id": dispute.id, "outcome": dispute.outcome},
            )

        retained = Decimal("0")
        if deposit_retained is not None:
            retained = Decimal(deposit_retained)
            if retained < 0 or retained > Decimal(booking.deposit):
                raise ValidationException(
                    "Retained deposit must be between 0 and the booking deposit",
                    code="INVALID_DEPOSIT_RETENTION",
                    details={"deposit": str(booking.deposit), "requested": str(retained)},
                )
            if retained > 0 and outcome != DisputeOutcome.OWNER_FAVOURED:
                raise ValidationException(
                    "A deposit can only be retained when the owner is favoured",
                    code="INVALID_DEPOSIT_RETENTION",
                )

        dispute.status = DisputeStatus.RESOLVED.value
        dispute.outcome = outcome.value
        dispute.deposit_retained = retained
        dispute.resolved_by_id = resolved_by_id
        dispute.resolution_note = note
        dispute.resolved_at = ensure_utc(now)
        self.dispute_repository.flush()

        booking.has_active_claim = self.dispute_repository.count_open_for_booking(booking.id) > 0
        return dispute

    @staticmethod
    def _describe_evidence(
        dispute_id: str, evidence: Sequence[EvidenceFile]
    ) -> List[Dict[str, Any]]:
        return [
            {
                "filename": item.filename,
                "content_type": item.content_type,
                "size_bytes": item.size_bytes,
                "storage_key": f"disputes/{dispute_id}/{index}-{item.filename}",
            }
            for index, item in enumerate(evidence)
        ]
