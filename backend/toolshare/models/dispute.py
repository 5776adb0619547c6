"""Disputes (claims) raised against a single booking."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, cast

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class DisputeStatus(str, Enum):
    """Open disputes block further claims on the booking."""

    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class DisputeOutcome(str, Enum):
    OWNER_FAVOURED = "OWNER_FAVOURED"
    RENTER_FAVOURED = "RENTER_FAVOURED"
    DISMISSED = "DISMISSED"


class Dispute(Base):
    """
    A formal complaint about one booking.

    Evidence is kept as a list of stored-file descriptors
    ({filename, content_type, size_bytes, storage_key}); the files
    themselves live with the upload collaborator.
    """

    __tablename__ = "disputes"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    opened_by_id = Column(String(26), nullable=False)
    opened_by_role = Column(String(20), nullable=False)

    reason = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    evidence = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=False,
        default=list,
    )

    status = Column(String(20), nullable=False, default=DisputeStatus.OPEN.value, index=True)
    outcome = Column(String(30), nullable=True)
    resolution_note = Column(Text, nullable=True)
    deposit_retained = Column(Numeric(10, 2), nullable=True)
    resolved_by_id = Column(String(26), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking")

    __table_args__ = (
        CheckConstraint("status IN ('OPEN', 'RESOLVED')", name="ck_disputes_status"),
        CheckConstraint(
            "deposit_retained IS NULL OR deposit_retained >= 0",
            name="ck_disputes_deposit_retained_non_negative",
        ),
        Index("ix_disputes_booking_status", "booking_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Dispute {self.id} booking={self.booking_id} status={self.status}>"

    @property
    def is_open(self) -> bool:
        return self.status == DisputeStatus.OPEN.value

    @property
    def evidence_items(self) -> List[Dict[str, Any]]:
        return list(cast(List[Dict[str, Any]], self.evidence or []))
