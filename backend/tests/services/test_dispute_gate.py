"""
Dispute gate: one open claim per booking, all-or-nothing evidence checks.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from toolshare.core.enums import ActorRole
from toolshare.core.exceptions import (
    ConflictException,
    DisputeAlreadyActiveException,
    EvidenceTooLargeException,
    InvalidReasonCodeException,
    ValidationException,
)
from toolshare.models.dispute import Dispute, DisputeOutcome, DisputeStatus
from toolshare.repositories.dispute_repository import DisputeRepository
from toolshare.services.dispute_gate import DisputeGate, EvidenceFile

from ..factories.booking_builders import NOW, OWNER_ID, RENTER_ID

KIB = 1024
MIB = 1024 * KIB


@pytest.fixture
def gate(db) -> DisputeGate:
    return DisputeGate(DisputeRepository(db), max_evidence_bytes=MIB)


def _open(gate, booking, evidence=(), reason="damaged", description="Chuck is cracked"):
    return gate.open_dispute(
        booking,
        opened_by_id=OWNER_ID,
        opened_by_role=ActorRole.OWNER,
        reason=reason,
        description=description,
        evidence=list(evidence),
        now=NOW,
    )


def test_open_dispute_flags_booking_and_describes_evidence(db, gate, ongoing_booking):
    photo = EvidenceFile("chuck.jpg", "image/jpeg", 500 * KIB)

    dispute = _open(gate, ongoing_booking, [photo])
    db.flush()

    assert dispute.status == DisputeStatus.OPEN.value
    assert dispute.reason == "damaged"
    assert ongoing_booking.has_active_claim is True
    assert dispute.evidence_items == [
        {
            "filename": "chuck.jpg",
            "content_type": "image/jpeg",
            "size_bytes": 500 * KIB,
            "storage_key": f"disputes/{dispute.id}/0-chuck.jpg",
        }
    ]


def test_second_dispute_while_first_is_open_is_rejected(db, gate, ongoing_booking):
    _open(gate, ongoing_booking)
    db.flush()

    with pytest.raises(DisputeAlreadyActiveException) as exc_info:
        _open(gate, ongoing_booking, reason="late", description="Also late")

    assert exc_info.value.code == "DISPUTE_ALREADY_ACTIVE"
    assert db.query(Dispute).filter(Dispute.booking_id == ongoing_booking.id).count() == 1


def test_one_oversized_file_rejects_whole_submission(db, gate, ongoing_booking):
    evidence = [
        EvidenceFile("front.jpg", "image/jpeg", 500 * KIB),
        EvidenceFile("video.mp4", "video/mp4", 2 * MIB),
        EvidenceFile("back.jpg", "image/jpeg", 500 * KIB),
    ]

    with pytest.raises(EvidenceTooLargeException) as exc_info:
        _open(gate, ongoing_booking, evidence)

    assert exc_info.value.details["filename"] == "video.mp4"
    assert db.query(Dispute).count() == 0
    assert ongoing_booking.has_active_claim is False


def test_file_exactly_at_limit_is_accepted(gate, ongoing_booking):
    dispute = _open(gate, ongoing_booking, [EvidenceFile("a.png", "image/png", MIB)])
    assert len(dispute.evidence_items) == 1


@pytest.mark.parametrize(
    "reason, description, error",
    [
        ("cancelled_by_mistake", "Broken", InvalidReasonCodeException),
        ("damaged", "   ", ValidationException),
        ("damaged", "x" * 2001, ValidationException),
    ],
)
def test_invalid_submission_creates_nothing(db, gate, ongoing_booking, reason, description, error):
    with pytest.raises(error):
        _open(gate, ongoing_booking, reason=reason, description=description)

    assert db.query(Dispute).count() == 0
    assert ongoing_booking.has_active_claim is False


def test_resolving_last_open_dispute_clears_claim_flag(db, gate, ongoing_booking):
    dispute = _open(gate, ongoing_booking)
    db.flush()

    gate.resolve_dispute(
        dispute,
        ongoing_booking,
        outcome=DisputeOutcome.OWNER_FAVOURED,
        resolved_by_id="mod",
        now=NOW + timedelta(days=1),
        deposit_retained=Decimal("20.00"),
    )

    assert dispute.status == DisputeStatus.RESOLVED.value
    assert dispute.deposit_retained == Decimal("20.00")
    assert ongoing_booking.has_active_claim is False


def test_resolving_twice_conflicts(db, gate, ongoing_booking):
    dispute = _open(gate, ongoing_booking)
    db.flush()
    gate.resolve_dispute(
        dispute, ongoing_booking, outcome=DisputeOutcome.DISMISSED, resolved_by_id="m", now=NOW
    )

    with pytest.raises(ConflictException) as exc_info:
        gate.resolve_dispute(
            dispute, ongoing_booking, outcome=DisputeOutcome.DISMISSED, resolved_by_id="m", now=NOW
        )
    assert exc_info.value.code == "DISPUTE_ALREADY_RESOLVED"


@pytest.mark.parametrize(
    "outcome, retained",
    [
        (DisputeOutcome.OWNER_FAVOURED, Decimal("50.01")),
        (DisputeOutcome.RENTER_FAVOURED, Decimal("10.00")),
        (DisputeOutcome.DISMISSED, Decimal("0.01")),
    ],
)
def test_deposit_retention_bounds(db, gate, ongoing_booking, outcome, retained):
    dispute = _open(gate, ongoing_booking)
    db.flush()

    with pytest.raises(ValidationException) as exc_info:
        gate.resolve_dispute(
            dispute,
            ongoing_booking,
            outcome=outcome,
            resolved_by_id="m",
            now=NOW,
            deposit_retained=retained,
        )

    assert exc_info.value.code == "INVALID_DEPOSIT_RETENTION"
    assert dispute.is_open


def test_renter_can_open_dispute_too(gate, ongoing_booking):
    dispute = gate.open_dispute(
        ongoing_booking,
        opened_by_id=RENTER_ID,
        opened_by_role=ActorRole.RENTER,
        reason="not-as-described",
        description="Battery missing",
        evidence=[],
        now=NOW,
    )
    assert dispute.opened_by_role == "renter"
    assert dispute.reason == "not_as_described"


def test_zero_byte_limit_is_honoured(db, ongoing_booking):
    strict_gate = DisputeGate(DisputeRepository(db), max_evidence_bytes=0)

    with pytest.raises(EvidenceTooLargeException):
        _open(strict_gate, ongoing_booking, [EvidenceFile("a.txt", "text/plain", 1)])
