"""
HTTP tests for /api/v1/disputes.
"""

from toolshare.core.config import settings

from ..factories.booking_builders import OTHER_ID
from ..factories.headers import MODERATOR, OWNER, RENTER, as_user

BASE = "/api/v1/disputes"


def _open(client, booking_id, headers=RENTER, files=None, reason="misuse"):
    return client.post(
        f"{BASE}/",
        data={"booking_id": booking_id, "reason": reason, "description": "Owner was late"},
        files=files,
        headers=headers,
    )


def test_renter_opens_dispute_with_evidence(client, ongoing_booking):
    response = _open(
        client,
        ongoing_booking.id,
        files=[
            ("files", ("receipt.pdf", b"%PDF-1.7 receipt", "application/pdf")),
            ("files", ("photo.png", b"\x89PNG" + b"1" * 100, "image/png")),
        ],
    )

    assert response.status_code == 201
    body = response.json()
    assert body["opened_by_role"] == "renter"
    assert body["reason"] == "misuse"
    assert [item["filename"] for item in body["evidence"]] == ["receipt.pdf", "photo.png"]


def test_oversized_evidence_stores_nothing(client, ongoing_booking):
    too_big = b"0" * (settings.max_evidence_bytes + 1)

    response = _open(
        client,
        ongoing_booking.id,
        files=[
            ("files", ("small.jpg", b"ok", "image/jpeg")),
            ("files", ("video.mp4", too_big, "video/mp4")),
        ],
    )

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "EVIDENCE_TOO_LARGE"
    booking = client.get(f"/api/v1/bookings/{ongoing_booking.id}", headers=RENTER).json()
    assert booking["has_active_claim"] is False


def test_second_open_dispute_conflicts(client, ongoing_booking):
    assert _open(client, ongoing_booking.id).status_code == 201

    response = _open(client, ongoing_booking.id, headers=OWNER, reason="damaged")

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "DISPUTE_ALREADY_ACTIVE"


def test_dispute_reason_must_be_known(client, ongoing_booking):
    response = _open(client, ongoing_booking.id, reason="tool_unavailable")
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_REASON_CODE"


def test_pending_booking_cannot_be_disputed(client, pending_booking):
    response = _open(client, pending_booking.id)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "INVALID_TRANSITION"


def test_get_dispute_is_limited_to_parties(client, ongoing_booking):
    dispute_id = _open(client, ongoing_booking.id).json()["id"]

    assert client.get(f"{BASE}/{dispute_id}", headers=OWNER).status_code == 200
    assert client.get(f"{BASE}/{dispute_id}", headers=as_user(OTHER_ID)).status_code == 403


def test_resolve_requires_moderator(client, ongoing_booking):
    dispute_id = _open(client, ongoing_booking.id).json()["id"]

    response = client.post(
        f"{BASE}/{dispute_id}/resolve", json={"outcome": "DISMISSED"}, headers=OWNER
    )

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "FORBIDDEN"


def test_moderator_resolution_clears_claim(client, ongoing_booking):
    dispute_id = _open(client, ongoing_booking.id).json()["id"]

    response = client.post(
        f"{BASE}/{dispute_id}/resolve",
        json={"outcome": "RENTER_FAVOURED", "note": "Owner confirmed the delay"},
        headers=MODERATOR,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "RESOLVED"
    assert body["outcome"] == "RENTER_FAVOURED"
    booking = client.get(f"/api/v1/bookings/{ongoing_booking.id}", headers=RENTER).json()
    assert booking["status"] == "ONGOING"
    assert booking["has_active_claim"] is False

    again = client.post(
        f"{BASE}/{dispute_id}/resolve", json={"outcome": "DISMISSED"}, headers=MODERATOR
    )
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "DISPUTE_ALREADY_RESOLVED"


def test_retaining_more_than_the_deposit_is_rejected(client, ongoing_booking):
    dispute_id = _open(client, ongoing_booking.id, headers=OWNER, reason="damaged").json()["id"]

    response = client.post(
        f"{BASE}/{dispute_id}/resolve",
        json={"outcome": "OWNER_FAVOURED", "deposit_retained": "75.00"},
        headers=MODERATOR,
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_DEPOSIT_RETENTION"


def test_oversized_upload_is_rejected_with_every_file_discarded(client, ongoing_booking):
    response = _open(
        client,
        ongoing_booking.id,
        files=[("files", ("scan.tiff", b"1" * (4 * settings.max_evidence_bytes), "image/tiff"))],
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "EVIDENCE_TOO_LARGE"
    assert detail["details"]["max_bytes"] == settings.max_evidence_bytes
    assert _open(client, ongoing_booking.id).status_code == 201
