"""Multipart evidence helpers shared by the dispute endpoints."""

from typing import List, Optional

from fastapi import UploadFile

from ...core.config import settings
from ...services.dispute_gate import EvidenceFile


async def read_evidence(
    files: Optional[List[UploadFile]], max_bytes: Optional[int] = None
) -> List[EvidenceFile]:
    """
    Measure each upload; size limits are enforced by the dispute gate.

    At most ``max_bytes + 1`` bytes are read per file, which is enough for
    the gate to see that an oversized file is over the limit.
    """
    limit = settings.max_evidence_bytes if max_bytes is None else max_bytes
    evidence: List[EvidenceFile] = []
    for upload in files or []:
        try:
            content = await upload.read(limit + 1)
        finally:
            await upload.close()
        evidence.append(
            EvidenceFile(
                filename=upload.filename or "evidence",
                content_type=(upload.content_type or "application/octet-stream").lower(),
                size_bytes=len(content),
            )
        )
    return evidence
