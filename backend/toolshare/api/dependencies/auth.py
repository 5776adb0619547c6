# backend/toolshare/api/dependencies/auth.py
"""
Caller identity and clock dependencies.

Authentication happens upstream: the gateway verifies the session and
forwards the user id in ``X-User-Id`` (and ``X-User-Role`` for staff).
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Header, HTTPException, status

MODERATOR_ROLE = "moderator"


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Return the authenticated user id forwarded by the gateway."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Authentication required", "code": "UNAUTHENTICATED"},
        )
    return user_id


def require_moderator(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> str:
    """Allow only staff moderators; returns the moderator's user id."""
    user_id = get_current_user_id(x_user_id)
    if (x_user_role or "").strip().lower() != MODERATOR_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Moderator access required", "code": "FORBIDDEN"},
        )
    return user_id


def get_now() -> datetime:
    """Request clock; the single place the API layer reads wall time."""
    return datetime.now(timezone.utc)
