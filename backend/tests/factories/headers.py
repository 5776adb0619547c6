from typing import Dict

from .booking_builders import MODERATOR_ID, OWNER_ID, RENTER_ID


def as_user(user_id: str) -> Dict[str, str]:
    return {"X-User-Id": user_id}


RENTER = as_user(RENTER_ID)
OWNER = as_user(OWNER_ID)
MODERATOR = {"X-User-Id": MODERATOR_ID, "X-User-Role": "moderator"}
