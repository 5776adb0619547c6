"""
Timezone utilities for ToolShare.

Rental dates and pickup hours are calendar values in the marketplace
timezone; every instant handled by the services is an aware UTC datetime.
"""

from datetime import date, datetime, time, timezone
from typing import Optional

import pytz

from .config import settings


def get_marketplace_timezone() -> pytz.BaseTzInfo:
    """Return the zone used to interpret rental dates and pickup hours."""
    return settings.marketplace_tz


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are taken to already be UTC (SQLite drops tzinfo on read).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def get_marketplace_today(now: datetime) -> date:
    """Calendar date of ``now`` in the marketplace timezone."""
    return ensure_utc(now).astimezone(get_marketplace_timezone()).date()


def parse_pickup_hour(value: Optional[str]) -> time:
    """Parse a 24h ``HH:MM`` pickup hour; missing values mean midnight."""
    if not value:
        return time(0, 0)
    hours, minutes = value.split(":", 1)
    return time(int(hours), int(minutes))


def combine_in_marketplace(day: date, pickup_hour: Optional[str]) -> datetime:
    """
    Build the UTC instant for a local calendar date and pickup hour.

    Args:
        day: Local calendar date
        pickup_hour: Optional ``HH:MM`` string

    Returns:
        Aware datetime in UTC
    """
    local_tz = get_marketplace_timezone()
    local_dt = local_tz.localize(datetime.combine(day, parse_pickup_hour(pickup_hour)))
    return local_dt.astimezone(timezone.utc)
