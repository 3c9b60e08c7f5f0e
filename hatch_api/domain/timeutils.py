"""
Time helpers shared by the domain rules.

All timestamps are handled in UTC. Some drivers hand back naive datetimes
for timestamptz columns; those are treated as UTC.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_week(now: datetime) -> datetime:
    """Monday 00:00 UTC of the ISO week containing ``now``."""
    now = ensure_utc(now)
    monday = now - timedelta(days=now.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)
