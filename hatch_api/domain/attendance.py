"""
Attendance / Registration Domain

Registration statuses and the quota rules applied when a user registers
for an event or adds a past event to their record.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel

from hatch_api.domain.tiers import TIER_CATALOG, Tier, next_tier, tier_rank
from hatch_api.domain.timeutils import ensure_utc


class AttendanceStatus(str, Enum):
    REGISTERED = "registered"
    PENDING = "pending"  # derived: registered and the event has passed
    ATTENDED = "attended"
    NOT_ATTENDED = "not_attended"


class AttendanceSource(str, Enum):
    SELF_REPORTED = "self_reported"
    AUTO = "auto"
    MANUAL = "manual"


CONFIRMED_STATUSES = frozenset({AttendanceStatus.ATTENDED, AttendanceStatus.NOT_ATTENDED})


def effective_status(status: str, event_date: datetime, now: datetime) -> AttendanceStatus:
    """Stored status, with past registered rows reported as pending."""
    current = AttendanceStatus(status)
    if current == AttendanceStatus.REGISTERED and ensure_utc(event_date) <= ensure_utc(now):
        return AttendanceStatus.PENDING
    return current


def _info_or_free(tier: Any):
    rank = tier_rank(tier)
    return next(info for info in TIER_CATALOG.values() if info.rank == rank)


def weekly_remaining(tier: Any, registered_this_week: int) -> int:
    return max(_info_or_free(tier).weekly_quota - registered_this_week, 0)


def can_register_more(tier: Any, registered_this_week: int) -> bool:
    return registered_this_week < _info_or_free(tier).weekly_quota


def can_add_past_event(tier: Any, manual_added: int) -> bool:
    info = _info_or_free(tier)
    return info.has_unlimited_past_events or manual_added < info.manual_past_event_quota


def upgrade_for_quota(tier: Any) -> Optional[Tier]:
    """Tier to suggest when a quota is exhausted."""
    return next_tier(tier)


# =============================================================================
# Response DTOs
# =============================================================================

class RegistrationResult(BaseModel):
    """Outcome of a registration attempt. Quota refusals are not errors."""
    success: bool
    already_registered: bool = False
    message: str
    event_id: UUID
    current_tier: Tier
    events_registered_this_week: int
    weekly_quota: int
    events_remaining: int
    upgrade_needed: Optional[Tier] = None


class AttendanceResult(BaseModel):
    event_id: UUID
    status: AttendanceStatus
    already_confirmed: bool = False
    message: str


class RegistrationResponse(BaseModel):
    id: UUID
    event_id: UUID
    status: AttendanceStatus
    source: AttendanceSource
    confirmed_at: Optional[datetime] = None
    created_at: datetime
    event_title: Optional[str] = None
    event_date: Optional[datetime] = None


class AttendanceStats(BaseModel):
    user_id: UUID
    subscription_tier: Tier
    events_registered_this_week: int
    weekly_quota: int
    events_remaining: int
    total_events_attended: int
    manual_past_events_added: int
    manual_past_event_quota: int


class AttendanceConfirmRequest(BaseModel):
    attended: bool


def stats_for(
    user_id: UUID,
    tier: Any,
    registered_this_week: int,
    total_attended: int,
    manual_added: int,
) -> AttendanceStats:
    info = _info_or_free(tier)
    return AttendanceStats(
        user_id=user_id,
        subscription_tier=info.tier,
        events_registered_this_week=registered_this_week,
        weekly_quota=info.weekly_quota,
        events_remaining=weekly_remaining(info.tier, registered_this_week),
        total_events_attended=total_attended,
        manual_past_events_added=manual_added,
        manual_past_event_quota=info.manual_past_event_quota,
    )


class AutoAttendanceResult(BaseModel):
    """Outcome of one auto-attendance run."""
    events_processed: int = 0
    users_marked: int = 0
    failed: int = 0
