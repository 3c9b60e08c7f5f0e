"""
Event Visibility Filter

Decides which events a subscriber may browse and in which order.
Works on any objects exposing the event attributes, so it applies equally
to ORM rows and plain DTOs.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl, field_validator

from hatch_api.domain.entitlements import allowed_tiers
from hatch_api.domain.tiers import Tier, parse_tier
from hatch_api.domain.timeutils import ensure_utc
from hatch_api.infrastructure.exceptions import UnknownTierError


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class EventMode(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    HYBRID = "hybrid"


class EventSort(str, Enum):
    """
    Sort contracts. They are not interchangeable:
    CALENDAR is ascending event_date (listings), ADMIN is newest created first.
    """
    CALENDAR = "calendar"
    ADMIN = "admin"


SEARCH_FIELDS = ("title", "description", "organizer", "category")


def matches_search(event: Any, query: Optional[str]) -> bool:
    """Case-insensitive substring match over the searchable text fields."""
    if not query or not query.strip():
        return True
    needle = query.strip().lower()
    for field in SEARCH_FIELDS:
        value = getattr(event, field, None)
        if value and needle in str(value).lower():
            return True
    return False


def sort_events(events: Iterable[Any], sort: EventSort) -> List[Any]:
    if sort == EventSort.ADMIN:
        return sorted(events, key=lambda e: ensure_utc(e.created_at), reverse=True)
    return sorted(events, key=lambda e: ensure_utc(e.event_date))


def list_visible_events(
    user_tier: Any,
    events: Iterable[Any],
    search: Optional[str] = None,
    tier_filter: Optional[Any] = None,
    is_admin: bool = False,
    upcoming_after: Optional[datetime] = None,
    sort: EventSort = EventSort.CALENDAR,
) -> List[Any]:
    """
    Filter ``events`` down to what a subscriber may browse.

    Non-admins only ever see published events whose required tier is in
    their allowed set. Admins see everything, drafts included.

    Raises:
        UnknownTierError: if ``tier_filter`` names no tier
    """
    allowed = allowed_tiers(user_tier)
    wanted = parse_tier(tier_filter) if tier_filter else None

    visible = []
    for event in events:
        if not is_admin:
            if event.status != EventStatus.PUBLISHED.value:
                continue
            if _event_tier(event) not in allowed:
                continue
        if wanted is not None and _event_tier(event) != wanted:
            continue
        if upcoming_after is not None and ensure_utc(event.event_date) < ensure_utc(upcoming_after):
            continue
        if not matches_search(event, search):
            continue
        visible.append(event)

    return sort_events(visible, sort)


def _event_tier(event: Any) -> Tier:
    try:
        return parse_tier(event.required_tier)
    except UnknownTierError:
        # same rule as tier_rank: unknown means lowest
        return Tier.FREE


# =============================================================================
# Request/Response DTOs
# =============================================================================

class EventCreate(BaseModel):
    """Admin request to create an event."""
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(default="", max_length=5000)
    registration_link: Optional[HttpUrl] = None
    required_tier: str = Field(default=Tier.FREE.value)
    status: EventStatus = EventStatus.DRAFT
    event_date: datetime
    registration_deadline: Optional[datetime] = None
    organizer: Optional[str] = Field(default=None, max_length=200)
    category: Optional[str] = Field(default=None, max_length=100)
    mode: EventMode = EventMode.ONLINE
    location: Optional[str] = Field(default=None, max_length=300)
    tags: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field cannot be empty or whitespace only")
        return v.strip()


class EventUpdate(BaseModel):
    """Admin partial update. All fields optional."""
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    registration_link: Optional[HttpUrl] = None
    required_tier: Optional[str] = None
    status: Optional[EventStatus] = None
    event_date: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    organizer: Optional[str] = Field(default=None, max_length=200)
    category: Optional[str] = Field(default=None, max_length=100)
    mode: Optional[EventMode] = None
    location: Optional[str] = Field(default=None, max_length=300)
    tags: Optional[List[str]] = None

    # Omitting these leaves them unchanged; null is not a value they can hold
    @field_validator("title", "description", "required_tier", "status", "event_date", "mode")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def validate_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Field cannot be empty or whitespace only")
        return v.strip() if v is not None else v


class EventResponse(BaseModel):
    id: UUID
    title: str
    description: str
    registration_link: Optional[str] = None
    required_tier: str
    status: EventStatus
    event_date: datetime
    registration_deadline: Optional[datetime] = None
    organizer: Optional[str] = None
    category: Optional[str] = None
    mode: str
    location: Optional[str] = None
    tags: Optional[List[str]] = None
    created_at: datetime

    class Config:
        from_attributes = True
