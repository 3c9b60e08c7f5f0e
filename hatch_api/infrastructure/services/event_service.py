"""
Event Service

Subscriber-facing event reads (through the visibility filter) and the
admin event CRUD.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hatch_api.domain.entitlements import is_accessible, upgrade_needed
from hatch_api.domain.events import (
    EventCreate,
    EventSort,
    EventStatus,
    EventUpdate,
    list_visible_events,
)
from hatch_api.domain.tiers import parse_tier
from hatch_api.domain.timeutils import ensure_utc, utcnow
from hatch_api.infrastructure.db.models.event import Event
from hatch_api.infrastructure.db.repositories.event_repository import EventRepository
from hatch_api.infrastructure.exceptions import ForbiddenError, NotFoundError


logger = logging.getLogger(__name__)


class EventService:

    def __init__(self, session: AsyncSession):
        self._events = EventRepository(session)

    # =========================================================================
    # Subscriber reads
    # =========================================================================

    async def list_visible(
        self,
        user_tier,
        search: Optional[str] = None,
        tier_filter: Optional[str] = None,
        upcoming_only: bool = False,
        limit: Optional[int] = None,
        is_admin: bool = False,
        now: Optional[datetime] = None,
    ) -> List[Event]:
        """
        Events the user may browse, in calendar order.

        Raises:
            UnknownTierError: if ``tier_filter`` names no tier
        """
        now = ensure_utc(now) if now else utcnow()
        upcoming_after = now if upcoming_only else None
        candidates = await self._events.list_candidates(
            include_drafts=is_admin,
            starting_after=upcoming_after,
        )
        events = list_visible_events(
            user_tier,
            candidates,
            search=search,
            tier_filter=tier_filter,
            is_admin=is_admin,
            upcoming_after=upcoming_after,
            sort=EventSort.CALENDAR,
        )
        if limit is not None:
            events = events[:limit]
        return events

    async def get_visible(self, event_id: UUID, user_tier, is_admin: bool = False) -> Event:
        """
        One event, subject to the same rules as the listing.

        Raises:
            NotFoundError: missing, or a draft seen by a non-admin
            ForbiddenError: published but above the user's tier
        """
        event = await self._events.get_by_id(event_id)
        if event is None or (not is_admin and event.status != EventStatus.PUBLISHED.value):
            raise NotFoundError(
                f"Event {event_id} not found",
                operation="get",
                table="events",
            )
        if not is_admin and not is_accessible(event.required_tier, user_tier):
            needed = upgrade_needed(event.required_tier, user_tier)
            raise ForbiddenError(
                f"This event requires the {needed.value} tier",
                details={
                    "event_id": str(event_id),
                    "required_tier": event.required_tier,
                    "upgrade_needed": needed.value,
                },
            )
        return event

    # =========================================================================
    # Admin CRUD
    # =========================================================================

    async def list_all(self) -> List[Event]:
        """Every event, drafts included, newest created first."""
        candidates = await self._events.list_candidates(include_drafts=True)
        return list_visible_events(
            None,
            candidates,
            is_admin=True,
            sort=EventSort.ADMIN,
        )

    async def create(self, data: EventCreate, admin_id: UUID) -> Event:
        """
        Raises:
            UnknownTierError: if required_tier names no tier
        """
        values = data.model_dump()
        values["required_tier"] = parse_tier(data.required_tier).value
        values["status"] = data.status.value
        values["mode"] = data.mode.value
        values["registration_link"] = str(data.registration_link) if data.registration_link else None
        values["event_date"] = ensure_utc(data.event_date)
        values["registration_deadline"] = ensure_utc(data.registration_deadline)

        event = await self._events.add(Event(created_by=admin_id, **values))
        logger.info(f"[EVENTS] {admin_id} created {event.id} '{event.title}' ({event.status})")
        return event

    async def update(self, event_id: UUID, data: EventUpdate, admin_id: UUID) -> Event:
        event = await self._events.get_by_id(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found", operation="update", table="events")

        values = data.model_dump(exclude_unset=True)
        if "required_tier" in values and values["required_tier"] is not None:
            values["required_tier"] = parse_tier(values["required_tier"]).value
        for key in ("status", "mode"):
            if values.get(key) is not None:
                values[key] = values[key].value
        if values.get("registration_link") is not None:
            values["registration_link"] = str(values["registration_link"])
        for key in ("event_date", "registration_deadline"):
            if values.get(key) is not None:
                values[key] = ensure_utc(values[key])

        event = await self._events.update_fields(event, values)
        logger.info(f"[EVENTS] {admin_id} updated {event_id}: {sorted(values)}")
        return event

    async def delete(self, event_id: UUID, admin_id: UUID) -> None:
        if not await self._events.delete(event_id):
            raise NotFoundError(f"Event {event_id} not found", operation="delete", table="events")
        logger.info(f"[EVENTS] {admin_id} deleted {event_id}")
