"""
Event Repository for Hatch

Event storage plus the once-per-event claim used by auto-attendance.
Tier and search filtering is done by the visibility filter in the domain
layer; this repository only narrows by status and date.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hatch_api.domain.events import EventStatus
from hatch_api.infrastructure.db.models.event import Event
from hatch_api.infrastructure.db.repositories.base_repository import BaseRepository


class EventRepository(BaseRepository[Event]):

    def __init__(self, session: AsyncSession):
        super().__init__(Event, session)

    async def list_candidates(
        self,
        include_drafts: bool = False,
        starting_after: Optional[datetime] = None,
    ) -> List[Event]:
        stmt = select(Event)
        if not include_drafts:
            stmt = stmt.where(Event.status == EventStatus.PUBLISHED.value)
        if starting_after is not None:
            stmt = stmt.where(Event.event_date >= starting_after)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_due_for_attendance(self, cutoff: datetime) -> List[Event]:
        """Published events held before ``cutoff`` that nobody has processed yet."""
        stmt = (
            select(Event)
            .where(
                Event.status == EventStatus.PUBLISHED.value,
                Event.event_date <= cutoff,
                Event.attendance_processed_at.is_(None),
            )
            .order_by(Event.event_date)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def claim_for_attendance(self, event_id: UUID, now: datetime) -> bool:
        """
        Mark the event as processed if nobody else has.

        Returns:
            True if this caller won the claim
        """
        stmt = (
            update(Event)
            .where(Event.id == event_id, Event.attendance_processed_at.is_(None))
            .values(attendance_processed_at=now)
            .returning(Event.id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.first() is not None
