"""
EventRegistration Repository for Hatch

Registrations and attendance outcomes. Every write that can race relies on
the (user_id, event_id) unique constraint or on a status re-check in the
UPDATE's WHERE clause.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hatch_api.domain.attendance import AttendanceSource, AttendanceStatus
from hatch_api.infrastructure.db.models.event import Event
from hatch_api.infrastructure.db.models.registration import EventRegistration
from hatch_api.infrastructure.db.repositories.base_repository import BaseRepository


class RegistrationRepository(BaseRepository[EventRegistration]):

    def __init__(self, session: AsyncSession):
        super().__init__(EventRegistration, session)

    async def get_for_user(self, user_id: UUID, event_id: UUID) -> Optional[EventRegistration]:
        stmt = select(EventRegistration).where(
            EventRegistration.user_id == user_id,
            EventRegistration.event_id == event_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def insert_or_get(
        self,
        user_id: UUID,
        event_id: UUID,
        status: AttendanceStatus = AttendanceStatus.REGISTERED,
        source: AttendanceSource = AttendanceSource.SELF_REPORTED,
        confirmed_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[EventRegistration, bool]:
        """
        Insert a registration, or return the row that already exists.

        Returns:
            Tuple of (EventRegistration, was_created)
        """
        registration = EventRegistration(
            user_id=user_id,
            event_id=event_id,
            status=status.value,
            source=source.value,
            confirmed_at=confirmed_at,
        )
        if now is not None:
            registration.created_at = now
            registration.updated_at = now
        if await self.add_or_ignore(registration):
            return registration, True

        existing = await self.get_for_user(user_id, event_id)
        return existing, False

    async def confirm(
        self,
        registration_id: UUID,
        status: AttendanceStatus,
        now: datetime,
    ) -> bool:
        """
        Record an outcome on a row still in ``registered``. The row keeps
        the source it was created with.

        Returns:
            True if the row changed, False if it was already confirmed
        """
        stmt = (
            update(EventRegistration)
            .where(
                EventRegistration.id == registration_id,
                EventRegistration.status == AttendanceStatus.REGISTERED.value,
            )
            .values(
                status=status.value,
                confirmed_at=now,
                updated_at=now,
            )
            .returning(EventRegistration.id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def mark_event_attended(self, event_id: UUID, now: datetime) -> List[UUID]:
        """
        Auto-mark every still-registered user of an event as attended.

        Rows the user already confirmed are left alone.

        Returns:
            Ids of the users whose row changed
        """
        stmt = (
            update(EventRegistration)
            .where(
                EventRegistration.event_id == event_id,
                EventRegistration.status == AttendanceStatus.REGISTERED.value,
            )
            .values(
                status=AttendanceStatus.ATTENDED.value,
                source=AttendanceSource.AUTO.value,
                confirmed_at=now,
                updated_at=now,
            )
            .returning(EventRegistration.user_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # =========================================================================
    # Counters
    # =========================================================================

    async def count_registered_since(self, user_id: UUID, since: datetime) -> int:
        """Registrations the user made since ``since`` (manual past events excluded)."""
        stmt = select(func.count()).select_from(EventRegistration).where(
            EventRegistration.user_id == user_id,
            EventRegistration.created_at >= since,
            EventRegistration.source != AttendanceSource.MANUAL.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def count_manual(self, user_id: UUID) -> int:
        stmt = select(func.count()).select_from(EventRegistration).where(
            EventRegistration.user_id == user_id,
            EventRegistration.source == AttendanceSource.MANUAL.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    # =========================================================================
    # Listings (joined with events)
    # =========================================================================

    async def list_pending(self, user_id: UUID, now: datetime) -> List[Tuple[EventRegistration, Event]]:
        """Registered rows whose event has already taken place."""
        stmt = (
            select(EventRegistration, Event)
            .join(Event, Event.id == EventRegistration.event_id)
            .where(
                EventRegistration.user_id == user_id,
                EventRegistration.status == AttendanceStatus.REGISTERED.value,
                Event.event_date <= now,
            )
            .order_by(Event.event_date.desc())
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def list_history(
        self,
        user_id: UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Tuple[EventRegistration, Event]]:
        stmt = (
            select(EventRegistration, Event)
            .join(Event, Event.id == EventRegistration.event_id)
            .where(EventRegistration.user_id == user_id)
            .order_by(Event.event_date.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]
