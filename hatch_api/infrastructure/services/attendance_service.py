"""
Attendance Service

Event registration with weekly quotas, attendance self-reports, manual
past-event entries and the post-event auto-marking job.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hatch_api.config.settings import settings
from hatch_api.domain.attendance import (
    AttendanceResult,
    AttendanceSource,
    AttendanceStats,
    AttendanceStatus,
    AutoAttendanceResult,
    CONFIRMED_STATUSES,
    RegistrationResponse,
    RegistrationResult,
    can_add_past_event,
    can_register_more,
    effective_status,
    stats_for,
    upgrade_for_quota,
    weekly_remaining,
)
from hatch_api.domain.entitlements import is_accessible, upgrade_needed
from hatch_api.domain.events import EventStatus
from hatch_api.domain.tiers import get_tier_info, tier_rank, tiers_by_rank
from hatch_api.domain.timeutils import ensure_utc, start_of_week, utcnow
from hatch_api.infrastructure.db.models.event import Event
from hatch_api.infrastructure.db.models.registration import EventRegistration
from hatch_api.infrastructure.db.models.user_profile import UserProfile
from hatch_api.infrastructure.db.repositories.event_repository import EventRepository
from hatch_api.infrastructure.db.repositories.registration_repository import (
    RegistrationRepository,
)
from hatch_api.infrastructure.db.repositories.user_profile_repository import (
    UserProfileRepository,
)
from hatch_api.infrastructure.exceptions import (
    ForbiddenError,
    HatchError,
    NotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)


class AttendanceService:
    """
    Registration and attendance tracking.

    Duplicate writes converge on the (user_id, event_id) unique constraint;
    outcome changes re-check the stored status in their UPDATE.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._events = EventRepository(session)
        self._registrations = RegistrationRepository(session)
        self._profiles = UserProfileRepository(session)

    # =========================================================================
    # Registration
    # =========================================================================

    async def register(
        self,
        profile: UserProfile,
        event_id: UUID,
        now: Optional[datetime] = None,
    ) -> RegistrationResult:
        """
        Register the user for an event.

        Registering twice is a success that changes nothing. Running out of
        weekly quota is reported in the result, not raised.

        Raises:
            NotFoundError: event missing or not published
            ForbiddenError: event above the user's tier
        """
        now = ensure_utc(now) if now else utcnow()
        event = await self._published_event(event_id)
        tier = _profile_tier(profile)
        info = get_tier_info(tier)

        if not is_accessible(event.required_tier, tier):
            needed = upgrade_needed(event.required_tier, tier)
            raise ForbiddenError(
                f"This event requires the {needed.value} tier",
                details={"event_id": str(event_id), "upgrade_needed": needed.value},
            )

        used = await self._registrations.count_registered_since(profile.id, start_of_week(now))

        if await self._registrations.get_for_user(profile.id, event_id):
            return self._result(event_id, info, used, True, True, "Already registered for this event")

        if not can_register_more(tier, used):
            logger.info(f"[ATTENDANCE] {profile.id} hit weekly quota ({used}/{info.weekly_quota})")
            return self._result(
                event_id,
                info,
                used,
                success=False,
                already=False,
                message=f"Weekly limit of {info.weekly_quota} events reached",
                upgrade=upgrade_for_quota(tier),
            )

        _, created = await self._registrations.insert_or_get(profile.id, event_id, now=now)
        if not created:
            return self._result(event_id, info, used, True, True, "Already registered for this event")

        logger.info(f"[ATTENDANCE] {profile.id} registered for {event_id}")
        return self._result(event_id, info, used + 1, True, False, "Registered")

    @staticmethod
    def _result(event_id, info, used, success, already, message, upgrade=None) -> RegistrationResult:
        return RegistrationResult(
            success=success,
            already_registered=already,
            message=message,
            event_id=event_id,
            current_tier=info.tier,
            events_registered_this_week=used,
            weekly_quota=info.weekly_quota,
            events_remaining=weekly_remaining(info.tier, used),
            upgrade_needed=upgrade,
        )

    # =========================================================================
    # Confirmation
    # =========================================================================

    async def confirm_attendance(
        self,
        profile: UserProfile,
        event_id: UUID,
        attended: bool,
        now: Optional[datetime] = None,
    ) -> AttendanceResult:
        """
        Record whether the user went to an event that has already happened.

        A confirmed row is never overwritten and a registered row is
        updated in place, keeping its source. Without a registration the
        outcome is recorded as a manual entry, so the event must be within
        the user's tier and the manual past-event quota must allow it.
        ``total_events_attended`` grows by one only when this call is the
        one that recorded "attended".

        Raises:
            NotFoundError: event missing or not published
            ValidationError: event has not happened yet
            ForbiddenError: event above the user's tier, or manual quota exhausted
        """
        now = ensure_utc(now) if now else utcnow()
        event = await self._published_event(event_id)
        if ensure_utc(event.event_date) > now:
            raise ValidationError(
                "Attendance can only be recorded for past events",
                details={"event_id": str(event_id)},
            )

        target = AttendanceStatus.ATTENDED if attended else AttendanceStatus.NOT_ATTENDED
        registration = await self._registrations.get_for_user(profile.id, event_id)
        if registration is None:
            await self._check_manual_entry(profile, event)
            registration, changed = await self._insert_manual(profile.id, event_id, target, now)
        else:
            changed = await self._record_outcome(registration, target, now)

        if not changed:
            return AttendanceResult(
                event_id=event_id,
                status=AttendanceStatus(registration.status),
                already_confirmed=True,
                message="Attendance already recorded",
            )

        if attended:
            await self._profiles.increment_attended([profile.id])
        logger.info(
            f"[ATTENDANCE] {profile.id} confirmed {target.value} for {event_id} ({registration.source})"
        )
        return AttendanceResult(event_id=event_id, status=target, message="Attendance recorded")

    async def _check_manual_entry(self, profile: UserProfile, event: Event) -> None:
        tier = _profile_tier(profile)
        if not is_accessible(event.required_tier, tier):
            needed = upgrade_needed(event.required_tier, tier)
            raise ForbiddenError(
                f"This event requires the {needed.value} tier",
                details={"event_id": str(event.id), "upgrade_needed": needed.value},
            )

        used = await self._registrations.count_manual(profile.id)
        if not can_add_past_event(tier, used):
            quota = get_tier_info(tier).manual_past_event_quota
            upgrade = upgrade_for_quota(tier)
            raise ForbiddenError(
                f"Manual past event limit of {quota} reached",
                details={
                    "manual_past_events_added": used,
                    "manual_past_event_quota": quota,
                    "upgrade_needed": upgrade.value if upgrade else None,
                },
            )

    async def _insert_manual(
        self,
        user_id: UUID,
        event_id: UUID,
        target: AttendanceStatus,
        now: datetime,
    ) -> Tuple[EventRegistration, bool]:
        registration, created = await self._registrations.insert_or_get(
            user_id,
            event_id,
            status=target,
            source=AttendanceSource.MANUAL,
            confirmed_at=now,
            now=now,
        )
        if created:
            return registration, True
        # Lost a race with a concurrent write for the same event
        return registration, await self._record_outcome(registration, target, now)

    async def _record_outcome(
        self,
        registration: EventRegistration,
        target: AttendanceStatus,
        now: datetime,
    ) -> bool:
        if AttendanceStatus(registration.status) in CONFIRMED_STATUSES:
            return False
        changed = await self._registrations.confirm(registration.id, target, now)
        await self._session.refresh(registration)
        return changed

    async def add_past_event(
        self,
        profile: UserProfile,
        event_id: UUID,
        now: Optional[datetime] = None,
    ) -> AttendanceResult:
        """
        Add an event the user already attended to their record.

        A new entry counts against the tier's lifetime manual quota; an
        existing registration is confirmed and keeps its source.

        Raises:
            NotFoundError: event missing or not published
            ValidationError: event has not happened yet
            ForbiddenError: event above the user's tier, or manual quota exhausted
        """
        return await self.confirm_attendance(profile, event_id, attended=True, now=now)

    # =========================================================================
    # Auto-marking job
    # =========================================================================

    async def auto_mark_attendance(self, now: Optional[datetime] = None) -> AutoAttendanceResult:
        """
        Mark registered users of finished events as attended.

        Each event is claimed once through ``attendance_processed_at``; a
        failure on one event is logged and rolled back to its savepoint and
        the run moves on.
        """
        now = ensure_utc(now) if now else utcnow()
        cutoff = now - timedelta(minutes=settings.auto_attendance_grace_minutes)
        result = AutoAttendanceResult()

        for event in await self._events.list_due_for_attendance(cutoff):
            event_id = event.id
            try:
                async with self._session.begin_nested():
                    if not await self._events.claim_for_attendance(event_id, now):
                        continue
                    user_ids = await self._registrations.mark_event_attended(event_id, now)
                    await self._profiles.increment_attended(user_ids)
            except (HatchError, SQLAlchemyError):
                logger.exception(f"[ATTENDANCE] Auto-marking failed for event {event_id}")
                result.failed += 1
                continue

            result.events_processed += 1
            result.users_marked += len(user_ids)
            logger.info(f"[ATTENDANCE] Auto-marked {len(user_ids)} user(s) for event {event_id}")

        logger.info(
            f"[ATTENDANCE] Auto-attendance run: {result.events_processed} event(s), "
            f"{result.users_marked} user(s), {result.failed} failure(s)"
        )
        return result

    # =========================================================================
    # Reads
    # =========================================================================

    async def pending_confirmations(
        self,
        profile: UserProfile,
        now: Optional[datetime] = None,
    ) -> List[RegistrationResponse]:
        """Past events the user registered for but has not confirmed."""
        now = ensure_utc(now) if now else utcnow()
        rows = await self._registrations.list_pending(profile.id, now)
        return [_to_response(reg, event, now) for reg, event in rows]

    async def history(
        self,
        profile: UserProfile,
        now: Optional[datetime] = None,
    ) -> List[RegistrationResponse]:
        now = ensure_utc(now) if now else utcnow()
        rows = await self._registrations.list_history(profile.id)
        return [_to_response(reg, event, now) for reg, event in rows]

    async def stats(self, profile: UserProfile, now: Optional[datetime] = None) -> AttendanceStats:
        now = ensure_utc(now) if now else utcnow()
        used = await self._registrations.count_registered_since(profile.id, start_of_week(now))
        manual = await self._registrations.count_manual(profile.id)
        return stats_for(
            profile.id,
            _profile_tier(profile),
            registered_this_week=used,
            total_attended=profile.total_events_attended,
            manual_added=manual,
        )

    async def _published_event(self, event_id: UUID) -> Event:
        event = await self._events.get_by_id(event_id)
        if event is None or event.status != EventStatus.PUBLISHED.value:
            raise NotFoundError(f"Event {event_id} not found", operation="get", table="events")
        return event


def _profile_tier(profile: UserProfile):
    """Stored tier; unknown values rank as free."""
    rank = tier_rank(profile.subscription_tier)
    return tiers_by_rank()[rank]


def _to_response(registration: EventRegistration, event: Event, now: datetime) -> RegistrationResponse:
    return RegistrationResponse(
        id=registration.id,
        event_id=registration.event_id,
        status=effective_status(registration.status, event.event_date, now),
        source=AttendanceSource(registration.source),
        confirmed_at=ensure_utc(registration.confirmed_at),
        created_at=ensure_utc(registration.created_at),
        event_title=event.title,
        event_date=ensure_utc(event.event_date),
    )
