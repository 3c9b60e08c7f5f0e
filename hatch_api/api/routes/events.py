"""
Event Routes

Browsing, registration and attendance confirmation for subscribers.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query

from hatch_api.api.dependencies import AttendanceServiceDep, CurrentProfile, EventServiceDep
from hatch_api.domain.attendance import (
    AttendanceConfirmRequest,
    AttendanceResult,
    RegistrationResult,
)
from hatch_api.domain.events import EventResponse


router = APIRouter()


# =============================================================================
# Browsing
# =============================================================================

@router.get("/events", response_model=List[EventResponse])
async def list_events(
    profile: CurrentProfile,
    service: EventServiceDep,
    search: Optional[str] = Query(None, max_length=200),
    tier: Optional[str] = Query(None, description="Only events requiring this tier"),
    upcoming: bool = Query(False, description="Only events that have not started"),
    limit: Optional[int] = Query(None, ge=1, le=500),
):
    """Published events the user's tier can access, soonest first."""
    events = await service.list_visible(
        profile.subscription_tier,
        search=search,
        tier_filter=tier,
        upcoming_only=upcoming,
        limit=limit,
    )
    return [EventResponse.model_validate(event) for event in events]


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_event(event_id: UUID, profile: CurrentProfile, service: EventServiceDep):
    event = await service.get_visible(event_id, profile.subscription_tier, is_admin=profile.is_admin)
    return EventResponse.model_validate(event)


# =============================================================================
# Registration / Attendance
# =============================================================================

@router.post("/events/{event_id}/register", response_model=RegistrationResult)
async def register_for_event(
    event_id: UUID,
    profile: CurrentProfile,
    service: AttendanceServiceDep,
):
    """
    Register for an event.

    Repeating the call is harmless. When the weekly quota is used up the
    response has ``success: false`` and the tier to upgrade to.
    """
    return await service.register(profile, event_id)


@router.post("/events/{event_id}/attendance", response_model=AttendanceResult)
async def confirm_attendance(
    event_id: UUID,
    request: AttendanceConfirmRequest,
    profile: CurrentProfile,
    service: AttendanceServiceDep,
):
    """Self-report whether the user attended. A recorded answer is kept."""
    return await service.confirm_attendance(profile, event_id, request.attended)


@router.post("/events/{event_id}/past-attendance", response_model=AttendanceResult)
async def add_past_event(
    event_id: UUID,
    profile: CurrentProfile,
    service: AttendanceServiceDep,
):
    """Add an already-held event to the user's record (tier-limited)."""
    return await service.add_past_event(profile, event_id)
