"""
Attendance Routes

Read views of the user's registrations: pending confirmations, weekly
usage and full history.
"""

from typing import List

from fastapi import APIRouter

from hatch_api.api.dependencies import AttendanceServiceDep, CurrentProfile
from hatch_api.domain.attendance import AttendanceStats, RegistrationResponse


router = APIRouter()


@router.get("/attendance/pending", response_model=List[RegistrationResponse])
async def get_pending_confirmations(profile: CurrentProfile, service: AttendanceServiceDep):
    """Past events the user registered for and has not confirmed yet."""
    return await service.pending_confirmations(profile)


@router.get("/attendance/stats", response_model=AttendanceStats)
async def get_attendance_stats(profile: CurrentProfile, service: AttendanceServiceDep):
    return await service.stats(profile)


@router.get("/attendance/history", response_model=List[RegistrationResponse])
async def get_attendance_history(profile: CurrentProfile, service: AttendanceServiceDep):
    return await service.history(profile)
