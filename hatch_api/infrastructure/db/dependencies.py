"""
Dependency Injection Providers for Hatch

FastAPI dependencies for the request session and the services built on it.
Every provider in one request shares the same session, so a service call
and the profile lookup that preceded it commit together.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hatch_api.infrastructure.db.database import get_session
from hatch_api.infrastructure.db.repositories import UserProfileRepository
from hatch_api.infrastructure.services.attendance_service import AttendanceService
from hatch_api.infrastructure.services.event_service import EventService
from hatch_api.infrastructure.services.payment_service import PaymentService
from hatch_api.infrastructure.services.subscription_service import SubscriptionService


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_user_profile_repository(session: SessionDep) -> UserProfileRepository:
    return UserProfileRepository(session)


def get_subscription_service(session: SessionDep) -> SubscriptionService:
    return SubscriptionService(session)


def get_payment_service(session: SessionDep) -> PaymentService:
    return PaymentService(session)


def get_event_service(session: SessionDep) -> EventService:
    return EventService(session)


def get_attendance_service(session: SessionDep) -> AttendanceService:
    return AttendanceService(session)


UserProfileRepoDep = Annotated[UserProfileRepository, Depends(get_user_profile_repository)]
SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
EventServiceDep = Annotated[EventService, Depends(get_event_service)]
AttendanceServiceDep = Annotated[AttendanceService, Depends(get_attendance_service)]
