"""
EventRegistration SQLModel

One row per (user, event): the registration and, later, the attendance
outcome. The unique constraint is what makes registration idempotent.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field

from hatch_api.domain.attendance import AttendanceSource, AttendanceStatus
from hatch_api.infrastructure.db.models.base import BaseModel


class EventRegistration(BaseModel, table=True):
    """event_registrations table."""

    __tablename__ = "event_registrations"
    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_event_registrations_user_event"),
    )

    user_id: UUID = Field(..., foreign_key="user_profiles.id", ondelete="CASCADE", index=True)
    event_id: UUID = Field(..., foreign_key="events.id", ondelete="CASCADE", index=True)

    # registered | attended | not_attended ("pending" is derived, never stored)
    status: str = Field(default=AttendanceStatus.REGISTERED.value, max_length=20, index=True)
    source: str = Field(default=AttendanceSource.SELF_REPORTED.value, max_length=20)
    confirmed_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
