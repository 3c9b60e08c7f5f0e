"""
Event SQLModel

Curated events. Created and edited by admins only; visibility to
subscribers is decided by status and required_tier.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import JSON, Column, DateTime, Text
from sqlmodel import Field

from hatch_api.domain.events import EventMode, EventStatus
from hatch_api.domain.tiers import Tier
from hatch_api.infrastructure.db.models.base import BaseModel


class Event(BaseModel, table=True):
    """events table."""

    __tablename__ = "events"

    title: str = Field(..., max_length=200)
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    registration_link: Optional[str] = Field(default=None, max_length=2048)

    required_tier: str = Field(default=Tier.FREE.value, max_length=32, index=True)
    status: str = Field(default=EventStatus.DRAFT.value, max_length=20, index=True)

    event_date: datetime = Field(
        ...,
        sa_type=DateTime(timezone=True),
        index=True,
    )
    registration_deadline: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )

    organizer: Optional[str] = Field(default=None, max_length=200)
    category: Optional[str] = Field(default=None, max_length=100)
    mode: str = Field(default=EventMode.ONLINE.value, max_length=20)
    location: Optional[str] = Field(default=None, max_length=300)
    tags: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))

    created_by: Optional[UUID] = Field(default=None)

    # Set once when auto-attendance has claimed this event.
    attendance_processed_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
