"""
UserProfile SQLModel

A subscriber's profile. The primary key is the Supabase auth user id, so
there is exactly one profile per account. Subscription state lives here:
tier, expiry and the audit fields of the last tier change.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from hatch_api.domain.tiers import Tier
from hatch_api.infrastructure.db.models.base import TimestampMixin


ROLE_USER = "user"
ROLE_ADMIN = "admin"


class UserProfileBase(SQLModel):
    """Fields a user may edit themselves."""

    username: Optional[str] = Field(
        default=None,
        max_length=50,
        index=True,
        description="Public handle"
    )
    full_name: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Display name"
    )
    bio: Optional[str] = Field(default=None, max_length=1000)
    skills: Optional[List[str]] = Field(
        default=None,
        sa_column=Column(JSON),
        description="Free-form skill tags"
    )


class UserProfile(UserProfileBase, TimestampMixin, table=True):
    """
    user_profiles table.

    Invariant: subscription_tier == free implies subscription_expires_at is null.
    """

    __tablename__ = "user_profiles"

    id: UUID = Field(
        primary_key=True,
        nullable=False,
        description="Supabase auth user id"
    )
    email: Optional[str] = Field(default=None, max_length=320, index=True)
    role: str = Field(default=ROLE_USER, max_length=20)

    subscription_tier: str = Field(
        default=Tier.FREE.value,
        max_length=32,
        index=True,
    )
    subscription_expires_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
    tier_upgraded_by: Optional[UUID] = Field(default=None)
    tier_upgraded_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
    auto_downgrade_enabled: bool = Field(default=True)

    total_events_attended: int = Field(default=0, ge=0)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class UserProfileUpdate(SQLModel):
    """Partial self-service update. Subscription fields are not editable here."""

    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    full_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=1000)
    skills: Optional[List[str]] = None


class UserProfileRead(UserProfileBase):
    """Profile as returned by the API."""

    id: UUID
    email: Optional[str] = None
    role: str
    subscription_tier: str
    subscription_expires_at: Optional[datetime] = None
    tier_upgraded_by: Optional[UUID] = None
    tier_upgraded_at: Optional[datetime] = None
    auto_downgrade_enabled: bool
    total_events_attended: int
    created_at: datetime
    updated_at: datetime
