"""
UserProfile Repository for Hatch

Profile lookups plus the subscription writes: tier changes, the
conditional expiry reset and the expiring-soon queries used by admins.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hatch_api.domain.tiers import Tier
from hatch_api.domain.timeutils import utcnow
from hatch_api.infrastructure.db.models.user_profile import (
    ROLE_USER,
    UserProfile,
    UserProfileUpdate,
)
from hatch_api.infrastructure.db.repositories.base_repository import BaseRepository


class UserProfileRepository(BaseRepository[UserProfile]):
    """
    Repository for UserProfile rows.

    The profile id is the auth user id, so ``get_by_id`` is the lookup by
    authenticated user.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(UserProfile, session)

    async def get_or_create(
        self,
        user_id: UUID,
        email: Optional[str] = None,
        role: str = ROLE_USER,
    ) -> Tuple[UserProfile, bool]:
        """
        Get the user's profile, creating a free-tier one on first access.

        A concurrent creator (another request, a signup trigger) may win the
        insert; the loser falls back to the existing row.

        Returns:
            Tuple of (UserProfile, was_created)
        """
        existing = await self.get_by_id(user_id)
        if existing:
            return existing, False

        now = utcnow()
        profile = UserProfile(
            id=user_id,
            email=email,
            role=role,
            created_at=now,
            updated_at=now,
        )
        if await self.add_or_ignore(profile):
            return profile, True

        existing = await self.get_by_id(user_id)
        return existing, False

    async def update_self(
        self,
        profile: UserProfile,
        data: UserProfileUpdate,
    ) -> UserProfile:
        """Apply a user's own partial edit."""
        return await self.update_fields(profile, data.model_dump(exclude_unset=True))

    async def username_taken(self, username: str, exclude_id: UUID) -> bool:
        stmt = select(func.count()).select_from(UserProfile).where(
            func.lower(UserProfile.username) == username.lower(),
            UserProfile.id != exclude_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    # =========================================================================
    # Subscription writes
    # =========================================================================

    async def set_subscription(
        self,
        profile: UserProfile,
        tier: Tier,
        expires_at: Optional[datetime],
        upgraded_by: Optional[UUID],
        upgraded_at: datetime,
    ) -> UserProfile:
        return await self.update_fields(
            profile,
            {
                "subscription_tier": tier.value,
                "subscription_expires_at": expires_at,
                "tier_upgraded_by": upgraded_by,
                "tier_upgraded_at": upgraded_at,
            },
        )

    async def reset_expired(self, now: datetime) -> int:
        """
        Downgrade every lapsed paid profile to free.

        The WHERE clause re-checks the expiry, so overlapping runs and
        re-runs converge without double work.

        Returns:
            Number of profiles changed
        """
        stmt = (
            update(UserProfile)
            .where(
                UserProfile.subscription_tier != Tier.FREE.value,
                UserProfile.subscription_expires_at.is_not(None),
                UserProfile.subscription_expires_at < now,
                UserProfile.auto_downgrade_enabled.is_(True),
            )
            .values(
                subscription_tier=Tier.FREE.value,
                subscription_expires_at=None,
                updated_at=now,
            )
            .returning(UserProfile.id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return len(result.all())

    async def increment_attended(self, user_ids: List[UUID], by: int = 1) -> int:
        if not user_ids:
            return 0
        stmt = (
            update(UserProfile)
            .where(UserProfile.id.in_(user_ids))
            .values(
                total_events_attended=UserProfile.total_events_attended + by,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    # =========================================================================
    # Admin queries
    # =========================================================================

    async def list_profiles(
        self,
        tier: Optional[Tier] = None,
        expiring_before: Optional[datetime] = None,
        now: Optional[datetime] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[UserProfile]:
        """
        Profiles newest first, optionally filtered.

        Args:
            tier: only this tier
            expiring_before: only paid profiles whose expiry is in (now, expiring_before]
            now: reference time for the expiring filter
            search: substring of username, full name or email
        """
        stmt = select(UserProfile)
        if tier is not None:
            stmt = stmt.where(UserProfile.subscription_tier == tier.value)
        if expiring_before is not None:
            stmt = stmt.where(
                UserProfile.subscription_tier != Tier.FREE.value,
                UserProfile.subscription_expires_at.is_not(None),
                UserProfile.subscription_expires_at > (now or utcnow()),
                UserProfile.subscription_expires_at <= expiring_before,
            )
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    UserProfile.username.ilike(pattern),
                    UserProfile.full_name.ilike(pattern),
                    UserProfile.email.ilike(pattern),
                )
            )
        stmt = stmt.order_by(UserProfile.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_expiring(self, now: datetime, within_days: int) -> List[UserProfile]:
        return await self.list_profiles(
            expiring_before=now + timedelta(days=within_days),
            now=now,
            limit=10_000,
        )

    async def count_by_tier(self) -> Dict[str, int]:
        stmt = select(UserProfile.subscription_tier, func.count()).group_by(
            UserProfile.subscription_tier
        )
        result = await self.session.execute(stmt)
        return {tier: count for tier, count in result.all()}
