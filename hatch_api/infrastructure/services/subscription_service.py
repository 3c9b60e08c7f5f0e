"""
Subscription Service

Tier changes and expiry handling for user profiles. Payment approval,
admin overrides and the expiry job all funnel through ``upgrade`` and
``reconcile_expired`` so the free-tier invariant is enforced in one place.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hatch_api.config.settings import settings
from hatch_api.domain.subscription import (
    PricingResponse,
    PricingTier,
    SubscriptionStatusResponse,
    check_expiration,
    compute_expiry,
    days_remaining,
    is_expiring_soon,
)
from hatch_api.domain.tiers import Tier, get_tier_info, list_pricing, parse_tier
from hatch_api.domain.timeutils import ensure_utc, utcnow
from hatch_api.infrastructure.db.models.user_profile import UserProfile
from hatch_api.infrastructure.db.repositories.user_profile_repository import (
    UserProfileRepository,
)
from hatch_api.infrastructure.exceptions import NotFoundError, UnknownTierError


logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Subscription lifecycle over the user_profiles table.

    Methods only flush; the caller's session decides when to commit.
    """

    def __init__(self, session: AsyncSession):
        self._profiles = UserProfileRepository(session)

    # =========================================================================
    # Upgrade / Override
    # =========================================================================

    async def upgrade(
        self,
        user_id: UUID,
        new_tier,
        duration_days: int,
        acting_admin_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> UserProfile:
        """
        Set a user's tier and expiry.

        The expiry is ``now + duration_days`` (never extended from the old
        expiry); free, or a non-positive duration, means no expiry. A call
        whose target state already holds writes nothing, so retries are safe.

        Raises:
            UnknownTierError: before any write, if the tier is invalid
            NotFoundError: if the profile does not exist
        """
        tier = parse_tier(new_tier)
        now = ensure_utc(now) if now else utcnow()

        profile = await self._profiles.get_by_id(user_id)
        if profile is None:
            raise NotFoundError(
                f"Profile {user_id} not found",
                operation="upgrade",
                table="user_profiles",
            )

        expires_at = compute_expiry(tier, duration_days, now)

        if (
            profile.subscription_tier == tier.value
            and ensure_utc(profile.subscription_expires_at) == expires_at
        ):
            logger.info(f"[SUBSCRIPTION] {user_id} already at {tier.value}, no change")
            return profile

        previous = profile.subscription_tier
        profile = await self._profiles.set_subscription(
            profile,
            tier=tier,
            expires_at=expires_at,
            upgraded_by=acting_admin_id,
            upgraded_at=now,
        )
        logger.info(
            f"[SUBSCRIPTION] {user_id}: {previous} -> {tier.value} "
            f"(expires {expires_at.isoformat() if expires_at else 'never'}, by {acting_admin_id})"
        )
        return profile

    # =========================================================================
    # Expiry
    # =========================================================================

    async def reconcile_expired(self, now: Optional[datetime] = None) -> int:
        """
        Downgrade every lapsed paid subscription to free.

        Idempotent: a second run at the same ``now`` changes nothing.

        Returns:
            Number of profiles downgraded
        """
        now = ensure_utc(now) if now else utcnow()
        changed = await self._profiles.reset_expired(now)
        if changed:
            logger.info(f"[SUBSCRIPTION] Downgraded {changed} expired subscription(s)")
        else:
            logger.debug("[SUBSCRIPTION] No expired subscriptions")
        return changed

    async def expiring_soon(
        self,
        within_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[UserProfile]:
        """Paid profiles whose expiry falls in the next ``within_days`` days."""
        now = ensure_utc(now) if now else utcnow()
        return await self._profiles.list_expiring(now, within_days or settings.expiring_soon_days)

    # =========================================================================
    # Read models
    # =========================================================================

    def status(self, profile: UserProfile, now: Optional[datetime] = None) -> SubscriptionStatusResponse:
        """Subscription page data for a profile."""
        now = ensure_utc(now) if now else utcnow()
        info = get_tier_info(_stored_tier(profile))
        expires_at = ensure_utc(profile.subscription_expires_at)
        return SubscriptionStatusResponse(
            tier=info.tier,
            display_name=info.display_name,
            expires_at=expires_at,
            days_remaining=days_remaining(expires_at, now),
            is_expired=check_expiration(expires_at, now),
            is_expiring_soon=is_expiring_soon(expires_at, now, settings.expiring_soon_days),
            is_paid=info.tier != Tier.FREE,
            weekly_quota=info.weekly_quota,
            manual_past_event_quota=info.manual_past_event_quota,
            auto_downgrade_enabled=profile.auto_downgrade_enabled,
            upgraded_by=profile.tier_upgraded_by,
            upgraded_at=ensure_utc(profile.tier_upgraded_at),
        )


def _stored_tier(profile: UserProfile) -> Tier:
    """Tier recorded on a profile; rows holding an unknown value count as free."""
    try:
        return parse_tier(profile.subscription_tier)
    except UnknownTierError:
        return Tier.FREE


def pricing() -> PricingResponse:
    """Pricing page: every tier in rank order."""
    tiers = []
    for info in list_pricing():
        tiers.append(
            PricingTier(
                tier=info.tier,
                name=info.display_name,
                rank=info.rank,
                monthly_price=info.monthly_price,
                annual_price=info.annual_price,
                annual_savings=info.annual_savings,
                weekly_quota=info.weekly_quota,
                manual_past_event_quota=info.manual_past_event_quota,
                features=info.features,
                popular=info.tier == Tier.EXPLORER,
            )
        )
    return PricingResponse(tiers=tiers)
