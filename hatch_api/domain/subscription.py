"""
Subscription Domain Models

Business rules and DTOs for the subscription lifecycle: how long a payment
buys, when a subscription has expired, and what the status endpoint reports.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from hatch_api.domain.tiers import Tier, get_tier_info, parse_tier
from hatch_api.domain.timeutils import ensure_utc


MONTHLY_DURATION_DAYS = 30
ANNUAL_DURATION_DAYS = 365


# =============================================================================
# Lifecycle Rules
# =============================================================================

def compute_duration(tier: Any, amount_paid: float) -> int:
    """
    Days of subscription bought by ``amount_paid`` for ``tier``.

    Any amount at or above the tier's annual price buys a year (overpayment
    included); anything less buys a month. Free never expires.

    Raises:
        UnknownTierError: if the tier is not in the catalog
    """
    info = get_tier_info(tier)
    if info.tier == Tier.FREE:
        return 0
    if amount_paid >= info.annual_price:
        return ANNUAL_DURATION_DAYS
    return MONTHLY_DURATION_DAYS


def compute_expiry(tier: Any, duration_days: int, now: datetime) -> Optional[datetime]:
    """Expiry timestamp for an upgrade; None for free or non-positive durations."""
    if parse_tier(tier) == Tier.FREE or duration_days <= 0:
        return None
    return ensure_utc(now) + timedelta(days=duration_days)


def check_expiration(expires_at: Optional[datetime], now: datetime) -> bool:
    """True if the subscription has an expiry and it lies in the past."""
    if expires_at is None:
        return False
    return ensure_utc(expires_at) < ensure_utc(now)


def days_remaining(expires_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days left (rounded up), 0 once expired, None without expiry."""
    if expires_at is None:
        return None
    seconds = (ensure_utc(expires_at) - ensure_utc(now)).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 86400)


def is_expiring_soon(expires_at: Optional[datetime], now: datetime, within_days: int) -> bool:
    """Expiry falls in (now, now + within_days]."""
    if expires_at is None:
        return False
    expires_at = ensure_utc(expires_at)
    now = ensure_utc(now)
    return now < expires_at <= now + timedelta(days=within_days)


# =============================================================================
# Request/Response DTOs
# =============================================================================

class TierOverrideRequest(BaseModel):
    """Admin request to set a user's tier directly."""
    tier: str = Field(..., description="Target tier (canonical or legacy name)")
    duration_days: int = Field(
        default=0,
        ge=0,
        le=3650,
        description="Subscription length; 0 means no expiry",
    )


class SubscriptionStatusResponse(BaseModel):
    """Response DTO for subscription status."""
    tier: Tier
    display_name: str
    expires_at: Optional[datetime] = None
    days_remaining: Optional[int] = None
    is_expired: bool
    is_expiring_soon: bool = False
    is_paid: bool
    weekly_quota: int
    manual_past_event_quota: int
    auto_downgrade_enabled: bool = True
    upgraded_by: Optional[UUID] = None
    upgraded_at: Optional[datetime] = None


class PricingTier(BaseModel):
    """Pricing information for a single tier."""
    tier: Tier
    name: str
    rank: int
    monthly_price: int
    annual_price: int
    annual_savings: int
    weekly_quota: int
    manual_past_event_quota: int
    features: list[str]
    popular: bool = False


class PricingResponse(BaseModel):
    """Response DTO for pricing information."""
    currency: str = "INR"
    tiers: list[PricingTier]
