"""
Tier Catalog

Static definition of subscription tiers: ordering, weekly event quotas,
manual past-event quotas and INR prices. Nothing here is persisted.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from hatch_api.infrastructure.exceptions import UnknownTierError


class Tier(str, Enum):
    """Subscription tiers, declared in rank order."""
    FREE = "free"
    EXPLORER = "explorer"
    PROFESSIONAL = "professional"


# Names used by earlier iterations of the product. Accepted on input only.
TIER_ALIASES: Dict[str, Tier] = {
    "basic_99": Tier.EXPLORER,
    "explorer_99": Tier.EXPLORER,
    "premium_149": Tier.PROFESSIONAL,
    "professional_149": Tier.PROFESSIONAL,
    "professional_199": Tier.PROFESSIONAL,
}

UNLIMITED = -1


class TierInfo(BaseModel):
    """Catalog entry for a single tier."""
    tier: Tier
    display_name: str
    rank: int
    weekly_quota: int
    manual_past_event_quota: int  # UNLIMITED (-1) means no cap
    monthly_price: int  # INR
    annual_price: int  # INR
    features: List[str]

    @property
    def annual_savings(self) -> int:
        """Saving of the annual plan against twelve monthly payments."""
        return self.monthly_price * 12 - self.annual_price

    @property
    def has_unlimited_past_events(self) -> bool:
        return self.manual_past_event_quota == UNLIMITED


TIER_CATALOG: Dict[Tier, TierInfo] = {
    Tier.FREE: TierInfo(
        tier=Tier.FREE,
        display_name="Free",
        rank=0,
        weekly_quota=5,
        manual_past_event_quota=2,
        monthly_price=0,
        annual_price=0,
        features=[
            "5 curated events per week",
            "Create public profile",
            "Add 2 past events manually",
        ],
    ),
    Tier.EXPLORER: TierInfo(
        tier=Tier.EXPLORER,
        display_name="Explorer",
        rank=1,
        weekly_quota=10,
        manual_past_event_quota=UNLIMITED,
        monthly_price=99,
        annual_price=999,
        features=[
            "10 curated events per week",
            "Everything in Free",
            "Add unlimited past events",
            "Explorer-only events",
        ],
    ),
    Tier.PROFESSIONAL: TierInfo(
        tier=Tier.PROFESSIONAL,
        display_name="Professional",
        rank=2,
        weekly_quota=15,
        manual_past_event_quota=UNLIMITED,
        monthly_price=149,
        annual_price=1499,
        features=[
            "15 curated events per week",
            "Everything in Explorer",
            "Professional-only events",
            "Automatic attendance tracking",
        ],
    ),
}


def parse_tier(value: Any) -> Tier:
    """
    Resolve a tier identifier, accepting legacy aliases.

    Raises:
        UnknownTierError: if the value names no tier
    """
    if isinstance(value, Tier):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        try:
            return Tier(key)
        except ValueError:
            alias = TIER_ALIASES.get(key)
            if alias is not None:
                return alias
    raise UnknownTierError(value)


def get_tier_info(tier: Any) -> TierInfo:
    """Catalog entry for a tier. Raises UnknownTierError for unknown tiers."""
    return TIER_CATALOG[parse_tier(tier)]


def tier_rank(tier: Any) -> int:
    """
    Rank of a tier for hierarchy checks.

    Unknown or missing tiers rank as free (0) so a bad value never grants
    more access than the lowest tier.
    """
    try:
        return get_tier_info(tier).rank
    except UnknownTierError:
        return TIER_CATALOG[Tier.FREE].rank


def tiers_by_rank() -> List[Tier]:
    return sorted(TIER_CATALOG, key=lambda t: TIER_CATALOG[t].rank)


def next_tier(tier: Any) -> Optional[Tier]:
    """The tier directly above ``tier``, or None at the top."""
    rank = tier_rank(tier)
    for candidate in tiers_by_rank():
        if TIER_CATALOG[candidate].rank > rank:
            return candidate
    return None


def list_pricing() -> List[TierInfo]:
    """All tiers in rank order (pricing page)."""
    return [TIER_CATALOG[t] for t in tiers_by_rank()]
