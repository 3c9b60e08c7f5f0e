"""
Entitlement Evaluator

Pure functions deciding which event tiers a subscriber may see and
register for. A higher rank always includes everything below it.
"""

from typing import Any, Optional, Set

from hatch_api.domain.tiers import Tier, TIER_CATALOG, tier_rank


def is_accessible(event_tier: Any, user_tier: Any) -> bool:
    """True iff the user's tier ranks at or above the event's required tier."""
    return tier_rank(user_tier) >= tier_rank(event_tier)


def allowed_tiers(user_tier: Any) -> Set[Tier]:
    """Every tier whose events a subscriber of ``user_tier`` may see."""
    rank = tier_rank(user_tier)
    return {tier for tier, info in TIER_CATALOG.items() if info.rank <= rank}


def upgrade_needed(event_tier: Any, user_tier: Any) -> Optional[Tier]:
    """The tier the user must reach for this event, or None if accessible."""
    if is_accessible(event_tier, user_tier):
        return None
    rank = tier_rank(event_tier)
    for tier, info in TIER_CATALOG.items():
        if info.rank == rank:
            return tier
    return None
