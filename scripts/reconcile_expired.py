#!/usr/bin/env python3
"""
Subscription Expiry Job

Downgrades every lapsed paid subscription to free and reports how many
expire within the warning window. Safe to run as often as you like.

Usage:
    python -m scripts.reconcile_expired
    python -m scripts.reconcile_expired --within-days 3
"""

import asyncio
import argparse
import logging

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hatch_api.config.settings import settings
from hatch_api.domain.timeutils import utcnow
from hatch_api.infrastructure.db.database import close_db, get_session_context
from hatch_api.infrastructure.services.subscription_service import SubscriptionService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def reconcile(within_days: int) -> dict:
    now = utcnow()
    async with get_session_context() as session:
        service = SubscriptionService(session)
        downgraded = await service.reconcile_expired(now)
        expiring = await service.expiring_soon(within_days=within_days, now=now)

    for profile in expiring:
        logger.info(
            f"Expiring soon: {profile.id} ({profile.subscription_tier}) "
            f"at {profile.subscription_expires_at}"
        )
    return {"downgraded": downgraded, "expiring_soon": len(expiring)}


async def main():
    parser = argparse.ArgumentParser(description="Downgrade expired subscriptions")
    parser.add_argument(
        "--within-days",
        type=int,
        default=settings.expiring_soon_days,
        help="Warning window for expiring subscriptions",
    )
    args = parser.parse_args()

    try:
        stats = await reconcile(args.within_days)
        logger.info(f"Done: {stats}")
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
