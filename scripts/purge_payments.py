#!/usr/bin/env python3
"""
Payment Retention Purge

Deletes approved and rejected payment submissions older than the
retention window. Pending submissions are never touched.

Usage:
    python -m scripts.purge_payments              # PAYMENT_RETENTION_DAYS
    python -m scripts.purge_payments --days 7
    python -m scripts.purge_payments --dry-run    # only count
"""

import asyncio
import argparse
import logging

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hatch_api.config.settings import settings
from hatch_api.infrastructure.db.database import close_db, get_session_context
from hatch_api.infrastructure.services.payment_service import PaymentService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    parser = argparse.ArgumentParser(description="Purge reviewed payment submissions")
    parser.add_argument("--days", type=int, default=settings.payment_retention_days)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    if args.days < 1:
        parser.error("--days must be at least 1")

    try:
        async with get_session_context() as session:
            service = PaymentService(session)
            if args.dry_run:
                count = await service.count_purgeable(retention_days=args.days)
                logger.info(f"{count} submission(s) older than {args.days} days would be deleted")
                return
            result = await service.purge_terminal(retention_days=args.days, triggered_by="script")
        logger.info(f"Deleted {result.records_deleted} submission(s) created before {result.cutoff}")
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
