#!/usr/bin/env python3
"""
Auto-Attendance Job

Marks users still registered for finished events as attended. Each event
is processed once; re-running is a no-op.

Usage:
    python -m scripts.auto_mark_attendance
"""

import asyncio
import logging

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from hatch_api.infrastructure.db.database import close_db, get_session_context
from hatch_api.infrastructure.services.attendance_service import AttendanceService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    try:
        async with get_session_context() as session:
            result = await AttendanceService(session).auto_mark_attendance()
        logger.info(
            f"Processed {result.events_processed} event(s), "
            f"marked {result.users_marked} user(s), {result.failed} failure(s)"
        )
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
