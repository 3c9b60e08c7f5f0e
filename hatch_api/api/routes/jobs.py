"""
Scheduled Job Routes

Argument-less entry points for an external scheduler (cron, Supabase
scheduled functions). Protected by the X-Admin-Key header rather than a
user session. Every job is idempotent, so retries and overlaps are safe.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hatch_api.api.dependencies import (
    AttendanceServiceDep,
    PaymentServiceDep,
    SubscriptionServiceDep,
    verify_admin_api_key,
)
from hatch_api.domain.attendance import AutoAttendanceResult
from hatch_api.domain.payments import CleanupResult
from hatch_api.domain.timeutils import utcnow


logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_admin_api_key)])


class ReconcileResult(BaseModel):
    downgraded: int
    expiring_soon: int


@router.post("/jobs/reconcile-expired", response_model=ReconcileResult)
async def reconcile_expired(service: SubscriptionServiceDep):
    """Downgrade lapsed subscriptions and report how many expire soon."""
    now = utcnow()
    downgraded = await service.reconcile_expired(now)
    expiring = await service.expiring_soon(now=now)
    logger.info(f"[JOBS] reconcile-expired: {downgraded} downgraded, {len(expiring)} expiring soon")
    return ReconcileResult(downgraded=downgraded, expiring_soon=len(expiring))


@router.post("/jobs/auto-attendance", response_model=AutoAttendanceResult)
async def auto_attendance(service: AttendanceServiceDep):
    """Mark registered users of finished events as attended."""
    return await service.auto_mark_attendance()


@router.post("/jobs/purge-payments", response_model=CleanupResult)
async def purge_payments(service: PaymentServiceDep):
    """Apply the payment retention window."""
    return await service.purge_terminal(triggered_by="scheduler")
