"""
Admin Routes

User management, payment review and event management. Every route in this
module goes through ``require_admin``.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel

from hatch_api.api.dependencies import (
    AdminProfile,
    EventServiceDep,
    PaymentServiceDep,
    SubscriptionServiceDep,
    UserProfileRepoDep,
    require_admin,
)
from hatch_api.config.settings import settings
from hatch_api.domain.events import EventCreate, EventResponse, EventUpdate
from hatch_api.domain.payments import (
    AdminPaymentResponse,
    CleanupResult,
    PaymentDeletionResult,
    PaymentResponse,
    PaymentStats,
    PaymentStatus,
    ReviewRequest,
)
from hatch_api.domain.subscription import TierOverrideRequest
from hatch_api.domain.tiers import parse_tier
from hatch_api.domain.timeutils import utcnow
from hatch_api.infrastructure.db.models.user_profile import UserProfileRead


logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


# =============================================================================
# Response Models
# =============================================================================

class UserStats(BaseModel):
    total: int
    by_tier: Dict[str, int]
    expiring_soon: int


class AdminUsersResponse(BaseModel):
    users: List[UserProfileRead]
    stats: UserStats


class AdminPaymentsResponse(BaseModel):
    payments: List[AdminPaymentResponse]
    stats: PaymentStats


class CleanupLogEntry(BaseModel):
    id: UUID
    records_deleted: int
    retention_days: int
    cutoff: datetime
    triggered_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CleanupStatusResponse(BaseModel):
    retention_days: int
    purgeable: int
    logs: List[CleanupLogEntry]


# =============================================================================
# Users
# =============================================================================

@router.get("/admin/users", response_model=AdminUsersResponse)
async def list_users(
    repo: UserProfileRepoDep,
    subscriptions: SubscriptionServiceDep,
    tier: Optional[str] = Query(None),
    expiring_soon: bool = Query(False, description="Only paid users expiring soon"),
    search: Optional[str] = Query(None, max_length=200),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """Users newest first, with per-tier counts and the expiring-soon count."""
    wanted = parse_tier(tier) if tier else None
    expiring = await subscriptions.expiring_soon(now=utcnow())

    if expiring_soon:
        users = [p for p in expiring if wanted is None or p.subscription_tier == wanted.value]
        users = users[skip:skip + limit]
    else:
        users = await repo.list_profiles(tier=wanted, search=search, skip=skip, limit=limit)

    by_tier = await repo.count_by_tier()
    return AdminUsersResponse(
        users=[UserProfileRead.model_validate(u, from_attributes=True) for u in users],
        stats=UserStats(
            total=sum(by_tier.values()),
            by_tier=by_tier,
            expiring_soon=len(expiring),
        ),
    )


@router.post("/admin/users/{user_id}/tier", response_model=UserProfileRead)
async def override_user_tier(
    user_id: UUID,
    request: TierOverrideRequest,
    admin: AdminProfile,
    subscriptions: SubscriptionServiceDep,
):
    """
    Set a user's tier directly.

    ``duration_days`` of 0 means no expiry; free always clears the expiry.
    """
    profile = await subscriptions.upgrade(user_id, request.tier, request.duration_days, admin.id)
    return UserProfileRead.model_validate(profile, from_attributes=True)


# =============================================================================
# Payments
# =============================================================================

@router.get("/admin/payments", response_model=AdminPaymentsResponse)
async def list_payments(
    service: PaymentServiceDep,
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=200),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """Review queue, newest first. ``search`` matches user or transaction id."""
    payments = await service.list_payments(status_filter, search, skip, limit)
    return AdminPaymentsResponse(payments=payments, stats=await service.stats())


@router.get("/admin/payments/cleanup", response_model=CleanupStatusResponse)
async def get_cleanup_status(service: PaymentServiceDep):
    """How many reviewed submissions the next purge would delete, plus recent runs."""
    logs = await service.cleanup_logs()
    return CleanupStatusResponse(
        retention_days=settings.payment_retention_days,
        purgeable=await service.count_purgeable(),
        logs=[CleanupLogEntry.model_validate(log) for log in logs],
    )


@router.post("/admin/payments/cleanup", response_model=CleanupResult)
async def run_cleanup(admin: AdminProfile, service: PaymentServiceDep):
    """Purge approved and rejected submissions past the retention window."""
    return await service.purge_terminal(triggered_by=str(admin.id))


@router.post("/admin/payments/{payment_id}/approve", response_model=PaymentResponse)
async def approve_payment(
    payment_id: UUID,
    admin: AdminProfile,
    service: PaymentServiceDep,
    review: Optional[ReviewRequest] = Body(None),
):
    payment = await service.approve(payment_id, admin.id, review.admin_notes if review else None)
    return PaymentResponse.model_validate(payment)


@router.post("/admin/payments/{payment_id}/reject", response_model=PaymentResponse)
async def reject_payment(
    payment_id: UUID,
    admin: AdminProfile,
    service: PaymentServiceDep,
    review: Optional[ReviewRequest] = Body(None),
):
    payment = await service.reject(payment_id, admin.id, review.admin_notes if review else None)
    return PaymentResponse.model_validate(payment)


@router.delete("/admin/payments/{payment_id}", response_model=PaymentDeletionResult)
async def delete_payment(payment_id: UUID, admin: AdminProfile, service: PaymentServiceDep):
    """Delete a pending or rejected submission; revoke an approved one."""
    return await service.delete(payment_id, admin.id)


# =============================================================================
# Events
# =============================================================================

@router.get("/admin/events", response_model=List[EventResponse])
async def list_all_events(service: EventServiceDep):
    """All events including drafts, newest created first."""
    return [EventResponse.model_validate(e) for e in await service.list_all()]


@router.post("/admin/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(data: EventCreate, admin: AdminProfile, service: EventServiceDep):
    return EventResponse.model_validate(await service.create(data, admin.id))


@router.patch("/admin/events/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    data: EventUpdate,
    admin: AdminProfile,
    service: EventServiceDep,
):
    return EventResponse.model_validate(await service.update(event_id, data, admin.id))


@router.delete("/admin/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(event_id: UUID, admin: AdminProfile, service: EventServiceDep):
    await service.delete(event_id, admin.id)
