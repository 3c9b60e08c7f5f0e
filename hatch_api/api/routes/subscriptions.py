"""
Subscription API Routes

Subscription status for the current user and the public pricing catalog.
"""

from fastapi import APIRouter

from hatch_api.api.dependencies import CurrentProfile, SubscriptionServiceDep
from hatch_api.domain.subscription import PricingResponse, SubscriptionStatusResponse
from hatch_api.infrastructure.services.subscription_service import pricing


router = APIRouter()


@router.get("/subscriptions/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    profile: CurrentProfile,
    service: SubscriptionServiceDep,
):
    """Tier, expiry, days remaining and quotas of the current user."""
    return service.status(profile)


@router.get("/subscriptions/pricing", response_model=PricingResponse)
async def get_pricing():
    """All tiers with INR prices and annual savings. Public."""
    return pricing()
