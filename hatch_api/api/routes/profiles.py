"""
Profile Routes

The authenticated user's own profile. Reading it creates it on first access.
"""

import logging

from fastapi import APIRouter

from hatch_api.api.dependencies import CurrentProfile, UserProfileRepoDep
from hatch_api.infrastructure.db.models.user_profile import UserProfileRead, UserProfileUpdate
from hatch_api.infrastructure.exceptions import ConflictError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/profiles/me", response_model=UserProfileRead)
async def get_my_profile(profile: CurrentProfile):
    """Get the current user's profile (created with the free tier if missing)."""
    return UserProfileRead.model_validate(profile, from_attributes=True)


@router.patch("/profiles/me", response_model=UserProfileRead)
async def update_my_profile(
    data: UserProfileUpdate,
    profile: CurrentProfile,
    repo: UserProfileRepoDep,
):
    """
    Update username, full name, bio or skills.

    Subscription fields can only change through payment review or an admin.
    """
    if data.username and await repo.username_taken(data.username, exclude_id=profile.id):
        raise ConflictError(
            "Username is already taken",
            operation="update",
            table="user_profiles",
            details={"username": data.username},
        )

    updated = await repo.update_self(profile, data)
    logger.info(f"[PROFILES] {profile.id} updated {sorted(data.model_dump(exclude_unset=True))}")
    return UserProfileRead.model_validate(updated, from_attributes=True)
