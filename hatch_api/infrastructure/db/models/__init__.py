"""
SQLModel ORM Models for Hatch

Exports all database models for Alembic and application use.
Import models here to register them with SQLModel.metadata.
"""

from hatch_api.infrastructure.db.models.base import (
    BaseModel,
    TimestampMixin,
    UUIDMixin,
)
from hatch_api.infrastructure.db.models.user_profile import (
    ROLE_ADMIN,
    ROLE_USER,
    UserProfile,
    UserProfileBase,
    UserProfileRead,
    UserProfileUpdate,
)
from hatch_api.infrastructure.db.models.event import Event
from hatch_api.infrastructure.db.models.payment_submission import PaymentSubmission
from hatch_api.infrastructure.db.models.registration import EventRegistration
from hatch_api.infrastructure.db.models.payment_cleanup_log import PaymentCleanupLog


__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    # UserProfile
    "ROLE_ADMIN",
    "ROLE_USER",
    "UserProfile",
    "UserProfileBase",
    "UserProfileRead",
    "UserProfileUpdate",
    # Events and attendance
    "Event",
    "EventRegistration",
    # Payments
    "PaymentSubmission",
    "PaymentCleanupLog",
]
