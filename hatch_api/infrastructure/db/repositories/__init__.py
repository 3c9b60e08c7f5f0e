"""
Repository Layer for Hatch

Exports all repository classes for dependency injection.
"""

from hatch_api.infrastructure.db.repositories.base_repository import (
    BaseRepository,
    IReadRepository,
)
from hatch_api.infrastructure.db.repositories.user_profile_repository import (
    UserProfileRepository,
)
from hatch_api.infrastructure.db.repositories.event_repository import (
    EventRepository,
)
from hatch_api.infrastructure.db.repositories.registration_repository import (
    RegistrationRepository,
)
from hatch_api.infrastructure.db.repositories.payment_repository import (
    PaymentRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    "IReadRepository",
    # Repositories
    "UserProfileRepository",
    "EventRepository",
    "RegistrationRepository",
    "PaymentRepository",
]
