# API Routes Module
from hatch_api.api.routes import (
    admin,
    attendance,
    events,
    jobs,
    payments,
    profiles,
    subscriptions,
)

__all__ = [
    "admin",
    "attendance",
    "events",
    "jobs",
    "payments",
    "profiles",
    "subscriptions",
]
