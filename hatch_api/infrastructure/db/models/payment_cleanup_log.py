"""
PaymentCleanupLog SQLModel

Audit row written by every retention purge of reviewed payment submissions.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field

from hatch_api.infrastructure.db.models.base import BaseModel


class PaymentCleanupLog(BaseModel, table=True):
    """payment_cleanup_logs table."""

    __tablename__ = "payment_cleanup_logs"

    records_deleted: int = Field(default=0, ge=0)
    retention_days: int = Field(..., ge=1)
    cutoff: datetime = Field(..., sa_type=DateTime(timezone=True))
    triggered_by: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Admin id, 'scheduler' or 'script'"
    )
