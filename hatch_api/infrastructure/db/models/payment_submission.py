"""
PaymentSubmission SQLModel

A user's claim of an out-of-band UPI payment, awaiting manual review.
transaction_id is unique across all submissions.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime
from sqlmodel import Field

from hatch_api.domain.payments import DEFAULT_PAYMENT_METHOD, PaymentStatus
from hatch_api.infrastructure.db.models.base import BaseModel


class PaymentSubmission(BaseModel, table=True):
    """payment_submissions table."""

    __tablename__ = "payment_submissions"

    user_id: UUID = Field(..., foreign_key="user_profiles.id", index=True)
    requested_tier: str = Field(..., max_length=32)
    amount_paid: float = Field(..., gt=0, description="Amount in INR")
    payment_method: str = Field(default=DEFAULT_PAYMENT_METHOD, max_length=32)
    transaction_id: str = Field(..., max_length=20, unique=True, index=True)
    screenshot_ref: str = Field(..., max_length=1024)

    status: str = Field(default=PaymentStatus.PENDING.value, max_length=20, index=True)
    admin_notes: Optional[str] = Field(default=None, max_length=1000)
    reviewed_by: Optional[UUID] = Field(default=None)
    reviewed_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
