"""
Payment Review Domain

Status machine and submission validation for manually verified UPI
payments. Persistence lives in the payment repository; this module is pure.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hatch_api.domain.tiers import Tier, parse_tier
from hatch_api.infrastructure.exceptions import InvalidTransitionError, ValidationError


class PaymentStatus(str, Enum):
    """Review state of a payment submission."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# approved -> rejected models revoking an approved payment (tier rollback).
ALLOWED_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.APPROVED, PaymentStatus.REJECTED}),
    PaymentStatus.APPROVED: frozenset({PaymentStatus.REJECTED}),
    PaymentStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset({PaymentStatus.APPROVED, PaymentStatus.REJECTED})

# 10-20 chars, letters/digits/hyphens, alphanumeric at both ends.
TRANSACTION_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]{8,18}[A-Za-z0-9]$")

DEFAULT_PAYMENT_METHOD = "upi_qr"


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[PaymentStatus(current)]


def ensure_transition(payment_id: UUID, current: PaymentStatus, target: PaymentStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(payment_id, PaymentStatus(current).value, PaymentStatus(target).value)


def normalize_transaction_id(value: Optional[str]) -> str:
    return (value or "").strip()


def validate_transaction_id(value: Optional[str]) -> str:
    """
    Check the UPI reference format and return the normalized id.

    Raises:
        ValidationError: with a human-readable reason
    """
    transaction_id = normalize_transaction_id(value)
    if not transaction_id:
        raise ValidationError(
            "Transaction ID is required",
            details={"field": "transaction_id"},
        )
    if not 10 <= len(transaction_id) <= 20:
        raise ValidationError(
            "Transaction ID must be between 10 and 20 characters",
            details={"field": "transaction_id", "length": len(transaction_id)},
        )
    if not TRANSACTION_ID_PATTERN.match(transaction_id):
        raise ValidationError(
            "Transaction ID may only contain letters, digits and hyphens, "
            "and must start and end with a letter or digit",
            details={"field": "transaction_id"},
        )
    return transaction_id


class PaymentSubmissionCreate(BaseModel):
    """Data a user supplies after paying out of band."""
    requested_tier: Optional[str] = None
    amount_paid: Optional[float] = Field(default=None, description="Amount in INR")
    transaction_id: Optional[str] = None
    screenshot_ref: Optional[str] = None
    payment_method: str = DEFAULT_PAYMENT_METHOD


class ValidatedSubmission(BaseModel):
    """A submission that passed every check except uniqueness."""
    requested_tier: Tier
    amount_paid: float
    transaction_id: str
    screenshot_ref: str
    payment_method: str


def validate_submission(data: PaymentSubmissionCreate) -> ValidatedSubmission:
    """
    Validate a payment submission before anything is written.

    Raises:
        ValidationError: missing field, bad amount, bad transaction id
        UnknownTierError: requested tier not in the catalog
    """
    missing = [
        name for name in ("requested_tier", "amount_paid", "screenshot_ref")
        if getattr(data, name) in (None, "")
    ]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing_fields": missing},
        )

    tier = parse_tier(data.requested_tier)
    if tier == Tier.FREE:
        raise ValidationError(
            "The free tier cannot be purchased",
            details={"field": "requested_tier"},
        )

    if data.amount_paid <= 0:
        raise ValidationError(
            "Amount paid must be positive",
            details={"field": "amount_paid", "amount_paid": data.amount_paid},
        )

    transaction_id = validate_transaction_id(data.transaction_id)

    return ValidatedSubmission(
        requested_tier=tier,
        amount_paid=data.amount_paid,
        transaction_id=transaction_id,
        screenshot_ref=data.screenshot_ref.strip(),
        payment_method=data.payment_method or DEFAULT_PAYMENT_METHOD,
    )


# =============================================================================
# Response DTOs
# =============================================================================

class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    requested_tier: Tier
    amount_paid: float
    payment_method: str
    transaction_id: str
    screenshot_ref: str
    status: PaymentStatus
    admin_notes: Optional[str] = None
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime


class PaymentStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total_revenue: float = 0.0


class ReviewRequest(BaseModel):
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class CleanupResult(BaseModel):
    records_deleted: int
    retention_days: int
    cutoff: datetime


class AdminPaymentResponse(PaymentResponse):
    """Review queue row with the submitter's identity."""
    username: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None


class PaymentDeletionResult(BaseModel):
    payment_id: UUID
    deleted: bool
    revoked: bool = False
    message: str
