"""
Unit tests for payment submission validation and the review status machine.
"""

from uuid import uuid4

import pytest

from hatch_api.domain.payments import (
    PaymentStatus,
    PaymentSubmissionCreate,
    can_transition,
    ensure_transition,
    validate_submission,
    validate_transaction_id,
)
from hatch_api.domain.tiers import Tier
from hatch_api.infrastructure.exceptions import (
    InvalidTransitionError,
    UnknownTierError,
    ValidationError,
)


def _submission(**overrides) -> PaymentSubmissionCreate:
    data = {
        "requested_tier": "explorer",
        "amount_paid": 99,
        "transaction_id": "UPI1234567890",
        "screenshot_ref": "user/abc.png",
    }
    data.update(overrides)
    return PaymentSubmissionCreate(**data)


class TestTransactionId:

    @pytest.mark.parametrize("value", ["1234567890", "UPI-2026-ABCDEF", "a" * 20, "  AXIS12345678  "])
    def test_valid_ids(self, value):
        assert validate_transaction_id(value) == value.strip()

    @pytest.mark.parametrize(
        "value",
        [
            "123456789",        # too short
            "A" * 21,           # too long
            "-UPI12345678",     # leading hyphen
            "UPI12345678-",     # trailing hyphen
            "UPI 12345678",     # space
            "UPI_12345678",     # underscore
        ],
    )
    def test_invalid_ids(self, value):
        with pytest.raises(ValidationError):
            validate_transaction_id(value)

    def test_missing_id(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_transaction_id(None)
        assert exc_info.value.message == "Transaction ID is required"


class TestValidateSubmission:

    def test_valid_submission_normalizes(self):
        valid = validate_submission(_submission(requested_tier="premium_149", transaction_id=" UPI1234567890 "))
        assert valid.requested_tier == Tier.PROFESSIONAL
        assert valid.transaction_id == "UPI1234567890"

    def test_missing_fields_listed(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_submission(_submission(amount_paid=None, screenshot_ref=""))
        assert exc_info.value.details["missing_fields"] == ["amount_paid", "screenshot_ref"]

    def test_free_tier_cannot_be_bought(self):
        with pytest.raises(ValidationError):
            validate_submission(_submission(requested_tier="free"))

    def test_unknown_tier(self):
        with pytest.raises(UnknownTierError):
            validate_submission(_submission(requested_tier="gold"))

    @pytest.mark.parametrize("amount", [0, -10])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError):
            validate_submission(_submission(amount_paid=amount))


class TestStatusMachine:

    def test_pending_can_be_reviewed(self):
        assert can_transition(PaymentStatus.PENDING, PaymentStatus.APPROVED)
        assert can_transition(PaymentStatus.PENDING, PaymentStatus.REJECTED)

    def test_approved_can_only_be_revoked(self):
        assert can_transition(PaymentStatus.APPROVED, PaymentStatus.REJECTED)
        assert not can_transition(PaymentStatus.APPROVED, PaymentStatus.PENDING)
        assert not can_transition(PaymentStatus.APPROVED, PaymentStatus.APPROVED)

    def test_rejected_is_final(self):
        for target in PaymentStatus:
            assert not can_transition(PaymentStatus.REJECTED, target)

    def test_ensure_transition_raises_with_context(self):
        payment_id = uuid4()
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(payment_id, PaymentStatus.REJECTED, PaymentStatus.APPROVED)
        details = exc_info.value.details
        assert details["payment_id"] == str(payment_id)
        assert details["current_status"] == "rejected"
        assert details["target_status"] == "approved"
