"""
Integration tests for PaymentService on SQLite.

Covers submission uniqueness, the approve/reject/revoke workflow and the
retention purge.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from hatch_api.domain.payments import PaymentStatus, PaymentSubmissionCreate
from hatch_api.domain.tiers import Tier
from hatch_api.domain.timeutils import ensure_utc
from hatch_api.infrastructure.db.models import PaymentCleanupLog, PaymentSubmission, UserProfile
from hatch_api.infrastructure.exceptions import (
    ConflictError,
    DatabaseError,
    InvalidTransitionError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)
from hatch_api.infrastructure.services.payment_service import (
    DUPLICATE_TRANSACTION_MESSAGE,
    PaymentService,
)


@pytest.fixture
def service(session):
    return PaymentService(session)


def _data(tier="explorer", amount=99, transaction_id="UPI1234567890") -> PaymentSubmissionCreate:
    return PaymentSubmissionCreate(
        requested_tier=tier,
        amount_paid=amount,
        transaction_id=transaction_id,
        screenshot_ref="user/screenshot.png",
    )


async def _count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def _reload(session, model, id):
    return await session.get(model, id, populate_existing=True)


class TestSubmit:

    async def test_submit_creates_pending(self, service, profile_factory, now):
        profile = await profile_factory()

        payment = await service.submit(profile.id, _data(), now=now)

        assert payment.status == PaymentStatus.PENDING.value
        assert payment.requested_tier == Tier.EXPLORER.value
        assert payment.user_id == profile.id

    async def test_duplicate_transaction_id_conflicts(self, service, profile_factory, session, now):
        first = await profile_factory()
        second = await profile_factory()
        await service.submit(first.id, _data(), now=now)

        with pytest.raises(ConflictError) as exc_info:
            await service.submit(second.id, _data(tier="professional", amount=149), now=now)

        assert exc_info.value.message == DUPLICATE_TRANSACTION_MESSAGE
        assert await _count(session, PaymentSubmission) == 1

    async def test_invalid_submission_writes_nothing(self, service, profile_factory, session, now):
        profile = await profile_factory()

        with pytest.raises(ValidationError):
            await service.submit(profile.id, _data(transaction_id="short"), now=now)

        assert await _count(session, PaymentSubmission) == 0

    async def test_list_for_user(self, service, profile_factory, now):
        profile = await profile_factory()
        other = await profile_factory()
        await service.submit(profile.id, _data(transaction_id="UPI0000000001"), now=now)
        await service.submit(other.id, _data(transaction_id="UPI0000000002"), now=now)

        mine = await service.list_for_user(profile.id)

        assert [p.transaction_id for p in mine] == ["UPI0000000001"]


class TestReview:

    async def test_approve_annual_payment(self, service, profile_factory, session, now):
        profile = await profile_factory()
        payment = await service.submit(profile.id, _data(amount=999), now=now)
        admin_id = uuid4()

        approved = await service.approve(payment.id, admin_id, notes="looks good", now=now)

        assert approved.status == PaymentStatus.APPROVED.value
        assert approved.reviewed_by == admin_id
        assert approved.admin_notes == "looks good"
        profile = await _reload(session, UserProfile, profile.id)
        assert profile.subscription_tier == Tier.EXPLORER.value
        assert ensure_utc(profile.subscription_expires_at) == now + timedelta(days=365)
        assert profile.tier_upgraded_by == admin_id

    async def test_approve_monthly_payment(self, service, profile_factory, session, now):
        profile = await profile_factory()
        payment = await service.submit(profile.id, _data(tier="professional", amount=149), now=now)

        await service.approve(payment.id, uuid4(), now=now)

        profile = await _reload(session, UserProfile, profile.id)
        assert profile.subscription_tier == Tier.PROFESSIONAL.value
        assert ensure_utc(profile.subscription_expires_at) == now + timedelta(days=30)

    async def test_approve_twice_rejected(self, service, profile_factory, now):
        profile = await profile_factory()
        payment = await service.submit(profile.id, _data(), now=now)
        await service.approve(payment.id, uuid4(), now=now)

        with pytest.raises(InvalidTransitionError):
            await service.approve(payment.id, uuid4(), now=now)

    async def test_approve_unknown_payment(self, service, now):
        with pytest.raises(NotFoundError):
            await service.approve(uuid4(), uuid4(), now=now)

    async def test_approve_without_profile_not_found(self, service, session, now):
        # no profile row behind this user id
        payment = await service.submit(uuid4(), _data(), now=now)
        payment_id = payment.id

        with pytest.raises(NotFoundError) as exc_info:
            await service.approve(payment_id, uuid4(), now=now)

        assert exc_info.value.details["table"] == "user_profiles"
        payment = await _reload(session, PaymentSubmission, payment_id)
        assert payment.status == PaymentStatus.PENDING.value

    async def test_failed_upgrade_rolls_back_approval(self, service, profile_factory, session, now):
        profile = await profile_factory()
        user_id = profile.id
        payment = await service.submit(user_id, _data(), now=now)
        payment_id = payment.id
        failing = AsyncMock(side_effect=DatabaseError("write failed", operation="update"))

        with patch.object(service._subscriptions, "upgrade", failing):
            with pytest.raises(PartialFailureError):
                await service.approve(payment_id, uuid4(), now=now)

        payment = await _reload(session, PaymentSubmission, payment_id)
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.reviewed_by is None
        profile = await _reload(session, UserProfile, user_id)
        assert profile.subscription_tier == Tier.FREE.value

    async def test_reject_leaves_subscription_alone(self, service, profile_factory, session, now):
        profile = await profile_factory()
        payment = await service.submit(profile.id, _data(), now=now)

        rejected = await service.reject(payment.id, uuid4(), notes="blurry screenshot", now=now)

        assert rejected.status == PaymentStatus.REJECTED.value
        profile = await _reload(session, UserProfile, profile.id)
        assert profile.subscription_tier == Tier.FREE.value

    async def test_reject_approved_payment_not_allowed(self, service, profile_factory, now):
        profile = await profile_factory()
        payment = await service.submit(profile.id, _data(), now=now)
        await service.approve(payment.id, uuid4(), now=now)

        with pytest.raises(InvalidTransitionError):
            await service.reject(payment.id, uuid4(), now=now)


class TestDelete:

    async def test_delete_pending_removes_row(self, service, profile_factory, session, now):
        profile = await profile_factory()
        payment = await service.submit(profile.id, _data(), now=now)

        result = await service.delete(payment.id, uuid4(), now=now)

        assert result.deleted is True
        assert result.revoked is False
        assert await _count(session, PaymentSubmission) == 0

    async def test_delete_approved_revokes(self, service, profile_factory, session, now):
        profile = await profile_factory()
        user_id = profile.id
        payment = await service.submit(user_id, _data(amount=999), now=now)
        payment_id = payment.id
        await service.approve(payment_id, uuid4(), now=now)

        result = await service.delete(payment_id, uuid4(), now=now)

        assert result.revoked is True
        assert result.deleted is False
        payment = await _reload(session, PaymentSubmission, payment_id)
        assert payment.status == PaymentStatus.REJECTED.value
        assert payment.admin_notes == "Approval revoked by admin"
        profile = await _reload(session, UserProfile, user_id)
        assert profile.subscription_tier == Tier.FREE.value
        assert profile.subscription_expires_at is None

    async def test_failed_revocation_keeps_approval(self, service, profile_factory, session, now):
        profile = await profile_factory()
        user_id = profile.id
        payment = await service.submit(user_id, _data(amount=999), now=now)
        payment_id = payment.id
        await service.approve(payment_id, uuid4(), now=now)
        failing = AsyncMock(side_effect=DatabaseError("write failed", operation="update"))

        with patch.object(service._subscriptions, "upgrade", failing):
            with pytest.raises(PartialFailureError):
                await service.delete(payment_id, uuid4(), now=now)

        payment = await _reload(session, PaymentSubmission, payment_id)
        assert payment.status == PaymentStatus.APPROVED.value
        profile = await _reload(session, UserProfile, user_id)
        assert profile.subscription_tier == Tier.EXPLORER.value

    async def test_delete_unknown_payment(self, service, now):
        with pytest.raises(NotFoundError):
            await service.delete(uuid4(), uuid4(), now=now)


class TestAdminListing:

    async def test_list_with_profile_and_search(self, service, profile_factory, now):
        alice = await profile_factory(email="alice@hatch.test", username="alice")
        bob = await profile_factory(email="bob@hatch.test", username="bob")
        await service.submit(alice.id, _data(transaction_id="UPI0000000001"), now=now)
        await service.submit(bob.id, _data(transaction_id="UPI0000000002"), now=now)

        results = await service.list_payments(search="ALICE")

        assert len(results) == 1
        assert results[0].username == "alice"
        assert results[0].email == "alice@hatch.test"

    async def test_status_filter_and_stats(self, service, profile_factory, now):
        profile = await profile_factory()
        first = await service.submit(profile.id, _data(transaction_id="UPI0000000001", amount=999), now=now)
        await service.submit(profile.id, _data(transaction_id="UPI0000000002"), now=now)
        await service.approve(first.id, uuid4(), now=now)

        pending = await service.list_payments(status=PaymentStatus.PENDING)
        stats = await service.stats()

        assert [p.transaction_id for p in pending] == ["UPI0000000002"]
        assert (stats.total, stats.pending, stats.approved, stats.rejected) == (2, 1, 1, 0)
        assert stats.total_revenue == 999.0


class TestRetention:

    async def _seed(self, session, user_id, status, created_at, transaction_id):
        row = PaymentSubmission(
            user_id=user_id,
            requested_tier="explorer",
            amount_paid=99,
            transaction_id=transaction_id,
            screenshot_ref="ref.png",
            status=status.value,
            created_at=created_at,
            updated_at=created_at,
        )
        session.add(row)
        await session.flush()
        return row

    async def test_purge_keeps_pending_and_recent(self, service, profile_factory, session, now):
        profile = await profile_factory()
        await self._seed(session, profile.id, PaymentStatus.APPROVED, now - timedelta(days=5), "UPI0000000001")
        await self._seed(session, profile.id, PaymentStatus.REJECTED, now - timedelta(days=4), "UPI0000000002")
        old_pending = await self._seed(session, profile.id, PaymentStatus.PENDING, now - timedelta(days=10), "UPI0000000003")
        recent = await self._seed(session, profile.id, PaymentStatus.APPROVED, now - timedelta(days=1), "UPI0000000004")

        assert await service.count_purgeable(retention_days=3, now=now) == 2
        result = await service.purge_terminal(retention_days=3, now=now, triggered_by="test")

        assert result.records_deleted == 2
        assert result.cutoff == now - timedelta(days=3)
        remaining = (await session.execute(select(PaymentSubmission.id))).scalars().all()
        assert set(remaining) == {old_pending.id, recent.id}

    async def test_every_purge_is_logged(self, service, session, now):
        await service.purge_terminal(retention_days=3, now=now, triggered_by="scheduler")
        await service.purge_terminal(retention_days=3, now=now, triggered_by="scheduler")

        assert await _count(session, PaymentCleanupLog) == 2
        logs = await service.cleanup_logs()
        assert all(log.records_deleted == 0 for log in logs)
        assert logs[0].triggered_by == "scheduler"
