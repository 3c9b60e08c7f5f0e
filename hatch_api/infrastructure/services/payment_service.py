"""
Payment Review Service

Manual verification of UPI payment screenshots: submission, admin review
(approve / reject / delete) and the retention purge. Approval and revocation
change the submission and the user's subscription in one SAVEPOINT, so
either both land or neither does.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hatch_api.config.settings import settings
from hatch_api.domain.payments import (
    AdminPaymentResponse,
    CleanupResult,
    PaymentDeletionResult,
    PaymentResponse,
    PaymentStats,
    PaymentStatus,
    PaymentSubmissionCreate,
    ensure_transition,
    validate_submission,
)
from hatch_api.domain.subscription import compute_duration
from hatch_api.domain.tiers import Tier
from hatch_api.domain.timeutils import ensure_utc, utcnow
from hatch_api.infrastructure.db.models.payment_cleanup_log import PaymentCleanupLog
from hatch_api.infrastructure.db.models.payment_submission import PaymentSubmission
from hatch_api.infrastructure.db.repositories.payment_repository import PaymentRepository
from hatch_api.infrastructure.db.repositories.user_profile_repository import (
    UserProfileRepository,
)
from hatch_api.infrastructure.exceptions import (
    ConflictError,
    HatchError,
    InvalidTransitionError,
    NotFoundError,
    PartialFailureError,
)
from hatch_api.infrastructure.services.subscription_service import SubscriptionService


logger = logging.getLogger(__name__)


DUPLICATE_TRANSACTION_MESSAGE = "This transaction ID was already used"


class PaymentService:
    """Payment submission and review workflow."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._payments = PaymentRepository(session)
        self._profiles = UserProfileRepository(session)
        self._subscriptions = SubscriptionService(session)

    # =========================================================================
    # User side
    # =========================================================================

    async def submit(
        self,
        user_id: UUID,
        data: PaymentSubmissionCreate,
        now: Optional[datetime] = None,
    ) -> PaymentSubmission:
        """
        Record a pending submission.

        Raises:
            ValidationError: missing field, free tier, bad amount or transaction id
            UnknownTierError: requested tier not in the catalog
            ConflictError: transaction id already used
        """
        valid = validate_submission(data)
        now = ensure_utc(now) if now else utcnow()

        if await self._payments.get_by_transaction_id(valid.transaction_id):
            raise self._duplicate(valid.transaction_id)

        submission = PaymentSubmission(
            user_id=user_id,
            requested_tier=valid.requested_tier.value,
            amount_paid=valid.amount_paid,
            payment_method=valid.payment_method,
            transaction_id=valid.transaction_id,
            screenshot_ref=valid.screenshot_ref,
            status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        # The unique index settles races between the check above and here.
        if not await self._payments.add_or_ignore(submission):
            raise self._duplicate(valid.transaction_id)

        logger.info(
            f"[PAYMENT] {user_id} submitted {valid.transaction_id} "
            f"for {valid.requested_tier.value} ({valid.amount_paid} INR)"
        )
        return submission

    async def list_for_user(self, user_id: UUID) -> List[PaymentResponse]:
        rows = await self._payments.list_for_user(user_id)
        return [PaymentResponse.model_validate(row) for row in rows]

    # =========================================================================
    # Admin review
    # =========================================================================

    async def approve(
        self,
        payment_id: UUID,
        admin_id: UUID,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PaymentSubmission:
        """
        Approve a pending submission and upgrade the submitter.

        Duration follows the amount paid: the annual price or more buys a
        year, anything less a month.

        Raises:
            NotFoundError: unknown payment or submitter profile
            InvalidTransitionError: payment is not pending
            PartialFailureError: the upgrade failed; nothing was changed
        """
        now = ensure_utc(now) if now else utcnow()
        payment = await self._get(payment_id)
        current = PaymentStatus(payment.status)
        ensure_transition(payment_id, current, PaymentStatus.APPROVED)

        user_id = payment.user_id
        tier = payment.requested_tier
        duration = compute_duration(tier, payment.amount_paid)
        await self._require_submitter(payment_id, user_id)

        try:
            async with self._session.begin_nested():
                await self._transition_or_raise(
                    payment_id, current, PaymentStatus.APPROVED, admin_id, notes, now
                )
                await self._subscriptions.upgrade(user_id, tier, duration, admin_id, now)
        except InvalidTransitionError:
            raise
        except (HatchError, SQLAlchemyError) as e:
            logger.error(f"[PAYMENT] Approval of {payment_id} rolled back: {e}")
            raise PartialFailureError(
                f"Approving payment {payment_id} failed; no changes were saved",
                operation="approve",
                table="payment_submissions",
                original_error=e,
                details={"payment_id": str(payment_id)},
            ) from e

        logger.info(
            f"[PAYMENT] Approved {payment_id}: {user_id} -> {tier} for {duration} days (by {admin_id})"
        )
        return await self._get(payment_id)

    async def reject(
        self,
        payment_id: UUID,
        admin_id: UUID,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PaymentSubmission:
        """
        Reject a pending submission. The user's subscription is untouched.

        Raises:
            NotFoundError: unknown payment
            InvalidTransitionError: payment is not pending
        """
        now = ensure_utc(now) if now else utcnow()
        payment = await self._get(payment_id)
        current = PaymentStatus(payment.status)
        # approved -> rejected exists, but only as a revocation through delete()
        if current != PaymentStatus.PENDING:
            raise InvalidTransitionError(payment_id, current.value, PaymentStatus.REJECTED.value)

        await self._transition_or_raise(
            payment_id, current, PaymentStatus.REJECTED, admin_id, notes, now
        )
        logger.info(f"[PAYMENT] Rejected {payment_id} (by {admin_id})")
        return await self._get(payment_id)

    async def delete(
        self,
        payment_id: UUID,
        admin_id: UUID,
        now: Optional[datetime] = None,
    ) -> PaymentDeletionResult:
        """
        Remove a submission from the review queue.

        Pending and rejected rows are deleted outright. An approved row is
        revoked instead: it becomes rejected and the user drops to free.

        Raises:
            NotFoundError: unknown payment, or submitter profile of an approved one
            PartialFailureError: revocation failed; nothing was changed
        """
        now = ensure_utc(now) if now else utcnow()
        payment = await self._get(payment_id)
        current = PaymentStatus(payment.status)

        if current != PaymentStatus.APPROVED:
            await self._payments.delete(payment_id)
            logger.info(f"[PAYMENT] Deleted {current.value} submission {payment_id} (by {admin_id})")
            return PaymentDeletionResult(
                payment_id=payment_id,
                deleted=True,
                message="Payment submission deleted",
            )

        ensure_transition(payment_id, current, PaymentStatus.REJECTED)
        user_id = payment.user_id
        await self._require_submitter(payment_id, user_id)
        try:
            async with self._session.begin_nested():
                await self._transition_or_raise(
                    payment_id,
                    current,
                    PaymentStatus.REJECTED,
                    admin_id,
                    "Approval revoked by admin",
                    now,
                )
                await self._subscriptions.upgrade(user_id, Tier.FREE, 0, admin_id, now)
        except InvalidTransitionError:
            raise
        except (HatchError, SQLAlchemyError) as e:
            logger.error(f"[PAYMENT] Revocation of {payment_id} rolled back: {e}")
            raise PartialFailureError(
                f"Revoking payment {payment_id} failed; no changes were saved",
                operation="revoke",
                table="payment_submissions",
                original_error=e,
                details={"payment_id": str(payment_id)},
            ) from e

        logger.warning(f"[PAYMENT] Revoked approved payment {payment_id}; {user_id} reset to free")
        return PaymentDeletionResult(
            payment_id=payment_id,
            deleted=False,
            revoked=True,
            message="Approved payment revoked and user downgraded to free",
        )

    async def list_payments(
        self,
        status: Optional[PaymentStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[AdminPaymentResponse]:
        rows = await self._payments.list_with_profiles(status, search, skip, limit)
        results = []
        for payment, profile in rows:
            item = AdminPaymentResponse.model_validate(payment)
            if profile is not None:
                item.username = profile.username
                item.full_name = profile.full_name
                item.email = profile.email
            results.append(item)
        return results

    async def stats(self) -> PaymentStats:
        return await self._payments.stats()

    # =========================================================================
    # Retention
    # =========================================================================

    async def purge_terminal(
        self,
        retention_days: Optional[int] = None,
        now: Optional[datetime] = None,
        triggered_by: Optional[str] = None,
    ) -> CleanupResult:
        """
        Delete approved and rejected submissions older than the window.

        Pending submissions are never purged. Every run is logged to
        payment_cleanup_logs, including runs that delete nothing.
        """
        retention_days = retention_days or settings.payment_retention_days
        now = ensure_utc(now) if now else utcnow()
        cutoff = now - timedelta(days=retention_days)

        deleted = await self._payments.delete_terminal_before(cutoff)
        await self._payments.add(
            PaymentCleanupLog(
                records_deleted=deleted,
                retention_days=retention_days,
                cutoff=cutoff,
                triggered_by=triggered_by,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(f"[PAYMENT] Purged {deleted} reviewed submission(s) older than {retention_days} days")
        return CleanupResult(records_deleted=deleted, retention_days=retention_days, cutoff=cutoff)

    async def count_purgeable(
        self,
        retention_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> int:
        retention_days = retention_days or settings.payment_retention_days
        now = ensure_utc(now) if now else utcnow()
        return await self._payments.count_terminal_before(now - timedelta(days=retention_days))

    async def cleanup_logs(self, limit: int = 10) -> List[PaymentCleanupLog]:
        return await self._payments.list_cleanup_logs(limit)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get(self, payment_id: UUID) -> PaymentSubmission:
        payment = await self._payments.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError(
                f"Payment {payment_id} not found",
                operation="get",
                table="payment_submissions",
            )
        return payment

    async def _require_submitter(self, payment_id: UUID, user_id: UUID) -> None:
        if await self._profiles.get_by_id(user_id) is None:
            raise NotFoundError(
                f"Profile {user_id} behind payment {payment_id} not found",
                operation="review",
                table="user_profiles",
                details={"payment_id": str(payment_id), "user_id": str(user_id)},
            )

    async def _transition_or_raise(
        self,
        payment_id: UUID,
        current: PaymentStatus,
        target: PaymentStatus,
        admin_id: UUID,
        notes: Optional[str],
        now: datetime,
    ) -> None:
        if not await self._payments.transition(payment_id, current, target, admin_id, notes, now):
            # another reviewer changed the row since it was read
            raise InvalidTransitionError(payment_id, current.value, target.value)

    @staticmethod
    def _duplicate(transaction_id: str) -> ConflictError:
        return ConflictError(
            DUPLICATE_TRANSACTION_MESSAGE,
            operation="submit",
            table="payment_submissions",
            details={"transaction_id": transaction_id},
        )
