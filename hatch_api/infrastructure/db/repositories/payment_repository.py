"""
PaymentSubmission Repository for Hatch

Submission storage, the admin review listing (joined with the submitter's
profile), statistics and the retention purge with its audit log.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hatch_api.domain.payments import PaymentStats, PaymentStatus, TERMINAL_STATUSES
from hatch_api.infrastructure.db.models.payment_cleanup_log import PaymentCleanupLog
from hatch_api.infrastructure.db.models.payment_submission import PaymentSubmission
from hatch_api.infrastructure.db.models.user_profile import UserProfile
from hatch_api.infrastructure.db.repositories.base_repository import BaseRepository


_TERMINAL_VALUES = [status.value for status in TERMINAL_STATUSES]


class PaymentRepository(BaseRepository[PaymentSubmission]):

    def __init__(self, session: AsyncSession):
        super().__init__(PaymentSubmission, session)

    async def get_by_transaction_id(self, transaction_id: str) -> Optional[PaymentSubmission]:
        stmt = select(PaymentSubmission).where(
            PaymentSubmission.transaction_id == transaction_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def transition(
        self,
        payment_id: UUID,
        current: PaymentStatus,
        target: PaymentStatus,
        reviewed_by: Optional[UUID],
        admin_notes: Optional[str],
        now: datetime,
    ) -> bool:
        """
        Move a submission from ``current`` to ``target``.

        The status is re-checked in the WHERE clause, so a concurrent
        reviewer who got there first makes this return False.
        """
        values = {
            "status": target.value,
            "reviewed_by": reviewed_by,
            "reviewed_at": now,
            "updated_at": now,
        }
        if admin_notes is not None:
            values["admin_notes"] = admin_notes
        stmt = (
            update(PaymentSubmission)
            .where(
                PaymentSubmission.id == payment_id,
                PaymentSubmission.status == current.value,
            )
            .values(**values)
            .returning(PaymentSubmission.id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def list_for_user(self, user_id: UUID) -> List[PaymentSubmission]:
        stmt = (
            select(PaymentSubmission)
            .where(PaymentSubmission.user_id == user_id)
            .order_by(PaymentSubmission.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_with_profiles(
        self,
        status: Optional[PaymentStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Tuple[PaymentSubmission, Optional[UserProfile]]]:
        """
        Submissions newest first, each paired with its submitter's profile.

        ``search`` matches the transaction id or the submitter's username,
        full name or email, case-insensitively.
        """
        stmt = select(PaymentSubmission, UserProfile).outerjoin(
            UserProfile, UserProfile.id == PaymentSubmission.user_id
        )
        if status is not None:
            stmt = stmt.where(PaymentSubmission.status == status.value)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    PaymentSubmission.transaction_id.ilike(pattern),
                    UserProfile.username.ilike(pattern),
                    UserProfile.full_name.ilike(pattern),
                    UserProfile.email.ilike(pattern),
                )
            )
        stmt = stmt.order_by(PaymentSubmission.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def stats(self) -> PaymentStats:
        """Counts per status and the revenue of approved submissions."""
        approved = PaymentStatus.APPROVED.value
        stmt = select(
            func.count(),
            func.coalesce(func.sum(case((PaymentSubmission.status == PaymentStatus.PENDING.value, 1), else_=0)), 0),
            func.coalesce(func.sum(case((PaymentSubmission.status == approved, 1), else_=0)), 0),
            func.coalesce(func.sum(case((PaymentSubmission.status == PaymentStatus.REJECTED.value, 1), else_=0)), 0),
            func.coalesce(func.sum(case((PaymentSubmission.status == approved, PaymentSubmission.amount_paid), else_=0)), 0),
        ).select_from(PaymentSubmission)
        total, pending, approved_count, rejected, revenue = (await self.session.execute(stmt)).one()
        return PaymentStats(
            total=total,
            pending=pending,
            approved=approved_count,
            rejected=rejected,
            total_revenue=float(revenue),
        )

    # =========================================================================
    # Retention
    # =========================================================================

    async def count_terminal_before(self, cutoff: datetime) -> int:
        stmt = select(func.count()).select_from(PaymentSubmission).where(
            PaymentSubmission.status.in_(_TERMINAL_VALUES),
            PaymentSubmission.created_at < cutoff,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def delete_terminal_before(self, cutoff: datetime) -> int:
        """Bulk-delete reviewed submissions created before ``cutoff``. Pending rows stay."""
        stmt = (
            delete(PaymentSubmission)
            .where(
                PaymentSubmission.status.in_(_TERMINAL_VALUES),
                PaymentSubmission.created_at < cutoff,
            )
            .returning(PaymentSubmission.id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return len(result.all())

    async def list_cleanup_logs(self, limit: int = 10) -> List[PaymentCleanupLog]:
        stmt = (
            select(PaymentCleanupLog)
            .order_by(PaymentCleanupLog.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
