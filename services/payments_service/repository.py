"""Payment persistence.

Writes are limited to inserting new rows and the conditional status flip;
there is no method that changes ``lease_id``, ``tenant_id``, ``landlord_id`` or
``amount`` on an existing payment, and none that deletes one.

Status changes are bulk UPDATEs that bypass the identity map, so reads use
``populate_existing`` to refresh instances the session already holds.
"""

import uuid
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.payments_service.models import (
    Payment,
    PaymentProvider,
    PaymentStatus,
)
from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class PaymentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, payment: Payment) -> Payment:
        """Insert and commit a new payment. Rolls back on failure.

        Nothing runs after the commit, so an error raised here means the row
        was not written.
        """
        self.db.add(payment)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return payment

    async def reload(self, payment: Payment) -> Payment:
        await self.db.refresh(payment)
        return payment

    async def get_by_id(self, payment_id: uuid.UUID) -> Optional[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_intent_id(self, provider_intent_id: str) -> Optional[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.provider_intent_id == provider_intent_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def end_read(self) -> None:
        """End the current read transaction so later queries see newly committed rows."""
        await self.db.rollback()

    async def list_by_lease(self, lease_id: str) -> Sequence[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.lease_id == lease_id)
            .order_by(Payment.due_date.asc(), Payment.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def list_by_tenant(self, tenant_id: str, limit: int = 100) -> Sequence[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.tenant_id == tenant_id)
            .order_by(Payment.due_date.desc(), Payment.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def list_stale_pending(
        self,
        older_than: timedelta,
        limit: int = 200,
        after: Optional[tuple[datetime, uuid.UUID]] = None,
    ) -> Sequence[Payment]:
        """
        Processor-backed payments still PENDING after ``older_than``.

        Ordered by ``(created_at, id)``. Pass the last row's key as ``after``
        to fetch the next page; rows settled in between drop out without
        shifting the pages.
        """
        cutoff = utc_now() - older_than
        stmt = select(Payment).where(
            Payment.status == PaymentStatus.PENDING,
            Payment.provider == PaymentProvider.PROCESSOR,
            Payment.provider_intent_id.is_not(None),
            Payment.created_at <= cutoff,
        )
        if after is not None:
            created_at, payment_id = after
            stmt = stmt.where(
                or_(
                    Payment.created_at > created_at,
                    and_(Payment.created_at == created_at, Payment.id > payment_id),
                )
            )
        result = await self.db.execute(
            stmt.order_by(Payment.created_at.asc(), Payment.id.asc()).limit(limit)
        )
        return result.scalars().all()

    async def list_overdue(
        self, today: date, landlord_id: Optional[str] = None
    ) -> Sequence[Payment]:
        """PENDING payments whose due date is before ``today``, oldest first."""
        stmt = select(Payment).where(
            Payment.status == PaymentStatus.PENDING,
            Payment.due_date < today,
        )
        if landlord_id is not None:
            stmt = stmt.where(Payment.landlord_id == landlord_id)
        result = await self.db.execute(
            stmt.order_by(Payment.due_date.asc(), Payment.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def transition_from_pending(
        self,
        provider_intent_id: str,
        new_status: PaymentStatus,
        *,
        paid_date: Optional[datetime] = None,
        failure_reason: Optional[str] = None,
    ) -> bool:
        """
        Move a payment out of PENDING in one conditional UPDATE.

        The WHERE clause pins the current status, so concurrent or duplicate
        deliveries race on the row and at most one of them matches. Returns
        True iff this call performed the transition.
        """
        if new_status not in (PaymentStatus.PAID, PaymentStatus.FAILED):
            raise ValueError(f"Unsupported transition target: {new_status}")

        values = {"status": new_status, "updated_at": utc_now()}
        if new_status == PaymentStatus.PAID:
            values["paid_date"] = paid_date or utc_now()
        if failure_reason:
            values["failure_reason"] = failure_reason

        stmt = (
            update(Payment)
            .where(
                Payment.provider_intent_id == provider_intent_id,
                Payment.status == PaymentStatus.PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        applied = result.rowcount == 1
        logger.debug(
            "CAS %s pending->%s applied=%s",
            provider_intent_id,
            new_status.value,
            applied,
        )
        return applied
