"""
Commission Record Store

Durable records of money owed to vendors:
- Recording commissions finalized by the order pipeline
- Audit listing of the commissions bound to a withdrawal
- Vendor commission history, dashboard list and period reports
"""
import logging
import uuid
from collections import OrderedDict
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from commission_ledger.core.enum_utils import get_enum_value
from commission_ledger.core.exceptions import NotFoundError, ValidationError
from commission_ledger.core.money import require_positive_amount
from commission_ledger.models.commission import Commission, CommissionStatus, utcnow
from commission_ledger.services.unit_of_work import atomic


logger = logging.getLogger(__name__)

REPORT_GROUPINGS = {
    "day": "%Y-%m-%d",
    "month": "%Y-%m",
}


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class CommissionService:
    """Service for commission records"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ========================================================================
    # Recording
    # ========================================================================

    async def record_commission(
        self,
        order_id: uuid.UUID,
        vendor_id: uuid.UUID,
        doctor_id: Optional[uuid.UUID],
        amount: int,
        rate: Decimal,
        created_at: Optional[datetime] = None,
    ) -> Commission:
        """
        Record a finalized commission for an order.

        The commission starts PENDING and immediately counts towards the
        vendor's available balance.
        """
        require_positive_amount(amount)
        try:
            rate = Decimal(str(rate))
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid commission rate: {rate!r}") from exc
        if not rate.is_finite() or rate < 0:
            raise ValidationError("Commission rate must be zero or positive", {"rate": str(rate)})

        # Stored in UTC; naive timestamps are taken as UTC
        if created_at is not None:
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            else:
                created_at = created_at.astimezone(timezone.utc)

        async with atomic(self.db, "record_commission"):
            commission = Commission(
                id=uuid.uuid4(),
                vendor_id=vendor_id,
                order_id=order_id,
                doctor_id=doctor_id,
                amount=amount,
                rate=rate,
                status=CommissionStatus.PENDING.value,
                created_at=created_at or utcnow(),
            )
            self.db.add(commission)
            await self.db.flush()

        logger.info(f"Recorded commission {commission.id} of {amount} for vendor {vendor_id} (order {order_id})")
        return commission

    # ========================================================================
    # Lookups
    # ========================================================================

    async def get_commission(self, commission_id: uuid.UUID) -> Commission:
        result = await self.db.execute(
            select(Commission).where(Commission.id == commission_id)
        )
        commission = result.scalar_one_or_none()
        if not commission:
            raise NotFoundError("Commission not found", {"commission_id": str(commission_id)})
        return commission

    async def commissions_for_withdrawal(self, withdrawal_id: uuid.UUID) -> List[Commission]:
        """Commissions bound to a withdrawal, oldest first (audit display)."""
        result = await self.db.execute(
            select(Commission)
            .where(Commission.withdrawal_id == withdrawal_id)
            .order_by(Commission.created_at.asc(), Commission.id.asc())
        )
        return list(result.scalars().all())

    async def get_vendor_pending_commissions(self, vendor_id: uuid.UUID, limit: int = 10) -> List[Commission]:
        """Oldest pending commissions, in the order the allocator would take them."""
        result = await self.db.execute(
            select(Commission)
            .where(
                Commission.vendor_id == vendor_id,
                Commission.status == CommissionStatus.PENDING.value,
            )
            .order_by(Commission.created_at.asc(), Commission.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_vendor_commissions(
        self,
        vendor_id: uuid.UUID,
        status: Optional[CommissionStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Commission], int]:
        """
        Vendor commission history, newest first.

        The date range is inclusive on calendar days (UTC).
        """
        if skip < 0 or limit < 1:
            raise ValidationError("skip must be >= 0 and limit >= 1", {"skip": skip, "limit": limit})

        filters = [Commission.vendor_id == vendor_id]
        if status:
            filters.append(Commission.status == get_enum_value(status))
        if start_date:
            filters.append(Commission.created_at >= _start_of_day(start_date))
        if end_date:
            filters.append(Commission.created_at < _start_of_day(end_date + timedelta(days=1)))

        total_result = await self.db.execute(
            select(func.count(Commission.id)).where(and_(*filters))
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Commission)
            .where(and_(*filters))
            .order_by(Commission.created_at.desc(), Commission.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    # ========================================================================
    # Reports
    # ========================================================================

    async def vendor_commission_report(
        self,
        vendor_id: Optional[uuid.UUID],
        start_date: date,
        end_date: date,
        group_by: str = "day",
    ) -> List[dict]:
        """
        Commission totals per day or month in [start_date, end_date].

        vendor_id=None reports across all vendors (admin report).

        Returns rows like {"period": "2026-10", "count": 3, "total": 9000}
        ordered by period. Grouping happens in Python so the same code runs
        on PostgreSQL and SQLite.
        """
        pattern = REPORT_GROUPINGS.get(group_by)
        if pattern is None:
            raise ValidationError(
                f"Unknown grouping: {group_by}",
                {"group_by": group_by, "allowed": sorted(REPORT_GROUPINGS)},
            )
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")

        filters = [
            Commission.created_at >= _start_of_day(start_date),
            Commission.created_at < _start_of_day(end_date + timedelta(days=1)),
        ]
        if vendor_id is not None:
            filters.append(Commission.vendor_id == vendor_id)

        result = await self.db.execute(
            select(Commission.created_at, Commission.amount)
            .where(and_(*filters))
            .order_by(Commission.created_at.asc())
        )
        rows: Sequence = result.all()

        buckets: "OrderedDict[str, dict]" = OrderedDict()
        for created_at, amount in rows:
            if created_at.tzinfo is not None:
                created_at = created_at.astimezone(timezone.utc)
            period = created_at.strftime(pattern)
            bucket = buckets.setdefault(period, {"period": period, "count": 0, "total": 0})
            bucket["count"] += 1
            bucket["total"] += amount

        return list(buckets.values())
