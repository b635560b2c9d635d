"""Vendor Balance View: read-only aggregation over commission records."""
import uuid
from dataclasses import dataclass

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from commission_ledger.models.commission import Commission, CommissionStatus
from commission_ledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus


@dataclass(frozen=True)
class VendorBalance:
    """Derived vendor balance, all amounts in minor units."""
    total_earned: int
    total_paid: int
    total_processing: int
    available_commission: int

    @property
    def is_consistent(self) -> bool:
        return self.total_earned == self.total_paid + self.total_processing + self.available_commission


class BalanceService:
    """Aggregations for vendor and admin dashboards. Never writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _sum_for_vendor(self, vendor_id: uuid.UUID, status: CommissionStatus = None) -> int:
        query = select(func.coalesce(func.sum(Commission.amount), 0)).where(Commission.vendor_id == vendor_id)
        if status is not None:
            query = query.where(Commission.status == status.value)
        result = await self.db.execute(query)
        return int(result.scalar() or 0)

    async def get_vendor_balance(self, vendor_id: uuid.UUID) -> VendorBalance:
        """Financial summary of a vendor (total, paid, processing, available)."""
        return VendorBalance(
            total_earned=await self._sum_for_vendor(vendor_id),
            total_paid=await self._sum_for_vendor(vendor_id, CommissionStatus.PAID),
            total_processing=await self._sum_for_vendor(vendor_id, CommissionStatus.PROCESSING),
            available_commission=await self._sum_for_vendor(vendor_id, CommissionStatus.PENDING),
        )

    async def get_ledger_overview(self) -> dict:
        """Totals across all vendors for the admin commission dashboard."""
        by_status_result = await self.db.execute(
            select(Commission.status, func.coalesce(func.sum(Commission.amount), 0))
            .group_by(Commission.status)
        )
        by_status = {status.value: 0 for status in CommissionStatus}
        for status, total in by_status_result.all():
            by_status[status] = int(total)

        pending_result = await self.db.execute(
            select(func.count(WithdrawalRequest.id))
            .where(WithdrawalRequest.status == WithdrawalStatus.PENDING.value)
        )

        return {
            "total_commissions": sum(by_status.values()),
            "total_paid": by_status[CommissionStatus.PAID.value],
            "total_processing": by_status[CommissionStatus.PROCESSING.value],
            "total_available": by_status[CommissionStatus.PENDING.value],
            "by_status": by_status,
            "pending_withdrawals": pending_result.scalar() or 0,
        }
