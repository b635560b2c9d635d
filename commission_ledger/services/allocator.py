"""
FIFO allocation of pending commissions to a withdrawal request.

Oldest debt is paid first. Commissions are atomic allocation units: they are
never split, so the assigned total is at least the requested amount and the
overshoot is smaller than the last commission added.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_ledger.core.state_machine import apply_commission_transition
from commission_ledger.models.commission import Commission, CommissionStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationResult:
    assigned_commission_ids: Tuple[uuid.UUID, ...]
    assigned_total: int

    def covers(self, requested_amount: int) -> bool:
        return bool(self.assigned_commission_ids) and self.assigned_total >= requested_amount


def select_fifo(candidates: Sequence[Commission], requested_amount: int) -> List[Commission]:
    """
    Pick commissions from an oldest-first list until the running total
    reaches the requested amount.

    Each commission is included before the total is checked, so the returned
    list is the shortest prefix whose sum is >= requested_amount, or the whole
    list when even that falls short.
    """
    selected: List[Commission] = []
    running_total = 0
    for commission in candidates:
        selected.append(commission)
        running_total += commission.amount
        if running_total >= requested_amount:
            break
    return selected


class FIFOAllocator:
    """Binds pending commissions to withdrawal requests and releases them again."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _lock_pending(self, vendor_id: uuid.UUID) -> Sequence[Commission]:
        # FOR UPDATE keeps a concurrent allocation for the same vendor waiting
        # until this transaction commits or rolls back; populate_existing makes
        # the locked rows replace copies already held by the session.
        result = await self.db.execute(
            select(Commission)
            .where(
                Commission.vendor_id == vendor_id,
                Commission.status == CommissionStatus.PENDING.value,
            )
            .order_by(Commission.created_at.asc(), Commission.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def allocate(
        self,
        vendor_id: uuid.UUID,
        withdrawal_id: uuid.UUID,
        requested_amount: int,
    ) -> AllocationResult:
        """
        Mark the oldest pending commissions PROCESSING for withdrawal_id.

        Does not commit. An empty or short result is returned as-is; the caller
        decides whether to abort (see AllocationResult.covers).
        """
        candidates = await self._lock_pending(vendor_id)
        selected = select_fifo(candidates, requested_amount)

        for commission in selected:
            apply_commission_transition(commission, CommissionStatus.PROCESSING)
            commission.withdrawal_id = withdrawal_id

        await self.db.flush()

        result = AllocationResult(
            assigned_commission_ids=tuple(c.id for c in selected),
            assigned_total=sum(c.amount for c in selected),
        )
        logger.debug(
            f"Allocated {len(selected)} of {len(candidates)} pending commissions "
            f"({result.assigned_total}/{requested_amount}) to withdrawal {withdrawal_id}"
        )
        return result

    async def release(self, withdrawal_id: uuid.UUID) -> List[uuid.UUID]:
        """Return every commission held by withdrawal_id to PENDING. Does not commit."""
        result = await self.db.execute(
            select(Commission)
            .where(
                Commission.withdrawal_id == withdrawal_id,
                Commission.status == CommissionStatus.PROCESSING.value,
            )
            .order_by(Commission.created_at.asc(), Commission.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        commissions = result.scalars().all()

        for commission in commissions:
            apply_commission_transition(commission, CommissionStatus.PENDING)
            commission.withdrawal_id = None

        await self.db.flush()
        return [c.id for c in commissions]
