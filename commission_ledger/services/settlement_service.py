"""
Settlement Processor

Admin side of the withdrawal lifecycle: approving (paying) or rejecting
pending requests, and the pending-request queue.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from commission_ledger.core.exceptions import NotFoundError, ValidationError
from commission_ledger.core.state_machine import (
    apply_commission_transition,
    apply_withdrawal_transition,
    ensure_withdrawal_transition,
)
from commission_ledger.models.commission import Commission, CommissionStatus, utcnow
from commission_ledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from commission_ledger.services.allocator import FIFOAllocator
from commission_ledger.services.unit_of_work import atomic


logger = logging.getLogger(__name__)


@dataclass
class SettlementOutcome:
    """Result handed back to the caller, e.g. to notify the vendor."""
    withdrawal: WithdrawalRequest
    settled_commission_ids: List[uuid.UUID] = field(default_factory=list)
    reconciled_commission_ids: List[uuid.UUID] = field(default_factory=list)
    released_commission_ids: List[uuid.UUID] = field(default_factory=list)


class SettlementService:
    """Service for approving and rejecting withdrawal requests"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.allocator = FIFOAllocator(db)

    async def _get_for_update(self, withdrawal_id: uuid.UUID) -> WithdrawalRequest:
        # The locked row overwrites a copy the session may already hold
        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(WithdrawalRequest.id == withdrawal_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        withdrawal = result.scalar_one_or_none()
        if not withdrawal:
            raise NotFoundError("Withdrawal request not found", {"withdrawal_id": str(withdrawal_id)})
        return withdrawal

    async def approve_withdrawal(
        self,
        withdrawal_id: uuid.UUID,
        admin_id: uuid.UUID,
        payment_method: str,
        payment_details: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SettlementOutcome:
        """
        Mark a pending withdrawal as paid.

        Steps:
        1. Request must exist and be PENDING, then a payment method is required
        2. Request -> COMPLETED with payment method/details/date and admin
        3. Commissions bound to the request -> PAID
        4. Reconciliation: the vendor's other PENDING commissions created up to
           the payment date -> PAID with the same payment date

        Step 4 closes the books for everything accrued up to the payout and may
        therefore pay out more than the requested amount.
        """
        async with atomic(self.db, "approve_withdrawal"):
            withdrawal = await self._get_for_update(withdrawal_id)
            ensure_withdrawal_transition(withdrawal, WithdrawalStatus.COMPLETED)
            if not payment_method or not payment_method.strip():
                raise ValidationError("Payment method is required", {"field": "payment_method"})
            apply_withdrawal_transition(withdrawal, WithdrawalStatus.COMPLETED)

            payment_date = utcnow()
            withdrawal.payment_method = payment_method.strip()
            withdrawal.payment_details = payment_details
            withdrawal.payment_date = payment_date
            withdrawal.processed_by = admin_id
            if notes:
                withdrawal.notes = notes

            allocated_result = await self.db.execute(
                select(Commission)
                .where(
                    Commission.withdrawal_id == withdrawal.id,
                    Commission.status == CommissionStatus.PROCESSING.value,
                )
                .order_by(Commission.created_at.asc(), Commission.id.asc())
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            allocated = allocated_result.scalars().all()
            for commission in allocated:
                apply_commission_transition(commission, CommissionStatus.PAID)
                commission.payment_date = payment_date

            # Allocated rows are PAID in the database before the reconciliation read
            await self.db.flush()

            # Reconciliation pass
            reconcile_result = await self.db.execute(
                select(Commission)
                .where(
                    Commission.vendor_id == withdrawal.vendor_id,
                    Commission.status == CommissionStatus.PENDING.value,
                    Commission.created_at <= payment_date,
                )
                .order_by(Commission.created_at.asc(), Commission.id.asc())
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            reconciled = reconcile_result.scalars().all()
            for commission in reconciled:
                apply_commission_transition(commission, CommissionStatus.PAID)
                commission.payment_date = payment_date

            await self.db.flush()

        outcome = SettlementOutcome(
            withdrawal=withdrawal,
            settled_commission_ids=[c.id for c in allocated],
            reconciled_commission_ids=[c.id for c in reconciled],
        )
        logger.info(
            f"Withdrawal {withdrawal_id} approved by {admin_id} via {withdrawal.payment_method}: "
            f"{len(outcome.settled_commission_ids)} allocated and "
            f"{len(outcome.reconciled_commission_ids)} reconciled commissions paid"
        )
        if outcome.reconciled_commission_ids:
            logger.warning(
                f"Reconciliation on withdrawal {withdrawal_id} paid "
                f"{sum(c.amount for c in reconciled)} beyond the allocated commissions"
            )
        return outcome

    async def reject_withdrawal(
        self,
        withdrawal_id: uuid.UUID,
        admin_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> SettlementOutcome:
        """Reject a pending withdrawal; its commissions return to PENDING."""
        async with atomic(self.db, "reject_withdrawal"):
            withdrawal = await self._get_for_update(withdrawal_id)
            apply_withdrawal_transition(withdrawal, WithdrawalStatus.REJECTED)

            withdrawal.notes = reason
            withdrawal.processed_by = admin_id

            released = await self.allocator.release(withdrawal.id)

        logger.info(f"Withdrawal {withdrawal_id} rejected by {admin_id}; {len(released)} commissions released")
        return SettlementOutcome(withdrawal=withdrawal, released_commission_ids=released)

    # ========================================================================
    # Admin queue
    # ========================================================================

    async def list_pending_withdrawals(
        self,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[WithdrawalRequest], int]:
        """Pending requests, oldest request first."""
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be >= 1", {"page": page, "page_size": page_size})

        total = await self.count_pending_withdrawals()

        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(WithdrawalRequest.status == WithdrawalStatus.PENDING.value)
            .order_by(WithdrawalRequest.request_date.asc(), WithdrawalRequest.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def count_pending_withdrawals(self) -> int:
        result = await self.db.execute(
            select(func.count(WithdrawalRequest.id))
            .where(WithdrawalRequest.status == WithdrawalStatus.PENDING.value)
        )
        return result.scalar() or 0
