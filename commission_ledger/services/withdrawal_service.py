"""
Withdrawal Request Service

Vendor side of the withdrawal lifecycle:
- Creating a request and allocating pending commissions to it
- Cancelling a pending request and releasing its commissions
- Withdrawal history and pending-request lookups
"""
import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_ledger.core.exceptions import (
    ConflictError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from commission_ledger.core.money import require_positive_amount
from commission_ledger.core.state_machine import apply_withdrawal_transition
from commission_ledger.models.commission import utcnow
from commission_ledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from commission_ledger.services.allocator import FIFOAllocator
from commission_ledger.services.balance_service import BalanceService
from commission_ledger.services.unit_of_work import atomic


logger = logging.getLogger(__name__)

VENDOR_CANCEL_NOTE = "Cancelled by vendor"


def vendor_lock_key(vendor_id: uuid.UUID) -> int:
    """Signed 64-bit key for pg_advisory_xact_lock derived from the vendor id."""
    return (vendor_id.int & ((1 << 64) - 1)) - (1 << 63)


class WithdrawalService:
    """Service for vendor withdrawal requests"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.allocator = FIFOAllocator(db)
        self.balances = BalanceService(db)

    async def _lock_vendor(self, vendor_id: uuid.UUID) -> None:
        """
        Serialize withdrawal creation per vendor for the rest of the transaction.

        PostgreSQL takes a transaction-scoped advisory lock. SQLite transactions
        are already opened with BEGIN IMMEDIATE, which holds the database write
        lock for the same span.
        """
        if self.db.get_bind().dialect.name == "postgresql":
            await self.db.execute(select(func.pg_advisory_xact_lock(vendor_lock_key(vendor_id))))

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

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def create_withdrawal_request(
        self,
        vendor_id: uuid.UUID,
        amount: int,
        notes: Optional[str] = None,
    ) -> WithdrawalRequest:
        """
        Create a withdrawal request and bind pending commissions to it.

        Flow:
        1. Validate amount
        2. Lock the vendor's withdrawal scope
        3. Reject if a pending request already exists
        4. Check the available balance covers the amount
        5. Insert the request and allocate commissions FIFO
        6. Abort everything if the allocation falls short
        """
        require_positive_amount(amount)

        async with atomic(self.db, "create_withdrawal_request"):
            await self._lock_vendor(vendor_id)

            existing = await self.get_pending_request(vendor_id)
            if existing:
                logger.warning(f"Vendor {vendor_id} already has pending withdrawal {existing.id}")
                raise ConflictError(
                    "Vendor already has a pending withdrawal request",
                    {"vendor_id": str(vendor_id), "withdrawal_id": str(existing.id)},
                )

            balance = await self.balances.get_vendor_balance(vendor_id)
            if amount > balance.available_commission:
                logger.warning(
                    f"Vendor {vendor_id} requested {amount} with only {balance.available_commission} available"
                )
                raise InsufficientFundsError(
                    "Requested amount exceeds available commission",
                    {"requested": amount, "available": balance.available_commission},
                )

            withdrawal = WithdrawalRequest(
                id=uuid.uuid4(),
                vendor_id=vendor_id,
                amount=amount,
                status=WithdrawalStatus.PENDING.value,
                request_date=utcnow(),
                notes=notes or None,
            )
            self.db.add(withdrawal)
            try:
                await self.db.flush()
            except IntegrityError as exc:
                # A concurrent request won the partial unique index
                raise ConflictError(
                    "Vendor already has a pending withdrawal request",
                    {"vendor_id": str(vendor_id)},
                ) from exc

            allocation = await self.allocator.allocate(vendor_id, withdrawal.id, amount)
            if not allocation.covers(amount):
                logger.warning(
                    f"Allocation for vendor {vendor_id} covered {allocation.assigned_total} of {amount}; aborting"
                )
                raise InsufficientFundsError(
                    "Pending commissions do not cover the requested amount",
                    {"requested": amount, "allocated": allocation.assigned_total},
                )

        logger.info(
            f"Withdrawal {withdrawal.id} created for vendor {vendor_id}: {amount} requested, "
            f"{len(allocation.assigned_commission_ids)} commissions ({allocation.assigned_total}) allocated"
        )
        return withdrawal

    async def cancel_withdrawal_request(self, withdrawal_id: uuid.UUID, vendor_id: uuid.UUID) -> WithdrawalRequest:
        """
        Vendor cancels a pending request; its commissions return to PENDING.

        A request belonging to another vendor is reported as not found.
        """
        async with atomic(self.db, "cancel_withdrawal_request"):
            withdrawal = await self._get_for_update(withdrawal_id)
            if withdrawal.vendor_id != vendor_id:
                raise NotFoundError("Withdrawal request not found", {"withdrawal_id": str(withdrawal_id)})

            apply_withdrawal_transition(withdrawal, WithdrawalStatus.CANCELLED)
            withdrawal.notes = f"{withdrawal.notes} | {VENDOR_CANCEL_NOTE}" if withdrawal.notes else VENDOR_CANCEL_NOTE

            released = await self.allocator.release(withdrawal.id)

        logger.info(f"Withdrawal {withdrawal_id} cancelled by vendor {vendor_id}; {len(released)} commissions released")
        return withdrawal

    # ========================================================================
    # Lookups
    # ========================================================================

    async def get_withdrawal(self, withdrawal_id: uuid.UUID) -> WithdrawalRequest:
        result = await self.db.execute(
            select(WithdrawalRequest).where(WithdrawalRequest.id == withdrawal_id)
        )
        withdrawal = result.scalar_one_or_none()
        if not withdrawal:
            raise NotFoundError("Withdrawal request not found", {"withdrawal_id": str(withdrawal_id)})
        return withdrawal

    async def get_pending_request(self, vendor_id: uuid.UUID) -> Optional[WithdrawalRequest]:
        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(
                WithdrawalRequest.vendor_id == vendor_id,
                WithdrawalRequest.status == WithdrawalStatus.PENDING.value,
            )
            .order_by(WithdrawalRequest.request_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_vendor_withdrawal_history(
        self,
        vendor_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[WithdrawalRequest], int]:
        """All requests of a vendor, newest first."""
        if skip < 0 or limit < 1:
            raise ValidationError("skip must be >= 0 and limit >= 1", {"skip": skip, "limit": limit})

        total_result = await self.db.execute(
            select(func.count(WithdrawalRequest.id)).where(WithdrawalRequest.vendor_id == vendor_id)
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(WithdrawalRequest.vendor_id == vendor_id)
            .order_by(WithdrawalRequest.request_date.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_last_completed_withdrawal(self, vendor_id: uuid.UUID) -> Optional[WithdrawalRequest]:
        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(
                WithdrawalRequest.vendor_id == vendor_id,
                WithdrawalRequest.status == WithdrawalStatus.COMPLETED.value,
            )
            .order_by(WithdrawalRequest.payment_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
