"""
Concurrent withdrawal creation through independent sessions.

Each create runs in its own session and connection, the way two API
requests would. Setup sessions are closed before the race starts so no
open transaction holds the SQLite write lock.
"""
import asyncio
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select, text

from commission_ledger.core.exceptions import ConflictError, PersistenceError
from commission_ledger.database import build_engine, build_session_factory, init_db
from commission_ledger.models.commission import Commission, CommissionStatus, utcnow
from commission_ledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from commission_ledger.services import BalanceService, CommissionService, WithdrawalService


async def _seed(session_factory, vendor_id, amounts):
    start = utcnow() - timedelta(days=5)
    async with session_factory() as session:
        service = CommissionService(session)
        for offset, amount in enumerate(amounts):
            await service.record_commission(
                order_id=uuid.uuid4(),
                vendor_id=vendor_id,
                doctor_id=None,
                amount=amount,
                rate=Decimal("10"),
                created_at=start + timedelta(minutes=offset),
            )


async def _create(session_factory, vendor_id, amount):
    async with session_factory() as session:
        withdrawal = await WithdrawalService(session).create_withdrawal_request(vendor_id, amount)
        return withdrawal.id


async def test_concurrent_creates_single_winner(session_factory, vendor_id):
    await _seed(session_factory, vendor_id, [3000, 4000, 2000])

    results = await asyncio.gather(
        _create(session_factory, vendor_id, 5000),
        _create(session_factory, vendor_id, 5000),
        return_exceptions=True,
    )

    winners = [r for r in results if isinstance(r, uuid.UUID)]
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], ConflictError)

    async with session_factory() as session:
        pending = await session.execute(
            select(func.count(WithdrawalRequest.id)).where(
                WithdrawalRequest.vendor_id == vendor_id,
                WithdrawalRequest.status == WithdrawalStatus.PENDING.value,
            )
        )
        assert pending.scalar() == 1

        allocated = await session.execute(
            select(Commission.withdrawal_id, func.sum(Commission.amount))
            .where(Commission.status == CommissionStatus.PROCESSING.value)
            .group_by(Commission.withdrawal_id)
        )
        assert allocated.all() == [(winners[0], 7000)]

        balance = await BalanceService(session).get_vendor_balance(vendor_id)
        assert balance.available_commission == 2000
        assert balance.is_consistent


async def test_concurrent_creates_for_different_vendors(session_factory):
    first_vendor, second_vendor = uuid.uuid4(), uuid.uuid4()
    await _seed(session_factory, first_vendor, [6000])
    await _seed(session_factory, second_vendor, [6000])

    results = await asyncio.gather(
        _create(session_factory, first_vendor, 5000),
        _create(session_factory, second_vendor, 5000),
        return_exceptions=True,
    )

    assert all(isinstance(r, uuid.UUID) for r in results)


async def test_lock_timeout_is_persistence_error(tmp_path, vendor_id):
    engine = build_engine(f"sqlite:///{tmp_path / 'locked.db'}", lock_timeout_ms=200)
    await init_db(engine)
    factory = build_session_factory(engine)
    await _seed(factory, vendor_id, [6000])

    try:
        async with factory() as holder:
            # Opens BEGIN IMMEDIATE and keeps the write lock until rollback
            await holder.execute(text("SELECT 1"))

            async with factory() as session:
                with pytest.raises(PersistenceError) as exc_info:
                    await WithdrawalService(session).create_withdrawal_request(vendor_id, 5000)

            assert exc_info.value.details == {
                "operation": "create_withdrawal_request",
                "cause": "OperationalError",
            }
            assert exc_info.value.retryable
            await holder.rollback()

        async with factory() as session:
            count = await session.execute(select(func.count(WithdrawalRequest.id)))
            assert count.scalar() == 0
            balance = await BalanceService(session).get_vendor_balance(vendor_id)
            assert balance.available_commission == 6000
    finally:
        await engine.dispose()
