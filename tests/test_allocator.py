"""FIFO selection and the allocate / release pair."""
import uuid
from types import SimpleNamespace

from sqlalchemy import select

from commission_ledger.models.commission import Commission, CommissionStatus
from commission_ledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from commission_ledger.models.commission import utcnow
from commission_ledger.services.allocator import AllocationResult, FIFOAllocator, select_fifo


def _candidates(*amounts):
    return [SimpleNamespace(id=uuid.uuid4(), amount=amount) for amount in amounts]


class TestSelectFifo:

    def test_stops_at_first_prefix_reaching_amount(self):
        candidates = _candidates(3000, 4000, 2000)
        selected = select_fifo(candidates, 5000)
        assert [c.amount for c in selected] == [3000, 4000]

    def test_exact_match_does_not_take_next(self):
        candidates = _candidates(3000, 2000, 4000)
        selected = select_fifo(candidates, 5000)
        assert [c.amount for c in selected] == [3000, 2000]

    def test_single_large_commission_overshoots(self):
        selected = select_fifo(_candidates(10000, 100), 500)
        assert [c.amount for c in selected] == [10000]

    def test_short_supply_returns_everything(self):
        candidates = _candidates(1000, 500)
        assert select_fifo(candidates, 5000) == candidates

    def test_empty_candidates(self):
        assert select_fifo([], 100) == []


class TestAllocationResult:

    def test_covers(self):
        result = AllocationResult(assigned_commission_ids=(uuid.uuid4(),), assigned_total=7000)
        assert result.covers(5000)
        assert result.covers(7000)
        assert not result.covers(7001)

    def test_empty_never_covers(self):
        assert not AllocationResult(assigned_commission_ids=(), assigned_total=0).covers(0)


async def _open_withdrawal(db, vendor_id, amount):
    withdrawal = WithdrawalRequest(
        id=uuid.uuid4(),
        vendor_id=vendor_id,
        amount=amount,
        status=WithdrawalStatus.PENDING.value,
        request_date=utcnow(),
    )
    db.add(withdrawal)
    await db.flush()
    return withdrawal


async def test_allocate_marks_oldest_processing(db, vendor_id, seed_commissions):
    c1, c2, c3 = await seed_commissions(vendor_id, [3000, 4000, 2000])
    withdrawal = await _open_withdrawal(db, vendor_id, 5000)

    result = await FIFOAllocator(db).allocate(vendor_id, withdrawal.id, 5000)
    await db.commit()

    assert result.assigned_commission_ids == (c1.id, c2.id)
    assert result.assigned_total == 7000
    assert c1.status == CommissionStatus.PROCESSING.value
    assert c2.status == CommissionStatus.PROCESSING.value
    assert c1.withdrawal_id == withdrawal.id
    assert c3.status == CommissionStatus.PENDING.value
    assert c3.withdrawal_id is None


async def test_allocate_ignores_other_vendors(db, vendor_id, seed_commissions):
    other_vendor = uuid.uuid4()
    await seed_commissions(other_vendor, [9000])
    (own,) = await seed_commissions(vendor_id, [1000])
    own_id = own.id
    withdrawal = await _open_withdrawal(db, vendor_id, 5000)

    result = await FIFOAllocator(db).allocate(vendor_id, withdrawal.id, 5000)
    await db.rollback()

    assert result.assigned_commission_ids == (own_id,)
    assert not result.covers(5000)


async def test_release_restores_pre_allocation_state(db, vendor_id, seed_commissions):
    commissions = await seed_commissions(vendor_id, [3000, 4000, 2000])
    before = [(c.id, c.status, c.withdrawal_id, c.created_at) for c in commissions]

    withdrawal = await _open_withdrawal(db, vendor_id, 5000)
    allocator = FIFOAllocator(db)
    allocated = await allocator.allocate(vendor_id, withdrawal.id, 5000)
    released = await allocator.release(withdrawal.id)
    await db.commit()

    assert released == list(allocated.assigned_commission_ids)

    result = await db.execute(
        select(Commission).where(Commission.vendor_id == vendor_id).order_by(Commission.created_at.asc())
    )
    after = [(c.id, c.status, c.withdrawal_id, c.created_at) for c in result.scalars().all()]
    assert after == before
