"""Admin settlement: approve, reject and the pending queue."""
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from commission_ledger.core.exceptions import NotFoundError, StateError, ValidationError
from commission_ledger.models.commission import Commission, CommissionStatus, utcnow
from commission_ledger.models.withdrawal import WithdrawalStatus
from commission_ledger.services import BalanceService, SettlementService, WithdrawalService


async def _commissions(db, vendor_id):
    result = await db.execute(
        select(Commission)
        .where(Commission.vendor_id == vendor_id)
        .order_by(Commission.created_at.asc())
    )
    return list(result.scalars().all())


@pytest.fixture
async def pending_withdrawal(db, vendor_id, seed_commissions):
    """Three commissions of 30, 40 and 20 with a withdrawal of 50 allocated."""
    await seed_commissions(vendor_id, [3000, 4000, 2000])
    return await WithdrawalService(db).create_withdrawal_request(vendor_id, 5000)


async def test_reject_releases_commissions(db, vendor_id, admin_id, pending_withdrawal):
    outcome = await SettlementService(db).reject_withdrawal(pending_withdrawal.id, admin_id, reason="KYC pending")

    withdrawal = outcome.withdrawal
    assert withdrawal.status == WithdrawalStatus.REJECTED.value
    assert withdrawal.notes == "KYC pending"
    assert withdrawal.processed_by == admin_id
    assert len(outcome.released_commission_ids) == 2

    commissions = await _commissions(db, vendor_id)
    assert [c.status for c in commissions] == [CommissionStatus.PENDING.value] * 3
    assert all(c.withdrawal_id is None for c in commissions)
    assert (await BalanceService(db).get_vendor_balance(vendor_id)).available_commission == 9000


async def test_rejected_request_cannot_be_approved(db, admin_id, pending_withdrawal):
    withdrawal_id = pending_withdrawal.id
    service = SettlementService(db)
    await service.reject_withdrawal(withdrawal_id, admin_id)

    with pytest.raises(StateError):
        await service.approve_withdrawal(withdrawal_id, admin_id, payment_method="pix")

    with pytest.raises(StateError):
        await service.reject_withdrawal(withdrawal_id, admin_id)


async def test_approve_pays_allocated_and_reconciles(db, vendor_id, admin_id, pending_withdrawal):
    outcome = await SettlementService(db).approve_withdrawal(
        pending_withdrawal.id,
        admin_id,
        payment_method="pix",
        payment_details="key: vendor@example.com",
    )

    withdrawal = outcome.withdrawal
    assert withdrawal.status == WithdrawalStatus.COMPLETED.value
    assert withdrawal.payment_method == "pix"
    assert withdrawal.payment_details == "key: vendor@example.com"
    assert withdrawal.processed_by == admin_id
    assert withdrawal.payment_date is not None
    assert len(outcome.settled_commission_ids) == 2
    # The 20 commission was pending and older than the payment date
    assert len(outcome.reconciled_commission_ids) == 1

    commissions = await _commissions(db, vendor_id)
    assert [c.status for c in commissions] == [CommissionStatus.PAID.value] * 3
    assert all(c.payment_date is not None for c in commissions)

    balance = await BalanceService(db).get_vendor_balance(vendor_id)
    assert balance.total_paid == 9000
    assert balance.available_commission == 0
    assert balance.total_processing == 0
    assert balance.is_consistent


async def test_reconciliation_skips_future_and_other_vendors(db, vendor_id, admin_id, seed_commissions):
    other_vendor = uuid.uuid4()
    await seed_commissions(vendor_id, [6000])
    await seed_commissions(vendor_id, [1500], start=utcnow() + timedelta(days=2))
    await seed_commissions(other_vendor, [2500])
    withdrawal = await WithdrawalService(db).create_withdrawal_request(vendor_id, 5000)

    outcome = await SettlementService(db).approve_withdrawal(withdrawal.id, admin_id, payment_method="bank_transfer")

    assert outcome.reconciled_commission_ids == []
    balance = await BalanceService(db).get_vendor_balance(vendor_id)
    assert balance.total_paid == 6000
    assert balance.available_commission == 1500
    other = await BalanceService(db).get_vendor_balance(other_vendor)
    assert other.available_commission == 2500


async def test_approve_twice_is_state_error(db, vendor_id, admin_id, pending_withdrawal):
    withdrawal_id = pending_withdrawal.id
    service = SettlementService(db)
    await service.approve_withdrawal(withdrawal_id, admin_id, payment_method="pix")

    with pytest.raises(StateError):
        await service.approve_withdrawal(withdrawal_id, admin_id, payment_method="pix")

    balance = await BalanceService(db).get_vendor_balance(vendor_id)
    assert balance.total_paid == 9000


async def test_cancelled_request_cannot_be_approved(db, vendor_id, admin_id, pending_withdrawal):
    withdrawal_id = pending_withdrawal.id
    await WithdrawalService(db).cancel_withdrawal_request(withdrawal_id, vendor_id)

    with pytest.raises(StateError):
        await SettlementService(db).approve_withdrawal(withdrawal_id, admin_id, payment_method="pix")

    balance = await BalanceService(db).get_vendor_balance(vendor_id)
    assert balance.total_paid == 0
    assert balance.available_commission == 9000


@pytest.mark.parametrize("payment_method", ["", "   "])
async def test_approve_requires_payment_method(db, admin_id, pending_withdrawal, payment_method):
    withdrawal_id = pending_withdrawal.id

    with pytest.raises(ValidationError):
        await SettlementService(db).approve_withdrawal(withdrawal_id, admin_id, payment_method=payment_method)

    assert (await WithdrawalService(db).get_withdrawal(withdrawal_id)).status == WithdrawalStatus.PENDING.value


async def test_approve_unknown_request(db, admin_id):
    with pytest.raises(NotFoundError):
        await SettlementService(db).approve_withdrawal(uuid.uuid4(), admin_id, payment_method="pix")


async def test_approve_unknown_request_without_payment_method(db, admin_id):
    with pytest.raises(NotFoundError):
        await SettlementService(db).approve_withdrawal(uuid.uuid4(), admin_id, payment_method="")


@pytest.mark.parametrize("terminal", ["cancel", "reject"])
async def test_terminal_request_without_payment_method_is_state_error(
    db, vendor_id, admin_id, pending_withdrawal, terminal
):
    withdrawal_id = pending_withdrawal.id
    if terminal == "cancel":
        await WithdrawalService(db).cancel_withdrawal_request(withdrawal_id, vendor_id)
    else:
        await SettlementService(db).reject_withdrawal(withdrawal_id, admin_id, reason="Bank details missing")

    with pytest.raises(StateError):
        await SettlementService(db).approve_withdrawal(withdrawal_id, admin_id, payment_method="")


async def test_request_cancelled_in_another_session_cannot_be_approved(
    db, session_factory, vendor_id, admin_id, pending_withdrawal
):
    withdrawal_id = pending_withdrawal.id
    # db keeps its PENDING copy of the request while another session cancels it
    assert pending_withdrawal.status == WithdrawalStatus.PENDING.value

    async with session_factory() as other:
        await WithdrawalService(other).cancel_withdrawal_request(withdrawal_id, vendor_id)

    with pytest.raises(StateError):
        await SettlementService(db).approve_withdrawal(withdrawal_id, admin_id, payment_method="pix")

    async with session_factory() as fresh:
        withdrawal = await WithdrawalService(fresh).get_withdrawal(withdrawal_id)
        assert withdrawal.status == WithdrawalStatus.CANCELLED.value
        assert withdrawal.payment_date is None

        balance = await BalanceService(fresh).get_vendor_balance(vendor_id)
        assert balance.total_paid == 0
        assert balance.available_commission == 9000
        statuses = {c.status for c in await _commissions(fresh, vendor_id)}
        assert statuses == {CommissionStatus.PENDING.value}


async def test_pending_queue_oldest_first(db, admin_id, seed_commissions):
    vendors = [uuid.uuid4() for _ in range(3)]
    created = []
    for vendor in vendors:
        await seed_commissions(vendor, [6000])
        created.append((await WithdrawalService(db).create_withdrawal_request(vendor, 5000)).id)

    service = SettlementService(db)
    await service.reject_withdrawal(created[1], admin_id)

    items, total = await service.list_pending_withdrawals()
    assert total == 2
    assert [w.id for w in items] == [created[0], created[2]]

    items, total = await service.list_pending_withdrawals(page=2, page_size=1)
    assert total == 2
    assert [w.id for w in items] == [created[2]]

    assert await service.count_pending_withdrawals() == 2


@pytest.mark.parametrize("page, page_size", [(0, 20), (1, 0)])
async def test_pending_queue_rejects_bad_paging(db, page, page_size):
    with pytest.raises(ValidationError):
        await SettlementService(db).list_pending_withdrawals(page=page, page_size=page_size)
