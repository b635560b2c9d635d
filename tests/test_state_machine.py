"""Status transition tables and money conversion."""
import uuid
from decimal import Decimal

import pytest

from commission_ledger.core.exceptions import StateError, ValidationError
from commission_ledger.core.money import from_minor_units, require_positive_amount, to_minor_units
from commission_ledger.core.state_machine import (
    apply_commission_transition,
    apply_withdrawal_transition,
    can_transition_commission,
    can_transition_withdrawal,
)
from commission_ledger.models.commission import Commission, CommissionStatus
from commission_ledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus


class TestCommissionTransitions:

    @pytest.mark.parametrize(
        "current, target",
        [
            (CommissionStatus.PENDING, CommissionStatus.PROCESSING),
            (CommissionStatus.PROCESSING, CommissionStatus.PENDING),
            (CommissionStatus.PROCESSING, CommissionStatus.PAID),
            (CommissionStatus.PENDING, CommissionStatus.PAID),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition_commission(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (CommissionStatus.PAID, CommissionStatus.PENDING),
            (CommissionStatus.PAID, CommissionStatus.PROCESSING),
            (CommissionStatus.CANCELLED, CommissionStatus.PENDING),
            (CommissionStatus.PENDING, CommissionStatus.CANCELLED),
        ],
    )
    def test_forbidden(self, current, target):
        assert not can_transition_commission(current, target)

    def test_apply_sets_stored_value(self):
        commission = Commission(id=uuid.uuid4(), status=CommissionStatus.PENDING.value)
        apply_commission_transition(commission, CommissionStatus.PROCESSING)
        assert commission.status == "PROCESSING"

    def test_paid_is_final(self):
        commission = Commission(id=uuid.uuid4(), status=CommissionStatus.PAID.value)
        with pytest.raises(StateError) as exc_info:
            apply_commission_transition(commission, CommissionStatus.PENDING)
        assert commission.status == "PAID"
        assert exc_info.value.details["target"] == "PENDING"


class TestWithdrawalTransitions:

    @pytest.mark.parametrize(
        "target", [WithdrawalStatus.COMPLETED, WithdrawalStatus.REJECTED, WithdrawalStatus.CANCELLED]
    )
    def test_pending_can_settle(self, target):
        assert can_transition_withdrawal(WithdrawalStatus.PENDING, target)

    @pytest.mark.parametrize(
        "current", [WithdrawalStatus.COMPLETED, WithdrawalStatus.REJECTED, WithdrawalStatus.CANCELLED]
    )
    def test_terminal_states(self, current):
        for target in WithdrawalStatus:
            assert not can_transition_withdrawal(current, target)

    def test_unknown_stored_status_is_rejected(self):
        withdrawal = WithdrawalRequest(id=uuid.uuid4(), status="ON_HOLD")
        with pytest.raises(StateError):
            apply_withdrawal_transition(withdrawal, WithdrawalStatus.COMPLETED)


class TestMoney:

    @pytest.mark.parametrize(
        "amount, expected",
        [(Decimal("50.00"), 5000), ("12.345", 1235), (7, 700), ("0.01", 1), ("19.99", 1999)],
    )
    def test_to_minor_units(self, amount, expected):
        assert to_minor_units(amount) == expected

    @pytest.mark.parametrize("amount", ["abc", "Infinity", "NaN"])
    def test_to_minor_units_rejects_garbage(self, amount):
        with pytest.raises(ValidationError):
            to_minor_units(amount)

    def test_from_minor_units(self):
        assert from_minor_units(9000) == Decimal("90.00")
        assert str(from_minor_units(1)) == "0.01"

    def test_require_positive_amount(self):
        assert require_positive_amount(1) == 1
        for bad in (0, -5, 1.5, True, None, "10"):
            with pytest.raises(ValidationError):
                require_positive_amount(bad)
