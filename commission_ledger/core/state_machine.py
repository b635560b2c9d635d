"""
Status transition tables for commissions and withdrawal requests.

All status changes in the ledger go through apply_*_transition so the legal
edges live in one place:

    Commission:  PENDING -> PROCESSING      allocation
                 PROCESSING -> PENDING      release (reject / cancel)
                 PROCESSING -> PAID         approval
                 PENDING -> PAID            reconciliation on approval
                 PAID, CANCELLED            terminal

    Withdrawal:  PENDING -> COMPLETED | REJECTED | CANCELLED
                 everything else terminal
"""
from typing import Dict, FrozenSet

from commission_ledger.core.enum_utils import to_enum
from commission_ledger.core.exceptions import StateError
from commission_ledger.models.commission import Commission, CommissionStatus
from commission_ledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus


COMMISSION_TRANSITIONS: Dict[CommissionStatus, FrozenSet[CommissionStatus]] = {
    CommissionStatus.PENDING: frozenset({CommissionStatus.PROCESSING, CommissionStatus.PAID}),
    CommissionStatus.PROCESSING: frozenset({CommissionStatus.PENDING, CommissionStatus.PAID}),
    CommissionStatus.PAID: frozenset(),
    CommissionStatus.CANCELLED: frozenset(),
}

WITHDRAWAL_TRANSITIONS: Dict[WithdrawalStatus, FrozenSet[WithdrawalStatus]] = {
    WithdrawalStatus.PENDING: frozenset({
        WithdrawalStatus.COMPLETED,
        WithdrawalStatus.REJECTED,
        WithdrawalStatus.CANCELLED,
    }),
    WithdrawalStatus.COMPLETED: frozenset(),
    WithdrawalStatus.REJECTED: frozenset(),
    WithdrawalStatus.CANCELLED: frozenset(),
}


def can_transition_commission(current: CommissionStatus, target: CommissionStatus) -> bool:
    return target in COMMISSION_TRANSITIONS.get(current, frozenset())


def can_transition_withdrawal(current: WithdrawalStatus, target: WithdrawalStatus) -> bool:
    return target in WITHDRAWAL_TRANSITIONS.get(current, frozenset())


def ensure_commission_transition(commission: Commission, target: CommissionStatus) -> None:
    current = to_enum(commission.status, CommissionStatus)
    if current is None or not can_transition_commission(current, target):
        raise StateError(
            f"Commission {commission.id} cannot move from {commission.status} to {target.value}",
            {"commission_id": str(commission.id), "status": commission.status, "target": target.value},
        )


def ensure_withdrawal_transition(withdrawal: WithdrawalRequest, target: WithdrawalStatus) -> None:
    current = to_enum(withdrawal.status, WithdrawalStatus)
    if current is None or not can_transition_withdrawal(current, target):
        raise StateError(
            f"Withdrawal request {withdrawal.id} is {withdrawal.status}; only PENDING requests can be "
            f"{target.value.lower()}",
            {"withdrawal_id": str(withdrawal.id), "status": withdrawal.status, "target": target.value},
        )


def apply_commission_transition(commission: Commission, target: CommissionStatus) -> None:
    ensure_commission_transition(commission, target)
    commission.status = target.value


def apply_withdrawal_transition(withdrawal: WithdrawalRequest, target: WithdrawalStatus) -> None:
    ensure_withdrawal_transition(withdrawal, target)
    withdrawal.status = target.value
