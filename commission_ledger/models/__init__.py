from commission_ledger.models.commission import Commission, CommissionStatus
from commission_ledger.models.withdrawal import WithdrawalRequest, WithdrawalStatus, PENDING_WITHDRAWAL_INDEX

__all__ = [
    "Commission",
    "CommissionStatus",
    "WithdrawalRequest",
    "WithdrawalStatus",
    "PENDING_WITHDRAWAL_INDEX",
]
