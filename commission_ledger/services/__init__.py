from commission_ledger.services.allocator import AllocationResult, FIFOAllocator, select_fifo
from commission_ledger.services.balance_service import BalanceService, VendorBalance
from commission_ledger.services.commission_service import CommissionService
from commission_ledger.services.settlement_service import SettlementOutcome, SettlementService
from commission_ledger.services.withdrawal_service import WithdrawalService

__all__ = [
    "AllocationResult",
    "BalanceService",
    "CommissionService",
    "FIFOAllocator",
    "SettlementOutcome",
    "SettlementService",
    "VendorBalance",
    "WithdrawalService",
    "select_fifo",
]
