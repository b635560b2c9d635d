from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from commission_ledger.database import get_db
from commission_ledger.services import (
    BalanceService,
    CommissionService,
    SettlementService,
    WithdrawalService,
)


DB = Annotated[AsyncSession, Depends(get_db)]


def get_commission_service(db: DB) -> CommissionService:
    return CommissionService(db)


def get_balance_service(db: DB) -> BalanceService:
    return BalanceService(db)


def get_withdrawal_service(db: DB) -> WithdrawalService:
    return WithdrawalService(db)


def get_settlement_service(db: DB) -> SettlementService:
    return SettlementService(db)


# Services share the request's session (FastAPI caches get_db per request)
Commissions = Annotated[CommissionService, Depends(get_commission_service)]
Balances = Annotated[BalanceService, Depends(get_balance_service)]
Withdrawals = Annotated[WithdrawalService, Depends(get_withdrawal_service)]
Settlements = Annotated[SettlementService, Depends(get_settlement_service)]
