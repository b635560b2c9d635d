from fastapi import APIRouter

from commission_ledger.api.v1.endpoints import (
    commissions,
    withdrawals,
)


api_router = APIRouter(prefix="/api/v1")

# ==================== Commission Ledger ====================
api_router.include_router(
    commissions.router,
    prefix="/commissions",
    tags=["Commissions"]
)

# ==================== Withdrawals & Settlement ====================
api_router.include_router(
    withdrawals.router,
    prefix="/withdrawals",
    tags=["Withdrawals"]
)
