"""Pydantic schemas for withdrawal requests and settlement."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from commission_ledger.schemas.base import BaseCreateSchema, BaseResponseSchema, MoneyAmount


# ==================== Vendor Requests ====================

class WithdrawalCreate(BaseCreateSchema):
    """Vendor asks to cash out part of the available commission."""
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=1000)


class WithdrawalCancelRequest(BaseCreateSchema):
    vendor_id: UUID


# ==================== Admin Requests ====================

class WithdrawalApproveRequest(BaseCreateSchema):
    """Admin records the payout of a pending request."""
    admin_id: UUID
    payment_method: str = Field(..., min_length=1, max_length=50)
    payment_details: Optional[str] = None
    notes: Optional[str] = None


class WithdrawalRejectRequest(BaseCreateSchema):
    admin_id: UUID
    reason: Optional[str] = Field(None, max_length=1000)


# ==================== Responses ====================

class WithdrawalResponse(BaseResponseSchema):
    """Response schema for WithdrawalRequest."""
    id: UUID
    vendor_id: UUID
    amount: MoneyAmount
    status: str
    request_date: datetime
    payment_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_details: Optional[str] = None
    notes: Optional[str] = None
    processed_by: Optional[UUID] = None


class AllocatedCommission(BaseResponseSchema):
    id: UUID
    order_id: UUID
    doctor_id: Optional[UUID] = None
    amount: MoneyAmount
    status: str
    created_at: datetime
    payment_date: Optional[datetime] = None


class WithdrawalDetailResponse(WithdrawalResponse):
    """Withdrawal request with the commissions bound to it."""
    commissions: List[AllocatedCommission] = []
    allocated_total: MoneyAmount = Decimal("0.00")


class WithdrawalListResponse(BaseModel):
    """Response for listing withdrawal requests."""
    items: List[WithdrawalResponse]
    total: int
    page: int = 1
    size: int = 20
    pages: int = 1


class SettlementResponse(BaseModel):
    """Outcome of approve / reject."""
    withdrawal: WithdrawalResponse
    settled_commission_ids: List[UUID] = []
    reconciled_commission_ids: List[UUID] = []
    released_commission_ids: List[UUID] = []
