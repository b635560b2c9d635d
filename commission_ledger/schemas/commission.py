"""Pydantic schemas for commission records and vendor balances."""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from commission_ledger.schemas.base import BaseCreateSchema, BaseResponseSchema, MoneyAmount
from commission_ledger.schemas.withdrawal import WithdrawalResponse


# ==================== Commission Schemas ====================

class CommissionCreate(BaseCreateSchema):
    """Commission finalized by the order pipeline."""
    order_id: UUID
    vendor_id: UUID
    doctor_id: Optional[UUID] = None
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    created_at: Optional[datetime] = None


class CommissionResponse(BaseResponseSchema):
    """Response schema for Commission."""
    id: UUID
    vendor_id: UUID
    order_id: UUID
    doctor_id: Optional[UUID] = None
    amount: MoneyAmount
    rate: Decimal
    status: str
    withdrawal_id: Optional[UUID] = None
    created_at: datetime
    payment_date: Optional[datetime] = None


class CommissionListResponse(BaseModel):
    """Response for listing commissions."""
    items: List[CommissionResponse]
    total: int
    skip: int = 0
    limit: int = 20


# ==================== Balance Schemas ====================

class VendorBalanceResponse(BaseResponseSchema):
    """Derived balance of a vendor."""
    total_earned: MoneyAmount
    total_paid: MoneyAmount
    total_processing: MoneyAmount
    available_commission: MoneyAmount


class VendorFinancialSummaryResponse(BaseModel):
    """Vendor commission dashboard."""
    vendor_id: UUID
    balance: VendorBalanceResponse
    minimum_withdrawal: Decimal
    can_request_withdrawal: bool
    pending_request: Optional[WithdrawalResponse] = None
    last_payment: Optional[WithdrawalResponse] = None
    pending_commissions: List[CommissionResponse] = []


class LedgerOverviewResponse(BaseResponseSchema):
    """Admin totals across all vendors."""
    total_commissions: MoneyAmount
    total_paid: MoneyAmount
    total_processing: MoneyAmount
    total_available: MoneyAmount
    pending_withdrawals: int


# ==================== Report Schemas ====================

class CommissionReportRow(BaseResponseSchema):
    period: str
    count: int
    total: MoneyAmount


class CommissionReportResponse(BaseModel):
    """Commission totals grouped by day or month (vendor_id None = all vendors)."""
    vendor_id: Optional[UUID] = None
    period: str
    group_by: str
    start_date: date
    end_date: date
    rows: List[CommissionReportRow]
    total: Decimal
