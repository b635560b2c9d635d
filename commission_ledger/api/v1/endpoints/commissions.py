"""API endpoints for commission records and vendor balances."""
from typing import Optional
from uuid import UUID
from datetime import date

from fastapi import APIRouter, Query, status

from commission_ledger.api.deps import Balances, Commissions, Withdrawals
from commission_ledger.config import settings
from commission_ledger.core.enum_utils import VALID_COMMISSION_STATUSES, normalize_to_uppercase, to_enum
from commission_ledger.core.exceptions import ValidationError
from commission_ledger.core.money import from_minor_units, to_minor_units
from commission_ledger.core.periods import PERIODS, date_range_for_period
from commission_ledger.models.commission import CommissionStatus
from commission_ledger.schemas.commission import (
    CommissionCreate,
    CommissionListResponse,
    CommissionReportResponse,
    CommissionReportRow,
    CommissionResponse,
    LedgerOverviewResponse,
    VendorBalanceResponse,
    VendorFinancialSummaryResponse,
)
from commission_ledger.schemas.withdrawal import WithdrawalResponse


router = APIRouter()


async def _build_report(
    service,
    vendor_id: Optional[UUID],
    period: Optional[str],
    group_by: str,
) -> CommissionReportResponse:
    start_date, end_date = date_range_for_period(period)
    rows = await service.vendor_commission_report(vendor_id, start_date, end_date, group_by=group_by)

    return CommissionReportResponse(
        vendor_id=vendor_id,
        period=period if period in PERIODS else "last30days",
        group_by=group_by,
        start_date=start_date,
        end_date=end_date,
        rows=[CommissionReportRow.model_validate(row) for row in rows],
        total=from_minor_units(sum(row["total"] for row in rows)),
    )


# ==================== Accrual ====================

@router.post("", response_model=CommissionResponse, status_code=status.HTTP_201_CREATED)
async def record_commission(
    commission_in: CommissionCreate,
    service: Commissions,
):
    """Record a commission finalized by the order pipeline."""
    commission = await service.record_commission(
        order_id=commission_in.order_id,
        vendor_id=commission_in.vendor_id,
        doctor_id=commission_in.doctor_id,
        amount=to_minor_units(commission_in.amount),
        rate=commission_in.rate,
        created_at=commission_in.created_at,
    )
    return CommissionResponse.model_validate(commission)


# ==================== Admin ====================

@router.get("/overview", response_model=LedgerOverviewResponse)
async def get_ledger_overview(balances: Balances):
    """Commission totals across all vendors."""
    overview = await balances.get_ledger_overview()
    return LedgerOverviewResponse.model_validate(overview)


@router.get("/report", response_model=CommissionReportResponse)
async def get_commission_report(
    service: Commissions,
    vendor_id: Optional[UUID] = None,
    period: str = Query("month", description=f"One of {', '.join(PERIODS)}"),
    group_by: str = Query("month"),
):
    """Commission totals for one vendor or, without vendor_id, across all vendors."""
    return await _build_report(service, vendor_id, period, group_by)


# ==================== Vendor ====================

@router.get("/vendors/{vendor_id}", response_model=CommissionListResponse)
async def list_vendor_commissions(
    vendor_id: UUID,
    service: Commissions,
    status_filter: Optional[str] = Query(None, alias="status"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
):
    """Commission history of a vendor, newest first."""
    commission_status = None
    if status_filter:
        commission_status = to_enum(
            normalize_to_uppercase(status_filter, VALID_COMMISSION_STATUSES), CommissionStatus
        )
        if commission_status is None:
            raise ValidationError(
                f"Unknown commission status: {status_filter}",
                {"allowed": sorted(VALID_COMMISSION_STATUSES)},
            )

    items, total = await service.list_vendor_commissions(
        vendor_id,
        status=commission_status,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )

    return CommissionListResponse(
        items=[CommissionResponse.model_validate(c) for c in items],
        total=total,
        skip=skip,
        limit=limit
    )


@router.get("/vendors/{vendor_id}/summary", response_model=VendorFinancialSummaryResponse)
async def get_vendor_financial_summary(
    vendor_id: UUID,
    balances: Balances,
    commissions: Commissions,
    withdrawals: Withdrawals,
):
    """
    Vendor commission dashboard.

    Balance, the open withdrawal request (if any), the last payout and the
    commissions next in line for a withdrawal.
    """
    balance = await balances.get_vendor_balance(vendor_id)
    pending_request = await withdrawals.get_pending_request(vendor_id)
    last_payment = await withdrawals.get_last_completed_withdrawal(vendor_id)
    pending_commissions = await commissions.get_vendor_pending_commissions(vendor_id)

    minimum = to_minor_units(settings.MIN_WITHDRAWAL_AMOUNT)
    can_request = balance.available_commission >= minimum and pending_request is None

    return VendorFinancialSummaryResponse(
        vendor_id=vendor_id,
        balance=VendorBalanceResponse.model_validate(balance),
        minimum_withdrawal=from_minor_units(minimum),
        can_request_withdrawal=can_request,
        pending_request=WithdrawalResponse.model_validate(pending_request) if pending_request else None,
        last_payment=WithdrawalResponse.model_validate(last_payment) if last_payment else None,
        pending_commissions=[CommissionResponse.model_validate(c) for c in pending_commissions],
    )


@router.get("/vendors/{vendor_id}/report", response_model=CommissionReportResponse)
async def get_vendor_commission_report(
    vendor_id: UUID,
    service: Commissions,
    period: Optional[str] = Query(None, description=f"One of {', '.join(PERIODS)}; default last 30 days"),
    group_by: str = Query("day"),
):
    """Commission totals per day or month over a named period."""
    return await _build_report(service, vendor_id, period, group_by)
