"""API endpoints for withdrawal requests and their settlement."""
import logging
import math
from uuid import UUID

from fastapi import APIRouter, Query, status

from commission_ledger.api.deps import Commissions, Settlements, Withdrawals
from commission_ledger.config import settings
from commission_ledger.core.exceptions import ValidationError
from commission_ledger.core.money import to_minor_units
from commission_ledger.schemas.withdrawal import (
    AllocatedCommission,
    SettlementResponse,
    WithdrawalApproveRequest,
    WithdrawalCancelRequest,
    WithdrawalCreate,
    WithdrawalDetailResponse,
    WithdrawalListResponse,
    WithdrawalRejectRequest,
    WithdrawalResponse,
)
from commission_ledger.services.settlement_service import SettlementOutcome


logger = logging.getLogger(__name__)

router = APIRouter()


def _settlement_response(outcome: SettlementOutcome) -> SettlementResponse:
    return SettlementResponse(
        withdrawal=WithdrawalResponse.model_validate(outcome.withdrawal),
        settled_commission_ids=outcome.settled_commission_ids,
        reconciled_commission_ids=outcome.reconciled_commission_ids,
        released_commission_ids=outcome.released_commission_ids,
    )


# ==================== Vendor ====================

@router.post("/vendors/{vendor_id}", response_model=WithdrawalResponse, status_code=status.HTTP_201_CREATED)
async def create_withdrawal_request(
    vendor_id: UUID,
    withdrawal_in: WithdrawalCreate,
    service: Withdrawals,
):
    """
    Request a withdrawal of available commission.

    The amount must be at least MIN_WITHDRAWAL_AMOUNT and covered by the
    vendor's pending commissions; only one request may be pending at a time.
    """
    if withdrawal_in.amount < settings.MIN_WITHDRAWAL_AMOUNT:
        raise ValidationError(
            f"Minimum withdrawal amount is {settings.MIN_WITHDRAWAL_AMOUNT}",
            {"amount": str(withdrawal_in.amount), "minimum": str(settings.MIN_WITHDRAWAL_AMOUNT)},
        )

    withdrawal = await service.create_withdrawal_request(
        vendor_id,
        to_minor_units(withdrawal_in.amount),
        notes=withdrawal_in.notes,
    )
    return WithdrawalResponse.model_validate(withdrawal)


@router.get("/vendors/{vendor_id}", response_model=WithdrawalListResponse)
async def list_vendor_withdrawals(
    vendor_id: UUID,
    service: Withdrawals,
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
):
    """Withdrawal history of a vendor, newest first."""
    items, total = await service.get_vendor_withdrawal_history(vendor_id, skip=(page - 1) * size, limit=size)

    return WithdrawalListResponse(
        items=[WithdrawalResponse.model_validate(w) for w in items],
        total=total,
        page=page,
        size=size,
        pages=math.ceil(total / size) if total > 0 else 1,
    )


@router.post("/{withdrawal_id}/cancel", response_model=WithdrawalResponse)
async def cancel_withdrawal_request(
    withdrawal_id: UUID,
    cancel_in: WithdrawalCancelRequest,
    service: Withdrawals,
):
    """Vendor cancels a pending request; its commissions become available again."""
    withdrawal = await service.cancel_withdrawal_request(withdrawal_id, cancel_in.vendor_id)
    return WithdrawalResponse.model_validate(withdrawal)


# ==================== Admin ====================

@router.get("/pending", response_model=WithdrawalListResponse)
async def list_pending_withdrawals(
    service: Settlements,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
):
    """Pending requests awaiting payout, oldest first."""
    items, total = await service.list_pending_withdrawals(page=page, page_size=size)

    return WithdrawalListResponse(
        items=[WithdrawalResponse.model_validate(w) for w in items],
        total=total,
        page=page,
        size=size,
        pages=math.ceil(total / size) if total > 0 else 1,
    )


@router.get("/{withdrawal_id}", response_model=WithdrawalDetailResponse)
async def get_withdrawal(
    withdrawal_id: UUID,
    withdrawals: Withdrawals,
    commissions: Commissions,
):
    """Withdrawal request with the commissions allocated to it."""
    withdrawal = await withdrawals.get_withdrawal(withdrawal_id)
    allocated = await commissions.commissions_for_withdrawal(withdrawal_id)

    return WithdrawalDetailResponse(
        **WithdrawalResponse.model_validate(withdrawal).model_dump(),
        commissions=[AllocatedCommission.model_validate(c) for c in allocated],
        allocated_total=sum(c.amount for c in allocated),
    )


@router.post("/{withdrawal_id}/approve", response_model=SettlementResponse)
async def approve_withdrawal(
    withdrawal_id: UUID,
    approve_in: WithdrawalApproveRequest,
    service: Settlements,
):
    """Record the payout of a pending request."""
    outcome = await service.approve_withdrawal(
        withdrawal_id,
        admin_id=approve_in.admin_id,
        payment_method=approve_in.payment_method,
        payment_details=approve_in.payment_details,
        notes=approve_in.notes,
    )
    logger.info(f"Notify vendor {outcome.withdrawal.vendor_id}: withdrawal {withdrawal_id} paid")
    return _settlement_response(outcome)


@router.post("/{withdrawal_id}/reject", response_model=SettlementResponse)
async def reject_withdrawal(
    withdrawal_id: UUID,
    reject_in: WithdrawalRejectRequest,
    service: Settlements,
):
    """Reject a pending request; its commissions become available again."""
    outcome = await service.reject_withdrawal(
        withdrawal_id,
        admin_id=reject_in.admin_id,
        reason=reject_in.reason,
    )
    logger.info(f"Notify vendor {outcome.withdrawal.vendor_id}: withdrawal {withdrawal_id} rejected")
    return _settlement_response(outcome)
