"""Commission model: money owed to a vendor for one referred sale.

Lifecycle:
- PENDING     accrued, available for withdrawal
- PROCESSING  bound to a pending withdrawal request
- PAID        settled (through a withdrawal or by reconciliation)
- CANCELLED   order cancelled upstream (never produced by the ledger)
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.core.enum_utils import enum_comment
from commission_ledger.database import Base
from commission_ledger.db_types import UUIDType


class CommissionStatus(str, Enum):
    """Commission status enumeration."""
    PENDING = "PENDING"             # Available for withdrawal
    PROCESSING = "PROCESSING"       # Allocated to a pending withdrawal
    PAID = "PAID"                   # Paid out
    CANCELLED = "CANCELLED"         # Cancelled (order cancelled)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Commission(Base):
    """
    Commission record for a single order.

    Amounts are integers in minor currency units. Rows are never deleted;
    status and withdrawal_id are only changed by the allocator and the
    settlement processor.
    """
    __tablename__ = "commissions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_commissions_amount_positive"),
        Index("ix_commissions_vendor_status_created", "vendor_id", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # References to the surrounding portal (not enforced here)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        nullable=False,
        index=True
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        nullable=False,
        index=True
    )
    doctor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        nullable=True
    )

    # Amounts
    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Commission amount in minor currency units"
    )
    rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Commission % used to derive the amount (informational)"
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionStatus.PENDING.value,
        comment=enum_comment(CommissionStatus)
    )
    withdrawal_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("withdrawal_requests.id"),
        nullable=True,
        index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    payment_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Commission(id={self.id}, vendor={self.vendor_id}, amount={self.amount}, status='{self.status}')>"
