"""Withdrawal request model: a vendor's request to cash out pending commissions."""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.core.enum_utils import enum_comment
from commission_ledger.database import Base
from commission_ledger.db_types import UUIDType
from commission_ledger.models.commission import utcnow


class WithdrawalStatus(str, Enum):
    """Withdrawal request status. PENDING is the only non-terminal state."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


PENDING_WITHDRAWAL_INDEX = "uq_withdrawal_requests_vendor_pending"


class WithdrawalRequest(Base):
    """
    Withdrawal request.

    At most one request per vendor may be PENDING; the partial unique index
    below is the database-level guard for that rule.
    """
    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_withdrawal_requests_amount_positive"),
        Index(
            PENDING_WITHDRAWAL_INDEX,
            "vendor_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
        Index("ix_withdrawal_requests_status_requested", "status", "request_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        nullable=False,
        index=True
    )

    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Requested amount in minor currency units"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WithdrawalStatus.PENDING.value,
        comment=enum_comment(WithdrawalStatus)
    )

    request_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    # Settlement
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    payment_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        nullable=True,
        comment="Admin who approved or rejected the request"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<WithdrawalRequest(id={self.id}, vendor={self.vendor_id}, amount={self.amount}, status='{self.status}')>"
