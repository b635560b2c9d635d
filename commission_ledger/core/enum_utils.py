"""
Enum Utilities for VARCHAR-based Status Fields

STORAGE STANDARD:
━━━━━━━━━━━━━━━━━
• Database: VARCHAR(20) - NOT a native database ENUM
• SQLAlchemy: String(20) with Mapped[str]
• Python: str Enum (CommissionStatus, WithdrawalStatus) for comparisons
• Case: All enum values stored in UPPERCASE

DATA FLOW:
━━━━━━━━━━
INPUT (service call or API request):
    Enum → .value → String → Database
    Example: CommissionStatus.PROCESSING → "PROCESSING" → VARCHAR

OUTPUT (ORM row):
    Database → String → to_enum() when a transition has to be checked
"""

from enum import Enum
from typing import Any, Optional, Set, Type, TypeVar


T = TypeVar('T', bound=Enum)


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(CommissionStatus.PENDING)
        'PENDING'
        >>> get_enum_value("PENDING")
        'PENDING'
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def to_enum(value: Any, enum_class: Type[T]) -> Optional[T]:
    """
    Convert a database string back to an enum instance.

    Returns None for unknown values so callers decide how to fail.
    """
    if value is None:
        return None
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except (ValueError, KeyError):
        return None


def enum_values(enum_class: Type[Enum]) -> list:
    """Get all values from an enum class."""
    return [e.value for e in enum_class]


def enum_comment(enum_class: Type[Enum]) -> str:
    """
    Generate a comment string for a VARCHAR status column.

    Examples:
        >>> enum_comment(WithdrawalStatus)
        'PENDING, COMPLETED, REJECTED, CANCELLED'
    """
    return ", ".join(enum_values(enum_class))


def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Normalize a string value to UPPERCASE if it's a valid enum value.

    Unknown values are returned untouched so the caller can report them.
    """
    if value is None:
        return value
    if isinstance(value, str):
        upper_v = value.upper()
        if upper_v in valid_values:
            return upper_v
    return value


# Ledger
VALID_COMMISSION_STATUSES = {"PENDING", "PROCESSING", "PAID", "CANCELLED"}
