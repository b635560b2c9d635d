"""
Money conversion at the presentation boundary.

The ledger stores and adds amounts as integers in minor currency units
(cents). Decimals only appear in API payloads.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from commission_ledger.core.exceptions import ValidationError

MINOR_UNITS_PER_MAJOR = 100
_QUANTUM = Decimal("0.01")


def to_minor_units(amount: Union[Decimal, int, str]) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Examples:
        >>> to_minor_units(Decimal("50.00"))
        5000
        >>> to_minor_units("12.345")
        1235
    """
    try:
        value = Decimal(str(amount))
    except ArithmeticError as exc:
        raise ValidationError(f"Invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValidationError(f"Invalid amount: {amount!r}")
    return int((value * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    """Convert integer minor units back to a two-place Decimal."""
    return (Decimal(amount) / MINOR_UNITS_PER_MAJOR).quantize(_QUANTUM)


def require_positive_amount(amount, field: str = "amount") -> int:
    """Validate a ledger amount: a positive integer of minor units."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(
            f"{field} must be an integer number of minor units",
            {"field": field, "value": repr(amount)},
        )
    if amount <= 0:
        raise ValidationError(
            f"{field} must be greater than zero",
            {"field": field, "value": amount},
        )
    return amount
