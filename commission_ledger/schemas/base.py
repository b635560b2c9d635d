"""
Base Schema Classes for Pydantic Models

Money crosses the API as two-place decimals while the ledger stores integer
minor units; MoneyAmount does the conversion when a response schema reads an
ORM row.

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
"""
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict

from commission_ledger.core.money import from_minor_units


def _minor_to_major(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return from_minor_units(value)
    return value


# Integer minor units in, Decimal major units out
MoneyAmount = Annotated[Decimal, BeforeValidator(_minor_to_major)]


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class CommissionResponse(BaseResponseSchema):
            id: UUID
            amount: MoneyAmount
    """
    model_config = ConfigDict(
        from_attributes=True,
        # Allow population by field name or alias
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    Unknown fields are ignored (forward compatibility).
    """
    model_config = ConfigDict(
        extra='ignore',
    )
