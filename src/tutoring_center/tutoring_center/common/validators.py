from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Type, TypeVar

from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_positive_id(value, field_name: str) -> int:
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if ident <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return ident


def require_amount(value) -> Decimal:
    """Parse a money amount; floats go through str() to avoid binary noise."""
    if isinstance(value, bool):
        raise ValidationError("amount must be a number")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("amount must be a number")
    if not amount.is_finite():
        raise ValidationError("amount must be a number")
    return amount


def require_enum(enum_cls: Type[E], value, field_name: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")
