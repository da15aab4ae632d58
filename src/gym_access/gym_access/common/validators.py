from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Type, TypeVar

from ..core.constants import MAX_AMOUNT
from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_enum(value, enum_cls: Type[E], field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}") from None


def require_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("amount must be a decimal number") from None
    if not amount.is_finite() or amount < 0:
        raise ValidationError("amount must be zero or positive")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"amount must not exceed {MAX_AMOUNT}")
    try:
        return amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValidationError("amount must be a decimal number") from None


def require_currency(value: str) -> str:
    code = require_non_empty(value, "currency").upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError("currency must be a 3-letter code")
    return code
