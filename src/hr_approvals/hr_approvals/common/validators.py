from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def require_date_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("End date must be on or after start date")


def to_decimal(value: Any, field_name: str) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    return number


def require_positive(value: Any, field_name: str, *, maximum: Optional[Decimal] = None) -> Decimal:
    number = to_decimal(value, field_name)
    if number is None or number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field_name} must not exceed {maximum}")
    return number
