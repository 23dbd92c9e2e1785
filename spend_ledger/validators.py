"""Validation helpers shared across spend ledger services."""

from __future__ import annotations

import math
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from .exceptions import ValidationError
from .models import parse_date

MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def _to_decimal(raw: object) -> Optional[Decimal]:
    """Best-effort numeric conversion; returns None for non-numeric or non-finite input."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not value.is_finite():
        return None
    # Exponents beyond float range overflow once summed or divided.
    as_float = float(value)
    if not math.isfinite(as_float):
        return None
    if as_float == 0:
        return Decimal("0")
    return value


def parse_amount(raw: object, field: str = "amount") -> Decimal:
    """Convert raw input to a finite Decimal strictly greater than zero."""
    amount = _to_decimal(raw)
    if amount is None:
        raise ValidationError(f"{field} must be a finite numeric value")
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return amount


def parse_budget_value(raw: object) -> Decimal:
    """Normalise a budget limit; anything unusable becomes zero instead of an error."""
    value = _to_decimal(raw)
    if value is None or value < 0:
        return Decimal("0")
    return value


def validate_required_str(value: object, field: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} cannot be empty")
    return trimmed


def validate_optional_text(value: object, field: str) -> str:
    """Trim optional free text; ``None`` and blanks collapse to an empty string."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.strip()


def validate_date(value: object, field: str = "date") -> date:
    if isinstance(value, date):
        # datetime is a date subclass; keep only the calendar part.
        return date(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return parse_date(value)
        except ValueError as exc:
            raise ValidationError(f"{field} must be a calendar date in YYYY-MM-DD format") from exc
    raise ValidationError(f"{field} must be a date or YYYY-MM-DD string")


def validate_month_key(value: object, field: str = "month") -> str:
    if not isinstance(value, str) or not MONTH_KEY_PATTERN.fullmatch(value.strip()):
        raise ValidationError(f"{field} must be a month in YYYY-MM format")
    return value.strip()
