"""Parsing helpers for JSON request bodies.

The stores receive plain mappings decoded from JSON. These helpers turn the
raw values into typed Python values or raise ``ValidationError``.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Mapping, Optional

from .errors import ValidationError

CENT = Decimal("0.01")
# Largest value a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_amount(value: Any, field: str = "amount", allow_zero: bool = False) -> Decimal:
    if isinstance(value, bool) or is_blank(value):
        raise ValidationError(f"Invalid {field}")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid {field}") from exc
    if not amount.is_finite() or amount > MAX_AMOUNT:
        raise ValidationError(f"Invalid {field}")
    try:
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid {field}") from exc
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"Invalid {field}")
    return amount


def parse_date(value: Any, field: str = "date") -> dt.date:
    if isinstance(value, dt.date):
        return value
    if is_blank(value) or not isinstance(value, str):
        raise ValidationError(f"Invalid {field}")
    text = value.strip()
    try:
        if len(text) == 10:
            return dt.date.fromisoformat(text)
        # Full ISO timestamps as sent by some clients; keep the calendar date.
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return dt.datetime.fromisoformat(text).date()
    except ValueError as exc:
        raise ValidationError(f"Invalid {field}: expected YYYY-MM-DD") from exc


def parse_optional_date(value: Any, field: str = "date") -> Optional[dt.date]:
    if is_blank(value):
        return None
    return parse_date(value, field)


def parse_text(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    return str(value).strip()


def parse_id(value: Any, field: str = "id") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {field}") from exc


def category_ref(data: Mapping[str, Any]) -> Any:
    """Return the category id from ``categoryId`` or a nested ``category`` object."""
    ref = data.get("categoryId")
    if is_blank(ref):
        nested = data.get("category")
        if isinstance(nested, Mapping):
            ref = nested.get("id")
        elif not isinstance(nested, (list, dict)):
            ref = nested
    return ref


def require_fields(data: Mapping[str, Any], *fields: str) -> None:
    missing = [f for f in fields if is_blank(data.get(f))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
