"""
Brickflow Guards — Input Validators
====================================
Step (a) of every guarded operation: numeric and text preconditions.

These run inside request ``__post_init__`` so a malformed request never
reaches the command bus.
"""

from __future__ import annotations

import math
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from core.guards.errors import ValidationError


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float))


def require_finite(value: Any, label: str) -> float:
    if not _is_number(value) or not math.isfinite(value):
        raise ValidationError(f"{label} is invalid.", rule="finite_number")
    return float(value)


def require_positive(value: Any, label: str) -> float:
    """Strictly positive finite number (quantities for "add" operations)."""
    if not _is_number(value) or not math.isfinite(value) or value <= 0:
        raise ValidationError(
            f"{label} must be greater than zero.",
            rule="positive_quantity",
        )
    return float(value)


def require_non_negative(value: Any, label: str) -> float:
    if not _is_number(value) or not math.isfinite(value) or value < 0:
        raise ValidationError(
            f"{label} cannot be negative.",
            rule="non_negative_quantity",
        )
    return float(value)


def require_percentage(value: Any, label: str) -> float:
    if not _is_number(value) or not math.isfinite(value) or not 0 <= value <= 100:
        raise ValidationError(
            f"{label} must be between 0 and 100.",
            rule="percentage_bounds",
        )
    return float(value)


def optional_percentage(value: Any, label: str) -> Optional[float]:
    if value is None:
        return None
    return require_percentage(value, label)


def optional_finite(value: Any, label: str) -> Optional[float]:
    if value is None:
        return None
    return require_finite(value, label)


def optional_non_negative(value: Any, label: str) -> Optional[float]:
    if value is None:
        return None
    return require_non_negative(value, label)


MONEY_PLACES = 2
UNIT_PRICE_PLACES = 4


def to_decimal(value: Any) -> Decimal:
    """Exact decimal of a stored money value; absent or null counts as zero."""
    if value is None:
        return Decimal(0)
    return Decimal(str(value))


def quantize_money(value: Any, places: int = MONEY_PLACES) -> Decimal:
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def require_money(
    value: Any, label: str, *, places: int = MONEY_PLACES, allow_zero: bool = False,
) -> Decimal:
    """
    Money amount as a ``Decimal`` rounded half-up to ``places``.

    Accepts int, float, Decimal or a numeric string. Floats go through
    ``str()`` so 0.1 becomes Decimal("0.1") rather than its binary value.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise ValidationError(f"{label} is invalid.", rule="money")
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            raise InvalidOperation(value)
        amount = quantize_money(amount, places)
    except InvalidOperation:
        raise ValidationError(f"{label} is invalid.", rule="money") from None
    if allow_zero and amount < 0:
        raise ValidationError(f"{label} cannot be negative.", rule="non_negative_amount")
    if not allow_zero and amount <= 0:
        raise ValidationError(f"{label} must be greater than zero.", rule="positive_amount")
    return amount


def require_text(value: Any, label: str) -> str:
    """Required code/name/reason. Returns the trimmed value."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required.", rule="required_text")
    return value.strip()


def clean_text(value: Optional[str]) -> Optional[str]:
    """Trim optional free text; blank becomes None."""
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def require_id(value: Any, label: str) -> uuid.UUID:
    if value is None:
        raise ValidationError(f"{label} is required.", rule="required_id")
    if not isinstance(value, uuid.UUID):
        raise ValidationError(f"{label} is invalid.", rule="required_id")
    return value


def optional_id(value: Any, label: str) -> Optional[uuid.UUID]:
    if value is None:
        return None
    return require_id(value, label)
