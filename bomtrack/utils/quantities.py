"""Decimal helpers for stock and cost arithmetic.

All engine math runs on ``Decimal`` at full precision; ``money`` and
``present`` are only used when building presentation dictionaries.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
ONE = Decimal("1")
_CENTS = Decimal("0.01")


def to_decimal(value, *, field: str = "value") -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        raise ValueError(f"{field} is required")
    if isinstance(value, bool):
        raise ValueError(f"{field} must be numeric, got {value!r}")
    try:
        # str() keeps 0.1 as 0.1 instead of its binary float expansion
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{field} must be numeric, got {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{field} must be finite, got {value!r}")
    return result


def floor_units(stock: Decimal, per_unit: Decimal) -> int:
    """Whole output units ``stock`` can cover at ``per_unit`` each (never negative)."""
    if stock <= ZERO:
        return 0
    return int((stock / per_unit).to_integral_value(rounding=ROUND_FLOOR))


def money(value: Decimal | None) -> float:
    if value is None:
        return 0.0
    return float(Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP))


def present(value: Decimal | None, places: int = 4) -> float | None:
    if value is None:
        return None
    return float(Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))
