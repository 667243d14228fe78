from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

_CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Coerce ``value`` to a finite Decimal, or return ``default``.

    Floats go through ``str`` so ``4.33`` stays ``Decimal("4.33")``.
    Booleans, NaN, infinities, and unparseable text all yield the default.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, str):
        value = value.strip().replace(",", "").lstrip("$")
        if not value:
            return default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default
    return result if result.is_finite() else default


def to_quantity(value: Any) -> Decimal:
    """Return ``max(0, value)`` with invalid input treated as 0."""
    amount = to_decimal(value)
    return amount if amount > ZERO else ZERO


def is_numeric(value: Any) -> bool:
    return to_decimal(value, default=None) is not None  # type: ignore[arg-type]


def money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
