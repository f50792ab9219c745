from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
ONE = Decimal("1")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert ``value`` to a finite Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather than
    its binary expansion.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary value: {value!r}") from exc

    if not result.is_finite():
        raise ValueError(f"Monetary value must be finite, got {value!r}")
    return result


def safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        return ZERO
    return numerator / denominator


def round_half_up(value: Decimal, places: int = 0) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


__all__ = ["ONE", "ZERO", "round_half_up", "safe_div", "to_decimal"]
