from __future__ import annotations

from decimal import Decimal

from domain.money import round_half_up


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_integer(value: Decimal) -> str:
    """Round half-up to a whole number, no separators: ``1234567.5`` -> ``1234568``."""
    rounded = round_half_up(value)
    if rounded == 0:
        return "0"
    return f"{rounded:.0f}"


def format_grouped(value: Decimal) -> str:
    return f"{round_half_up(value):,.0f}"
