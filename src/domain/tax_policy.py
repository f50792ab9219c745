from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class TaxPolicy:
    """Deduction schedule and flat rate for realized gains.

    ``deduction_schedule`` holds ``(first_year, amount)`` pairs in ascending
    year order. Years before the first threshold use the first amount.
    """

    name: str
    rate: Decimal
    deduction_schedule: tuple[tuple[int, Decimal], ...]

    def __post_init__(self) -> None:
        if not self.deduction_schedule:
            raise ValueError("deduction_schedule must contain at least one entry")
        years = [year for year, _ in self.deduction_schedule]
        if years != sorted(years):
            raise ValueError("deduction_schedule must be sorted by year")
        if self.rate < 0:
            raise ValueError("rate must be >= 0")

    def deduction_for(self, year: int) -> Decimal:
        deduction = self.deduction_schedule[0][1]
        for first_year, amount in self.deduction_schedule:
            if year >= first_year:
                deduction = amount
        return deduction

    def tax_on(self, taxable_gains: Decimal) -> Decimal:
        return taxable_gains * self.rate


# Korean virtual asset income: 22% including local income tax.
# Basic deduction 2.5M KRW, raised to 50M KRW from 2025.
KOREA_VIRTUAL_ASSET_POLICY = TaxPolicy(
    name="KR virtual asset income",
    rate=Decimal("0.22"),
    deduction_schedule=(
        (0, Decimal("2500000")),
        (2025, Decimal("50000000")),
    ),
)

DEFAULT_POLICY = KOREA_VIRTUAL_ASSET_POLICY


__all__ = ["DEFAULT_POLICY", "KOREA_VIRTUAL_ASSET_POLICY", "TaxPolicy"]
