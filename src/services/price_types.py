from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class PriceQuote:
    """Exchange rate ``base -> quote`` and the window it applies to."""

    timestamp: datetime
    base_currency: str
    quote_currency: str
    rate: Decimal
    source: str
    valid_from: datetime
    valid_to: datetime

    def covers(self, moment: datetime) -> bool:
        return self.valid_from <= moment <= self.valid_to


__all__ = ["PriceQuote"]
