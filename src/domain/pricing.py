from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from .ledger import Transaction
from .money import ZERO

logger = logging.getLogger(__name__)


class PriceLookupError(Exception):
    def __init__(
        self,
        message: str,
        *,
        from_currency: str | None = None,
        to_currency: str | None = None,
        as_of: datetime | None = None,
    ) -> None:
        super().__init__(message)
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.as_of = as_of


class PriceOracle(Protocol):
    """Currency conversion at a point in time."""

    def convert(self, amount: Decimal, from_currency: str, to_currency: str, as_of: datetime) -> Decimal: ...


@dataclass(frozen=True)
class ResolvedPrice:
    unit_price: Decimal
    available: bool


class PriceResolver:
    """Pick the reporting-currency unit price of a transaction.

    The stored reporting price wins; otherwise the secondary price is converted
    through the oracle. Anything else resolves to zero so the transaction can
    still move lot state.
    """

    def __init__(
        self,
        oracle: PriceOracle | None = None,
        *,
        reporting_currency: str = "KRW",
        secondary_currency: str = "USD",
    ) -> None:
        self._oracle = oracle
        self.reporting_currency = reporting_currency.upper()
        self.secondary_currency = secondary_currency.upper()

    def resolve(self, tx: Transaction) -> ResolvedPrice:
        if tx.unit_price is not None:
            return ResolvedPrice(unit_price=tx.unit_price, available=True)

        if tx.unit_price_usd is not None and self._oracle is not None:
            try:
                converted = self._oracle.convert(
                    tx.unit_price_usd,
                    self.secondary_currency,
                    self.reporting_currency,
                    tx.timestamp,
                )
            except PriceLookupError as exc:
                logger.warning(
                    "No %s->%s rate for transaction %s at %s: %s",
                    self.secondary_currency,
                    self.reporting_currency,
                    tx.id,
                    tx.timestamp.isoformat(),
                    exc,
                )
            else:
                return ResolvedPrice(unit_price=converted, available=True)

        return ResolvedPrice(unit_price=ZERO, available=False)


__all__ = ["PriceLookupError", "PriceOracle", "PriceResolver", "ResolvedPrice"]
