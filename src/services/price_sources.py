from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Mapping, Protocol

from domain.money import ONE, safe_div
from domain.pricing import PriceLookupError

from .price_types import PriceQuote


class RateSource(Protocol):
    def fetch_quote(self, base_currency: str, quote_currency: str, timestamp: datetime) -> PriceQuote: ...


class FixedRateSource(RateSource):
    """Constant rates, e.g. a USD->KRW rate for offline runs.

    The inverse of every configured pair is served as well.
    """

    def __init__(self, rates: Mapping[tuple[str, str], Decimal], *, source_name: str = "fixed") -> None:
        self._rates = {(base.upper(), quote.upper()): rate for (base, quote), rate in rates.items()}
        if any(rate <= 0 for rate in self._rates.values()):
            raise ValueError("fixed rates must be > 0")
        self.source_name = source_name

    def fetch_quote(self, base_currency: str, quote_currency: str, timestamp: datetime) -> PriceQuote:
        base = base_currency.upper()
        quote = quote_currency.upper()
        rate = self._lookup(base, quote)
        if rate is None:
            raise PriceLookupError(
                f"No fixed rate configured for {base}->{quote}",
                from_currency=base,
                to_currency=quote,
                as_of=timestamp,
            )

        day_start = datetime.combine(timestamp.date(), time.min, tzinfo=timestamp.tzinfo or timezone.utc)
        return PriceQuote(
            timestamp=timestamp,
            base_currency=base,
            quote_currency=quote,
            rate=rate,
            source=self.source_name,
            valid_from=day_start,
            valid_to=day_start + timedelta(days=1),
        )

    def _lookup(self, base: str, quote: str) -> Decimal | None:
        if base == quote:
            return ONE
        direct = self._rates.get((base, quote))
        if direct is not None:
            return direct
        inverse = self._rates.get((quote, base))
        if inverse is not None:
            return safe_div(ONE, inverse)
        return None


__all__ = ["FixedRateSource", "RateSource"]
