from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from config import AppSettings
from domain.pricing import PriceLookupError, PriceOracle

from .open_exchange_rates import OpenExchangeRatesAPIError, OpenExchangeRatesClient, OpenExchangeRatesSource
from .price_sources import FixedRateSource, RateSource
from .price_store import JsonlPriceStore, PriceStore

logger = logging.getLogger(__name__)


class PriceService(PriceOracle):
    """Cached currency conversion backed by a rate source."""

    def __init__(
        self,
        source: RateSource,
        store: PriceStore,
    ) -> None:
        self.source = source
        self.store = store

    def rate(
        self,
        base_currency: str,
        quote_currency: str,
        timestamp: datetime | None = None,
    ) -> Decimal:
        ts = timestamp or datetime.now(timezone.utc)
        base = base_currency.upper()
        quote = quote_currency.upper()
        if base == quote:
            return Decimal("1")

        try:
            existing = self.store.read(base, quote, ts)
        except OSError as exc:
            logger.warning("Rate cache unreadable for %s->%s, fetching: %s", base, quote, exc)
            existing = None
        if existing is not None:
            return existing.rate

        try:
            fetched = self.source.fetch_quote(base, quote, ts)
        except OpenExchangeRatesAPIError as exc:
            raise PriceLookupError(
                f"Rate lookup {base}->{quote} failed: {exc}",
                from_currency=base,
                to_currency=quote,
                as_of=ts,
            ) from exc

        logger.debug("Caching %s->%s rate %s from %s", base, quote, fetched.rate, fetched.source)
        try:
            self.store.write(fetched)
        except OSError as exc:
            logger.warning("Could not cache %s->%s rate: %s", base, quote, exc)
        return fetched.rate

    def convert(self, amount: Decimal, from_currency: str, to_currency: str, as_of: datetime) -> Decimal:
        return amount * self.rate(from_currency, to_currency, as_of)


def build_price_service(settings: AppSettings) -> PriceService | None:
    """Wire the configured rate source, or ``None`` when no source is configured."""
    source: RateSource
    if settings.open_exchange_rates_app_id:
        source = OpenExchangeRatesSource(OpenExchangeRatesClient(settings.open_exchange_rates_app_id))
    elif settings.fallback_usd_rate is not None:
        pair = (settings.secondary_currency, settings.reporting_currency)
        source = FixedRateSource({pair: settings.fallback_usd_rate})
    else:
        return None

    settings.price_cache_dir.mkdir(parents=True, exist_ok=True)
    return PriceService(source=source, store=JsonlPriceStore(root_dir=settings.price_cache_dir))


__all__ = ["PriceService", "build_price_service"]
