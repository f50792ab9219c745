from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from domain.pricing import PriceLookupError

from .price_sources import RateSource
from .price_types import PriceQuote

logger = logging.getLogger(__name__)


class OpenExchangeRatesAPIError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


@dataclass(frozen=True)
class HistoricalRates:
    """End-of-day rates against ``base`` (USD on the free plan)."""

    date: date
    timestamp: datetime
    base: str
    rates: dict[str, Decimal]


class OpenExchangeRatesClient:
    def __init__(
        self,
        app_id: str,
        *,
        base_url: str = "https://openexchangerates.org/api",
        timeout: float = 10.0,
        session: requests.Session | None = None,
        retry_attempts: int = 5,
        retry_backoff_seconds: float = 1,
    ) -> None:
        if not app_id:
            raise ValueError("Open Exchange Rates app_id must be non-empty")
        self.app_id = app_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or self._build_session(retry_attempts, retry_backoff_seconds)

    @staticmethod
    def _build_session(retry_attempts: int, retry_backoff_seconds: float) -> requests.Session:
        session = requests.Session()
        retries = Retry(
            total=retry_attempts,
            backoff_factor=retry_backoff_seconds,
            status_forcelist=[429, 502, 503],
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def get_historical_rates(self, *, target_date: date) -> HistoricalRates:
        payload = self._get(f"/historical/{target_date.isoformat()}.json")

        timestamp_raw = payload.get("timestamp")
        base_raw = payload.get("base")
        rates_raw = payload.get("rates")
        if timestamp_raw is None or base_raw is None or not isinstance(rates_raw, dict):
            raise OpenExchangeRatesAPIError("Open Exchange Rates payload missing required fields", payload=payload)

        try:
            return HistoricalRates(
                date=target_date,
                timestamp=datetime.fromtimestamp(int(timestamp_raw), tz=timezone.utc),
                base=str(base_raw).upper(),
                rates={str(code).upper(): Decimal(str(rate)) for code, rate in rates_raw.items()},
            )
        except (TypeError, ValueError, OverflowError, OSError, InvalidOperation) as exc:
            message = "Open Exchange Rates payload has malformed values"
            raise OpenExchangeRatesAPIError(message, payload=payload) from exc

    def _get(self, path: str) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request("GET", url, params={"app_id": self.app_id}, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            message, payload = self._describe_error(exc.response)
            status_code = getattr(exc.response, "status_code", None)
            raise OpenExchangeRatesAPIError(message, status_code=status_code, payload=payload) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise OpenExchangeRatesAPIError("Open Exchange Rates request failed", status_code=status_code) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise OpenExchangeRatesAPIError("Open Exchange Rates returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload, dict):
            raise OpenExchangeRatesAPIError("Open Exchange Rates returned unexpected payload type", payload=payload)
        if payload.get("error"):
            message = payload.get("description") or payload.get("message") or "Open Exchange Rates error"
            raise OpenExchangeRatesAPIError(message, status_code=payload.get("status"), payload=payload)
        return payload

    @staticmethod
    def _describe_error(response: Response | None) -> tuple[str, Any | None]:
        message = "Open Exchange Rates request failed"
        if response is None:
            return message, None
        try:
            payload = response.json()
        except ValueError:
            return message, response.text
        if isinstance(payload, dict):
            message = payload.get("description") or payload.get("message") or message
        return message, payload


class OpenExchangeRatesSource(RateSource):
    """Daily fiat rates; a quote is valid for the whole UTC day it was fetched for."""

    def __init__(self, client: OpenExchangeRatesClient, *, source_name: str = "open-exchange-rates-historical") -> None:
        self.client = client
        self.source_name = source_name

    def fetch_quote(self, base_currency: str, quote_currency: str, timestamp: datetime) -> PriceQuote:
        base = base_currency.upper()
        quote = quote_currency.upper()
        day = timestamp.astimezone(timezone.utc).date()
        snapshot = self.client.get_historical_rates(target_date=day)
        logger.debug("Fetched %d rates for %s (base %s)", len(snapshot.rates), day, snapshot.base)

        valid_from = datetime.combine(snapshot.date, time.min, tzinfo=timezone.utc)
        return PriceQuote(
            timestamp=snapshot.timestamp,
            base_currency=base,
            quote_currency=quote,
            rate=self._cross_rate(snapshot, base, quote, timestamp),
            source=self.source_name,
            valid_from=valid_from,
            valid_to=valid_from + timedelta(days=1),
        )

    @staticmethod
    def _cross_rate(snapshot: HistoricalRates, base: str, quote: str, timestamp: datetime) -> Decimal:
        if base == quote:
            return Decimal("1")

        def against_snapshot_base(currency: str) -> Decimal:
            if currency == snapshot.base:
                return Decimal("1")
            rate = snapshot.rates.get(currency)
            if rate is None or rate == 0:
                raise PriceLookupError(
                    f"Currency {currency} not available in Open Exchange Rates data for {snapshot.date}",
                    from_currency=base,
                    to_currency=quote,
                    as_of=timestamp,
                )
            return rate

        return against_snapshot_base(quote) / against_snapshot_base(base)


__all__ = ["HistoricalRates", "OpenExchangeRatesAPIError", "OpenExchangeRatesClient", "OpenExchangeRatesSource"]
