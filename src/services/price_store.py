from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Iterator, Protocol

from .price_types import PriceQuote

logger = logging.getLogger(__name__)


class PriceStore(Protocol):
    def write(self, quote: PriceQuote) -> None: ...

    def read(self, base_currency: str, quote_currency: str, timestamp: datetime) -> PriceQuote | None: ...


def _quote_to_json(quote: PriceQuote) -> str:
    return json.dumps(
        {
            "pair": [quote.base_currency, quote.quote_currency],
            "rate": str(quote.rate),
            "fetched_at": quote.timestamp.isoformat(),
            "window": [quote.valid_from.isoformat(), quote.valid_to.isoformat()],
            "source": quote.source,
        }
    )


def _quote_from_json(line: str) -> PriceQuote:
    record: dict[str, Any] = json.loads(line)
    base, quote = record["pair"]
    valid_from, valid_to = record["window"]
    return PriceQuote(
        timestamp=datetime.fromisoformat(record["fetched_at"]),
        base_currency=base,
        quote_currency=quote,
        rate=Decimal(record["rate"]),
        source=record["source"],
        valid_from=datetime.fromisoformat(valid_from),
        valid_to=datetime.fromisoformat(valid_to),
    )


class JsonlPriceStore(PriceStore):
    """Exchange-rate cache under ``<root_dir>/rates/<BASE>-<QUOTE>.jsonl``.

    Quotes are appended, never rewritten. Rates are kept as strings so they
    reload as the same Decimal. Lines that cannot be parsed are logged and
    ignored; the next lookup refetches and appends a good quote.
    """

    def __init__(self, *, root_dir: Path) -> None:
        self.root_dir = root_dir

    def write(self, quote: PriceQuote) -> None:
        path = self._pair_file(quote.base_currency, quote.quote_currency)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(_quote_to_json(quote) + "\n")

    def read(self, base_currency: str, quote_currency: str, timestamp: datetime) -> PriceQuote | None:
        covering = [quote for quote in self._quotes(base_currency, quote_currency) if quote.covers(timestamp)]
        if not covering:
            return None
        # Newest fetch wins when windows overlap.
        return max(covering, key=lambda quote: quote.timestamp)

    def _quotes(self, base_currency: str, quote_currency: str) -> Iterator[PriceQuote]:
        path = self._pair_file(base_currency, quote_currency)
        if not path.exists():
            return
        with path.open(encoding="utf-8") as handle:
            for line_no, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    yield _quote_from_json(line)
                except (ValueError, KeyError, TypeError, InvalidOperation) as exc:
                    logger.warning("Ignoring unreadable rate cache line %s:%d: %s", path, line_no, exc)

    def _pair_file(self, base_currency: str, quote_currency: str) -> Path:
        return self.root_dir / "rates" / f"{base_currency.upper()}-{quote_currency.upper()}.jsonl"


__all__ = ["JsonlPriceStore", "PriceStore"]
