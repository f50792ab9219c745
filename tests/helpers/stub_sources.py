from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Sequence

from domain.ledger import Transaction
from domain.pricing import PriceLookupError
from domain.tax_summary import TransactionRecord


class InMemoryTransactionSource:
    """Transaction ledger backed by a list; records keep their list order."""

    def __init__(self, records: Sequence[TransactionRecord]) -> None:
        self.records = list(records)
        self.queries: list[tuple[datetime, datetime]] = []

    def query_by_date_range(self, start: datetime, end: datetime) -> list[TransactionRecord]:
        self.queries.append((start, end))
        return [record for record in self.records if start <= self._timestamp(record) <= end]

    @staticmethod
    def _timestamp(record: TransactionRecord) -> datetime:
        if isinstance(record, Transaction):
            return record.timestamp
        value: Any = record["timestamp"]
        return value


class FailingTransactionSource:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def query_by_date_range(self, start: datetime, end: datetime) -> list[TransactionRecord]:
        raise self.exc


class StubOracle:
    def __init__(self, rates: Mapping[tuple[str, str], Decimal]) -> None:
        self.rates = dict(rates)
        self.calls: list[tuple[Decimal, str, str, datetime]] = []

    def convert(self, amount: Decimal, from_currency: str, to_currency: str, as_of: datetime) -> Decimal:
        self.calls.append((amount, from_currency, to_currency, as_of))
        rate = self.rates.get((from_currency, to_currency))
        if rate is None:
            raise PriceLookupError(f"no rate {from_currency}->{to_currency}")
        return amount * rate
