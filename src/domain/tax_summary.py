from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Mapping, Protocol, Sequence

from pydantic import ValidationError

from .gains import GainLossResult, MovingAverageFIFODepletion
from .inventory import AssetLotLedger
from .ledger import ComputationWarning, TaxableTransaction, TaxSummary, Transaction, WarningKind
from .money import ZERO
from .pricing import PriceResolver
from .tax_policy import DEFAULT_POLICY, TaxPolicy

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_YEARS = 5

TransactionRecord = Transaction | Mapping[str, Any]


class TransactionSource(Protocol):
    """Read access to the transaction ledger."""

    def query_by_date_range(self, start: datetime, end: datetime) -> Sequence[TransactionRecord]:
        """Return records with ``start <= timestamp <= end``, oldest first."""
        ...


def year_bounds(first_year: int, last_year: int) -> tuple[datetime, datetime]:
    start = datetime(first_year, 1, 1, tzinfo=timezone.utc)
    end = datetime(last_year, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


class TaxSummaryCalculator:
    """Build the annual summary for one tax year.

    Prior years are replayed first so the target year starts with the lot
    state they left behind. Each call works on its own ``AssetLotLedger``.
    """

    def __init__(
        self,
        source: TransactionSource,
        *,
        policy: TaxPolicy = DEFAULT_POLICY,
        price_resolver: PriceResolver | None = None,
        lookback_years: int = DEFAULT_LOOKBACK_YEARS,
    ) -> None:
        if lookback_years < 0:
            raise ValueError("lookback_years must be >= 0")
        self._source = source
        self.policy = policy
        self.price_resolver = price_resolver or PriceResolver()
        self.lookback_years = lookback_years

    def calculate(self, year: int) -> TaxSummary:
        ledger = AssetLotLedger()
        calculator = MovingAverageFIFODepletion(ledger)
        warnings: list[ComputationWarning] = []

        if self.lookback_years > 0:
            start, end = year_bounds(year - self.lookback_years, year - 1)
            history = self._source.query_by_date_range(start, end)
            # Only lot state survives the replay.
            replay_warnings: list[ComputationWarning] = []
            replayed = 0
            for tx in self._valid_transactions(history, replay_warnings):
                self._process(calculator, tx, replay_warnings)
                replayed += 1
            logger.debug(
                "Replayed %d transactions from %s to %s for cost basis (%d warnings)",
                replayed,
                start,
                end,
                len(replay_warnings),
            )

        start, end = year_bounds(year, year)
        records = self._source.query_by_date_range(start, end)

        total_gains = ZERO
        total_losses = ZERO
        transaction_count = 0
        taxable_transactions: list[TaxableTransaction] = []

        for tx in self._valid_transactions(records, warnings):
            transaction_count += 1
            result = self._process(calculator, tx, warnings)
            if not result.is_taxable:
                continue

            taxable_transactions.append(result.record)
            gain_loss = result.record.gain_loss or ZERO
            if gain_loss > 0:
                total_gains += gain_loss
            else:
                total_losses += abs(gain_loss)

        net_gains = total_gains - total_losses
        deduction = self.policy.deduction_for(year)
        taxable_gains = max(net_gains - deduction, ZERO)

        if warnings:
            logger.warning("Tax summary for %d computed with %d warnings", year, len(warnings))

        return TaxSummary(
            year=year,
            total_gains=total_gains,
            total_losses=total_losses,
            net_gains=net_gains,
            deduction=deduction,
            taxable_gains=taxable_gains,
            estimated_tax=self.policy.tax_on(taxable_gains),
            tax_rate=self.policy.rate,
            transaction_count=transaction_count,
            taxable_transactions=taxable_transactions,
            warnings=warnings,
        )

    def _process(
        self,
        calculator: MovingAverageFIFODepletion,
        tx: Transaction,
        warnings: list[ComputationWarning],
    ) -> GainLossResult:
        price = self.price_resolver.resolve(tx)
        if not price.available:
            warnings.append(
                ComputationWarning(
                    kind=WarningKind.PRICE_UNAVAILABLE,
                    transaction_id=tx.id,
                    message=f"No price for {tx.asset} at {tx.timestamp.isoformat()}, valued at 0",
                )
            )

        result = calculator.apply(tx, price.unit_price)
        if result.shortfall > 0:
            message = (
                f"{tx.type} of {tx.amount} {tx.asset} exceeds held lots by {result.shortfall} "
                f"@{tx.timestamp.isoformat()}"
            )
            logger.warning("Insufficient lots for transaction %s: %s", tx.id, message)
            warnings.append(
                ComputationWarning(kind=WarningKind.INSUFFICIENT_LOTS, transaction_id=tx.id, message=message)
            )
        return result

    @staticmethod
    def _valid_transactions(
        records: Iterable[TransactionRecord],
        warnings: list[ComputationWarning],
    ) -> Iterator[Transaction]:
        for record in records:
            if isinstance(record, Transaction):
                yield record
                continue

            try:
                tx = Transaction.model_validate(record)
            except ValidationError as exc:
                raw_id = record.get("id") if isinstance(record, Mapping) else getattr(record, "id", None)
                tx_id = str(raw_id) if raw_id is not None else None
                logger.warning("Skipping malformed transaction %s: %s", tx_id, exc.errors(include_url=False))
                warnings.append(
                    ComputationWarning(
                        kind=WarningKind.SKIPPED_MALFORMED,
                        transaction_id=tx_id,
                        message=f"Skipped malformed transaction: {exc.error_count()} validation errors",
                    )
                )
                continue
            yield tx


def calculate_tax_summary(
    year: int,
    source: TransactionSource,
    *,
    policy: TaxPolicy = DEFAULT_POLICY,
    price_resolver: PriceResolver | None = None,
    lookback_years: int = DEFAULT_LOOKBACK_YEARS,
) -> TaxSummary:
    calculator = TaxSummaryCalculator(
        source,
        policy=policy,
        price_resolver=price_resolver,
        lookback_years=lookback_years,
    )
    return calculator.calculate(year)


__all__ = [
    "DEFAULT_LOOKBACK_YEARS",
    "TaxSummaryCalculator",
    "TransactionRecord",
    "TransactionSource",
    "calculate_tax_summary",
    "year_bounds",
]
