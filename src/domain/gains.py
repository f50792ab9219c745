from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import assert_never

from .classifier import TaxCategory, classify, display_type
from .inventory import AssetLotLedger
from .ledger import LotId, TaxableTransaction, Transaction
from .money import ZERO


@dataclass(frozen=True)
class GainLossResult:
    category: TaxCategory
    record: TaxableTransaction
    shortfall: Decimal = ZERO

    @property
    def is_taxable(self) -> bool:
        return self.category == TaxCategory.DISPOSE


class MovingAverageFIFODepletion:
    """Moving-average valuation with oldest-first lot depletion.

    A sale is valued at the weighted average unit cost of every open lot,
    read before anything is removed. The lots themselves are then depleted in
    acquisition order, so the surviving lots keep their original unit costs.
    Fees are taken in units of the traded asset and valued at the trade price.
    """

    def __init__(self, ledger: AssetLotLedger) -> None:
        self.ledger = ledger

    def apply(self, tx: Transaction, unit_price: Decimal) -> GainLossResult:
        category = classify(tx.type)
        record = self._base_record(tx, unit_price)

        match category:
            case TaxCategory.ACQUIRE:
                return self._apply_acquire(tx, unit_price, record)
            case TaxCategory.DISPOSE:
                return self._apply_dispose(tx, unit_price, record)
            case TaxCategory.DISPOSE_NONTAXABLE:
                consumed = self.ledger.consume(tx.asset, tx.amount)
                return GainLossResult(category=category, record=record, shortfall=consumed.shortfall)
            case TaxCategory.PASSTHROUGH:
                return self._apply_passthrough(tx, unit_price, record)
            case _:
                assert_never(category)

    def _apply_acquire(self, tx: Transaction, unit_price: Decimal, record: TaxableTransaction) -> GainLossResult:
        self.ledger.add_lot(tx.asset, tx.amount, unit_price, tx.timestamp, tx.source, lot_id=LotId(tx.id))
        return GainLossResult(category=TaxCategory.ACQUIRE, record=record)

    def _apply_dispose(self, tx: Transaction, unit_price: Decimal, record: TaxableTransaction) -> GainLossResult:
        average_cost = self.ledger.average_cost(tx.asset)
        cost_basis = average_cost * tx.amount
        gain_loss = record.total_value - cost_basis - tx.fee * unit_price

        consumed = self.ledger.consume(tx.asset, tx.amount)
        return GainLossResult(
            category=TaxCategory.DISPOSE,
            record=record.model_copy(update={"gain_loss": gain_loss, "cost_basis_matched": cost_basis}),
            shortfall=consumed.shortfall,
        )

    def _apply_passthrough(self, tx: Transaction, unit_price: Decimal, record: TaxableTransaction) -> GainLossResult:
        # Swaps are not split into a disposal of the sold asset and an
        # acquisition of the bought one; both legs would be needed for that.
        result = self._apply_acquire(tx, unit_price, record)
        return GainLossResult(category=TaxCategory.PASSTHROUGH, record=result.record)

    @staticmethod
    def _base_record(tx: Transaction, unit_price: Decimal) -> TaxableTransaction:
        return TaxableTransaction(
            id=tx.id,
            date=tx.timestamp,
            type=display_type(tx.type),
            asset=tx.asset,
            amount=tx.amount,
            unit_price=unit_price,
            total_value=tx.amount * unit_price,
            fee=tx.fee,
            fee_asset=tx.fee_asset or tx.asset,
            exchange_id=tx.exchange_id,
            wallet_address=tx.wallet_address,
        )


__all__ = ["GainLossResult", "MovingAverageFIFODepletion"]
