from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from .ledger import AssetId, AssetLot, LotId
from .money import ZERO, safe_div


@dataclass
class _OpenLotState:
    lot_id: LotId
    asset: AssetId
    unit_cost: Decimal
    acquired_at: datetime
    source: str
    remaining_amount: Decimal


@dataclass(frozen=True)
class ConsumeResult:
    consumed: Decimal
    shortfall: Decimal

    @property
    def fully_covered(self) -> bool:
        return self.shortfall == 0


class AssetLotLedger:
    """Open acquisition lots per asset, kept in insertion order.

    Lots are depleted oldest-first while valuation uses the amount-weighted
    average over every open lot. A ledger belongs to a single computation run.
    """

    def __init__(self) -> None:
        self._lots: dict[AssetId, deque[_OpenLotState]] = defaultdict(deque)

    def add_lot(
        self,
        asset: AssetId,
        amount: Decimal,
        unit_cost: Decimal,
        acquired_at: datetime,
        source: str,
        *,
        lot_id: LotId | None = None,
    ) -> AssetLot:
        if amount <= 0:
            raise ValueError(f"Lot amount must be > 0, got {amount} for asset={asset}")
        if unit_cost < 0:
            raise ValueError(f"Lot unit cost must be >= 0, got {unit_cost} for asset={asset}")

        snapshot = AssetLot(
            id=lot_id or LotId(str(uuid4())),
            asset=asset,
            amount=amount,
            unit_cost=unit_cost,
            acquired_at=acquired_at,
            source=source,
        )
        self._lots[asset].append(
            _OpenLotState(
                lot_id=snapshot.id,
                asset=asset,
                unit_cost=unit_cost,
                acquired_at=acquired_at,
                source=source,
                remaining_amount=amount,
            )
        )
        return snapshot

    def average_cost(self, asset: AssetId) -> Decimal:
        """Amount-weighted mean unit cost over the currently open lots."""
        open_lots = self._lots.get(asset)
        if not open_lots:
            return ZERO

        total_cost = ZERO
        total_amount = ZERO
        for state in open_lots:
            total_cost += state.remaining_amount * state.unit_cost
            total_amount += state.remaining_amount
        return safe_div(total_cost, total_amount)

    def consume(self, asset: AssetId, amount: Decimal) -> ConsumeResult:
        """Remove ``amount`` from the oldest lots first.

        Asking for more than is held empties the asset and reports the
        difference as ``shortfall`` instead of raising.
        """
        if amount <= 0:
            return ConsumeResult(consumed=ZERO, shortfall=ZERO)

        open_lots = self._lots.get(asset)
        remaining = amount
        while remaining > 0 and open_lots:
            state = open_lots[0]
            take = min(remaining, state.remaining_amount)
            state.remaining_amount -= take
            remaining -= take
            if state.remaining_amount == 0:
                open_lots.popleft()

        if open_lots is not None and not open_lots:
            del self._lots[asset]

        return ConsumeResult(consumed=amount - remaining, shortfall=remaining)

    def total_amount(self, asset: AssetId) -> Decimal:
        return sum((state.remaining_amount for state in self._lots.get(asset, ())), start=ZERO)

    def lots(self, asset: AssetId) -> list[AssetLot]:
        return [
            AssetLot(
                id=state.lot_id,
                asset=state.asset,
                amount=state.remaining_amount,
                unit_cost=state.unit_cost,
                acquired_at=state.acquired_at,
                source=state.source,
            )
            for state in self._lots.get(asset, ())
        ]

    def assets(self) -> list[AssetId]:
        return sorted(self._lots)


__all__ = ["AssetLotLedger", "ConsumeResult"]
