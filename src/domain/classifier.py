from __future__ import annotations

from enum import StrEnum
from typing import Mapping

from .ledger import DisplayType, TransactionType


class TaxCategory(StrEnum):
    ACQUIRE = "ACQUIRE"
    DISPOSE = "DISPOSE"
    DISPOSE_NONTAXABLE = "DISPOSE_NONTAXABLE"
    # Swaps, staking moves and unknown types. Booked like acquisitions until
    # multi-asset swaps are modelled.
    PASSTHROUGH = "PASSTHROUGH"


_CATEGORY_BY_TYPE: dict[TransactionType, TaxCategory] = {
    TransactionType.BUY: TaxCategory.ACQUIRE,
    TransactionType.TRANSFER_IN: TaxCategory.ACQUIRE,
    TransactionType.REWARD: TaxCategory.ACQUIRE,
    TransactionType.AIRDROP: TaxCategory.ACQUIRE,
    TransactionType.SELL: TaxCategory.DISPOSE,
    TransactionType.TRANSFER_OUT: TaxCategory.DISPOSE_NONTAXABLE,
    TransactionType.SWAP: TaxCategory.PASSTHROUGH,
    TransactionType.STAKE: TaxCategory.PASSTHROUGH,
    TransactionType.UNSTAKE: TaxCategory.PASSTHROUGH,
}

_DISPLAY_BY_TYPE: dict[TransactionType, DisplayType] = {
    TransactionType.BUY: DisplayType.BUY,
    TransactionType.SELL: DisplayType.SELL,
    TransactionType.TRANSFER_IN: DisplayType.TRANSFER_IN,
    TransactionType.TRANSFER_OUT: DisplayType.TRANSFER_OUT,
    TransactionType.SWAP: DisplayType.SWAP,
    TransactionType.REWARD: DisplayType.REWARD,
    TransactionType.AIRDROP: DisplayType.REWARD,
    TransactionType.STAKE: DisplayType.BUY,
    TransactionType.UNSTAKE: DisplayType.BUY,
}


def _check_complete(table: Mapping[TransactionType, object], name: str) -> None:
    missing = set(TransactionType) - set(table)
    if missing:
        raise RuntimeError(f"{name} has no entry for {sorted(missing)}")


_check_complete(_CATEGORY_BY_TYPE, "_CATEGORY_BY_TYPE")
_check_complete(_DISPLAY_BY_TYPE, "_DISPLAY_BY_TYPE")


def parse_type(raw_type: str) -> TransactionType | None:
    try:
        return TransactionType(raw_type.strip().lower())
    except ValueError:
        return None


def classify(raw_type: str) -> TaxCategory:
    tx_type = parse_type(raw_type)
    if tx_type is None:
        return TaxCategory.PASSTHROUGH
    return _CATEGORY_BY_TYPE[tx_type]


def display_type(raw_type: str) -> DisplayType:
    tx_type = parse_type(raw_type)
    if tx_type is None:
        return DisplayType.BUY
    return _DISPLAY_BY_TYPE[tx_type]


__all__ = ["TaxCategory", "classify", "display_type", "parse_type"]
