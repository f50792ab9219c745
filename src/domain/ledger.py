from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import NewType
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AssetId = NewType("AssetId", str)
TransactionId = NewType("TransactionId", str)
LotId = NewType("LotId", str)


class TransactionType(StrEnum):
    """Raw transaction types written by the exchange and wallet importers."""

    BUY = "buy"
    SELL = "sell"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    SWAP = "swap"
    REWARD = "reward"
    AIRDROP = "airdrop"
    STAKE = "stake"
    UNSTAKE = "unstake"


class DisplayType(StrEnum):
    BUY = "BUY"
    SELL = "SELL"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    SWAP = "SWAP"
    REWARD = "REWARD"


class WarningKind(StrEnum):
    SKIPPED_MALFORMED = "SKIPPED_MALFORMED"
    INSUFFICIENT_LOTS = "INSUFFICIENT_LOTS"
    PRICE_UNAVAILABLE = "PRICE_UNAVAILABLE"


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Transaction(BaseModel):
    """A single ledger record as stored by the transaction ledger.

    ``unit_price`` is denominated in the reporting currency; ``unit_price_usd``
    is only consulted when the reporting price is missing.
    """

    model_config = ConfigDict(frozen=True)

    id: TransactionId
    timestamp: datetime
    type: str
    asset: AssetId
    amount: Decimal
    unit_price: Decimal | None = None
    unit_price_usd: Decimal | None = None
    fee: Decimal = Decimal("0")
    fee_asset: str | None = None
    exchange_id: str | None = None
    wallet_address: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value: object) -> object:
        if isinstance(value, (int, UUID)):
            return str(value)
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("asset", mode="before")
    @classmethod
    def _normalize_asset(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("fee", mode="before")
    @classmethod
    def _empty_fee(cls, value: object) -> object:
        if value is None or value == "":
            return "0"
        return value

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @model_validator(mode="after")
    def _validate_fields(self) -> Transaction:
        if not self.id:
            raise ValueError("Transaction.id must be non-empty")
        if not self.type:
            raise ValueError("Transaction.type must be non-empty")
        if not self.asset:
            raise ValueError("Transaction.asset must be non-empty")
        if not self.amount.is_finite() or self.amount <= 0:
            raise ValueError("Transaction.amount must be > 0")
        for name in ("unit_price", "unit_price_usd", "fee"):
            value: Decimal | None = getattr(self, name)
            if value is not None and (not value.is_finite() or value < 0):
                raise ValueError(f"Transaction.{name} must be >= 0")
        return self

    @property
    def source(self) -> str:
        return self.exchange_id or self.wallet_address or "unknown"


class AssetLot(BaseModel):
    """Snapshot of an open acquisition lot held by the lot ledger."""

    model_config = ConfigDict(frozen=True)

    id: LotId = Field(default_factory=lambda: LotId(str(uuid4())))
    asset: AssetId
    amount: Decimal
    unit_cost: Decimal
    acquired_at: datetime
    source: str

    @model_validator(mode="after")
    def _validate_fields(self) -> AssetLot:
        if self.amount <= 0:
            raise ValueError("AssetLot.amount must be > 0")
        if self.unit_cost < 0:
            raise ValueError("AssetLot.unit_cost must be >= 0")
        return self


class TaxableTransaction(BaseModel):
    """A processed transaction decorated with its valuation.

    ``gain_loss`` and ``cost_basis_matched`` are only set for disposals.
    """

    model_config = ConfigDict(frozen=True)

    id: TransactionId
    date: datetime
    type: DisplayType
    asset: AssetId
    amount: Decimal
    unit_price: Decimal
    total_value: Decimal
    fee: Decimal
    fee_asset: str
    exchange_id: str | None = None
    wallet_address: str | None = None
    gain_loss: Decimal | None = None
    cost_basis_matched: Decimal | None = None


class ComputationWarning(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: WarningKind
    transaction_id: str | None
    message: str


class TaxSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    total_gains: Decimal
    total_losses: Decimal
    net_gains: Decimal
    deduction: Decimal
    taxable_gains: Decimal
    estimated_tax: Decimal
    tax_rate: Decimal
    transaction_count: int
    taxable_transactions: list[TaxableTransaction] = Field(default_factory=list)
    warnings: list[ComputationWarning] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_totals(self) -> TaxSummary:
        if self.total_gains < 0 or self.total_losses < 0:
            raise ValueError("total_gains and total_losses must be >= 0")
        if self.net_gains != self.total_gains - self.total_losses:
            raise ValueError("net_gains must equal total_gains - total_losses")
        if self.taxable_gains != max(self.net_gains - self.deduction, Decimal("0")):
            raise ValueError("taxable_gains must equal max(net_gains - deduction, 0)")
        if self.estimated_tax != self.taxable_gains * self.tax_rate:
            raise ValueError("estimated_tax must equal taxable_gains * tax_rate")
        return self

    @property
    def skipped_count(self) -> int:
        return sum(1 for warning in self.warnings if warning.kind == WarningKind.SKIPPED_MALFORMED)


__all__ = [
    "AssetId",
    "AssetLot",
    "ComputationWarning",
    "DisplayType",
    "LotId",
    "TaxSummary",
    "TaxableTransaction",
    "Transaction",
    "TransactionId",
    "TransactionType",
    "WarningKind",
]
