from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    """Store Decimals as text so no digits are lost on the way through SQLite."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionOrm(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    exchange_id: Mapped[str | None] = mapped_column(String, nullable=True)
    wallet_address: Mapped[str | None] = mapped_column(String, nullable=True)
    tx_hash: Mapped[str | None] = mapped_column(String, nullable=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    asset: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    unit_price: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    unit_price_usd: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    fee: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    fee_asset: Mapped[str | None] = mapped_column(String, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    raw_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_transactions_timestamp", "timestamp"),)


class TaxReportOrm(Base):
    __tablename__ = "tax_reports"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    total_gains: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    total_losses: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    net_gains: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    deduction: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    taxable_gains: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    estimated_tax: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    report_data: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("ix_tax_reports_year", "year", "generated_at"),)
