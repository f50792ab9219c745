from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping
from uuid import UUID

from sqlalchemy import String, select, type_coerce
from sqlalchemy.orm import Session

from db import models
from domain.ledger import TaxSummary, Transaction


_RAW_TEXT_COLUMNS = ("amount", "unit_price", "unit_price_usd", "fee")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TransactionRepository:
    """The transaction ledger. The tax engine only reads from it."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, tx: Transaction, *, raw_data: str | None = None) -> Transaction:
        orm_tx = self._to_orm(tx, raw_data=raw_data)
        self._session.add(orm_tx)
        self._session.commit()
        return tx

    def create_many(self, transactions: Iterable[Transaction]) -> list[Transaction]:
        saved = list(transactions)
        # Upsert by id.
        for tx in saved:
            self._session.merge(self._to_orm(tx))
        self._session.commit()
        return saved

    def query_by_date_range(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        """Rows with ``start <= timestamp <= end``, oldest first.

        Rows are returned unvalidated: monetary columns come back as the stored
        text, so legacy imports that do not parse are left for the caller to
        reject.
        """
        orm = models.TransactionOrm
        stmt = (
            select(
                orm.id,
                orm.timestamp,
                orm.type,
                orm.asset,
                *(type_coerce(getattr(orm, name), String).label(name) for name in _RAW_TEXT_COLUMNS),
                orm.fee_asset,
                orm.exchange_id,
                orm.wallet_address,
            )
            .where(orm.timestamp >= _as_utc(start))
            .where(orm.timestamp <= _as_utc(end))
            .order_by(orm.timestamp.asc(), orm.created_at.asc(), orm.id.asc())
        )
        return [self._to_record(row._mapping) for row in self._session.execute(stmt)]

    @staticmethod
    def _to_orm(tx: Transaction, *, raw_data: str | None = None) -> models.TransactionOrm:
        return models.TransactionOrm(
            id=tx.id,
            exchange_id=tx.exchange_id,
            wallet_address=tx.wallet_address,
            type=tx.type,
            asset=tx.asset,
            amount=tx.amount,
            unit_price=tx.unit_price,
            unit_price_usd=tx.unit_price_usd,
            fee=tx.fee,
            fee_asset=tx.fee_asset,
            timestamp=_as_utc(tx.timestamp),
            raw_data=raw_data,
        )

    @staticmethod
    def _to_record(row: Mapping[str, Any]) -> dict[str, Any]:
        record = dict(row)
        record["timestamp"] = _as_utc(row["timestamp"])
        for name in _RAW_TEXT_COLUMNS:
            # Blank cells from legacy imports mean "not recorded".
            if record[name] is not None and not record[name].strip():
                record[name] = None
        return record


class TaxReportRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, summary: TaxSummary) -> UUID:
        orm_report = models.TaxReportOrm(
            year=summary.year,
            total_gains=summary.total_gains,
            total_losses=summary.total_losses,
            net_gains=summary.net_gains,
            deduction=summary.deduction,
            taxable_gains=summary.taxable_gains,
            estimated_tax=summary.estimated_tax,
            report_data=summary.model_dump_json(),
        )
        self._session.add(orm_report)
        self._session.commit()
        self._session.refresh(orm_report)
        return orm_report.id

    def latest_for_year(self, year: int) -> TaxSummary | None:
        stmt = (
            select(models.TaxReportOrm)
            .where(models.TaxReportOrm.year == year)
            .order_by(models.TaxReportOrm.generated_at.desc())
            .limit(1)
        )
        orm_report = self._session.scalar(stmt)
        if orm_report is None:
            return None
        return TaxSummary.model_validate_json(orm_report.report_data)
