from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Sequence

from config import config
from db.db import init_db
from db.repositories import TaxReportRepository, TransactionRepository
from domain.ledger import TaxSummary
from domain.money import to_decimal
from domain.pricing import PriceResolver
from domain.tax_policy import DEFAULT_POLICY
from domain.tax_summary import TaxSummaryCalculator
from importers.transactions_csv import load_transactions
from services.price_service import build_price_service
from utils.tax_report import render_tax_summary, to_delimited_text

logger = logging.getLogger(__name__)


def run(
    year: int,
    db_path: Path,
    *,
    import_csv: Path | None = None,
    export_csv: Path | None = None,
    save: bool = False,
    use_saved: bool = False,
    fx_rate: Decimal | None = None,
) -> TaxSummary:
    settings = config()
    if fx_rate is not None:
        settings = settings.model_copy(update={"fallback_usd_rate": fx_rate, "open_exchange_rates_app_id": None})

    session = init_db(db_path)
    transaction_repository = TransactionRepository(session)
    report_repository = TaxReportRepository(session)

    if import_csv is not None:
        imported = transaction_repository.create_many(load_transactions(import_csv))
        print(f"Imported {len(imported)} transactions from {import_csv}")

    summary = report_repository.latest_for_year(year) if use_saved else None
    if summary is None:
        resolver = PriceResolver(
            build_price_service(settings),
            reporting_currency=settings.reporting_currency,
            secondary_currency=settings.secondary_currency,
        )
        calculator = TaxSummaryCalculator(
            transaction_repository,
            policy=DEFAULT_POLICY,
            price_resolver=resolver,
            lookback_years=settings.lookback_years,
        )
        summary = calculator.calculate(year)
        if save:
            report_id = report_repository.save(summary)
            logger.info("Saved tax report %s for %d", report_id, year)

    render_tax_summary(summary, currency=settings.reporting_currency)

    if export_csv is not None:
        export_csv.parent.mkdir(parents=True, exist_ok=True)
        export_csv.write_text(to_delimited_text(summary), encoding="utf-8")
        print(f"Wrote {len(summary.taxable_transactions)} rows to {export_csv}")

    return summary


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    parser = argparse.ArgumentParser(description="Compute the annual crypto capital-gains tax summary.")
    parser.add_argument("--year", type=int, default=datetime.now(timezone.utc).year)
    parser.add_argument("--db", type=Path, default=None, help="SQLite ledger (defaults to DATABASE_PATH)")
    parser.add_argument("--import-csv", type=Path, default=None, help="Load transactions from CSV first")
    parser.add_argument("--export-csv", type=Path, default=None, help="Write the HomeTax CSV export")
    parser.add_argument("--save", action="store_true", help="Persist the computed report")
    parser.add_argument("--use-saved", action="store_true", help="Show the latest saved report if one exists")
    parser.add_argument("--fx-rate", type=to_decimal, default=None, help="Fixed USD->reporting currency rate")
    args = parser.parse_args(argv)
    run(
        args.year,
        args.db or config().database_path,
        import_csv=args.import_csv,
        export_csv=args.export_csv,
        save=args.save,
        use_saved=args.use_saved,
        fx_rate=args.fx_rate,
    )


if __name__ == "__main__":
    main()
