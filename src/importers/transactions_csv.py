from __future__ import annotations

import logging
from csv import DictReader
from pathlib import Path

from pydantic import ValidationError

from domain.ledger import Transaction

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"id", "timestamp", "type", "asset", "amount"}


def load_transactions(csv_path: Path) -> list[Transaction]:
    """Read ledger transactions from CSV.

    Columns: id,timestamp,type,asset,amount[,unit_price][,unit_price_usd][,fee]
    [,fee_asset][,exchange_id][,wallet_address]. Empty cells are treated as
    missing. Rows that fail validation are logged and left out.
    """
    with csv_path.open(encoding="utf-8", newline="") as handle:
        reader = DictReader(handle)
        if reader.fieldnames is None:
            raise ValueError(f"Transactions CSV {csv_path} is empty or missing headers")

        missing = REQUIRED_COLUMNS - set(reader.fieldnames)
        if missing:
            raise ValueError(f"Transactions CSV {csv_path} missing required columns: {', '.join(sorted(missing))}")

        transactions: list[Transaction] = []
        skipped = 0
        for line_no, row in enumerate(reader, start=2):
            cleaned = {key: value.strip() for key, value in row.items() if key and value and value.strip()}
            try:
                transactions.append(Transaction.model_validate(cleaned))
            except ValidationError as exc:
                skipped += 1
                logger.warning("Skipping %s line %d: %s", csv_path.name, line_no, exc.errors(include_url=False))

    if skipped:
        logger.info("Loaded %d transactions from %s, skipped %d rows", len(transactions), csv_path, skipped)
    transactions.sort(key=lambda tx: tx.timestamp)
    return transactions
