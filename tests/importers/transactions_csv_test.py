from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from importers.transactions_csv import load_transactions

HEADER = "id,timestamp,type,asset,amount,unit_price,unit_price_usd,fee,fee_asset,exchange_id,wallet_address"


def _write(tmp_path: Path, *lines: str) -> Path:
    path = tmp_path / "transactions.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_loads_rows_sorted_by_timestamp(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        HEADER,
        "s1,2024-06-15T10:00:00Z,SELL,btc,0.5,50000000,,0.001,BTC,upbit,",
        "b1,2024-01-02T09:00:00Z,buy,BTC,1,30000000,,,,upbit,",
        "r1,2024-03-01T00:00:00,reward,ETH,0.01,,2500,,,,0xabc",
    )

    transactions = load_transactions(path)

    assert [tx.id for tx in transactions] == ["b1", "r1", "s1"]
    buy, reward, sell = transactions
    assert buy.fee == Decimal("0")
    assert buy.unit_price_usd is None
    assert reward.timestamp == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert reward.unit_price_usd == Decimal("2500")
    assert reward.source == "0xabc"
    assert (sell.type, sell.asset, sell.fee) == ("sell", "BTC", Decimal("0.001"))


def test_invalid_rows_are_skipped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = _write(
        tmp_path,
        "id,timestamp,type,asset,amount,unit_price",
        "ok,2024-01-02T09:00:00Z,buy,BTC,1,100",
        "neg,2024-01-03T09:00:00Z,sell,BTC,-1,100",
        "bad-date,not-a-date,sell,BTC,1,100",
        "no-asset,2024-01-04T09:00:00Z,sell,,1,100",
    )

    with caplog.at_level(logging.WARNING, logger="importers.transactions_csv"):
        transactions = load_transactions(path)

    assert [tx.id for tx in transactions] == ["ok"]
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 3


def test_missing_required_column_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, "id,timestamp,type,asset", "a,2024-01-02T09:00:00Z,buy,BTC")

    with pytest.raises(ValueError, match="amount"):
        load_transactions(path)


def test_empty_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")

    with pytest.raises(ValueError):
        load_transactions(path)
