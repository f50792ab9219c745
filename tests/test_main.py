from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Generator

import pytest

from config import config
from domain.ledger import WarningKind
from main import main, run

CSV_ROWS = [
    "id,timestamp,type,asset,amount,unit_price,unit_price_usd,fee,exchange_id",
    "b1,2023-05-01T09:00:00Z,buy,BTC,1,,40000,0,binance",
    "s1,2024-06-15T09:00:00Z,sell,BTC,0.5,,60000,0,binance",
    "bad,2024-07-01T09:00:00Z,sell,BTC,0,,60000,0,binance",
]


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OPEN_EXCHANGE_RATES_APP_ID", raising=False)
    config.cache_clear()
    yield
    config.cache_clear()


@pytest.fixture()
def ledger_csv(tmp_path: Path) -> Path:
    path = tmp_path / "ledger.csv"
    path.write_text("\n".join(CSV_ROWS) + "\n", encoding="utf-8")
    return path


def test_run_imports_computes_and_exports(tmp_path: Path, ledger_csv: Path, capsys: pytest.CaptureFixture[str]) -> None:
    export_path = tmp_path / "out" / "2024.csv"

    summary = run(
        2024,
        tmp_path / "ledger.db",
        import_csv=ledger_csv,
        export_csv=export_path,
        fx_rate=Decimal("1300"),
    )

    assert summary.total_gains == Decimal("13000000")
    assert summary.taxable_gains == Decimal("10500000")
    assert summary.estimated_tax == Decimal("2310000")
    lines = export_path.read_text(encoding="utf-8").split("\n")
    assert lines[1] == "2024-06-15,매도,BTC,0.5,78000000,39000000,0,13000000"
    out = capsys.readouterr().out
    assert "Imported 2 transactions" in out
    assert "13,000,000" in out


def test_saved_report_is_reused(tmp_path: Path, ledger_csv: Path) -> None:
    db_path = tmp_path / "ledger.db"
    saved = run(2024, db_path, import_csv=ledger_csv, save=True, fx_rate=Decimal("1300"))

    reused = run(2024, db_path, use_saved=True)

    assert reused == saved


def test_missing_rates_degrade_to_zero_prices(tmp_path: Path, ledger_csv: Path) -> None:
    summary = run(2024, tmp_path / "ledger.db", import_csv=ledger_csv)

    assert summary.total_gains == Decimal("0")
    assert summary.total_losses == Decimal("0")
    assert [(w.kind, w.transaction_id) for w in summary.warnings] == [(WarningKind.PRICE_UNAVAILABLE, "s1")]


def test_main_parses_arguments(tmp_path: Path, ledger_csv: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(
        [
            "--year",
            "2024",
            "--db",
            str(tmp_path / "cli.db"),
            "--import-csv",
            str(ledger_csv),
            "--fx-rate",
            "1300",
        ]
    )

    assert "Tax summary 2024 (KRW):" in capsys.readouterr().out
