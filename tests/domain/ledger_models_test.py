from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from domain.ledger import ComputationWarning, TaxableTransaction, TaxSummary, Transaction, WarningKind


def _row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": "tx-1",
        "timestamp": datetime(2024, 3, 1, 12, tzinfo=timezone.utc),
        "type": "BUY",
        "asset": " btc ",
        "amount": "0.5",
        "unit_price": "90000000",
    }
    row.update(overrides)
    return row


def test_transaction_normalizes_type_and_asset() -> None:
    tx = Transaction.model_validate(_row(fee=None, exchange_id="upbit"))

    assert tx.type == "buy"
    assert tx.asset == "BTC"
    assert tx.fee == Decimal("0")
    assert tx.source == "upbit"


def test_transaction_naive_timestamp_is_utc() -> None:
    tx = Transaction.model_validate(_row(timestamp=datetime(2024, 3, 1, 12)))

    assert tx.timestamp.tzinfo == timezone.utc


def test_transaction_offset_timestamp_is_converted_to_utc() -> None:
    kst = timezone(timedelta(hours=9))

    tx = Transaction.model_validate(_row(timestamp=datetime(2025, 1, 1, 1, 0, tzinfo=kst)))

    assert tx.timestamp.utcoffset() == timedelta(0)
    assert tx.timestamp == datetime(2024, 12, 31, 16, 0, tzinfo=timezone.utc)


def test_transaction_source_falls_back_to_unknown() -> None:
    assert Transaction.model_validate(_row()).source == "unknown"
    assert Transaction.model_validate(_row(wallet_address="0xabc")).source == "0xabc"


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": "0"},
        {"amount": "-1"},
        {"asset": ""},
        {"asset": None},
        {"unit_price": "-5"},
        {"fee": "-0.1"},
        {"type": ""},
        {"amount": "NaN"},
    ],
)
def test_transaction_rejects_malformed_rows(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        Transaction.model_validate(_row(**overrides))


def _summary(**overrides: object) -> TaxSummary:
    fields: dict[str, object] = {
        "year": 2024,
        "total_gains": Decimal("3000000.12345678"),
        "total_losses": Decimal("0.00000001"),
        "net_gains": Decimal("3000000.12345677"),
        "deduction": Decimal("2500000"),
        "taxable_gains": Decimal("500000.12345677"),
        "estimated_tax": Decimal("500000.12345677") * Decimal("0.22"),
        "tax_rate": Decimal("0.22"),
        "transaction_count": 1,
        "taxable_transactions": [
            TaxableTransaction(
                id="tx-9",
                date=datetime(2024, 6, 15, tzinfo=timezone.utc),
                type="SELL",
                asset="BTC",
                amount=Decimal("0.12345678"),
                unit_price=Decimal("90000000.5"),
                total_value=Decimal("0.12345678") * Decimal("90000000.5"),
                fee=Decimal("0.00000001"),
                fee_asset="BTC",
                gain_loss=Decimal("3000000.12345678"),
                cost_basis_matched=Decimal("8111111.00000001"),
            )
        ],
        "warnings": [ComputationWarning(kind=WarningKind.INSUFFICIENT_LOTS, transaction_id="tx-9", message="short")],
    }
    fields.update(overrides)
    return TaxSummary.model_validate(fields)


def test_summary_json_round_trip_is_lossless() -> None:
    summary = _summary()

    restored = TaxSummary.model_validate_json(summary.model_dump_json())

    assert restored == summary
    assert restored.total_losses == Decimal("0.00000001")
    assert restored.estimated_tax == summary.estimated_tax
    assert restored.taxable_transactions[0].total_value == summary.taxable_transactions[0].total_value
    assert isinstance(restored.taxable_transactions[0].gain_loss, Decimal)


def test_summary_rejects_inconsistent_totals() -> None:
    with pytest.raises(ValidationError):
        _summary(net_gains=Decimal("1"))
    with pytest.raises(ValidationError):
        _summary(taxable_gains=Decimal("0"))
    with pytest.raises(ValidationError):
        _summary(estimated_tax=Decimal("1"))


def test_summary_counts_skipped_records() -> None:
    summary = _summary(
        warnings=[
            ComputationWarning(kind=WarningKind.SKIPPED_MALFORMED, transaction_id=None, message="bad"),
            ComputationWarning(kind=WarningKind.PRICE_UNAVAILABLE, transaction_id="tx-1", message="no price"),
        ]
    )

    assert summary.skipped_count == 1
