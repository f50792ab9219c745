from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping

from domain.ledger import DisplayType, TaxableTransaction, TaxSummary

from .formatting import format_decimal, format_grouped, format_integer


@dataclass(frozen=True)
class ReportLabels:
    columns: tuple[str, str, str, str, str, str, str, str]
    total_gains: str
    total_losses: str
    net_gains: str
    deduction: str
    taxable_base: str
    estimated_tax: str
    type_labels: Mapping[DisplayType, str] = field(default_factory=dict)

    def type_label(self, display_type: DisplayType) -> str:
        return self.type_labels.get(display_type, display_type.value)


# Column layout expected by the HomeTax upload.
KOREAN_LABELS = ReportLabels(
    columns=("거래일시", "거래유형", "자산명", "거래수량", "단가(원)", "거래금액(원)", "수수료", "양도차익(원)"),
    total_gains="총 양도차익",
    total_losses="총 양도차손",
    net_gains="순 양도차익",
    deduction="기본공제",
    taxable_base="과세표준",
    estimated_tax="예상 세액",
    type_labels={DisplayType.SELL: "매도", DisplayType.BUY: "매수"},
)

ENGLISH_LABELS = ReportLabels(
    columns=("Date", "Type", "Asset", "Amount", "Unit price", "Total value", "Fee", "Gain/loss"),
    total_gains="Total gains",
    total_losses="Total losses",
    net_gains="Net gains",
    deduction="Deduction",
    taxable_base="Taxable base",
    estimated_tax="Estimated tax",
)


@dataclass(frozen=True)
class LabeledRow:
    label: str
    value: str


def _transaction_row(tx: TaxableTransaction, labels: ReportLabels) -> list[str]:
    return [
        tx.date.date().isoformat(),
        labels.type_label(tx.type),
        tx.asset,
        format_decimal(tx.amount),
        format_integer(tx.unit_price),
        format_integer(tx.total_value),
        format_decimal(tx.fee),
        format_integer(tx.gain_loss) if tx.gain_loss is not None else "0",
    ]


def to_delimited_text(summary: TaxSummary, *, labels: ReportLabels = KOREAN_LABELS) -> str:
    """Header plus one comma-separated row per taxable transaction, in summary order."""
    lines = [",".join(labels.columns)]
    lines.extend(",".join(_transaction_row(tx, labels)) for tx in summary.taxable_transactions)
    return "\n".join(lines)


def rate_percent(rate: Decimal) -> str:
    return format_decimal(rate * 100)


def to_labeled_rows(summary: TaxSummary, *, labels: ReportLabels = KOREAN_LABELS) -> list[LabeledRow]:
    return [
        LabeledRow(labels.total_gains, format_integer(summary.total_gains)),
        LabeledRow(labels.total_losses, format_integer(summary.total_losses)),
        LabeledRow(labels.net_gains, format_integer(summary.net_gains)),
        LabeledRow(labels.deduction, format_integer(summary.deduction)),
        LabeledRow(labels.taxable_base, format_integer(summary.taxable_gains)),
        LabeledRow(
            f"{labels.estimated_tax} ({rate_percent(summary.tax_rate)}%)",
            format_integer(summary.estimated_tax),
        ),
    ]


def render_tax_summary(summary: TaxSummary, *, currency: str = "KRW") -> None:
    print(f"Tax summary {summary.year} ({currency}):")
    labeled = to_labeled_rows(summary, labels=ENGLISH_LABELS)
    rows = [(row.label, format_grouped(Decimal(row.value))) for row in labeled]
    label_width = max(len(label) for label, _ in rows)
    value_width = max(len(value) for _, value in rows)

    lines = []
    for label, value in rows:
        lines.append(f"  {label:<{label_width}} {value:>{value_width}}")
    lines.append(f"  Transactions processed: {summary.transaction_count}")
    lines.append(f"  Taxable disposals:      {len(summary.taxable_transactions)}")
    if summary.warnings:
        lines.append(f"  Warnings: {len(summary.warnings)} ({summary.skipped_count} skipped records)")
        for warning in summary.warnings:
            lines.append(f"    [{warning.kind}] {warning.transaction_id or '-'}: {warning.message}")
    print("\n".join(lines))


__all__ = [
    "ENGLISH_LABELS",
    "KOREAN_LABELS",
    "LabeledRow",
    "ReportLabels",
    "render_tax_summary",
    "to_delimited_text",
    "to_labeled_rows",
]
