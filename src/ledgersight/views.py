# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB LedgerSight.

This module turns the engine's result objects (statements, VAT breakdown,
tax estimate, declarations, reconciliation results) into pandas DataFrames
ready for console display.

Statement views share a generic layout:

    display_order, level, code, name, amount

- level 0: section (Assets, Liabilities, Revenue, ...) with its total,
- level 1: category group with its total,
- level 2: account line.

display_order is renumbered 10, 20, 30, ... in the final row order.
"""

from collections.abc import Iterable

import pandas as pd

from .declarations import VATDeclaration
from .engine import VATBreakdown
from .reconciliation import (
    MatchSuggestion,
    ReconciliationResult,
    ReconciliationSummary,
)
from .statements import BalanceSheet, IncomeStatement, StatementGroup
from .tax import TaxEstimate

STATEMENT_COLUMNS = ["display_order", "level", "code", "name", "amount"]


def _renumber_display_order(
    df: pd.DataFrame, start: int = 10, step: int = 10
) -> pd.DataFrame:
    """Reassign display_order to be strictly sequential: start, start+step, ...
    Preserves the current order of the lines (as it appears in df).
    """
    df = df.copy()
    df = df.reset_index(drop=True)
    df["display_order"] = [start + i * step for i in range(len(df))]
    return df


def _finalize_view(rows: list[dict[str, object]]) -> pd.DataFrame:
    """Build the statement DataFrame, renumber display_order, order columns."""
    if not rows:
        return pd.DataFrame(columns=STATEMENT_COLUMNS)
    df = _renumber_display_order(pd.DataFrame(rows))
    return df[STATEMENT_COLUMNS]


def _section_rows(
    title: str, groups: Iterable[StatementGroup], total: float
) -> list[dict[str, object]]:
    rows: list[dict[str, object]] = [
        {"level": 0, "code": "", "name": title, "amount": total}
    ]
    for group in groups:
        rows.append(
            {"level": 1, "code": "", "name": group.category, "amount": group.total}
        )
        for line in group.lines:
            rows.append(
                {
                    "level": 2,
                    "code": line.code,
                    "name": line.name,
                    "amount": line.amount,
                }
            )
    return rows


def balance_sheet_to_dataframe(sheet: BalanceSheet) -> pd.DataFrame:
    """Assets, liabilities and equity sections, then the passif total."""
    rows = _section_rows("Assets", sheet.assets, sheet.total_assets)
    rows += _section_rows("Liabilities", sheet.liabilities, sheet.total_liabilities)
    rows += _section_rows("Equity", sheet.equity, sheet.total_equity)
    rows.append(
        {
            "level": 0,
            "code": "",
            "name": "Total liabilities + equity",
            "amount": sheet.total_passif,
        }
    )
    return _finalize_view(rows)


def income_statement_to_dataframe(statement: IncomeStatement) -> pd.DataFrame:
    """Revenue and expense sections (unmapped lines included), then net income."""
    rows = _section_rows("Revenue", statement.revenue_items, statement.total_revenue)
    if statement.unmapped_revenue_cents:
        rows.append(
            {
                "level": 1,
                "code": "",
                "name": "Unmapped revenue",
                "amount": statement.unmapped_revenue,
            }
        )
    rows += _section_rows(
        "Expenses", statement.expense_items, statement.total_expenses
    )
    if statement.unmapped_expenses_cents:
        rows.append(
            {
                "level": 1,
                "code": "",
                "name": "Unmapped expenses",
                "amount": statement.unmapped_expenses,
            }
        )
    rows.append(
        {"level": 0, "code": "", "name": "Net income", "amount": statement.net_income}
    )
    return _finalize_view(rows)


def vat_breakdown_to_dataframe(breakdown: VATBreakdown) -> pd.DataFrame:
    """
    One row per output rate bucket and per input nature, then net VAT.

    Columns: kind, rate, label, base, vat.
    """
    columns = ["kind", "rate", "label", "base", "vat"]
    rows: list[dict[str, object]] = []
    for bucket in breakdown.output_by_rate.values():
        rows.append(
            {
                "kind": "output",
                "rate": bucket.rate,
                "label": bucket.label,
                "base": bucket.base,
                "vat": bucket.vat,
            }
        )
    for bucket in breakdown.input_by_rate.values():
        rows.append(
            {
                "kind": "input",
                "rate": bucket.rate,
                "label": bucket.label,
                "base": bucket.base,
                "vat": bucket.vat,
            }
        )
    totals = [
        ("input_goods", "Goods", breakdown.input_goods),
        ("input_services", "Services", breakdown.input_services),
        ("net", "Net VAT", breakdown.net_vat),
    ]
    for kind, label, vat in totals:
        rows.append(
            {
                "kind": kind,
                "rate": float("nan"),
                "label": label,
                "base": float("nan"),
                "vat": vat,
            }
        )
    return pd.DataFrame(rows, columns=columns)


def tax_estimate_to_dataframe(estimate: TaxEstimate) -> pd.DataFrame:
    """Per-bracket details. Columns: label, min, max, rate, taxable_amount, tax."""
    columns = ["label", "min", "max", "rate", "taxable_amount", "tax"]
    if not estimate.details:
        return pd.DataFrame(columns=columns)
    rows = [
        {
            "label": d.bracket.label,
            "min": d.bracket.min,
            "max": float("inf") if d.bracket.max is None else d.bracket.max,
            "rate": d.bracket.rate,
            "taxable_amount": d.taxable_amount,
            "tax": d.tax,
        }
        for d in estimate.details
    ]
    return pd.DataFrame(rows, columns=columns)


def declaration_to_dataframe(declaration: VATDeclaration) -> pd.DataFrame:
    """Declaration boxes in form order. Columns: box, amount."""
    return pd.DataFrame(
        list(declaration.values.items()), columns=["box", "amount"]
    )


def reconciliation_to_dataframe(result: ReconciliationResult) -> pd.DataFrame:
    columns = ["transaction_id", "invoice_id", "invoice_number", "confidence"]
    if not result.details:
        return pd.DataFrame(columns=columns)
    rows = [
        {
            "transaction_id": m.transaction_id,
            "invoice_id": m.invoice_id,
            "invoice_number": m.invoice_number,
            "confidence": m.confidence,
        }
        for m in result.details
    ]
    return pd.DataFrame(rows, columns=columns)


def suggestions_to_dataframe(suggestions: Iterable[MatchSuggestion]) -> pd.DataFrame:
    columns = ["invoice_id", "invoice_number", "client_name", "amount", "score"]
    rows = [
        {
            "invoice_id": s.invoice_id,
            "invoice_number": s.invoice_number,
            "client_name": s.client_name,
            "amount": s.amount,
            "score": s.score,
        }
        for s in suggestions
    ]
    return pd.DataFrame(rows, columns=columns)


def reconciliation_summary_to_dataframe(summary: ReconciliationSummary) -> pd.DataFrame:
    """Two-column (metric, value) view of a reconciliation summary."""
    metrics = [
        ("Transactions", summary.total),
        ("Matched", summary.matched),
        ("Unmatched", summary.unmatched),
        ("Match rate (%)", summary.match_rate),
        ("Total credits", summary.total_credits),
        ("Total debits", summary.total_debits),
        ("Matched credits", summary.matched_credits),
        ("Matched debits", summary.matched_debits),
        ("Unmatched credits", summary.unmatched_credits),
        ("Unmatched debits", summary.unmatched_debits),
        ("Difference", summary.difference),
    ]
    return pd.DataFrame(metrics, columns=["metric", "value"])
