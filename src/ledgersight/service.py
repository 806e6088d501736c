# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services: the invocation surface of the engine.

This module sits between:
- the low-level helpers (`db.py`, `ingest.py`) and the pure computation
  modules (`engine.py`, `statements.py`, `tax.py`, `declarations.py`,
  `reconciliation.py`), and
- user-facing layers such as the CLI.

Responsibilities
----------------
1) Statements
   - Fetch the user's records for a period (concurrently).
   - Build the balance sheet, income statement, VAT breakdown, ledger
     totals, monthly breakdown and tax estimate in one call.

2) VAT declarations
   - Validate the country before any fetch.
   - Build the VAT breakdown of the period and render it in the country's
     declaration format.

3) Reconciliation
   - Fetch unmatched bank transactions and open invoices.
   - Run the configured matching strategy, committing each confident match
     to the database (one SQL transaction per match).
   - Summarize reconciliation progress.
   - Rank candidate invoices for a single transaction, read-only.

4) Imports
   - Read a CSV record set and import it into the database.

Design notes
------------
- Every derived artifact is recomputed per call; nothing is cached.
- Options left to None fall back to the application configuration.
- Errors propagate as ``LedgerSightError`` subclasses (InvalidPeriodError,
  DataFetchError, UnsupportedCountryError); an unbalanced balance sheet is
  reported through its ``balanced`` flag, not raised.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Optional, Union

import pandas as pd
import structlog

from . import db
from .config import AppConfig
from .declarations import VATDeclaration, get_declaration_format
from .declarations import generate_vat_declaration as render_declaration
from .engine import (
    LedgerTotals,
    VATBreakdown,
    compute_ledger_totals,
    monthly_breakdown,
    vat_breakdown,
)
from .ingest import (
    fetch_bank_transactions,
    fetch_ledger,
    fetch_open_invoices,
    fetch_reconciliation_inputs,
)
from .io import read_records
from .periods import Period, validate_period
from .reconciliation import (
    DEFAULT_SUGGESTION_LIMIT,
    STRATEGIES,
    MatchSuggestion,
    ReconciliationResult,
    ReconciliationSummary,
    reconciliation_summary,
    run_reconciliation,
    suggest_matches as rank_suggestions,
)
from .records import BankTransaction, OpenInvoice
from .statements import (
    BalanceSheet,
    IncomeStatement,
    build_balance_sheet,
    build_income_statement,
)
from .tax import TaxEstimate, estimate_tax

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Statements:
    """Every accounting artifact of one period."""

    period: Period
    balance_sheet: BalanceSheet
    income_statement: IncomeStatement
    vat_breakdown: VATBreakdown
    tax_estimate: TaxEstimate
    totals: LedgerTotals
    monthly: pd.DataFrame


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _get_db_config(app_config: AppConfig) -> db.DatabaseConfig:
    """
    Convenience helper to access the database configuration from an AppConfig.
    """
    return app_config.database


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def build_statements(
    app_config: AppConfig, user_id: str, period: Period
) -> Statements:
    """
    Build the balance sheet, income statement, VAT breakdown and tax
    estimate of ``user_id`` for ``period``.

    Tax brackets come from the user's tax-bracket table when it has rows,
    otherwise from the configuration.

    Raises
    ------
    InvalidPeriodError
        If the period is malformed (before any fetch).
    DataFetchError
        If any record set cannot be read.
    """
    period = validate_period(period)
    data = await fetch_ledger(
        _get_db_config(app_config),
        user_id,
        period,
        default_vat_rate=app_config.default_vat_rate,
    )
    records = data.records

    balance_sheet = build_balance_sheet(
        data.accounts,
        records,
        data.mappings,
        period,
        result_account_prefix=app_config.result_account_prefix,
    )
    income_statement = build_income_statement(
        data.accounts, records, data.mappings, period
    )
    totals = compute_ledger_totals(records, period)
    brackets = data.tax_brackets or app_config.tax_brackets

    statements = Statements(
        period=period,
        balance_sheet=balance_sheet,
        income_statement=income_statement,
        vat_breakdown=vat_breakdown(records, period, data.tax_rates),
        tax_estimate=estimate_tax(totals.net_income, brackets),
        totals=totals,
        monthly=monthly_breakdown(records, period),
    )
    log.info(
        "statements.built",
        user_id=user_id,
        period=period.label,
        balanced=balance_sheet.balanced,
        net_income=totals.net_income,
    )
    return statements


async def generate_vat_declaration(
    app_config: AppConfig,
    user_id: str,
    period: Period,
    country: Optional[str] = None,
) -> VATDeclaration:
    """
    Generate the VAT declaration of ``user_id`` for ``period``.

    ``country`` defaults to ``[accounting].country``.

    Raises
    ------
    UnsupportedCountryError
        If the country has no declaration format (before any fetch).
    InvalidPeriodError
        If the period is malformed (before any fetch).
    DataFetchError
        If any record set cannot be read.
    """
    country = (country or app_config.country).strip().upper()
    get_declaration_format(country)
    period = validate_period(period)

    data = await fetch_ledger(
        _get_db_config(app_config),
        user_id,
        period,
        default_vat_rate=app_config.default_vat_rate,
    )
    records = data.records
    breakdown = vat_breakdown(records, period, data.tax_rates)
    revenue = compute_ledger_totals(records, period).revenue
    return render_declaration(breakdown, revenue, period, country)


async def reconcile(
    app_config: AppConfig,
    user_id: str,
    threshold: Optional[float] = None,
    strategy: Optional[str] = None,
) -> ReconciliationResult:
    """
    Auto-reconcile the user's unmatched bank transactions with open invoices.

    Each committed match links the transaction to the invoice and marks the
    invoice as paid on the transaction date. ``threshold`` and ``strategy``
    default to the [reconciliation] configuration.

    Raises
    ------
    ValueError
        If the threshold or strategy is invalid (before any fetch).
    DataFetchError
        If the candidates cannot be read.
    """
    options = app_config.reconciliation
    threshold = options.threshold if threshold is None else float(threshold)
    strategy = options.strategy if strategy is None else strategy
    if not 0.0 <= threshold <= 1.0:
        msg = f"Confidence threshold must be within [0, 1], got {threshold}."
        raise ValueError(msg)
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown reconciliation strategy {strategy!r}.")

    cfg = _get_db_config(app_config)
    inputs = await fetch_reconciliation_inputs(cfg, user_id, options.fetch_limit)

    def commit(tx: BankTransaction, invoice: OpenInvoice) -> None:
        db.link_transaction_to_invoice(cfg, tx.id, invoice.id, tx.date)

    return await asyncio.to_thread(
        run_reconciliation,
        inputs,
        threshold=threshold,
        strategy=strategy,
        commit=commit,
    )


async def reconciliation_overview(
    app_config: AppConfig, user_id: str
) -> ReconciliationSummary:
    """Matched vs unmatched statistics over all of the user's transactions."""
    transactions = await fetch_bank_transactions(_get_db_config(app_config), user_id)
    return reconciliation_summary(transactions)


async def suggest_matches(
    app_config: AppConfig,
    user_id: str,
    transaction_id: int,
    *,
    limit: int = DEFAULT_SUGGESTION_LIMIT,
    text_filter: str = "",
) -> tuple[MatchSuggestion, ...]:
    """
    Rank the open invoices that could settle one bank transaction.

    Read-only: nothing is linked or marked as paid.

    Raises
    ------
    ValueError
        If ``limit`` is not positive (before any fetch) or the user has no
        transaction with this id.
    DataFetchError
        If the candidates cannot be read.
    """
    if limit < 1:
        raise ValueError(f"Suggestion limit must be positive, got {limit}.")

    cfg = _get_db_config(app_config)
    transactions, invoices = await asyncio.gather(
        fetch_bank_transactions(cfg, user_id), fetch_open_invoices(cfg, user_id)
    )
    tx = next((t for t in transactions if t.id == transaction_id), None)
    if tx is None:
        raise ValueError(f"Unknown bank transaction: {transaction_id}.")
    return rank_suggestions(tx, invoices, limit=limit, text_filter=text_filter)


def import_csv(
    app_config: AppConfig,
    path: Union[str, "os.PathLike[str]"],
    *,
    table: str,
    user_id: str,
) -> db.ImportStats:
    """Read a CSV record set and import it into ``table`` for ``user_id``."""
    df = read_records(path, table)
    return db.import_records(
        df,
        _get_db_config(app_config),
        table=table,
        user_id=user_id,
        source_label=str(path),
    )
