# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ledger ingestion: fetch record sets for one user and period.

The independent table reads run concurrently: each reader from ``db.py`` is
executed in a worker thread (``asyncio.to_thread``) with its own read-only
SQLite connection, and the coroutines are joined with ``asyncio.gather``. A
missing or unreadable store, a failed read, or a stored row that cannot be
converted aborts the whole fetch with a ``DataFetchError``; no partial record
set is ever returned, and fetching never writes to the store.

Rows are converted to record dataclasses here, and only here: missing
numeric values default to 0, missing VAT rates to the configured default
rate, missing text to an empty string. Downstream code can therefore rely on
fully populated records.
"""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import date
from typing import Any, Optional

import pandas as pd
import structlog

from . import db
from .errors import DataFetchError
from .periods import Period, validate_period
from .records import (
    AccountMapping,
    BankTransaction,
    ChartAccount,
    Expense,
    Invoice,
    LedgerData,
    OpenInvoice,
    ReconciliationInputs,
    SupplierInvoice,
    TaxBracket,
    TaxRate,
)

log = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Default-valued accessors
# ---------------------------------------------------------------------------


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _int(value: Any, default: int = 0) -> int:
    return default if _is_missing(value) else int(value)


def _opt_int(value: Any) -> Optional[int]:
    return None if _is_missing(value) else int(value)


def _float(value: Any, default: float = 0.0) -> float:
    return default if _is_missing(value) else float(value)


def _str(value: Any, default: str = "") -> str:
    return default if _is_missing(value) else str(value).strip()


def _date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# ---------------------------------------------------------------------------
# Row converters
# ---------------------------------------------------------------------------


def invoices_from_frame(
    df: pd.DataFrame, default_vat_rate: float
) -> tuple[Invoice, ...]:
    """Convert invoice rows (see ``db.load_invoices``) to Invoice records."""
    return tuple(
        Invoice(
            id=_int(row["id"]),
            date=_date(row["date"]),
            total_ht_cents=_int(row["total_ht_cents"]),
            total_ttc_cents=_int(row["total_ttc_cents"]),
            vat_rate=_float(row["vat_rate"], default_vat_rate),
            status=_str(row["status"], "draft"),
            number=_str(row["invoice_number"]),
            client_id=_opt_int(row["client_id"]),
            client_name=_str(row["client_name"]),
            category=_str(row["category"]),
        )
        for row in df.to_dict(orient="records")
    )


def expenses_from_frame(
    df: pd.DataFrame, default_vat_rate: float
) -> tuple[Expense, ...]:
    """Convert expense rows to Expense records."""
    return tuple(
        Expense(
            id=_int(row["id"]),
            date=_date(row["date"]),
            amount_cents=_int(row["amount_cents"]),
            vat_amount_cents=_int(row["vat_amount_cents"]),
            vat_rate=_float(row["vat_rate"], default_vat_rate),
            category=_str(row["category"]),
        )
        for row in df.to_dict(orient="records")
    )


def supplier_invoices_from_frame(df: pd.DataFrame) -> tuple[SupplierInvoice, ...]:
    return tuple(
        SupplierInvoice(
            id=_int(row["id"]),
            date=_date(row["date"]),
            amount_cents=_int(row["amount_cents"]),
            vat_amount_cents=_int(row["vat_amount_cents"]),
            payment_status=_str(row["payment_status"], "pending"),
            category=_str(row["category"]),
        )
        for row in df.to_dict(orient="records")
    )


def accounts_from_frame(df: pd.DataFrame) -> tuple[ChartAccount, ...]:
    return tuple(
        ChartAccount(
            code=_str(row["code"]),
            name=_str(row["name"]),
            type=_str(row["type"]).lower(),
            category=_str(row["category"]),
        )
        for row in df.to_dict(orient="records")
    )


def mappings_from_frame(df: pd.DataFrame) -> tuple[AccountMapping, ...]:
    return tuple(
        AccountMapping(
            source_type=_str(row["source_type"]),
            source_category=_str(row["source_category"]),
            debit_account_code=_str(row["debit_account_code"]),
            credit_account_code=_str(row["credit_account_code"]),
            vat_account_code=_str(row["vat_account_code"]),
        )
        for row in df.to_dict(orient="records")
    )


def tax_rates_from_frame(df: pd.DataFrame) -> tuple[TaxRate, ...]:
    return tuple(
        TaxRate(
            rate=_float(row["rate"]),
            label=_str(row["label"]),
            country=_str(row["country"]).upper(),
        )
        for row in df.to_dict(orient="records")
    )


def tax_brackets_from_frame(df: pd.DataFrame) -> tuple[TaxBracket, ...]:
    return tuple(
        TaxBracket(
            min=_float(row["min_amount"]),
            max=None if _is_missing(row["max_amount"]) else float(row["max_amount"]),
            rate=_float(row["rate"]),
            label=_str(row["label"]),
        )
        for row in df.to_dict(orient="records")
    )


def transactions_from_frame(df: pd.DataFrame) -> tuple[BankTransaction, ...]:
    return tuple(
        BankTransaction(
            id=_int(row["id"]),
            date=_date(row["date"]),
            amount_cents=_int(row["amount_cents"]),
            reference=_str(row["reference"]),
            description=_str(row["description"]),
            invoice_id=_opt_int(row["invoice_id"]),
        )
        for row in df.to_dict(orient="records")
    )


def open_invoices_from_frame(df: pd.DataFrame) -> tuple[OpenInvoice, ...]:
    return tuple(
        OpenInvoice(
            id=_int(row["id"]),
            number=_str(row["invoice_number"]),
            total_cents=_int(row["total_ttc_cents"]),
            client_name=_str(row["client_name"]),
            status=_str(row["status"], "sent"),
        )
        for row in df.to_dict(orient="records")
    )


# ---------------------------------------------------------------------------
# Concurrent fetch
# ---------------------------------------------------------------------------


async def _gather_frames(
    cfg: db.DatabaseConfig, calls: dict[str, tuple]
) -> dict[str, pd.DataFrame]:
    """
    Run ``db`` readers concurrently and return their frames by name.

    ``calls`` maps a name to ``(reader, *args)``.
    """
    try:
        frames = await asyncio.gather(
            *(asyncio.to_thread(fn, cfg, *args) for fn, *args in calls.values())
        )
    except sqlite3.Error as exc:
        msg = f"Failed to fetch ledger data from {cfg.path}: {exc}"
        raise DataFetchError(msg) from exc
    return dict(zip(calls, frames))


def _conversion_error(cfg: db.DatabaseConfig, exc: Exception) -> DataFetchError:
    return DataFetchError(f"Invalid stored record in {cfg.path}: {exc}")


async def fetch_ledger(
    cfg: db.DatabaseConfig,
    user_id: str,
    period: Period,
    *,
    default_vat_rate: float = 20.0,
) -> LedgerData:
    """
    Fetch every record set needed to build statements for ``user_id``.

    Transactional records are limited to ``period`` (inclusive bounds);
    reference data (chart of accounts, mappings, VAT rates, tax brackets) is
    fetched in full.

    Raises
    ------
    InvalidPeriodError
        If the period is missing or malformed (raised before any read).
    DataFetchError
        If any read fails.
    """
    period = validate_period(period)
    start, end = period.start, period.end

    frames = await _gather_frames(
        cfg,
        {
            "invoices": (db.load_invoices, user_id, start, end),
            "expenses": (db.load_expenses, user_id, start, end),
            "supplier_invoices": (db.load_supplier_invoices, user_id, start, end),
            "accounts": (db.load_chart_of_accounts, user_id),
            "mappings": (db.load_account_mappings, user_id),
            "tax_rates": (db.load_tax_rates, user_id),
            "tax_brackets": (db.load_tax_brackets, user_id),
        },
    )

    try:
        data = LedgerData(
            invoices=invoices_from_frame(frames["invoices"], default_vat_rate),
            expenses=expenses_from_frame(frames["expenses"], default_vat_rate),
            supplier_invoices=supplier_invoices_from_frame(
                frames["supplier_invoices"]
            ),
            accounts=accounts_from_frame(frames["accounts"]),
            mappings=mappings_from_frame(frames["mappings"]),
            tax_rates=tax_rates_from_frame(frames["tax_rates"]),
            tax_brackets=tax_brackets_from_frame(frames["tax_brackets"]),
        )
    except (TypeError, ValueError) as exc:
        raise _conversion_error(cfg, exc) from exc

    log.info(
        "ledger.fetched",
        user_id=user_id,
        period=period.label,
        invoices=len(data.invoices),
        expenses=len(data.expenses),
        supplier_invoices=len(data.supplier_invoices),
        accounts=len(data.accounts),
        mappings=len(data.mappings),
    )
    return data


async def fetch_reconciliation_inputs(
    cfg: db.DatabaseConfig, user_id: str, limit: int = 100
) -> ReconciliationInputs:
    """
    Fetch unmatched bank transactions (newest first, at most ``limit``) and
    the user's open invoices.

    Raises
    ------
    DataFetchError
        If any read fails.
    """
    frames = await _gather_frames(
        cfg,
        {
            "transactions": (db.load_unmatched_transactions, user_id, limit),
            "invoices": (db.load_open_invoices, user_id),
        },
    )
    try:
        return ReconciliationInputs(
            transactions=transactions_from_frame(frames["transactions"]),
            invoices=open_invoices_from_frame(frames["invoices"]),
        )
    except (TypeError, ValueError) as exc:
        raise _conversion_error(cfg, exc) from exc


async def fetch_bank_transactions(
    cfg: db.DatabaseConfig, user_id: str
) -> tuple[BankTransaction, ...]:
    """Fetch all of the user's bank transactions (matched and unmatched)."""
    frames = await _gather_frames(
        cfg, {"transactions": (db.load_bank_transactions, user_id)}
    )
    try:
        return transactions_from_frame(frames["transactions"])
    except (TypeError, ValueError) as exc:
        raise _conversion_error(cfg, exc) from exc


async def fetch_open_invoices(
    cfg: db.DatabaseConfig, user_id: str
) -> tuple[OpenInvoice, ...]:
    """Fetch the user's invoices awaiting payment."""
    frames = await _gather_frames(cfg, {"invoices": (db.load_open_invoices, user_id)})
    try:
        return open_invoices_from_frame(frames["invoices"])
    except (TypeError, ValueError) as exc:
        raise _conversion_error(cfg, exc) from exc
