# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB LedgerSight.

This module reads record sets (invoices, expenses, bank transactions, chart
of accounts, ...) from CSV files and normalizes them into the column layout
expected by ``db.import_records``.

Expected input format
---------------------
One CSV file per table. Column names are case-insensitive and surrounding
whitespace is ignored. The required and optional columns of each table are
defined by ``db.IMPORT_TABLES``; for example:

    invoices            date, total_ht, total_ttc
                        [id, invoice_number, client_id, vat_rate, status,
                         paid_date, category]
    expenses            date, amount [id, vat_amount, vat_rate, category,
                        description]
    bank_transactions   date, amount [id, reference, description, invoice_id]
    chart_of_accounts   code, name, type [category]

Aliases
-------
A few common alternative headers are accepted (``ht`` for ``total_ht``,
``number`` for ``invoice_number``, ``label`` for ``description``, ...).
See ``COLUMN_ALIASES``.

Output schema
-------------
A pandas DataFrame holding only the known columns of the table, with:

    - dates parsed strictly (datetime64[ns]),
    - money and rates as floats (currency units, not cents),
    - identifiers as nullable integers,
    - text columns as str (empty string when missing), account codes kept
      verbatim (leading zeros preserved).

Any other columns present in the input file are ignored. If the CSV does not
contain the required columns, or if a value cannot be parsed, a clear
ValueError is raised.
"""

import os
from typing import Union

import pandas as pd

from .db import IMPORT_TABLES

COLUMN_ALIASES: dict[str, str] = {
    "label": "description",
    "ht": "total_ht",
    "amount_ht": "total_ht",
    "ttc": "total_ttc",
    "amount_ttc": "total_ttc",
    "number": "invoice_number",
    "vat": "vat_amount",
    "tva": "vat_amount",
    "ref": "reference",
    "account_type": "type",
    "min": "min_amount",
    "max": "max_amount",
}

ID_COLUMNS: frozenset[str] = frozenset({"id", "client_id", "invoice_id"})
NUMERIC_COLUMNS: frozenset[str] = frozenset(
    {"vat_rate", "rate", "min_amount", "max_amount"}
)

# Defaults applied to empty text cells; the store rejects NULL for these.
TEXT_DEFAULTS: dict[str, str] = {
    "status": "draft",
    "payment_status": "pending",
}


def read_records(path: Union[str, "os.PathLike[str]"], table: str) -> pd.DataFrame:
    """
    Read one record set from a CSV file and normalize it for import.

    Parameters
    ----------
    path:
        Path to the CSV file.
    table:
        Target table, one of ``db.IMPORT_TABLES``.

    Returns
    -------
    pandas.DataFrame
        Normalized rows, restricted to the table's known columns.

    Raises
    ------
    ValueError
        If the table is unknown, a required column is missing, or a date /
        numeric value cannot be parsed.
    """
    spec = IMPORT_TABLES.get(table)
    if spec is None:
        known = ", ".join(sorted(IMPORT_TABLES))
        raise ValueError(f"Unknown import table {table!r}. Expected one of: {known}.")

    # Read every cell as text; types are applied column by column below
    df = pd.read_csv(path, dtype=str)

    df.columns = [c.lower().strip() for c in df.columns]
    renames = {
        alias: canonical
        for alias, canonical in COLUMN_ALIASES.items()
        if alias in df.columns and canonical not in df.columns
    }
    if renames:
        df = df.rename(columns=renames)

    missing = [c for c in spec.required if c not in df.columns]
    if missing:
        raise ValueError(
            f"Invalid {table} structure, missing column(s): {', '.join(missing)}.\n"
            f"Expected: {', '.join(spec.required)} "
            f"[optional: {', '.join(spec.optional) or '-'}] "
            "(column names are case-insensitive)."
        )

    present = [c for c in spec.columns if c in df.columns]
    out = df[present].copy()

    for col in present:
        required = col in spec.required
        if col in spec.dates:
            try:
                out[col] = pd.to_datetime(out[col], errors="raise")
            except Exception as exc:  # noqa: BLE001
                raise ValueError(f"Invalid values in '{col}' column.") from exc
            if required and out[col].isna().any():
                raise ValueError(f"Missing values in '{col}' column.")
        elif col in spec.money or col in NUMERIC_COLUMNS or col in ID_COLUMNS:
            raw = out[col]
            parsed = pd.to_numeric(raw, errors="coerce")
            # A non-empty cell that failed to parse is an error
            if (parsed.isna() & raw.notna()).any():
                raise ValueError(f"Invalid numeric values in '{col}' column.")
            if required and parsed.isna().any():
                raise ValueError(f"Missing values in '{col}' column.")
            if col in ID_COLUMNS:
                if (parsed.dropna() % 1 != 0).any():
                    raise ValueError(f"Invalid identifiers in '{col}' column.")
                parsed = parsed.astype("Int64")
            out[col] = parsed
        else:
            text = out[col].fillna("").astype(str).str.strip()
            if required and (text == "").any():
                raise ValueError(f"Missing values in '{col}' column.")
            default = TEXT_DEFAULTS.get(col)
            if default is not None:
                text = text.where(text != "", default)
            out[col] = text

    return out
