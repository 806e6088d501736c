# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB LedgerSight.

This module provides all low-level accessors for the SQLite database that
holds the record sets consumed by the engine. It is responsible for:

- Initializing the database schema.
- Importing record sets in bulk (CSV imports go through ``import_records``).
- Reading record sets for a user, scoped by period where applicable.
- Applying the single mutation performed by the engine: linking a bank
  transaction to an invoice and marking the invoice as paid.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

Every business table carries a ``user_id`` column; all reads are scoped by
it. Money is stored as signed INTEGER cents (``*_cents`` columns), dates as
ISO text ("YYYY-MM-DD").

1) import_batches       one row per bulk import (CSV file, API sync, ...)
2) clients              id, name
3) invoices             invoice_number, client_id, date, total_ht_cents,
                        total_ttc_cents, vat_rate, status, paid_date, category
4) expenses             date, amount_cents, vat_amount_cents, vat_rate,
                        category, description
5) supplier_invoices    date, amount_cents, vat_amount_cents,
                        payment_status, category
6) chart_of_accounts    code, name, type, category (unique per user/code)
7) account_mappings     source_type, source_category, debit_account_code,
                        credit_account_code, vat_account_code
8) tax_rates            rate, label, country
9) tax_brackets         min_amount, max_amount (NULL = unbounded), rate, label
10) bank_transactions   date, amount_cents, reference, description,
                        invoice_id (NULL until reconciled)

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All timestamps are stored as ISO-8601 text (UTC).
- Foreign key enforcement is explicitly enabled.
- Each public reader opens and closes its own connection, so readers can
  safely run in parallel worker threads (see ``ingest.py``).
- Readers open the file read-only and never create it or its schema; only
  imports and the reconciliation link write to the store.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path

import pandas as pd

from .records import OPEN_INVOICE_STATUSES, PAID_STATUS, to_cents

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB LedgerSight.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class ImportStats:
    """
    Summary of a bulk import into one table.

    Attributes
    ----------
    batch_id:
        Identifier of the batch row in `import_batches`.
    table:
        Target table of the import.
    rows_inserted:
        Number of rows inserted.
    """

    batch_id: int
    table: str
    rows_inserted: int


@dataclass(frozen=True)
class TableSpec:
    """
    Import contract for one table.

    Money columns are given in currency units in the input DataFrame (e.g.
    ``total_ht``) and stored as ``<name>_cents`` integers. Date columns are
    stored as ISO strings.
    """

    name: str
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()
    money: tuple[str, ...] = ()
    dates: tuple[str, ...] = ()

    @property
    def columns(self) -> tuple[str, ...]:
        return self.required + self.optional


IMPORT_TABLES: dict[str, TableSpec] = {
    "clients": TableSpec(
        name="clients",
        required=("id", "name"),
    ),
    "invoices": TableSpec(
        name="invoices",
        required=("date", "total_ht", "total_ttc"),
        optional=(
            "id",
            "invoice_number",
            "client_id",
            "vat_rate",
            "status",
            "paid_date",
            "category",
        ),
        money=("total_ht", "total_ttc"),
        dates=("date", "paid_date"),
    ),
    "expenses": TableSpec(
        name="expenses",
        required=("date", "amount"),
        optional=("id", "vat_amount", "vat_rate", "category", "description"),
        money=("amount", "vat_amount"),
        dates=("date",),
    ),
    "supplier_invoices": TableSpec(
        name="supplier_invoices",
        required=("date", "amount"),
        optional=("id", "vat_amount", "payment_status", "category"),
        money=("amount", "vat_amount"),
        dates=("date",),
    ),
    "chart_of_accounts": TableSpec(
        name="chart_of_accounts",
        required=("code", "name", "type"),
        optional=("category",),
    ),
    "account_mappings": TableSpec(
        name="account_mappings",
        required=("source_type", "debit_account_code", "credit_account_code"),
        optional=("source_category", "vat_account_code"),
    ),
    "tax_rates": TableSpec(
        name="tax_rates",
        required=("rate",),
        optional=("label", "country"),
    ),
    "tax_brackets": TableSpec(
        name="tax_brackets",
        required=("min_amount", "rate"),
        optional=("max_amount", "label"),
    ),
    "bank_transactions": TableSpec(
        name="bank_transactions",
        required=("date", "amount"),
        optional=("id", "reference", "description", "invoice_id"),
        money=("amount",),
        dates=("date",),
    ),
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _connect_readonly(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open an existing SQLite file in read-only mode.

    A missing file raises ``sqlite3.OperationalError`` instead of being created.
    """
    _ensure_sqlite(cfg)
    uri = Path(cfg.path).resolve().as_uri() + "?mode=ro"
    return sqlite3.connect(uri, uri=True)


_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS import_batches (
        id            INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at    TEXT    NOT NULL,
        user_id       TEXT    NOT NULL,
        target_table  TEXT    NOT NULL,
        source_label  TEXT    NOT NULL,
        rows_inserted INTEGER NOT NULL DEFAULT 0
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS clients (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id         TEXT    NOT NULL,
        name            TEXT    NOT NULL,
        import_batch_id INTEGER,
        FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS invoices (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id         TEXT    NOT NULL,
        invoice_number  TEXT,
        client_id       INTEGER,
        date            TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
        total_ht_cents  INTEGER NOT NULL,
        total_ttc_cents INTEGER NOT NULL,
        vat_rate        REAL,
        status          TEXT    NOT NULL DEFAULT 'draft',
        paid_date       TEXT,
        category        TEXT,
        import_batch_id INTEGER,
        FOREIGN KEY (client_id) REFERENCES clients(id),
        FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS expenses (
        id               INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id          TEXT    NOT NULL,
        date             TEXT    NOT NULL,
        amount_cents     INTEGER NOT NULL,
        vat_amount_cents INTEGER NOT NULL DEFAULT 0,
        vat_rate         REAL,
        category         TEXT,
        description      TEXT,
        import_batch_id  INTEGER,
        FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS supplier_invoices (
        id               INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id          TEXT    NOT NULL,
        date             TEXT    NOT NULL,
        amount_cents     INTEGER NOT NULL,
        vat_amount_cents INTEGER NOT NULL DEFAULT 0,
        payment_status   TEXT    NOT NULL DEFAULT 'pending',
        category         TEXT,
        import_batch_id  INTEGER,
        FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS chart_of_accounts (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id         TEXT    NOT NULL,
        code            TEXT    NOT NULL,
        name            TEXT    NOT NULL,
        type            TEXT    NOT NULL,
        category        TEXT,
        import_batch_id INTEGER,
        UNIQUE (user_id, code),
        FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS account_mappings (
        id                  INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id             TEXT    NOT NULL,
        source_type         TEXT    NOT NULL,
        source_category     TEXT,
        debit_account_code  TEXT    NOT NULL,
        credit_account_code TEXT    NOT NULL,
        vat_account_code    TEXT,
        import_batch_id     INTEGER,
        FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS tax_rates (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id         TEXT    NOT NULL,
        rate            REAL    NOT NULL,
        label           TEXT,
        country         TEXT,
        import_batch_id INTEGER,
        FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS tax_brackets (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id         TEXT    NOT NULL,
        min_amount      REAL    NOT NULL,
        max_amount      REAL,              -- NULL = unbounded
        rate            REAL    NOT NULL,
        label           TEXT,
        import_batch_id INTEGER,
        FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS bank_transactions (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id         TEXT    NOT NULL,
        date            TEXT    NOT NULL,
        amount_cents    INTEGER NOT NULL,
        reference       TEXT,
        description     TEXT,
        invoice_id      INTEGER,
        import_batch_id INTEGER,
        FOREIGN KEY (invoice_id) REFERENCES invoices(id),
        FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_invoices_user_date ON invoices(user_id, date);",
    "CREATE INDEX IF NOT EXISTS idx_expenses_user_date ON expenses(user_id, date);",
    """
    CREATE INDEX IF NOT EXISTS idx_supplier_invoices_user_date
        ON supplier_invoices(user_id, date);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_bank_transactions_user_invoice
        ON bank_transactions(user_id, invoice_id);
    """,
)


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    for statement in _SCHEMA:
        conn.execute(statement)
    conn.commit()


def _to_iso_date(value) -> str | None:
    """Convert a date-like value to ISO 'YYYY-MM-DD' string (None stays None)."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(str(value).strip()[:10]).isoformat()


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _to_db_value(value):
    """Convert pandas / numpy scalars into plain Python values for sqlite3."""
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    if isinstance(value, (date, datetime)):
        return value
    if hasattr(value, "item"):
        return value.item()
    return value


def _read_frame(
    cfg: DatabaseConfig, query: str, params: tuple, columns: list[str]
) -> pd.DataFrame:
    """Run a SELECT and return its rows as a DataFrame with the given columns."""
    conn = _connect_readonly(cfg)
    try:
        cur = conn.cursor()
        cur.execute(query, params)
        rows = cur.fetchall()
    finally:
        conn.close()

    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)


# ---------------------------------------------------------------------------
# Public API: schema & imports
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file if it does not exist.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def import_records(
    df: pd.DataFrame,
    cfg: DatabaseConfig,
    *,
    table: str,
    user_id: str,
    source_label: str,
) -> ImportStats:
    """
    Import a batch of rows into one of the record tables.

    Parameters
    ----------
    df:
        Normalized rows (see ``io.read_records``). Money columns are in
        currency units and are converted to integer cents here.
    cfg:
        Database configuration.
    table:
        Target table, one of ``IMPORT_TABLES``.
    user_id:
        Owner of the imported rows.
    source_label:
        Human-readable origin (file path, connector name, ...).

    Returns
    -------
    ImportStats
        Batch id and number of inserted rows.

    Raises
    ------
    ValueError
        If the table is unknown or required columns are missing.
    sqlite3.Error
        If the insert fails; the whole batch is rolled back.
    """
    spec = IMPORT_TABLES.get(table)
    if spec is None:
        known = ", ".join(sorted(IMPORT_TABLES))
        raise ValueError(f"Unknown import table {table!r}. Expected one of: {known}.")

    missing = set(spec.required).difference(df.columns)
    if missing:
        cols = ", ".join(sorted(missing))
        raise ValueError(f"DataFrame is missing required column(s): {cols}")

    present = [c for c in spec.columns if c in df.columns]
    db_columns = [f"{c}_cents" if c in spec.money else c for c in present]

    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO import_batches (
                created_at, user_id, target_table, source_label, rows_inserted
            )
            VALUES (?, ?, ?, ?, 0);
            """,
            (_now_utc_iso(), user_id, table, source_label),
        )
        batch_id = int(cur.lastrowid)

        # Column names come from IMPORT_TABLES, never from user input.
        column_sql = ", ".join(["user_id", *db_columns, "import_batch_id"])
        placeholders = ", ".join("?" for _ in range(len(db_columns) + 2))
        insert_sql = f"INSERT INTO {spec.name} ({column_sql}) VALUES ({placeholders});"

        rows = []
        for record in df[present].to_dict(orient="records"):
            values = []
            for col in present:
                value = _to_db_value(record[col])
                if col in spec.money:
                    value = to_cents(value) if value is not None else 0
                elif col in spec.dates:
                    value = _to_iso_date(value)
                values.append(value)
            rows.append((user_id, *values, batch_id))

        cur.executemany(insert_sql, rows)
        cur.execute(
            "UPDATE import_batches SET rows_inserted = ? WHERE id = ?;",
            (len(rows), batch_id),
        )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    finally:
        conn.close()

    return ImportStats(batch_id=batch_id, table=table, rows_inserted=len(rows))


# ---------------------------------------------------------------------------
# Public API: readers
# ---------------------------------------------------------------------------


def load_invoices(
    cfg: DatabaseConfig, user_id: str, start: date, end: date
) -> pd.DataFrame:
    """
    Load the user's sales invoices dated within [start, end].

    Columns: id, invoice_number, client_id, client_name, date, total_ht_cents,
    total_ttc_cents, vat_rate, status, category.
    """
    return _read_frame(
        cfg,
        """
        SELECT i.id, i.invoice_number, i.client_id, c.name, i.date,
               i.total_ht_cents, i.total_ttc_cents, i.vat_rate, i.status,
               i.category
          FROM invoices AS i
          LEFT JOIN clients AS c
            ON c.id = i.client_id
         WHERE i.user_id = ?
           AND i.date BETWEEN ? AND ?
         ORDER BY i.date DESC, i.id DESC;
        """,
        (user_id, start.isoformat(), end.isoformat()),
        [
            "id",
            "invoice_number",
            "client_id",
            "client_name",
            "date",
            "total_ht_cents",
            "total_ttc_cents",
            "vat_rate",
            "status",
            "category",
        ],
    )


def load_expenses(
    cfg: DatabaseConfig, user_id: str, start: date, end: date
) -> pd.DataFrame:
    """Load the user's expenses dated within [start, end]."""
    return _read_frame(
        cfg,
        """
        SELECT id, date, amount_cents, vat_amount_cents, vat_rate, category
          FROM expenses
         WHERE user_id = ?
           AND date BETWEEN ? AND ?
         ORDER BY date DESC, id DESC;
        """,
        (user_id, start.isoformat(), end.isoformat()),
        ["id", "date", "amount_cents", "vat_amount_cents", "vat_rate", "category"],
    )


def load_supplier_invoices(
    cfg: DatabaseConfig, user_id: str, start: date, end: date
) -> pd.DataFrame:
    """Load the user's supplier invoices dated within [start, end]."""
    return _read_frame(
        cfg,
        """
        SELECT id, date, amount_cents, vat_amount_cents, payment_status, category
          FROM supplier_invoices
         WHERE user_id = ?
           AND date BETWEEN ? AND ?
         ORDER BY date DESC, id DESC;
        """,
        (user_id, start.isoformat(), end.isoformat()),
        [
            "id",
            "date",
            "amount_cents",
            "vat_amount_cents",
            "payment_status",
            "category",
        ],
    )


def load_chart_of_accounts(cfg: DatabaseConfig, user_id: str) -> pd.DataFrame:
    """Load the user's chart of accounts, ordered by account code."""
    return _read_frame(
        cfg,
        """
        SELECT code, name, type, category
          FROM chart_of_accounts
         WHERE user_id = ?
         ORDER BY code;
        """,
        (user_id,),
        ["code", "name", "type", "category"],
    )


def load_account_mappings(cfg: DatabaseConfig, user_id: str) -> pd.DataFrame:
    """Load the user's account mapping rules in insertion order."""
    return _read_frame(
        cfg,
        """
        SELECT source_type, source_category, debit_account_code,
               credit_account_code, vat_account_code
          FROM account_mappings
         WHERE user_id = ?
         ORDER BY id;
        """,
        (user_id,),
        [
            "source_type",
            "source_category",
            "debit_account_code",
            "credit_account_code",
            "vat_account_code",
        ],
    )


def load_tax_rates(cfg: DatabaseConfig, user_id: str) -> pd.DataFrame:
    """Load the user's VAT rate table."""
    return _read_frame(
        cfg,
        """
        SELECT rate, label, country
          FROM tax_rates
         WHERE user_id = ?
         ORDER BY rate DESC;
        """,
        (user_id,),
        ["rate", "label", "country"],
    )


def load_tax_brackets(cfg: DatabaseConfig, user_id: str) -> pd.DataFrame:
    """Load the user's tax brackets ordered by lower bound."""
    return _read_frame(
        cfg,
        """
        SELECT min_amount, max_amount, rate, label
          FROM tax_brackets
         WHERE user_id = ?
         ORDER BY min_amount;
        """,
        (user_id,),
        ["min_amount", "max_amount", "rate", "label"],
    )


_BANK_COLUMNS = ["id", "date", "amount_cents", "reference", "description", "invoice_id"]


def load_unmatched_transactions(
    cfg: DatabaseConfig, user_id: str, limit: int = 100
) -> pd.DataFrame:
    """
    Load the user's bank transactions not yet linked to an invoice.

    Rows are ordered newest first and capped at ``limit``; this order is
    the processing order of a reconciliation run.
    """
    return _read_frame(
        cfg,
        """
        SELECT id, date, amount_cents, reference, description, invoice_id
          FROM bank_transactions
         WHERE user_id = ?
           AND invoice_id IS NULL
         ORDER BY date DESC, id DESC
         LIMIT ?;
        """,
        (user_id, int(limit)),
        _BANK_COLUMNS,
    )


def load_bank_transactions(cfg: DatabaseConfig, user_id: str) -> pd.DataFrame:
    """Load all of the user's bank transactions, newest first."""
    return _read_frame(
        cfg,
        """
        SELECT id, date, amount_cents, reference, description, invoice_id
          FROM bank_transactions
         WHERE user_id = ?
         ORDER BY date DESC, id DESC;
        """,
        (user_id,),
        _BANK_COLUMNS,
    )


def load_open_invoices(cfg: DatabaseConfig, user_id: str) -> pd.DataFrame:
    """
    Load the user's invoices awaiting payment (status 'sent' or 'overdue').

    Columns: id, invoice_number, total_ttc_cents, client_name, status.
    """
    placeholders = ", ".join("?" for _ in OPEN_INVOICE_STATUSES)
    return _read_frame(
        cfg,
        f"""
        SELECT i.id, i.invoice_number, i.total_ttc_cents, c.name, i.status
          FROM invoices AS i
          LEFT JOIN clients AS c
            ON c.id = i.client_id
         WHERE i.user_id = ?
           AND i.status IN ({placeholders})
         ORDER BY i.date DESC, i.id DESC;
        """,
        (user_id, *OPEN_INVOICE_STATUSES),
        ["id", "invoice_number", "total_ttc_cents", "client_name", "status"],
    )


# ---------------------------------------------------------------------------
# Public API: reconciliation mutation
# ---------------------------------------------------------------------------


def link_transaction_to_invoice(
    cfg: DatabaseConfig,
    transaction_id: int,
    invoice_id: int,
    paid_date: date,
) -> None:
    """
    Persist a reconciliation match.

    Sets ``bank_transactions.invoice_id`` and marks the invoice as paid with
    ``paid_date``, in a single SQL transaction. The link is write-once: a
    transaction that is already linked, or an invoice that is no longer open,
    makes the whole update roll back.

    Raises
    ------
    RuntimeError
        If the transaction is already linked or the invoice is not open.
    sqlite3.Error
        If the update fails at the database level.
    """
    placeholders = ", ".join("?" for _ in OPEN_INVOICE_STATUSES)
    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE bank_transactions
               SET invoice_id = ?
             WHERE id = ?
               AND invoice_id IS NULL;
            """,
            (invoice_id, transaction_id),
        )
        if cur.rowcount != 1:
            raise RuntimeError(
                f"Bank transaction #{transaction_id} is missing or already linked."
            )

        cur.execute(
            f"""
            UPDATE invoices
               SET status = ?, paid_date = ?
             WHERE id = ?
               AND status IN ({placeholders});
            """,
            (PAID_STATUS, paid_date.isoformat(), invoice_id, *OPEN_INVOICE_STATUSES),
        )
        if cur.rowcount != 1:
            raise RuntimeError(f"Invoice #{invoice_id} is missing or no longer open.")

        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def get_invoice_status(
    cfg: DatabaseConfig, invoice_id: int
) -> tuple[str, str | None]:
    """Return ``(status, paid_date)`` for an invoice (raises KeyError if missing)."""
    conn = _connect_readonly(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            "SELECT status, paid_date FROM invoices WHERE id = ?;", (invoice_id,)
        )
        row = cur.fetchone()
    finally:
        conn.close()

    if row is None:
        raise KeyError(invoice_id)
    return row[0], row[1]
