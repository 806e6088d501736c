# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Record types consumed by the ledger engine.

Transactional records form a closed tagged union (``LedgerRecord``) with a
``kind`` discriminant:

- ``Invoice``          (kind = "invoice")           sales invoice,
- ``Expense``          (kind = "expense")           expense / receipt,
- ``SupplierInvoice``  (kind = "supplier_invoice")  purchase invoice.

Reference data (chart of accounts, account mappings, VAT rates, tax
brackets) and the reconciliation inputs (bank transactions, open invoices)
are plain frozen dataclasses as well.

Money
-----
All monetary values are stored as signed integer cents (``*_cents``
attributes), the same representation used by the database layer. Sums are
accumulated in cents and converted back to 2-decimal floats only when a
result is returned to the caller (see ``from_cents``).

Every record is fully populated: defaults for missing values are applied
once, when rows are read from the store (see ``ingest.py``), so downstream
functions never deal with ``None`` amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional, Union

RecordKind = Literal["invoice", "expense", "supplier_invoice"]
AccountType = Literal["asset", "liability", "equity", "revenue", "expense"]

RECORD_KINDS: tuple[str, ...] = ("invoice", "expense", "supplier_invoice")
ACCOUNT_TYPES: tuple[str, ...] = ("asset", "liability", "equity", "revenue", "expense")

# Status values meaning "realized" (cash basis recognition).
PAID_STATUS = "paid"

# Invoice statuses eligible for automatic reconciliation.
OPEN_INVOICE_STATUSES: tuple[str, ...] = ("sent", "overdue")

# Expense categories whose input VAT is declared as "goods". Every other
# category, and every supplier invoice, is declared as "services".
GOODS_CATEGORIES: frozenset[str] = frozenset({"equipment", "supplies", "inventory"})


def to_cents(value: float) -> int:
    """Convert a monetary amount in currency units to integer cents."""
    return int(round(float(value) * 100))


def from_cents(cents: int) -> float:
    """Convert integer cents back to a 2-decimal float."""
    return round(cents / 100.0, 2)


# ---------------------------------------------------------------------------
# Transactional records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Invoice:
    """Sales invoice. Recognized only once ``status == "paid"``."""

    id: int
    date: date
    total_ht_cents: int
    total_ttc_cents: int
    vat_rate: float
    status: str
    number: str = ""
    client_id: Optional[int] = None
    client_name: str = ""
    category: str = ""
    kind: Literal["invoice"] = "invoice"

    @property
    def is_realized(self) -> bool:
        return self.status == PAID_STATUS

    @property
    def net_cents(self) -> int:
        return self.total_ht_cents

    @property
    def vat_cents(self) -> int:
        """VAT component of the invoice (TTC - HT)."""
        return self.total_ttc_cents - self.total_ht_cents


@dataclass(frozen=True)
class Expense:
    """Expense record. ``amount_cents`` is net of VAT; always realized."""

    id: int
    date: date
    amount_cents: int
    vat_amount_cents: int
    vat_rate: float
    category: str
    kind: Literal["expense"] = "expense"

    @property
    def is_realized(self) -> bool:
        return True

    @property
    def net_cents(self) -> int:
        return self.amount_cents

    @property
    def vat_cents(self) -> int:
        return self.vat_amount_cents


@dataclass(frozen=True)
class SupplierInvoice:
    """Supplier (purchase) invoice. Recognized once ``payment_status == "paid"``."""

    id: int
    date: date
    amount_cents: int
    vat_amount_cents: int
    payment_status: str
    category: str = ""
    kind: Literal["supplier_invoice"] = "supplier_invoice"

    @property
    def is_realized(self) -> bool:
        return self.payment_status == PAID_STATUS

    @property
    def net_cents(self) -> int:
        return self.amount_cents

    @property
    def vat_cents(self) -> int:
        return self.vat_amount_cents


LedgerRecord = Union[Invoice, Expense, SupplierInvoice]


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChartAccount:
    """One entry of a user's chart of accounts (e.g. '512' Banque, asset)."""

    code: str
    name: str
    type: str
    category: str = ""


@dataclass(frozen=True)
class AccountMapping:
    """Rule attributing a kind of record (and optional category) to accounts.

    Attributes:
        source_type: Record kind the rule applies to ('invoice', 'expense',
            'supplier_invoice').
        source_category: Record category the rule is restricted to. An empty
            value or '*' makes the rule a wildcard for its source type.
        debit_account_code: Account debited when the record is posted.
        credit_account_code: Account credited when the record is posted.
        vat_account_code: Optional account receiving the VAT component
            (credited for sales, debited for purchases).
    """

    source_type: str
    source_category: str
    debit_account_code: str
    credit_account_code: str
    vat_account_code: str = ""

    @property
    def is_wildcard(self) -> bool:
        return self.source_category.strip() in {"", "*"}


@dataclass(frozen=True)
class TaxRate:
    """VAT rate reference entry, used to label rate buckets."""

    rate: float
    label: str
    country: str = ""


@dataclass(frozen=True)
class TaxBracket:
    """Progressive tax bracket covering ``[min, max)``; ``max=None`` is unbounded."""

    min: float
    max: Optional[float]
    rate: float
    label: str = ""


# ---------------------------------------------------------------------------
# Reconciliation inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BankTransaction:
    """Bank transaction. ``invoice_id`` is set once, when reconciled."""

    id: int
    date: date
    amount_cents: int
    reference: str = ""
    description: str = ""
    invoice_id: Optional[int] = None

    @property
    def match_text(self) -> str:
        """Lower-cased text searched for invoice numbers and client names."""
        return (self.reference or self.description or "").lower()


@dataclass(frozen=True)
class OpenInvoice:
    """Invoice awaiting payment (status 'sent' or 'overdue')."""

    id: int
    number: str
    total_cents: int
    client_name: str = ""
    status: str = "sent"


# ---------------------------------------------------------------------------
# Record set containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerData:
    """All record sets needed to build statements for one user and period."""

    invoices: tuple[Invoice, ...] = ()
    expenses: tuple[Expense, ...] = ()
    supplier_invoices: tuple[SupplierInvoice, ...] = ()
    accounts: tuple[ChartAccount, ...] = ()
    mappings: tuple[AccountMapping, ...] = ()
    tax_rates: tuple[TaxRate, ...] = ()
    tax_brackets: tuple[TaxBracket, ...] = ()

    @property
    def records(self) -> tuple[LedgerRecord, ...]:
        """Every transactional record, invoices first."""
        return (*self.invoices, *self.expenses, *self.supplier_invoices)


@dataclass(frozen=True)
class ReconciliationInputs:
    """Unmatched bank transactions (newest first) and open invoices."""

    transactions: tuple[BankTransaction, ...] = ()
    invoices: tuple[OpenInvoice, ...] = ()
