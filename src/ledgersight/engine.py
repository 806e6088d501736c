# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core aggregation engine for SMB LedgerSight.

This module provides the pure functions turning ledger records into scalar
measures and VAT buckets for a reporting period.

1. Scalar measures
   ----------------
   All measures follow the cash basis: a sales invoice counts once paid, a
   supplier invoice once its payment status is "paid", an expense always.

       revenue      = sum of total_ht  of paid invoices
       revenue_ttc  = sum of total_ttc of paid invoices
       expenses     = sum of amount    of expenses and paid supplier invoices
       net_income   = revenue - expenses
       output_vat   = sum of (total_ttc - total_ht) of paid invoices
       input_vat    = sum of vat_amount of expenses and paid supplier invoices
       vat_payable  = output_vat - input_vat   (negative = VAT credit)

   ``compute_ledger_totals`` returns all of them at once.

2. VAT breakdown
   --------------
   ``vat_breakdown`` groups output VAT by invoice rate into {base, vat}
   buckets, splits input VAT between goods (categories equipment, supplies
   and inventory) and services (everything else, supplier invoices
   included), and also groups expense input VAT by rate.

3. Monthly breakdown
   ------------------
   ``monthly_breakdown`` returns revenue and expenses per calendar month as
   a DataFrame, for charts and console tables.

Notes
-----
Every period filter is inclusive on both bounds. Sums are accumulated in
integer cents and converted to 2-decimal floats only in returned values, so
that the VAT identity holds exactly:

    net_vat == sum(output buckets vat) - (input_goods + input_services)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import pandas as pd

from .periods import Period
from .records import (
    GOODS_CATEGORIES,
    Expense,
    Invoice,
    LedgerRecord,
    SupplierInvoice,
    TaxRate,
    from_cents,
)

# ---------------------------------------------------------------------------
# Record selection
# ---------------------------------------------------------------------------


def records_in_period(
    records: Iterable[LedgerRecord], period: Period
) -> list[LedgerRecord]:
    """Return the records dated within the period (inclusive bounds)."""
    return [r for r in records if period.contains(r.date)]


def realized_records(
    records: Iterable[LedgerRecord], period: Period
) -> list[LedgerRecord]:
    """Return the realized records dated within the period."""
    return [r for r in records_in_period(records, period) if r.is_realized]


def _paid_invoices(records: Iterable[LedgerRecord], period: Period) -> list[Invoice]:
    return [r for r in realized_records(records, period) if isinstance(r, Invoice)]


def _realized_purchases(
    records: Iterable[LedgerRecord], period: Period
) -> list[LedgerRecord]:
    return [
        r
        for r in realized_records(records, period)
        if isinstance(r, (Expense, SupplierInvoice))
    ]


# ---------------------------------------------------------------------------
# Scalar measures
# ---------------------------------------------------------------------------


def revenue_cents(records: Iterable[LedgerRecord], period: Period) -> int:
    return sum(inv.total_ht_cents for inv in _paid_invoices(records, period))


def expenses_cents(records: Iterable[LedgerRecord], period: Period) -> int:
    return sum(r.net_cents for r in _realized_purchases(records, period))


def output_vat_cents(records: Iterable[LedgerRecord], period: Period) -> int:
    return sum(inv.vat_cents for inv in _paid_invoices(records, period))


def input_vat_cents(records: Iterable[LedgerRecord], period: Period) -> int:
    return sum(r.vat_cents for r in _realized_purchases(records, period))


def revenue(records: Iterable[LedgerRecord], period: Period) -> float:
    """Revenue excluding VAT (HT) of paid invoices."""
    return from_cents(revenue_cents(records, period))


def revenue_ttc(records: Iterable[LedgerRecord], period: Period) -> float:
    """Revenue including VAT (TTC) of paid invoices."""
    paid = _paid_invoices(records, period)
    return from_cents(sum(inv.total_ttc_cents for inv in paid))


def expenses(records: Iterable[LedgerRecord], period: Period) -> float:
    """Expenses net of VAT (expenses and paid supplier invoices)."""
    return from_cents(expenses_cents(records, period))


def net_income(records: Iterable[LedgerRecord], period: Period) -> float:
    records = list(records)
    return from_cents(revenue_cents(records, period) - expenses_cents(records, period))


def output_vat(records: Iterable[LedgerRecord], period: Period) -> float:
    """VAT collected on paid invoices."""
    return from_cents(output_vat_cents(records, period))


def input_vat(records: Iterable[LedgerRecord], period: Period) -> float:
    """VAT paid on expenses and paid supplier invoices."""
    return from_cents(input_vat_cents(records, period))


def vat_payable(records: Iterable[LedgerRecord], period: Period) -> float:
    """Output VAT minus input VAT. A negative value is a VAT credit."""
    records = list(records)
    return from_cents(
        output_vat_cents(records, period) - input_vat_cents(records, period)
    )


@dataclass(frozen=True)
class LedgerTotals:
    """All scalar measures of a period, as 2-decimal floats."""

    revenue: float
    revenue_ttc: float
    expenses: float
    net_income: float
    output_vat: float
    input_vat: float
    vat_payable: float


def compute_ledger_totals(
    records: Iterable[LedgerRecord], period: Period
) -> LedgerTotals:
    """Compute every scalar measure for ``period`` in a single call."""
    records = list(records)
    rev = revenue_cents(records, period)
    exp = expenses_cents(records, period)
    out_vat = output_vat_cents(records, period)
    in_vat = input_vat_cents(records, period)
    ttc = sum(inv.total_ttc_cents for inv in _paid_invoices(records, period))
    return LedgerTotals(
        revenue=from_cents(rev),
        revenue_ttc=from_cents(ttc),
        expenses=from_cents(exp),
        net_income=from_cents(rev - exp),
        output_vat=from_cents(out_vat),
        input_vat=from_cents(in_vat),
        vat_payable=from_cents(out_vat - in_vat),
    )


# ---------------------------------------------------------------------------
# VAT breakdown
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VATRateBucket:
    """Taxable base and VAT amount for one VAT rate, in cents."""

    rate: float
    base_cents: int
    vat_cents: int
    label: str = ""

    @property
    def base(self) -> float:
        return from_cents(self.base_cents)

    @property
    def vat(self) -> float:
        return from_cents(self.vat_cents)


@dataclass(frozen=True)
class VATBreakdown:
    """
    VAT liability of a period broken out by rate and by purchase nature.

    Attributes
    ----------
    output_by_rate:
        Output VAT buckets keyed by invoice VAT rate.
    input_by_rate:
        Input VAT buckets keyed by expense VAT rate (non-zero rates only).
    input_goods_cents:
        Input VAT on goods (expense categories equipment, supplies,
        inventory).
    input_services_cents:
        Input VAT on everything else, supplier invoices included.
    """

    output_by_rate: dict[float, VATRateBucket] = field(default_factory=dict)
    input_by_rate: dict[float, VATRateBucket] = field(default_factory=dict)
    input_goods_cents: int = 0
    input_services_cents: int = 0

    @property
    def output_base_cents(self) -> int:
        return sum(b.base_cents for b in self.output_by_rate.values())

    @property
    def output_vat_cents(self) -> int:
        return sum(b.vat_cents for b in self.output_by_rate.values())

    @property
    def input_vat_cents(self) -> int:
        return self.input_goods_cents + self.input_services_cents

    @property
    def net_vat_cents(self) -> int:
        return self.output_vat_cents - self.input_vat_cents

    @property
    def output_vat(self) -> float:
        return from_cents(self.output_vat_cents)

    @property
    def input_goods(self) -> float:
        return from_cents(self.input_goods_cents)

    @property
    def input_services(self) -> float:
        return from_cents(self.input_services_cents)

    @property
    def input_vat(self) -> float:
        return from_cents(self.input_vat_cents)

    @property
    def net_vat(self) -> float:
        """Output VAT minus deductible VAT; negative means a VAT credit."""
        return from_cents(self.net_vat_cents)

    def output_vat_at(self, rate: float) -> float:
        """Output VAT collected at ``rate`` (0 when no invoice uses it)."""
        bucket = self.output_by_rate.get(float(rate))
        return bucket.vat if bucket is not None else 0.0


def _rate_label(rate: float, tax_rates: Iterable[TaxRate]) -> str:
    for tax_rate in tax_rates:
        if abs(tax_rate.rate - rate) < 1e-9 and tax_rate.label:
            return tax_rate.label
    return f"{rate:g}%"


def _bucketize(
    items: Iterable[tuple[float, int, int]], tax_rates: list[TaxRate]
) -> dict[float, VATRateBucket]:
    """Group ``(rate, base_cents, vat_cents)`` triples by rate."""
    sums: dict[float, list[int]] = {}
    for rate, base, vat in items:
        acc = sums.setdefault(float(rate), [0, 0])
        acc[0] += base
        acc[1] += vat
    return {
        rate: VATRateBucket(
            rate=rate,
            base_cents=base,
            vat_cents=vat,
            label=_rate_label(rate, tax_rates),
        )
        for rate, (base, vat) in sorted(sums.items(), reverse=True)
    }


def is_goods_category(category: str) -> bool:
    return (category or "").strip().lower() in GOODS_CATEGORIES


def vat_breakdown(
    records: Iterable[LedgerRecord],
    period: Period,
    tax_rates: Iterable[TaxRate] = (),
) -> VATBreakdown:
    """
    Break the period's VAT down by rate and by purchase nature.

    Args:
        records: Ledger records (any kind, any status).
        period: Reporting period.
        tax_rates: Reference rates used to label the buckets.

    Returns:
        A VATBreakdown over the realized records of the period.
    """
    records = list(records)
    rates = list(tax_rates)

    output_by_rate = _bucketize(
        (
            (inv.vat_rate, inv.total_ht_cents, inv.vat_cents)
            for inv in _paid_invoices(records, period)
        ),
        rates,
    )

    goods = 0
    services = 0
    by_rate: list[tuple[float, int, int]] = []
    for record in _realized_purchases(records, period):
        if isinstance(record, Expense):
            if is_goods_category(record.category):
                goods += record.vat_cents
            else:
                services += record.vat_cents
            if record.vat_rate:
                by_rate.append((record.vat_rate, record.net_cents, record.vat_cents))
        else:
            services += record.vat_cents

    return VATBreakdown(
        output_by_rate=output_by_rate,
        input_by_rate=_bucketize(by_rate, rates),
        input_goods_cents=goods,
        input_services_cents=services,
    )


# ---------------------------------------------------------------------------
# Monthly breakdown
# ---------------------------------------------------------------------------


def monthly_breakdown(
    records: Iterable[LedgerRecord], period: Period
) -> pd.DataFrame:
    """
    Revenue (HT) and expenses per calendar month of the period.

    Returns a DataFrame with columns: month ('YYYY-MM'), revenue, expenses,
    net_income, sorted by month. Months without realized records are absent.
    """
    columns = ["month", "revenue", "expenses", "net_income"]
    rows: dict[str, list[int]] = {}

    for record in realized_records(records, period):
        month = record.date.strftime("%Y-%m")
        acc = rows.setdefault(month, [0, 0])
        if isinstance(record, Invoice):
            acc[0] += record.total_ht_cents
        else:
            acc[1] += record.net_cents

    if not rows:
        return pd.DataFrame(columns=columns)

    data = [
        {
            "month": month,
            "revenue": from_cents(rev),
            "expenses": from_cents(exp),
            "net_income": from_cents(rev - exp),
        }
        for month, (rev, exp) in sorted(rows.items())
    ]
    return pd.DataFrame(data, columns=columns)
