# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Progressive-bracket tax estimation.

Given a net income and an ordered table of brackets, the estimator taxes
each slice of income at its bracket's rate:

    taxable_in_bracket = max(0, min(net_income, bracket.max) - bracket.min)
    tax_in_bracket     = taxable_in_bracket * bracket.rate

Brackets must be ordered, contiguous and non-overlapping, start at 0 and
cover every income (the last one is unbounded). A ``TaxBracketTable``
validates these constraints once, when it is built.

Default brackets follow the French corporate income tax (IS): 15 % up to
42 500, 25 % above.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .records import TaxBracket

DEFAULT_TAX_BRACKETS: tuple[TaxBracket, ...] = (
    TaxBracket(min=0.0, max=42500.0, rate=0.15, label="Taux réduit PME"),
    TaxBracket(min=42500.0, max=None, rate=0.25, label="Taux normal"),
)


@dataclass(frozen=True)
class TaxBracketTable:
    """Validated, ordered sequence of tax brackets covering [0, inf)."""

    brackets: tuple[TaxBracket, ...]

    def __post_init__(self) -> None:
        validate_brackets(self.brackets)


def validate_brackets(brackets: Iterable[TaxBracket]) -> None:
    """
    Check that brackets are ordered, contiguous and cover [0, inf).

    Raises
    ------
    ValueError
        If the table is empty, does not start at 0, has gaps or overlaps,
        has a negative rate, or has a bounded last bracket.
    """
    items = list(brackets)
    if not items:
        raise ValueError("At least one tax bracket is required.")
    if items[0].min != 0:
        raise ValueError("The first tax bracket must start at 0.")

    for index, bracket in enumerate(items):
        if bracket.rate < 0:
            raise ValueError(f"Tax bracket #{index} has a negative rate.")
        is_last = index == len(items) - 1
        if bracket.max is None:
            if not is_last:
                raise ValueError(
                    f"Tax bracket #{index} is unbounded but is not the last one."
                )
            continue
        if bracket.max <= bracket.min:
            raise ValueError(f"Tax bracket #{index} has max <= min.")
        if is_last:
            raise ValueError("The last tax bracket must be unbounded (max = None).")
        if items[index + 1].min != bracket.max:
            raise ValueError(
                f"Tax brackets #{index} and #{index + 1} are not contiguous."
            )


@dataclass(frozen=True)
class BracketDetail:
    """Tax computed within one bracket."""

    bracket: TaxBracket
    taxable_amount: float
    tax: float


@dataclass(frozen=True)
class TaxEstimate:
    """
    Result of a tax estimation.

    Attributes
    ----------
    net_income:
        Income the estimate was computed for.
    total_tax:
        Sum of per-bracket taxes, rounded to 2 decimals.
    effective_rate:
        total_tax / net_income (0 when there is no taxable income).
    quarterly_payment:
        total_tax / 4, rounded to 2 decimals.
    details:
        One entry per bracket with a non-zero taxable amount.
    """

    net_income: float
    total_tax: float
    effective_rate: float
    quarterly_payment: float
    details: tuple[BracketDetail, ...] = ()


def estimate_tax(
    net_income: float,
    brackets: Iterable[TaxBracket] = DEFAULT_TAX_BRACKETS,
) -> TaxEstimate:
    """
    Estimate the income tax due on ``net_income``.

    A non-positive income yields a zero estimate with no details. The total
    is non-decreasing in ``net_income`` for any valid bracket table.
    """
    table = TaxBracketTable(tuple(brackets))

    if net_income <= 0:
        return TaxEstimate(
            net_income=net_income,
            total_tax=0.0,
            effective_rate=0.0,
            quarterly_payment=0.0,
        )

    total = 0.0
    details = []
    for bracket in table.brackets:
        upper = net_income if bracket.max is None else min(net_income, bracket.max)
        taxable = max(0.0, upper - bracket.min)
        if taxable <= 0:
            continue
        tax = taxable * bracket.rate
        total += tax
        details.append(
            BracketDetail(
                bracket=bracket,
                taxable_amount=round(taxable, 2),
                tax=round(tax, 2),
            )
        )

    return TaxEstimate(
        net_income=net_income,
        total_tax=round(total, 2),
        effective_rate=total / net_income,
        quarterly_payment=round(total / 4, 2),
        details=tuple(details),
    )
