# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Statement builder: balance sheet and income statement.

Balance sheet
-------------
Every realized record of the period is posted through its mapping rule (see
``accounts.post_record``). Postings are accumulated per account of the
account map as a debit-positive balance, then turned into a natural-sign
amount:

    asset, expense                 debit - credit
    liability, equity, revenue     credit - debit

The period result (mapped revenue minus mapped expenses) is carried to the
equity result account (code prefix "12" by default). Accounts are then
grouped by type and category, and the sheet reports whether

    total_assets == total_liabilities + total_equity

within one cent. The figures are never adjusted to force the balance: an
unbalanced sheet usually means a mapping rule points to an account missing
from the chart.

Income statement
----------------
Revenue and expense accounts grouped by category. Realized records without
a mapping rule to a revenue (resp. expense) account are reported on the
``unmapped_revenue`` (resp. ``unmapped_expenses``) line and included in the
totals, so that the statement's net income always equals the aggregation
engine's net income for the same records and period.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

import structlog

from .accounts import (
    AccountInfo,
    build_account_map,
    find_mapping,
    find_result_account,
    post_record,
    resolve_code,
)
from .engine import realized_records
from .periods import Period
from .records import (
    AccountMapping,
    ChartAccount,
    Invoice,
    LedgerRecord,
    from_cents,
)

log = structlog.get_logger(__name__)

OTHER_CATEGORY = "Other"


@dataclass(frozen=True)
class StatementLine:
    """One account line of a statement, natural sign, in cents."""

    code: str
    name: str
    amount_cents: int

    @property
    def amount(self) -> float:
        return from_cents(self.amount_cents)


@dataclass(frozen=True)
class StatementGroup:
    """Accounts sharing a category, with their total."""

    category: str
    lines: tuple[StatementLine, ...] = ()

    @property
    def total_cents(self) -> int:
        return sum(line.amount_cents for line in self.lines)

    @property
    def total(self) -> float:
        return from_cents(self.total_cents)


def _sum_groups(groups: Iterable[StatementGroup]) -> int:
    return sum(g.total_cents for g in groups)


@dataclass(frozen=True)
class BalanceSheet:
    """
    Balance sheet of a period.

    ``balanced`` is a reported flag: it is True when assets and liabilities
    plus equity differ by less than one cent.
    """

    assets: tuple[StatementGroup, ...] = ()
    liabilities: tuple[StatementGroup, ...] = ()
    equity: tuple[StatementGroup, ...] = ()

    @property
    def total_assets_cents(self) -> int:
        return _sum_groups(self.assets)

    @property
    def total_liabilities_cents(self) -> int:
        return _sum_groups(self.liabilities)

    @property
    def total_equity_cents(self) -> int:
        return _sum_groups(self.equity)

    @property
    def total_passif_cents(self) -> int:
        return self.total_liabilities_cents + self.total_equity_cents

    @property
    def total_assets(self) -> float:
        return from_cents(self.total_assets_cents)

    @property
    def total_liabilities(self) -> float:
        return from_cents(self.total_liabilities_cents)

    @property
    def total_equity(self) -> float:
        return from_cents(self.total_equity_cents)

    @property
    def total_passif(self) -> float:
        return from_cents(self.total_passif_cents)

    @property
    def balanced(self) -> bool:
        return abs(self.total_assets_cents - self.total_passif_cents) < 1


@dataclass(frozen=True)
class IncomeStatement:
    """Income statement of a period (amounts in cents, float accessors)."""

    revenue_items: tuple[StatementGroup, ...] = ()
    expense_items: tuple[StatementGroup, ...] = ()
    unmapped_revenue_cents: int = 0
    unmapped_expenses_cents: int = 0

    @property
    def total_revenue_cents(self) -> int:
        return _sum_groups(self.revenue_items) + self.unmapped_revenue_cents

    @property
    def total_expenses_cents(self) -> int:
        return _sum_groups(self.expense_items) + self.unmapped_expenses_cents

    @property
    def net_income_cents(self) -> int:
        return self.total_revenue_cents - self.total_expenses_cents

    @property
    def unmapped_revenue(self) -> float:
        return from_cents(self.unmapped_revenue_cents)

    @property
    def unmapped_expenses(self) -> float:
        return from_cents(self.unmapped_expenses_cents)

    @property
    def total_revenue(self) -> float:
        return from_cents(self.total_revenue_cents)

    @property
    def total_expenses(self) -> float:
        return from_cents(self.total_expenses_cents)

    @property
    def net_income(self) -> float:
        return from_cents(self.net_income_cents)


# ---------------------------------------------------------------------------
# Grouping helpers
# ---------------------------------------------------------------------------


def _group_accounts(
    account_map: dict[str, AccountInfo],
    amounts: dict[str, int],
    account_type: str,
) -> tuple[StatementGroup, ...]:
    """Group the accounts of one type by category (sorted by category name)."""
    by_category: dict[str, list[StatementLine]] = {}
    for code in sorted(account_map):
        info = account_map[code]
        if info.type != account_type:
            continue
        category = info.category or OTHER_CATEGORY
        by_category.setdefault(category, []).append(
            StatementLine(code=code, name=info.name, amount_cents=amounts.get(code, 0))
        )
    return tuple(
        StatementGroup(category=category, lines=tuple(lines))
        for category, lines in sorted(by_category.items())
    )


def assemble_balance_sheet(
    assets: Iterable[StatementGroup],
    liabilities: Iterable[StatementGroup],
    equity: Iterable[StatementGroup],
) -> BalanceSheet:
    """Assemble a balance sheet from already grouped sections."""
    return BalanceSheet(
        assets=tuple(assets),
        liabilities=tuple(liabilities),
        equity=tuple(equity),
    )


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def account_balances(
    account_map: dict[str, AccountInfo],
    records: Iterable[LedgerRecord],
    mappings: Iterable[AccountMapping],
    period: Period,
) -> dict[str, int]:
    """
    Natural-sign balance per mapped account, from the period's postings.

    Postings to codes that do not resolve to a mapped account are dropped.
    """
    rules = list(mappings)
    known = set(account_map)
    debit_balance: dict[str, int] = {code: 0 for code in account_map}

    for record in realized_records(records, period):
        rule = find_mapping(record, rules)
        if rule is None:
            continue
        for posting in post_record(record, rule):
            code = resolve_code(posting.code, known)
            if code is None:
                continue
            debit_balance[code] += posting.debit_cents - posting.credit_cents

    return {
        code: (
            balance
            if account_map[code].type in ("asset", "expense")
            else -balance
        )
        for code, balance in debit_balance.items()
    }


def build_balance_sheet(
    accounts: Iterable[ChartAccount],
    records: Iterable[LedgerRecord],
    mappings: Iterable[AccountMapping],
    period: Period,
    *,
    result_account_prefix: str = "12",
) -> BalanceSheet:
    """
    Build the balance sheet of ``period`` from the user's records.

    Args:
        accounts: The user's chart of accounts.
        records: Ledger records; only realized records of the period count.
        mappings: Account mapping rules.
        period: Reporting period.
        result_account_prefix: Code prefix of the equity account receiving
            the period result.

    Returns:
        A BalanceSheet. An empty chart yields an empty, balanced sheet.

    Raises:
        ValueError: if a chart account has an invalid type.
    """
    chart = list(accounts)
    rules = list(mappings)
    account_map = build_account_map(
        chart, rules, result_account_prefix=result_account_prefix
    )
    if not account_map:
        return BalanceSheet()

    amounts = account_balances(account_map, records, rules, period)

    result_cents = sum(
        amount
        for code, amount in amounts.items()
        if account_map[code].type == "revenue"
    ) - sum(
        amount
        for code, amount in amounts.items()
        if account_map[code].type == "expense"
    )
    result_account: Optional[ChartAccount] = find_result_account(
        chart, result_account_prefix
    )
    if result_account is not None:
        amounts[result_account.code] += result_cents

    sheet = assemble_balance_sheet(
        assets=_group_accounts(account_map, amounts, "asset"),
        liabilities=_group_accounts(account_map, amounts, "liability"),
        equity=_group_accounts(account_map, amounts, "equity"),
    )

    if not sheet.balanced:
        log.warning(
            "balance_sheet.unbalanced",
            period=period.label,
            total_assets=sheet.total_assets,
            total_passif=sheet.total_passif,
            result_account=result_account.code if result_account else None,
        )
    return sheet


def build_income_statement(
    accounts: Iterable[ChartAccount],
    records: Iterable[LedgerRecord],
    mappings: Iterable[AccountMapping],
    period: Period,
) -> IncomeStatement:
    """
    Build the income statement of ``period``.

    A paid invoice is attributed to the revenue account its rule credits;
    an expense or paid supplier invoice to the expense account its rule
    debits. Records whose rule is missing, or points to an account that is
    not a revenue (resp. expense) account of the chart, land on the
    unmapped lines.
    """
    chart = list(accounts)
    rules = list(mappings)
    account_map = build_account_map(chart, rules)
    known = set(account_map)

    amounts: dict[str, int] = {}
    unmapped_revenue = 0
    unmapped_expenses = 0

    for record in realized_records(records, period):
        is_sale = isinstance(record, Invoice)
        expected_type = "revenue" if is_sale else "expense"
        rule = find_mapping(record, rules)

        code = None
        if rule is not None:
            raw_code = rule.credit_account_code if is_sale else rule.debit_account_code
            code = resolve_code(raw_code, known)
            if code is not None and account_map[code].type != expected_type:
                code = None

        if code is None:
            if is_sale:
                unmapped_revenue += record.net_cents
            else:
                unmapped_expenses += record.net_cents
            continue
        amounts[code] = amounts.get(code, 0) + record.net_cents

    return IncomeStatement(
        revenue_items=_group_accounts(account_map, amounts, "revenue"),
        expense_items=_group_accounts(account_map, amounts, "expense"),
        unmapped_revenue_cents=unmapped_revenue,
        unmapped_expenses_cents=unmapped_expenses,
    )
