# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Account utilities for SMB LedgerSight.

This module contains helpers related to the user's chart of accounts and to
the account mapping rules that attribute records to accounts.

Responsibilities:
- Resolve an account code to its **closest known ancestor** by prefix
  (e.g. '512100' -> '512' when only '512' is in the chart).
- Build the account map used by the statement builder: only chart accounts
  referenced by at least one mapping rule are included, plus the equity
  account receiving the period result. Unmapped chart accounts are excluded.
- Select the mapping rule applying to a record (a rule restricted to the
  record's category wins over a wildcard rule).
- Turn a record into balanced double-entry postings.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from .records import (
    ACCOUNT_TYPES,
    AccountMapping,
    ChartAccount,
    Expense,
    Invoice,
    LedgerRecord,
    SupplierInvoice,
)


@dataclass(frozen=True)
class AccountInfo:
    """Classification of a mapped account."""

    code: str
    name: str
    type: str
    category: str


@dataclass(frozen=True)
class Posting:
    """One side of a journal line, in cents."""

    code: str
    debit_cents: int = 0
    credit_cents: int = 0


def resolve_code(code: str, known_codes: set[str]) -> Optional[str]:
    """Return the closest known ancestor of a given account code.

    The matching rule is based on prefix containment:
    - '512100' -> '5121' if that prefix exists in the chart
    - '4457'   -> '445'  if '445' exists
    - '999'    -> None   if no prefix matches

    Args:
        code: Raw account code, as written in a mapping rule.
        known_codes: Set of known account codes (from the chart of accounts).

    Returns:
        The most specific known prefix of the code, or None if no prefix exists.
    """
    s = str(code).strip()
    for i in range(len(s), 0, -1):
        prefix = s[:i]
        if prefix in known_codes:
            return prefix
    return None


def _check_account_type(account: ChartAccount) -> None:
    if account.type not in ACCOUNT_TYPES:
        raise ValueError(
            f"Account {account.code!r} has invalid type {account.type!r}. "
            f"Expected one of: {', '.join(ACCOUNT_TYPES)}."
        )


def find_result_account(
    accounts: Iterable[ChartAccount], prefix: str = "12"
) -> Optional[ChartAccount]:
    """Return the equity account receiving the period result, if any.

    This is the equity account with the lowest code starting with ``prefix``
    (e.g. '120' Résultat de l'exercice in the French chart).
    """
    candidates = [
        a for a in accounts if a.type == "equity" and a.code.startswith(prefix)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda a: a.code)


def build_account_map(
    accounts: Iterable[ChartAccount],
    mappings: Iterable[AccountMapping],
    *,
    result_account_prefix: str = "12",
) -> dict[str, AccountInfo]:
    """Build the ``code -> AccountInfo`` map of accounts used by statements.

    An account is included when a mapping rule references it, directly or
    through a longer code whose closest known ancestor it is. The result
    account (see ``find_result_account``) is always included when present.

    Args:
        accounts: The user's chart of accounts.
        mappings: The user's mapping rules.
        result_account_prefix: Code prefix of the equity result account.

    Returns:
        Dictionary keyed by chart account code.

    Raises:
        ValueError: if a chart account has a type outside the allowed values.
    """
    chart = list(accounts)
    for account in chart:
        _check_account_type(account)

    by_code = {a.code: a for a in chart}
    known = set(by_code)

    referenced: set[str] = set()
    for rule in mappings:
        for code in (
            rule.debit_account_code,
            rule.credit_account_code,
            rule.vat_account_code,
        ):
            if not code:
                continue
            resolved = resolve_code(code, known)
            if resolved is not None:
                referenced.add(resolved)

    result_account = find_result_account(chart, result_account_prefix)
    if result_account is not None:
        referenced.add(result_account.code)

    return {
        code: AccountInfo(
            code=code,
            name=by_code[code].name,
            type=by_code[code].type,
            category=by_code[code].category,
        )
        for code in sorted(referenced)
    }


def find_mapping(
    record: LedgerRecord, mappings: Iterable[AccountMapping]
) -> Optional[AccountMapping]:
    """Return the mapping rule applying to ``record``, or None.

    Rules are matched on ``source_type == record.kind``. Among them, the first
    rule whose category equals the record's category (case-insensitive) is
    preferred; otherwise the first wildcard rule is returned.
    """
    category = (record.category or "").strip().lower()
    wildcard: Optional[AccountMapping] = None

    for rule in mappings:
        if rule.source_type != record.kind:
            continue
        if rule.is_wildcard:
            if wildcard is None:
                wildcard = rule
            continue
        if category and rule.source_category.strip().lower() == category:
            return rule

    return wildcard


def post_record(record: LedgerRecord, rule: AccountMapping) -> list[Posting]:
    """Translate a record into balanced postings through its mapping rule.

    Sales invoice:
        debit  <debit account>   TTC
        credit <credit account>  HT
        credit <VAT account>     TTC - HT
    Without a VAT account, HT is posted on both sides.

    Expense / supplier invoice:
        debit  <debit account>   net amount
        debit  <VAT account>     VAT amount
        credit <credit account>  net amount + posted VAT
    Without a VAT account, only the net amount is posted.

    Raises:
        ValueError: if the record kind is not a known ledger record kind.
    """
    vat_code = rule.vat_account_code

    if isinstance(record, Invoice):
        if not vat_code:
            return [
                Posting(rule.debit_account_code, debit_cents=record.total_ht_cents),
                Posting(rule.credit_account_code, credit_cents=record.total_ht_cents),
            ]
        return [
            Posting(rule.debit_account_code, debit_cents=record.total_ttc_cents),
            Posting(rule.credit_account_code, credit_cents=record.total_ht_cents),
            Posting(vat_code, credit_cents=record.vat_cents),
        ]

    if isinstance(record, (Expense, SupplierInvoice)):
        net = record.net_cents
        if not vat_code:
            return [
                Posting(rule.debit_account_code, debit_cents=net),
                Posting(rule.credit_account_code, credit_cents=net),
            ]
        vat = record.vat_cents
        return [
            Posting(rule.debit_account_code, debit_cents=net),
            Posting(vat_code, debit_cents=vat),
            Posting(rule.credit_account_code, credit_cents=net + vat),
        ]

    raise ValueError(f"Unsupported record kind: {getattr(record, 'kind', record)!r}")
