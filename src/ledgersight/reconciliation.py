# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Bank reconciliation matcher.

Scores incoming bank transactions against open invoices and commits the
confident matches through a store callback.

Scoring (0-100)
---------------
    amount ratio = |tx - invoice| / max(tx, invoice, 1.00)
        ratio == 0     +50
        ratio <  0.01  +40
        ratio <  0.05  +20
    invoice number found in the transaction reference   +30
    client name found in the transaction reference      +20

The reference is ``reference`` or, when empty, ``description``; all text
comparisons are lower-cased substring tests. ``confidence = score / 100``.

Strategies
----------
- "greedy" (default): transactions are processed in fetch order (newest
  first); each takes the best-scoring invoice still available, ties going
  to the first invoice encountered. A best score of 0 never matches.
- "optimal": a maximum-weight assignment (Hungarian algorithm) over all
  eligible pairs, then the same confidence gate.

In both strategies a transaction is linked to at most one invoice and an
invoice receives at most one transaction per run. A match is committed only
when its confidence reaches the threshold. A failing commit is logged, the
transaction stays unmatched and the invoice returns to the pool.

``suggest_matches`` ranks the candidate invoices of a single transaction
without committing anything.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from .records import BankTransaction, OpenInvoice, ReconciliationInputs, from_cents

log = structlog.get_logger(__name__)

DEFAULT_THRESHOLD = 0.8

# Commit callback: persists the link between a transaction and an invoice.
CommitFn = Callable[[BankTransaction, OpenInvoice], None]


@dataclass(frozen=True)
class ReconciliationMatch:
    transaction_id: int
    invoice_id: int
    invoice_number: str
    confidence: float


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Outcome of a reconciliation run.

    Attributes
    ----------
    details:
        Committed matches, in transaction processing order.
    failed:
        Ids of transactions whose commit failed.
    """

    details: tuple[ReconciliationMatch, ...] = ()
    failed: tuple[int, ...] = ()

    @property
    def matched(self) -> int:
        return len(self.details)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def amount_ratio(tx_cents: int, invoice_cents: int) -> float:
    """Relative gap between two amounts, floored at one currency unit."""
    return abs(tx_cents - invoice_cents) / max(tx_cents, invoice_cents, 100)


def score_match(tx: BankTransaction, invoice: OpenInvoice) -> int:
    """Score how likely ``tx`` pays ``invoice`` (0-100)."""
    score = 0

    ratio = amount_ratio(tx.amount_cents, invoice.total_cents)
    if ratio == 0:
        score += 50
    elif ratio < 0.01:
        score += 40
    elif ratio < 0.05:
        score += 20

    text = tx.match_text
    number = (invoice.number or "").lower()
    if number and number in text:
        score += 30

    client = (invoice.client_name or "").lower()
    if client and client in text:
        score += 20

    return score


def eligible_transactions(
    transactions: Iterable[BankTransaction],
) -> list[BankTransaction]:
    """Unlinked incoming transactions, in their original order."""
    return [
        tx for tx in transactions if tx.invoice_id is None and tx.amount_cents > 0
    ]


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------


def _try_commit(
    commit: Optional[CommitFn], tx: BankTransaction, invoice: OpenInvoice
) -> bool:
    if commit is None:
        return True
    try:
        commit(tx, invoice)
    except Exception:  # noqa: BLE001
        log.error(
            "reconciliation.commit_failed",
            transaction_id=tx.id,
            invoice_id=invoice.id,
            exc_info=True,
        )
        return False
    return True


def _record(
    tx: BankTransaction, invoice: OpenInvoice, score: int
) -> ReconciliationMatch:
    match = ReconciliationMatch(
        transaction_id=tx.id,
        invoice_id=invoice.id,
        invoice_number=invoice.number,
        confidence=score / 100,
    )
    log.info(
        "reconciliation.matched",
        transaction_id=tx.id,
        invoice_id=invoice.id,
        confidence=match.confidence,
    )
    return match


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def reconcile_greedy(
    transactions: Sequence[BankTransaction],
    invoices: Sequence[OpenInvoice],
    *,
    threshold: float = DEFAULT_THRESHOLD,
    commit: Optional[CommitFn] = None,
) -> ReconciliationResult:
    """Match transactions one by one against the remaining invoices."""
    used: set[int] = set()
    details: list[ReconciliationMatch] = []
    failed: list[int] = []

    for tx in eligible_transactions(transactions):
        best: Optional[OpenInvoice] = None
        best_score = 0
        for invoice in invoices:
            if invoice.id in used:
                continue
            score = score_match(tx, invoice)
            if score > best_score:
                best_score = score
                best = invoice

        if best is None or best_score / 100 < threshold:
            continue
        if not _try_commit(commit, tx, best):
            failed.append(tx.id)
            continue
        used.add(best.id)
        details.append(_record(tx, best, best_score))

    return ReconciliationResult(details=tuple(details), failed=tuple(failed))


def _hungarian(cost: list[list[float]]) -> list[int]:
    """
    Minimum-cost assignment for an n x m matrix with n <= m.

    Returns, for each row, the index of its assigned column. Runs in
    O(n^2 m) with row and column potentials.
    """
    n = len(cost)
    m = len(cost[0]) if n else 0
    inf = float("inf")
    u = [0.0] * (n + 1)
    v = [0.0] * (m + 1)
    p = [0] * (m + 1)  # p[j]: row assigned to column j (1-based, 0 = none)
    way = [0] * (m + 1)

    for i in range(1, n + 1):
        p[0] = i
        j0 = 0
        minv = [inf] * (m + 1)
        used = [False] * (m + 1)
        while True:
            used[j0] = True
            i0 = p[j0]
            delta = inf
            j1 = 0
            for j in range(1, m + 1):
                if used[j]:
                    continue
                cur = cost[i0 - 1][j - 1] - u[i0] - v[j]
                if cur < minv[j]:
                    minv[j] = cur
                    way[j] = j0
                if minv[j] < delta:
                    delta = minv[j]
                    j1 = j
            for j in range(m + 1):
                if used[j]:
                    u[p[j]] += delta
                    v[j] -= delta
                else:
                    minv[j] -= delta
            j0 = j1
            if p[j0] == 0:
                break
        while True:
            j1 = way[j0]
            p[j0] = p[j1]
            j0 = j1
            if j0 == 0:
                break

    assignment = [-1] * n
    for j in range(1, m + 1):
        if p[j]:
            assignment[p[j] - 1] = j - 1
    return assignment


def reconcile_optimal(
    transactions: Sequence[BankTransaction],
    invoices: Sequence[OpenInvoice],
    *,
    threshold: float = DEFAULT_THRESHOLD,
    commit: Optional[CommitFn] = None,
) -> ReconciliationResult:
    """Match transactions to invoices maximizing the total score."""
    txs = eligible_transactions(transactions)
    pool = list(invoices)
    if not txs or not pool:
        return ReconciliationResult()

    scores = [[score_match(tx, inv) for inv in pool] for tx in txs]

    if len(txs) <= len(pool):
        rows = _hungarian([[-s for s in row] for row in scores])
        pairs = [(i, j) for i, j in enumerate(rows) if j >= 0]
    else:
        transposed = [
            [-scores[i][j] for i in range(len(txs))] for j in range(len(pool))
        ]
        cols = _hungarian(transposed)
        pairs = sorted((i, j) for j, i in enumerate(cols) if i >= 0)

    details: list[ReconciliationMatch] = []
    failed: list[int] = []
    for i, j in pairs:
        score = scores[i][j]
        if score == 0 or score / 100 < threshold:
            continue
        tx, invoice = txs[i], pool[j]
        if not _try_commit(commit, tx, invoice):
            failed.append(tx.id)
            continue
        details.append(_record(tx, invoice, score))

    return ReconciliationResult(details=tuple(details), failed=tuple(failed))


STRATEGIES: dict[str, Callable[..., ReconciliationResult]] = {
    "greedy": reconcile_greedy,
    "optimal": reconcile_optimal,
}


def run_reconciliation(
    inputs: ReconciliationInputs,
    *,
    threshold: float = DEFAULT_THRESHOLD,
    strategy: str = "greedy",
    commit: Optional[CommitFn] = None,
) -> ReconciliationResult:
    """
    Run one reconciliation pass with the selected strategy.

    Raises:
        ValueError: if the strategy is unknown or the threshold is outside
            [0, 1].
    """
    if not 0.0 <= threshold <= 1.0:
        msg = f"Confidence threshold must be within [0, 1], got {threshold}."
        raise ValueError(msg)
    try:
        matcher = STRATEGIES[strategy]
    except KeyError:
        allowed = ", ".join(STRATEGIES)
        raise ValueError(
            f"Unknown reconciliation strategy {strategy!r}. Expected one of: {allowed}."
        ) from None

    result = matcher(
        inputs.transactions, inputs.invoices, threshold=threshold, commit=commit
    )
    log.info(
        "reconciliation.finished",
        strategy=strategy,
        threshold=threshold,
        candidates=len(eligible_transactions(inputs.transactions)),
        open_invoices=len(inputs.invoices),
        matched=result.matched,
        failed=len(result.failed),
    )
    return result


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------

DEFAULT_SUGGESTION_LIMIT = 20


@dataclass(frozen=True)
class MatchSuggestion:
    invoice_id: int
    invoice_number: str
    client_name: str
    amount: float
    score: int

    @property
    def confidence(self) -> float:
        return self.score / 100


def suggest_matches(
    tx: BankTransaction,
    invoices: Iterable[OpenInvoice],
    *,
    limit: int = DEFAULT_SUGGESTION_LIMIT,
    text_filter: str = "",
) -> tuple[MatchSuggestion, ...]:
    """
    Rank candidate invoices for one bank transaction, best first.

    Nothing is committed. Invoices scoring 0 are dropped; equal scores keep
    the invoices' order. ``text_filter`` keeps only invoices whose number or
    client name contains it (case-insensitive).

    Raises:
        ValueError: if ``limit`` is not positive.
    """
    if limit < 1:
        raise ValueError(f"Suggestion limit must be positive, got {limit}.")

    needle = text_filter.strip().lower()
    suggestions = []
    for invoice in invoices:
        if needle and not (
            needle in (invoice.number or "").lower()
            or needle in (invoice.client_name or "").lower()
        ):
            continue
        score = score_match(tx, invoice)
        if score > 0:
            suggestions.append(
                MatchSuggestion(
                    invoice_id=invoice.id,
                    invoice_number=invoice.number,
                    client_name=invoice.client_name,
                    amount=from_cents(invoice.total_cents),
                    score=score,
                )
            )

    suggestions.sort(key=lambda s: s.score, reverse=True)
    return tuple(suggestions[:limit])


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconciliationSummary:
    """Matched vs unmatched statistics over a set of bank transactions."""

    total: int
    matched: int
    unmatched: int
    match_rate: float
    total_credits: float
    total_debits: float
    matched_credits: float
    matched_debits: float
    unmatched_credits: float
    unmatched_debits: float

    @property
    def difference(self) -> float:
        """Net amount still to reconcile."""
        return round(self.unmatched_credits + self.unmatched_debits, 2)


def reconciliation_summary(
    transactions: Iterable[BankTransaction],
) -> ReconciliationSummary:
    """
    Summarize reconciliation progress.

    A transaction is matched when it is linked to an invoice. Debits are
    reported as negative amounts; ``match_rate`` is a percentage with one
    decimal.
    """
    txs = list(transactions)
    matched = [tx for tx in txs if tx.invoice_id is not None]
    unmatched = [tx for tx in txs if tx.invoice_id is None]

    def credits(items: list[BankTransaction]) -> float:
        return from_cents(sum(t.amount_cents for t in items if t.amount_cents > 0))

    def debits(items: list[BankTransaction]) -> float:
        return from_cents(sum(t.amount_cents for t in items if t.amount_cents < 0))

    total = len(txs)
    return ReconciliationSummary(
        total=total,
        matched=len(matched),
        unmatched=len(unmatched),
        match_rate=round(len(matched) / total * 100, 1) if total else 0.0,
        total_credits=credits(txs),
        total_debits=debits(txs),
        matched_credits=credits(matched),
        matched_debits=debits(matched),
        unmatched_credits=credits(unmatched),
        unmatched_debits=debits(unmatched),
    )
