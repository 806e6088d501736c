from datetime import date

import pytest

from ledgersight.reconciliation import (
    amount_ratio,
    reconcile_greedy,
    reconcile_optimal,
    reconciliation_summary,
    run_reconciliation,
    score_match,
    suggest_matches,
)
from ledgersight.records import BankTransaction, OpenInvoice, ReconciliationInputs


def tx(id_, cents, reference="", description="", invoice_id=None):
    return BankTransaction(
        id=id_,
        date=date(2025, 1, 20),
        amount_cents=cents,
        reference=reference,
        description=description,
        invoice_id=invoice_id,
    )


def inv(id_, cents, number, client=""):
    return OpenInvoice(id=id_, number=number, total_cents=cents, client_name=client)


def test_exact_amount_and_invoice_number_matches_at_default_threshold():
    """1000.00 paid with the invoice number in the reference scores 80."""
    transaction = tx(1, 100000, reference="Payment INV-001")
    invoice = inv(10, 100000, "INV-001")

    assert score_match(transaction, invoice) == 80

    result = run_reconciliation(
        ReconciliationInputs((transaction,), (invoice,)), threshold=0.8
    )
    assert result.matched == 1
    match = result.details[0]
    assert (match.transaction_id, match.invoice_id) == (1, 10)
    assert match.invoice_number == "INV-001"
    assert match.confidence == pytest.approx(0.8)


def test_five_percent_gap_without_text_never_matches():
    transaction = tx(1, 95000)
    invoice = inv(10, 100000, "INV-001")

    assert amount_ratio(95000, 100000) == pytest.approx(0.05)
    assert score_match(transaction, invoice) == 0

    result = run_reconciliation(
        ReconciliationInputs((transaction,), (invoice,)), threshold=0.0
    )
    assert result.matched == 0


@pytest.mark.parametrize(
    "tx_cents, expected",
    [(100000, 50), (99500, 40), (97000, 20), (90000, 0)],
)
def test_amount_score_tiers(tx_cents, expected):
    assert score_match(tx(1, tx_cents), inv(10, 100000, "X")) == expected


def test_text_scores_use_description_when_reference_is_empty():
    transaction = tx(1, 50, description="VIR ACME SARL inv-001")
    invoice = inv(10, 999999, "INV-001", client="Acme")

    # Amount gap is too large: only the text scores count
    assert score_match(transaction, invoice) == 50


def test_amount_ratio_floor_for_tiny_amounts():
    # |50 - 0| / max(50, 0, 100 cents)
    assert amount_ratio(50, 0) == pytest.approx(0.5)


def test_each_invoice_matched_at_most_once():
    transactions = (tx(1, 100000, "INV-001"), tx(2, 100000, "INV-001"))
    invoices = (inv(10, 100000, "INV-001"),)

    result = reconcile_greedy(transactions, invoices, threshold=0.5)

    assert result.matched == 1
    assert result.details[0].transaction_id == 1


def test_greedy_ties_go_to_first_invoice():
    invoices = (inv(10, 100000, "A-1"), inv(11, 100000, "B-1"))

    result = reconcile_greedy((tx(1, 100000),), invoices, threshold=0.5)

    assert result.details[0].invoice_id == 10


def test_negative_and_linked_transactions_are_skipped():
    transactions = (
        tx(1, -100000, "INV-001"),
        tx(2, 100000, "INV-001", invoice_id=99),
    )
    invoices = (inv(10, 100000, "INV-001"),)

    for strategy in ("greedy", "optimal"):
        result = run_reconciliation(
            ReconciliationInputs(transactions, invoices),
            threshold=0.0,
            strategy=strategy,
        )
        assert result.matched == 0


def test_matched_count_is_monotonic_in_threshold():
    transactions = (
        tx(1, 100000, "INV-001 Acme"),
        tx(2, 50000, "INV-002"),
        tx(3, 29900),
        tx(4, 12345),
    )
    invoices = (
        inv(10, 100000, "INV-001", client="Acme"),
        inv(11, 50000, "INV-002"),
        inv(12, 30000, "INV-003"),
        inv(13, 80000, "INV-004"),
    )
    inputs = ReconciliationInputs(transactions, invoices)

    counts = [
        run_reconciliation(inputs, threshold=t).matched
        for t in (0.0, 0.2, 0.4, 0.5, 0.8, 1.0)
    ]

    assert counts == sorted(counts, reverse=True)
    assert counts[0] == 3
    assert counts[-1] == 1


def test_commit_failure_is_tolerated_and_invoice_returns_to_pool():
    transactions = (tx(1, 100000, "INV-001"), tx(2, 100000, "INV-001"))
    invoices = (inv(10, 100000, "INV-001"),)
    committed = []

    def commit(transaction, invoice):
        if transaction.id == 1:
            raise RuntimeError("database is locked")
        committed.append((transaction.id, invoice.id))

    result = reconcile_greedy(transactions, invoices, threshold=0.8, commit=commit)

    assert result.failed == (1,)
    assert result.matched == 1
    assert committed == [(2, 10)]


def test_optimal_maximizes_total_score():
    # tx 1 scores 50 on A and 40 on B; tx 2 scores 80 on A and 40 on B
    transactions = (tx(1, 100000), tx(2, 100000, "A-1"))
    invoices = (inv(10, 100000, "A-1"), inv(11, 101000, "B-1"))

    greedy = reconcile_greedy(transactions, invoices, threshold=0.4)
    optimal = reconcile_optimal(transactions, invoices, threshold=0.4)

    greedy_pairs = {(m.transaction_id, m.invoice_id) for m in greedy.details}
    optimal_pairs = {(m.transaction_id, m.invoice_id) for m in optimal.details}
    assert greedy_pairs == {(1, 10), (2, 11)}
    assert optimal_pairs == {(1, 11), (2, 10)}
    assert sum(m.confidence for m in optimal.details) > sum(
        m.confidence for m in greedy.details
    )


def test_optimal_with_more_transactions_than_invoices():
    transactions = (tx(1, 100000), tx(2, 100000, "A-1"), tx(3, 100000))
    invoices = (inv(10, 100000, "A-1"),)

    result = reconcile_optimal(transactions, invoices, threshold=0.5)

    assert [(m.transaction_id, m.invoice_id) for m in result.details] == [(2, 10)]


def test_invalid_options_are_rejected():
    inputs = ReconciliationInputs()

    with pytest.raises(ValueError):
        run_reconciliation(inputs, threshold=1.5)
    with pytest.raises(ValueError):
        run_reconciliation(inputs, strategy="random")


def test_empty_inputs():
    result = run_reconciliation(ReconciliationInputs(), strategy="optimal")

    assert result.matched == 0
    assert result.failed == ()


def test_reconciliation_summary():
    summary = reconciliation_summary(
        [
            tx(1, 100000, invoice_id=10),
            tx(2, 50000),
            tx(3, -20000),
        ]
    )

    assert (summary.total, summary.matched, summary.unmatched) == (3, 1, 2)
    assert summary.match_rate == 33.3
    assert summary.total_credits == pytest.approx(1500.00)
    assert summary.total_debits == pytest.approx(-200.00)
    assert summary.matched_credits == pytest.approx(1000.00)
    assert summary.unmatched_credits == pytest.approx(500.00)
    assert summary.difference == pytest.approx(300.00)


def test_reconciliation_summary_empty():
    summary = reconciliation_summary([])

    assert summary.total == 0
    assert summary.match_rate == 0.0


def suggestion_pool():
    return (
        inv(10, 100000, "INV-001"),
        inv(11, 100000, "INV-002", client="Acme"),
        inv(12, 99500, "INV-003"),
        inv(13, 50000, "INV-004"),
    )


def test_suggestions_are_ranked_by_score_without_zero_scores():
    transaction = tx(1, 100000, "Payment INV-002 Acme")

    suggestions = suggest_matches(transaction, suggestion_pool())

    assert [(s.invoice_id, s.score) for s in suggestions] == [
        (11, 100),
        (10, 50),
        (12, 40),
    ]
    assert suggestions[0].confidence == pytest.approx(1.0)
    assert suggestions[0].amount == pytest.approx(1000.00)


def test_suggestions_limit_and_text_filter():
    transaction = tx(1, 100000, "Payment INV-002 Acme")
    pool = suggestion_pool()

    limited = suggest_matches(transaction, pool, limit=2)
    assert [s.invoice_id for s in limited] == [11, 10]

    filtered = suggest_matches(transaction, pool, text_filter="ACME")
    assert [s.invoice_id for s in filtered] == [11]
    assert suggest_matches(transaction, pool, text_filter="inv-004") == ()


def test_suggestions_keep_invoice_order_on_equal_scores():
    invoices = (inv(10, 100000, "A-1"), inv(11, 100000, "B-1"))

    suggestions = suggest_matches(tx(1, 100000), invoices)

    assert [s.invoice_id for s in suggestions] == [10, 11]


def test_suggestions_reject_non_positive_limit():
    with pytest.raises(ValueError):
        suggest_matches(tx(1, 100000), suggestion_pool(), limit=0)
