import pytest

from ledgersight.records import TaxBracket
from ledgersight.tax import (
    DEFAULT_TAX_BRACKETS,
    TaxBracketTable,
    estimate_tax,
    validate_brackets,
)


@pytest.mark.parametrize("income", [0.0, -1500.0])
def test_non_positive_income_is_not_taxed(income):
    estimate = estimate_tax(income)

    assert estimate.total_tax == 0.0
    assert estimate.effective_rate == 0.0
    assert estimate.quarterly_payment == 0.0
    assert estimate.details == ()


def test_income_within_first_bracket():
    estimate = estimate_tax(10000.0)

    assert estimate.total_tax == pytest.approx(1500.00)
    assert estimate.effective_rate == pytest.approx(0.15)
    assert len(estimate.details) == 1


def test_income_across_two_brackets():
    """50 000 of income: 42 500 at 15 % plus 7 500 at 25 %."""
    estimate = estimate_tax(50000.0)

    expected = 42500 * 0.15 + 7500 * 0.25
    assert estimate.total_tax == pytest.approx(expected)
    assert estimate.quarterly_payment == pytest.approx(round(expected / 4, 2))
    assert estimate.effective_rate == pytest.approx(expected / 50000)

    first, second = estimate.details
    assert first.taxable_amount == pytest.approx(42500.0)
    assert first.tax == pytest.approx(6375.0)
    assert second.bracket.label == "Taux normal"
    assert second.taxable_amount == pytest.approx(7500.0)


def test_total_tax_is_non_decreasing():
    incomes = [0, 1, 100, 42499.99, 42500, 42500.01, 60000, 1_000_000]
    totals = [estimate_tax(i).total_tax for i in incomes]

    assert totals == sorted(totals)


def test_custom_brackets():
    brackets = [
        TaxBracket(0, 10000, 0.0),
        TaxBracket(10000, 20000, 0.1),
        TaxBracket(20000, None, 0.3),
    ]

    estimate = estimate_tax(25000, brackets)

    assert estimate.total_tax == pytest.approx(1000 + 1500)
    # the 0 % bracket still has a taxable amount
    assert len(estimate.details) == 3


def test_default_brackets_are_valid():
    validate_brackets(DEFAULT_TAX_BRACKETS)
    assert TaxBracketTable(DEFAULT_TAX_BRACKETS).brackets == DEFAULT_TAX_BRACKETS


@pytest.mark.parametrize(
    "brackets",
    [
        [],
        [TaxBracket(100, None, 0.1)],
        [TaxBracket(0, 100, 0.1), TaxBracket(150, None, 0.2)],
        [TaxBracket(0, 100, 0.1), TaxBracket(50, None, 0.2)],
        [TaxBracket(0, None, 0.1), TaxBracket(100, None, 0.2)],
        [TaxBracket(0, 100, 0.1)],
        [TaxBracket(0, 0, 0.1), TaxBracket(0, None, 0.2)],
        [TaxBracket(0, None, -0.1)],
    ],
)
def test_invalid_brackets_are_rejected(brackets):
    with pytest.raises(ValueError):
        estimate_tax(1000, brackets)
