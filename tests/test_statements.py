from datetime import date

import pytest

from ledgersight.engine import net_income
from ledgersight.periods import Period
from ledgersight.records import (
    AccountMapping,
    ChartAccount,
    Expense,
    Invoice,
    SupplierInvoice,
)
from ledgersight.statements import (
    StatementGroup,
    StatementLine,
    assemble_balance_sheet,
    build_balance_sheet,
    build_income_statement,
)

FY = Period(start=date(2025, 1, 1), end=date(2025, 12, 31), label="FY 2025")

CHART = [
    ChartAccount("101", "Capital", "equity", "Capitaux propres"),
    ChartAccount("120", "Résultat de l'exercice", "equity", "Capitaux propres"),
    ChartAccount("401", "Fournisseurs", "liability", "Dettes"),
    ChartAccount("411", "Clients", "asset", "Créances"),
    ChartAccount("44566", "TVA déductible", "asset", "Créances"),
    ChartAccount("44571", "TVA collectée", "liability", "Dettes fiscales"),
    ChartAccount("512", "Banque", "asset", "Trésorerie"),
    ChartAccount("606", "Achats", "expense", "Achats"),
    ChartAccount("625", "Déplacements", "expense", ""),
    ChartAccount("706", "Prestations", "revenue", "Ventes"),
]

MAPPINGS = [
    AccountMapping("invoice", "", "411", "706", "44571"),
    AccountMapping("expense", "travel", "625", "512", "44566"),
    AccountMapping("expense", "", "606", "512", "44566"),
    AccountMapping("supplier_invoice", "", "606", "401", "44566"),
]


def sample_records():
    return [
        Invoice(1, date(2025, 2, 1), 500000, 600000, 20.0, "paid", "INV-001"),
        Invoice(2, date(2025, 3, 1), 100000, 120000, 20.0, "sent", "INV-002"),
        Expense(10, date(2025, 2, 5), 20000, 4000, 20.0, "travel"),
        Expense(11, date(2025, 2, 6), 15000, 3000, 20.0, "supplies"),
        SupplierInvoice(20, date(2025, 2, 7), 50000, 10000, "paid"),
        SupplierInvoice(21, date(2025, 2, 8), 70000, 14000, "pending"),
    ]


def group(category, code, name, cents):
    return StatementGroup(category, (StatementLine(code, name, cents),))


def test_assembled_balance_sheet_balances():
    """Assets of 5000 against 2000 of liabilities and 3000 of equity."""
    sheet = assemble_balance_sheet(
        assets=[group("Trésorerie", "512", "Banque", 500000)],
        liabilities=[group("Dettes", "401", "Fournisseurs", 200000)],
        equity=[group("Capitaux propres", "101", "Capital", 300000)],
    )

    assert sheet.total_assets == pytest.approx(5000.00)
    assert sheet.total_liabilities == pytest.approx(2000.00)
    assert sheet.total_equity == pytest.approx(3000.00)
    assert sheet.total_passif == pytest.approx(5000.00)
    assert sheet.balanced


def test_unbalanced_sheet_is_reported_not_adjusted():
    sheet = assemble_balance_sheet(
        assets=[group("Trésorerie", "512", "Banque", 100000)],
        liabilities=[],
        equity=[],
    )

    assert not sheet.balanced
    assert sheet.total_assets == pytest.approx(1000.00)


def test_balance_sheet_from_postings_is_balanced():
    sheet = build_balance_sheet(CHART, sample_records(), MAPPINGS, FY)

    assert sheet.balanced
    assert sheet.total_assets_cents == sheet.total_passif_cents

    equity = {line.code: line.amount for g in sheet.equity for line in g.lines}
    # 5000 of revenue minus 850 of expenses
    assert equity["120"] == pytest.approx(4150.00)
    # No rule posts to 101, so it is left out of the statements
    assert "101" not in equity

    assets = {line.code: line.amount for g in sheet.assets for line in g.lines}
    assert assets["411"] == pytest.approx(6000.00)
    assert assets["512"] == pytest.approx(-420.00)
    assert assets["44566"] == pytest.approx(170.00)


def test_balance_sheet_groups_by_category():
    sheet = build_balance_sheet(CHART, sample_records(), MAPPINGS, FY)

    assert [g.category for g in sheet.assets] == ["Créances", "Trésorerie"]
    assert [line.code for line in sheet.assets[0].lines] == ["411", "44566"]
    assert [g.category for g in sheet.liabilities] == ["Dettes", "Dettes fiscales"]


def test_mapping_to_unknown_account_unbalances_sheet():
    mappings = [AccountMapping("invoice", "", "411", "706", "999")]

    sheet = build_balance_sheet(CHART, sample_records(), mappings, FY)

    assert not sheet.balanced


def test_empty_chart_gives_empty_sheet():
    sheet = build_balance_sheet([], sample_records(), MAPPINGS, FY)

    assert sheet.assets == ()
    assert sheet.total_assets == 0.0
    assert sheet.balanced


def test_invalid_account_type_raises():
    chart = CHART + [ChartAccount("999", "Divers", "misc")]

    with pytest.raises(ValueError):
        build_balance_sheet(chart, sample_records(), MAPPINGS, FY)


def test_income_statement_groups_and_totals():
    statement = build_income_statement(CHART, sample_records(), MAPPINGS, FY)

    assert [g.category for g in statement.revenue_items] == ["Ventes"]
    assert statement.total_revenue == pytest.approx(5000.00)

    expense_groups = {g.category: g.total for g in statement.expense_items}
    # account 625 has no category
    assert expense_groups == {
        "Achats": pytest.approx(650.00),
        "Other": pytest.approx(200.00),
    }
    assert statement.total_expenses == pytest.approx(850.00)
    assert statement.net_income == pytest.approx(4150.00)


def test_unmapped_records_keep_income_identity():
    mappings = [AccountMapping("expense", "travel", "625", "512", "")]
    records = sample_records()

    statement = build_income_statement(CHART, records, mappings, FY)

    assert statement.unmapped_revenue == pytest.approx(5000.00)
    assert statement.unmapped_expenses == pytest.approx(650.00)
    assert statement.total_revenue - statement.total_expenses == pytest.approx(
        statement.net_income
    )
    assert statement.net_income == pytest.approx(net_income(records, FY))


def test_rule_pointing_to_wrong_account_type_is_unmapped():
    # Credits an asset account instead of a revenue account
    mappings = [AccountMapping("invoice", "", "411", "512", "")]

    statement = build_income_statement(CHART, sample_records(), mappings, FY)

    assert statement.revenue_items == ()
    assert statement.unmapped_revenue == pytest.approx(5000.00)
