import json
from datetime import date

import pytest

from ledgersight.declarations import (
    CA3Format,
    DeclarationFormat,
    FormatRegistry,
    IntervatFormat,
    generate_vat_declaration,
    get_declaration_format,
    registry,
)
from ledgersight.engine import VATBreakdown, VATRateBucket
from ledgersight.errors import UnsupportedCountryError
from ledgersight.periods import Period


def make_period():
    return Period(start=date(2025, 1, 1), end=date(2025, 3, 31), label="Q1 2025")


def make_breakdown(goods=2000, services=4000):
    return VATBreakdown(
        output_by_rate={
            20.0: VATRateBucket(20.0, 83333, 16667),
            10.0: VATRateBucket(10.0, 50000, 5000),
        },
        input_goods_cents=goods,
        input_services_cents=services,
    )


def test_ca3_lines():
    declaration = generate_vat_declaration(
        make_breakdown(), 1333.33, make_period(), "FR"
    )

    assert declaration.format == "CA3"
    assert declaration.section == "lines"
    lines = declaration.values
    assert lines["line01_ca_ht"] == pytest.approx(1333.33)
    assert lines["line08_tva_collectee"] == pytest.approx(216.67)
    assert lines["line08A_tva_20"] == pytest.approx(166.67)
    assert lines["line08B_tva_10"] == pytest.approx(50.00)
    assert lines["line09_tva_55"] == 0.0
    assert lines["line19_tva_deductible_biens"] == pytest.approx(20.00)
    assert lines["line20_tva_deductible_services"] == pytest.approx(40.00)
    assert lines["line23_total_deductible"] == pytest.approx(60.00)
    assert lines["line28_tva_nette"] == pytest.approx(156.67)

    assert declaration.summary["tva_nette"] == pytest.approx(156.67)
    assert declaration.net == pytest.approx(156.67)
    assert not declaration.is_credit


def test_intervat_grids_when_vat_is_due():
    declaration = generate_vat_declaration(
        make_breakdown(), 1333.33, make_period(), "be"
    )

    assert declaration.format == "Intervat"
    assert declaration.country == "BE"
    grids = declaration.values
    assert grids["grid00"] == pytest.approx(1333.33)
    assert grids["grid54"] == pytest.approx(216.67)
    assert grids["grid59"] == pytest.approx(60.00)
    assert grids["grid71"] == pytest.approx(156.67)
    assert grids["grid72"] == 0.0
    assert declaration.summary["saldo"] == pytest.approx(156.67)


def test_intervat_grids_when_vat_is_a_credit():
    breakdown = make_breakdown(goods=30000, services=0)

    declaration = generate_vat_declaration(breakdown, 1333.33, make_period(), "BE")

    assert declaration.is_credit
    assert declaration.values["grid71"] == 0.0
    assert declaration.values["grid72"] == pytest.approx(83.33)


@pytest.mark.parametrize("country", ["DE", "", "XX"])
def test_unsupported_country_raises(country):
    with pytest.raises(UnsupportedCountryError) as excinfo:
        generate_vat_declaration(make_breakdown(), 0.0, make_period(), country)

    assert excinfo.value.country == country


def test_registry_lookup():
    assert isinstance(get_declaration_format("fr"), CA3Format)
    assert isinstance(get_declaration_format(" BE "), IntervatFormat)
    assert set(registry.countries()) >= {"FR", "BE"}


def test_registry_rejects_duplicates_and_missing_country():
    local = FormatRegistry()
    local.register(CA3Format)

    with pytest.raises(ValueError):
        local.register(CA3Format)
    with pytest.raises(ValueError):
        local.register(DeclarationFormat)


def test_to_dict_is_json_serializable():
    declaration = generate_vat_declaration(
        make_breakdown(), 1333.33, make_period(), "FR"
    )

    payload = json.loads(json.dumps(declaration.to_dict()))

    assert payload["format"] == "CA3"
    assert payload["period"] == {
        "start": "2025-01-01",
        "end": "2025-03-31",
        "label": "Q1 2025",
    }
    assert payload["lines"]["line28_tva_nette"] == pytest.approx(156.67)
    assert payload["summary"]["is_credit"] is False
