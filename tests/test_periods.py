from argparse import Namespace
from datetime import date

import pytest

import ledgersight.periods as periods
from ledgersight.config import FiscalYear
from ledgersight.errors import InvalidPeriodError, LedgerSightError

FY_2025 = FiscalYear(start_date=date(2025, 1, 1), end_date=date(2025, 12, 31))


def test_period_contains_is_inclusive() -> None:
    p = periods.Period(start=date(2025, 2, 1), end=date(2025, 4, 1), label="Test")

    assert p.contains(date(2025, 2, 1))
    assert p.contains(date(2025, 4, 1))
    assert not p.contains(date(2025, 1, 31))
    assert not p.contains(date(2025, 4, 2))


def test_make_period_accepts_iso_strings_and_dates() -> None:
    p = periods.make_period("2025-03-01", date(2025, 3, 31), label="March")

    assert p.start == date(2025, 3, 1)
    assert p.end == date(2025, 3, 31)
    assert p.label == "March"


def test_make_period_single_day_is_valid() -> None:
    p = periods.make_period("2025-03-01", "2025-03-01")
    assert p.start == p.end


def test_make_period_rejects_end_before_start() -> None:
    with pytest.raises(InvalidPeriodError):
        periods.make_period("2025-03-31", "2025-03-01")


@pytest.mark.parametrize("start", [None, "", "2025-13-01", "01/03/2025"])
def test_make_period_rejects_missing_or_malformed_start(start) -> None:
    with pytest.raises(InvalidPeriodError):
        periods.make_period(start, "2025-03-31")


def test_invalid_period_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        periods.make_period("2025-03-31", "2025-03-01")
    assert issubclass(InvalidPeriodError, LedgerSightError)


def test_validate_period_rejects_none_and_reversed_bounds() -> None:
    with pytest.raises(InvalidPeriodError):
        periods.validate_period(None)

    reversed_period = periods.Period(start=date(2025, 5, 1), end=date(2025, 4, 1))
    with pytest.raises(InvalidPeriodError):
        periods.validate_period(reversed_period)


def test_period_fy_covers_fiscal_year() -> None:
    p = periods.period_fy(FY_2025)
    assert (p.start, p.end) == (FY_2025.start_date, FY_2025.end_date)


def test_period_ytd_and_mtd_use_today(monkeypatch) -> None:
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 6, 15))

    ytd = periods.period_ytd(FY_2025)
    assert (ytd.start, ytd.end) == (date(2025, 1, 1), date(2025, 6, 15))

    mtd = periods.period_mtd(FY_2025)
    assert (mtd.start, mtd.end) == (date(2025, 6, 1), date(2025, 6, 15))


def test_period_mtd_outside_fiscal_year_falls_back_to_fy(monkeypatch) -> None:
    monkeypatch.setattr(periods, "_today", lambda: date(2026, 2, 10))

    p = periods.period_mtd(FY_2025)
    assert (p.start, p.end) == (FY_2025.start_date, FY_2025.end_date)


def test_period_last_month_in_january(monkeypatch) -> None:
    fy = FiscalYear(start_date=date(2024, 7, 1), end_date=date(2025, 6, 30))
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 1, 20))

    p = periods.period_last_month(fy)
    assert (p.start, p.end) == (date(2024, 12, 1), date(2024, 12, 31))


def test_period_last_fy_handles_leap_day() -> None:
    fy = FiscalYear(start_date=date(2023, 3, 1), end_date=date(2024, 2, 29))

    p = periods.period_last_fy(fy)
    assert (p.start, p.end) == (date(2022, 3, 1), date(2023, 2, 28))


def test_determine_period_from_args_priority() -> None:
    args = Namespace(period="fy", from_date="2025-02-01", to_date=None)
    p = periods.determine_period_from_args(args, FY_2025)
    assert (p.start, p.end) == (FY_2025.start_date, FY_2025.end_date)

    args = Namespace(period=None, from_date="2025-02-01", to_date=None)
    p = periods.determine_period_from_args(args, FY_2025)
    assert (p.start, p.end) == (date(2025, 2, 1), FY_2025.end_date)

    args = Namespace(period=None, from_date=None, to_date=None)
    p = periods.determine_period_from_args(args, FY_2025)
    assert p.label == "Fiscal year 2025"


def test_determine_period_from_args_rejects_bad_custom_dates() -> None:
    args = Namespace(period=None, from_date="2025-05-01", to_date="2025-04-01")
    with pytest.raises(InvalidPeriodError):
        periods.determine_period_from_args(args, FY_2025)
