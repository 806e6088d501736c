# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB LedgerSight.

This module defines a Period value object, its validation, and helpers to
derive reporting periods (fiscal year, YTD, MTD, last month, last fiscal
year) from the current fiscal year and CLI arguments.

Every aggregation in the engine is period-scoped with inclusive bounds. An
invalid period is rejected here, before any record is fetched.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from .config import FiscalYear
from .errors import InvalidPeriodError

DateLike = Union[date, str, None]


@dataclass(frozen=True)
class Period:
    """Represents a reporting period with a human-readable label."""

    start: date
    end: date
    label: str = ""

    def contains(self, day: date) -> bool:
        """Return True if ``day`` falls within [start, end] (inclusive)."""
        return self.start <= day <= self.end


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def _parse_bound(value: DateLike, name: str) -> date:
    """Parse one period bound, raising InvalidPeriodError on bad input."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidPeriodError(f"Period {name} date is missing.")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidPeriodError(
                f"Invalid period {name} date {value!r}, expected YYYY-MM-DD."
            ) from exc
    raise InvalidPeriodError(
        f"Invalid period {name} date of type {type(value).__name__}."
    )


def make_period(start: DateLike, end: DateLike, label: Optional[str] = None) -> Period:
    """
    Build a validated Period from dates or ISO strings.

    Raises
    ------
    InvalidPeriodError
        If a bound is missing or malformed, or if end is before start.
    """
    start_date = _parse_bound(start, "start")
    end_date = _parse_bound(end, "end")
    if end_date < start_date:
        raise InvalidPeriodError("Period end date cannot be before start date.")
    if label is None:
        label = f"Custom period ({start_date} → {end_date})"
    return Period(start=start_date, end=end_date, label=label)


def validate_period(period: Optional[Period]) -> Period:
    """Return ``period`` unchanged if it is well formed, raise otherwise."""
    if period is None:
        raise InvalidPeriodError("A reporting period is required.")
    return make_period(period.start, period.end, period.label)


def period_fy(fy: FiscalYear) -> Period:
    """Full current fiscal year."""
    return Period(
        start=fy.start_date,
        end=fy.end_date,
        label=f"Fiscal year {fy.start_date.year}",
    )


def period_ytd(fy: FiscalYear) -> Period:
    """Year-to-date within the fiscal year."""
    today = _today()
    start = fy.start_date
    end = min(max(today, fy.start_date), fy.end_date)
    return Period(start=start, end=end, label="Year to date")


def period_mtd(fy: FiscalYear) -> Period:
    """Month-to-date within the fiscal year."""
    today = _today()

    # Outside the fiscal year: fall back to the full fiscal year.
    if today < fy.start_date or today > fy.end_date:
        return period_fy(fy)

    start = today.replace(day=1)
    return Period(start=start, end=today, label="Month to date")


def period_last_month(fy: FiscalYear) -> Period:
    """Full previous calendar month, clamped to the fiscal year if needed."""
    today = _today()

    if today.month == 1:
        year = today.year - 1
        month = 12
    else:
        year = today.year
        month = today.month - 1

    start = date(year, month, 1)
    end = date(year, month, monthrange(year, month)[1])

    if end < fy.start_date or start > fy.end_date:
        return period_fy(fy)

    return Period(
        start=max(start, fy.start_date),
        end=min(end, fy.end_date),
        label="Last month",
    )


def period_last_fy(fy: FiscalYear) -> Period:
    """Previous fiscal year, shifted back one year from the current one."""
    start = fy.start_date.replace(year=fy.start_date.year - 1)
    # 29 February has no counterpart in the previous year.
    try:
        end = fy.end_date.replace(year=fy.end_date.year - 1)
    except ValueError:
        end = date(fy.end_date.year - 1, 2, 28)
    return Period(
        start=start,
        end=end,
        label=f"Previous fiscal year ({start.year})",
    )


def determine_period_from_args(args, fy: FiscalYear) -> Period:
    """
    Determine the reporting period to use based on CLI args and the fiscal year.

    Priority (highest to lowest):

        1. args.period (fy, ytd, mtd, last-month, last-fy)
        2. args.from_date / args.to_date (custom period)
        3. fiscal year by default
    """
    if getattr(args, "period", None):
        p = args.period
        if p == "fy":
            return period_fy(fy)
        if p == "ytd":
            return period_ytd(fy)
        if p == "mtd":
            return period_mtd(fy)
        if p == "last-month":
            return period_last_month(fy)
        if p == "last-fy":
            return period_last_fy(fy)
        raise InvalidPeriodError(f"Unknown period: {p!r}")

    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        return make_period(from_raw or fy.start_date, to_raw or fy.end_date)

    return period_fy(fy)
