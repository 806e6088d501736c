# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Exception types raised by SMB LedgerSight.

All errors share the ``LedgerSightError`` base class so that callers (CLI,
API layers) can catch everything coming from the engine in one place. Errors
that describe bad input also derive from ``ValueError``, which keeps them
compatible with code that already handles the built-in type.
"""


class LedgerSightError(Exception):
    """Base class for every error raised by the engine."""


class ConfigError(LedgerSightError, ValueError):
    """The TOML configuration is missing a required value or holds an invalid one."""


class InvalidPeriodError(LedgerSightError, ValueError):
    """A reporting period is missing a bound, is malformed, or ends before it starts."""


class DataFetchError(LedgerSightError):
    """Reading record sets from the store failed.

    The statement and declaration pipelines never return partial results: any
    failed read aborts the whole call with this error.
    """


class UnsupportedCountryError(LedgerSightError, ValueError):
    """No VAT declaration format is registered for the requested country."""

    def __init__(self, country: str):
        self.country = country
        super().__init__(f"Country {country!r} is not supported for VAT declaration.")
