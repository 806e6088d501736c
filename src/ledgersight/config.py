# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB LedgerSight.

This module is responsible for:
- loading the main application configuration from a TOML file,
- validating each section and raising ConfigError on invalid values,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import DatabaseConfig
from .errors import ConfigError
from .records import TaxBracket
from .tax import DEFAULT_TAX_BRACKETS, TaxBracketTable

DEFAULT_CONFIG_FILE = "ledgersight_config.toml"

RECONCILIATION_STRATEGIES: tuple[str, ...] = ("greedy", "optimal")


@dataclass(frozen=True)
class FiscalYear:
    """Represents a fiscal year with a start and end date."""

    start_date: date
    end_date: date


@dataclass(frozen=True)
class ReconciliationConfig:
    """
    Options of the automatic bank reconciliation.

    Attributes
    ----------
    threshold:
        Minimum confidence (0-1) for a match to be committed.
    strategy:
        "greedy" (transaction by transaction) or "optimal" (global assignment).
    fetch_limit:
        Maximum number of unmatched bank transactions processed per run.
    """

    threshold: float = 0.8
    strategy: str = "greedy"
    fetch_limit: int = 100


@dataclass(frozen=True)
class LoggingConfig:
    """Log level and renderer selection (console or JSON lines)."""

    level: str = "INFO"
    json: bool = False


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB LedgerSight.

    This aggregates:
    - the fiscal year definition,
    - the country and presentation currency,
    - the database configuration (where record sets are stored),
    - the equity account prefix receiving the period result,
    - the VAT rate applied to records missing one,
    - reconciliation options,
    - the fallback corporate tax brackets,
    - logging options.
    """

    fiscal_year: FiscalYear
    country: str
    currency: str
    database: DatabaseConfig
    result_account_prefix: str = "12"
    default_vat_rate: float = 20.0
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    tax_brackets: tuple[TaxBracket, ...] = DEFAULT_TAX_BRACKETS
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ConfigError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a top-level table, or an empty mapping when absent or invalid."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _parse_fiscal_year(config_data: Mapping[str, Any]) -> FiscalYear:
    """
    Extract and validate the fiscal year from raw TOML configuration data.

    Args:
        config_data: Parsed TOML root dictionary.

    Returns:
        A FiscalYear instance.

    Raises:
        ConfigError: if the fiscal year section or dates are missing/invalid.
    """
    fiscal_data = config_data.get("fiscal_year") or {}
    if not isinstance(fiscal_data, Mapping):
        raise ConfigError("Config file is missing [fiscal_year] table.")

    try:
        start_raw = fiscal_data["start_date"]
        end_raw = fiscal_data["end_date"]
    except KeyError as exc:
        raise ConfigError(
            "Config file is missing [fiscal_year].start_date or end_date."
        ) from exc

    try:
        start = date.fromisoformat(str(start_raw))
        end = date.fromisoformat(str(end_raw))
    except Exception as exc:  # noqa: BLE001
        raise ConfigError(
            "Invalid fiscal year dates, expected YYYY-MM-DD format."
        ) from exc

    if end < start:
        raise ConfigError("Fiscal year end_date cannot be before start_date.")

    return FiscalYear(start_date=start, end_date=end)


def _parse_reconciliation(section: Mapping[str, Any]) -> ReconciliationConfig:
    """Parse and validate the [reconciliation] table."""
    try:
        threshold = float(section.get("threshold", 0.8))
        fetch_limit = int(section.get("fetch_limit", 100))
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            "Invalid [reconciliation] values: threshold must be a number and "
            "fetch_limit an integer."
        ) from exc

    if not 0.0 <= threshold <= 1.0:
        raise ConfigError("[reconciliation].threshold must be between 0 and 1.")
    if fetch_limit <= 0:
        raise ConfigError("[reconciliation].fetch_limit must be positive.")

    strategy = str(section.get("strategy", "greedy")).strip().lower()
    if strategy not in RECONCILIATION_STRATEGIES:
        allowed = ", ".join(RECONCILIATION_STRATEGIES)
        raise ConfigError(
            f"Unknown reconciliation strategy {strategy!r}. Expected one of: {allowed}."
        )

    return ReconciliationConfig(
        threshold=threshold, strategy=strategy, fetch_limit=fetch_limit
    )


def _parse_tax_brackets(section: Mapping[str, Any]) -> tuple[TaxBracket, ...]:
    """
    Parse the optional [[tax.brackets]] array of tables.

    Returns the default corporate tax brackets when none are configured.
    """
    raw_brackets = section.get("brackets")
    if not raw_brackets:
        return DEFAULT_TAX_BRACKETS
    if not isinstance(raw_brackets, list):
        raise ConfigError("[tax].brackets must be an array of tables.")

    brackets = []
    for index, item in enumerate(raw_brackets):
        if not isinstance(item, Mapping):
            raise ConfigError(f"[[tax.brackets]] entry #{index} is not a table.")
        try:
            raw_max = item.get("max")
            brackets.append(
                TaxBracket(
                    min=float(item["min"]),
                    max=None if raw_max is None else float(raw_max),
                    rate=float(item["rate"]),
                    label=str(item.get("label", "")),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(
                f"Invalid [[tax.brackets]] entry #{index}: 'min' and 'rate' are "
                "required numbers."
            ) from exc

    try:
        return TaxBracketTable(tuple(brackets)).brackets
    except ValueError as exc:
        raise ConfigError(f"Invalid tax brackets: {exc}") from exc


def _parse_logging(section: Mapping[str, Any]) -> LoggingConfig:
    level = str(section.get("level", "INFO")).upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigError(f"Invalid [logging].level {level!r}.")
    return LoggingConfig(level=level, json=bool(section.get("json", False)))


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB LedgerSight application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [fiscal_year]
        Fiscal year start and end dates (YYYY-MM-DD). Mandatory.

    [database]
        Database engine and SQLite file path.

    [accounting]
        Country (VAT declaration default), presentation currency and the
        code prefix of the equity account receiving the period result.

    [vat]
        VAT rate applied to records stored without one.

    [reconciliation]
        Confidence threshold, matching strategy and fetch limit.

    [[tax.brackets]]
        Optional progressive tax brackets; the French corporate tax
        brackets are used otherwise.

    [logging]
        Log level and renderer.

    Notes
    -----
    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``ledgersight_config.toml`` in the working directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ConfigError
        If a section holds an invalid value.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Fiscal year
    fiscal_year = _parse_fiscal_year(raw)

    # 2) Accounting section
    accounting_section = _section(raw, "accounting")
    country = str(accounting_section.get("country") or "FR").upper()
    currency = str(accounting_section.get("currency") or "EUR")
    result_prefix = str(accounting_section.get("result_account_prefix") or "12")

    # 3) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/ledgersight.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()

    database_config = DatabaseConfig(engine=db_engine, path=db_path)

    # 4) VAT section
    vat_section = _section(raw, "vat")
    try:
        default_vat_rate = float(vat_section.get("default_rate", 20.0))
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            "Invalid value for 'vat.default_rate' in the configuration. "
            "Expected a number."
        ) from exc
    if default_vat_rate < 0:
        raise ConfigError("'vat.default_rate' cannot be negative.")

    return AppConfig(
        fiscal_year=fiscal_year,
        country=country,
        currency=currency,
        database=database_config,
        result_account_prefix=result_prefix,
        default_vat_rate=default_vat_rate,
        reconciliation=_parse_reconciliation(_section(raw, "reconciliation")),
        tax_brackets=_parse_tax_brackets(_section(raw, "tax")),
        logging=_parse_logging(_section(raw, "logging")),
    )
