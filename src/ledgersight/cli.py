# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB LedgerSight.

The CLI is intentionally thin: it does not implement accounting logic
itself. It loads the configuration, configures logging, calls the service
layer and renders the results as console tables.


Commands
--------

- ``import --table T --user U CSV_PATH``
    Read a CSV record set (invoices, expenses, bank_transactions, ...) and
    import it into the database for user U.

- ``statements --user U [period options]``
    Print the balance sheet (with its balance flag), the income statement,
    the VAT breakdown, the monthly breakdown and the tax estimate.

- ``declaration --user U [--country C] [--format table|json] [period options]``
    Print the VAT declaration of country C (FR = CA3, BE = Intervat).
    The country defaults to ``[accounting].country``.

- ``reconcile --user U [--threshold X] [--strategy greedy|optimal]``
    Auto-reconcile unmatched bank transactions with open invoices and print
    the committed matches.

- ``reconcile --user U --suggest TX_ID [--filter TEXT] [--limit N]``
    Print the open invoices that could settle transaction TX_ID, ranked by
    score. Nothing is matched.

- ``bank-summary --user U``
    Print matched vs unmatched statistics over the user's bank transactions.


Period options
--------------

- ``--period {fy,ytd,mtd,last-month,last-fy}``: predefined period
  relative to the configured fiscal year.
- ``--from-date`` / ``--to-date`` (YYYY-MM-DD): custom period; a missing
  bound falls back to the fiscal year bound.
- Neither: the full fiscal year.


Configuration
-------------

By default the configuration is read from ``ledgersight_config.toml`` in
the current working directory. Use ``--config PATH`` to override it.

Errors raised by the engine (invalid period, unsupported country, database
failures, invalid configuration) are printed on stderr and the command
exits with status 1.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import AppConfig, load_app_config
from .db import IMPORT_TABLES
from .errors import LedgerSightError
from .log import configure_logging
from .periods import determine_period_from_args
from .reconciliation import DEFAULT_SUGGESTION_LIMIT
from .service import (
    build_statements,
    generate_vat_declaration,
    import_csv,
    reconcile,
    reconciliation_overview,
    suggest_matches,
)
from .views import (
    balance_sheet_to_dataframe,
    declaration_to_dataframe,
    income_statement_to_dataframe,
    reconciliation_summary_to_dataframe,
    reconciliation_to_dataframe,
    suggestions_to_dataframe,
    tax_estimate_to_dataframe,
    vat_breakdown_to_dataframe,
)


def _print_table(title: str, df: pd.DataFrame) -> None:
    print(f"\n=== {title} ===")
    if df.empty:
        print("(no data)")
        return
    print(df.to_string(index=False))


def _add_period_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--period",
        choices=["fy", "ytd", "mtd", "last-month", "last-fy"],
        help=(
            "Predefined reporting period. "
            "If not provided, the full fiscal year from config is used."
        ),
    )
    parser.add_argument(
        "--from-date",
        dest="from_date",
        help=(
            "Custom period start date (YYYY-MM-DD). If provided without "
            "--to-date, the fiscal year end_date from config is used."
        ),
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help=(
            "Custom period end date (YYYY-MM-DD). If provided without "
            "--from-date, the fiscal year start_date from config is used."
        ),
    )


def _add_user_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--user",
        dest="user_id",
        required=True,
        help="Identifier of the user whose records are processed.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="ledgersight",
        description=(
            "SMB LedgerSight - Ledger aggregation & reconciliation engine for "
            "SMBs. Builds balance sheets, income statements, VAT declarations "
            "and tax estimates from stored records, and reconciles bank "
            "transactions with open invoices."
        ),
    )
    ap.add_argument(
        "--version",
        action="version",
        version=f"ledgersight {__version__}",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. "
            "If omitted, 'ledgersight_config.toml' in the current directory is used."
        ),
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command", required=True)

    # import
    import_parser = subparsers.add_parser(
        "import", help="Import a CSV record set into the database."
    )
    import_parser.add_argument(
        "--table",
        required=True,
        choices=sorted(IMPORT_TABLES),
        help="Target table of the import.",
    )
    _add_user_option(import_parser)
    import_parser.add_argument("csv_path", metavar="CSV_PATH", help="CSV file.")

    # statements
    statements_parser = subparsers.add_parser(
        "statements",
        help="Print balance sheet, income statement, VAT and tax estimate.",
    )
    _add_user_option(statements_parser)
    _add_period_options(statements_parser)

    # declaration
    declaration_parser = subparsers.add_parser(
        "declaration", help="Print the VAT declaration for a country."
    )
    _add_user_option(declaration_parser)
    declaration_parser.add_argument(
        "--country",
        help="ISO country code (FR, BE). Defaults to [accounting].country.",
    )
    declaration_parser.add_argument(
        "--format",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="Console table (default) or JSON document.",
    )
    _add_period_options(declaration_parser)

    # reconcile
    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Auto-reconcile bank transactions with open invoices."
    )
    _add_user_option(reconcile_parser)
    reconcile_parser.add_argument(
        "--threshold",
        type=float,
        help="Minimum confidence (0-1). Defaults to [reconciliation].threshold.",
    )
    reconcile_parser.add_argument(
        "--strategy",
        choices=["greedy", "optimal"],
        help="Matching strategy. Defaults to [reconciliation].strategy.",
    )
    reconcile_parser.add_argument(
        "--suggest",
        type=int,
        metavar="TX_ID",
        help=(
            "List candidate invoices for one bank transaction, best first, "
            "without matching anything."
        ),
    )
    reconcile_parser.add_argument(
        "--filter",
        dest="text_filter",
        default="",
        help="With --suggest: keep invoices whose number or client contains TEXT.",
    )
    reconcile_parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_SUGGESTION_LIMIT,
        help="With --suggest: maximum number of candidates (default: 20).",
    )

    # bank-summary
    summary_parser = subparsers.add_parser(
        "bank-summary", help="Print reconciliation statistics."
    )
    _add_user_option(summary_parser)

    return ap


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _handle_import(args: argparse.Namespace, config: AppConfig) -> None:
    csv_path = Path(args.csv_path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    print(f"Importing {args.table} from {csv_path} into the database...")
    stats = import_csv(config, csv_path, table=args.table, user_id=args.user_id)
    print(f"Imported batch #{stats.batch_id}: {stats.rows_inserted} rows.")


def _handle_statements(args: argparse.Namespace, config: AppConfig) -> None:
    period = determine_period_from_args(args, config.fiscal_year)
    result = asyncio.run(build_statements(config, args.user_id, period))

    print(f"Period: {period.label} ({period.start} → {period.end})")

    sheet = result.balance_sheet
    _print_table("Balance sheet", balance_sheet_to_dataframe(sheet))
    status = "balanced" if sheet.balanced else "NOT balanced"
    print(
        f"Assets {sheet.total_assets:.2f} / "
        f"Liabilities + equity {sheet.total_passif:.2f}: {status}"
    )

    _print_table(
        "Income statement", income_statement_to_dataframe(result.income_statement)
    )
    _print_table("VAT breakdown", vat_breakdown_to_dataframe(result.vat_breakdown))
    _print_table("Monthly breakdown", result.monthly)

    estimate = result.tax_estimate
    _print_table("Tax estimate", tax_estimate_to_dataframe(estimate))
    print(
        f"Total tax {estimate.total_tax:.2f} "
        f"(effective rate {estimate.effective_rate:.1%}, "
        f"quarterly payment {estimate.quarterly_payment:.2f})"
    )


def _handle_declaration(args: argparse.Namespace, config: AppConfig) -> None:
    period = determine_period_from_args(args, config.fiscal_year)
    declaration = asyncio.run(
        generate_vat_declaration(config, args.user_id, period, args.country)
    )

    if args.output_format == "json":
        print(json.dumps(declaration.to_dict(), indent=2, ensure_ascii=False))
        return

    print(f"{declaration.format} ({declaration.country}) - {period.label}")
    _print_table("Declaration", declaration_to_dataframe(declaration))
    kind = "credit" if declaration.is_credit else "due"
    print(f"Net VAT {declaration.net:.2f} ({kind})")


def _handle_reconcile(args: argparse.Namespace, config: AppConfig) -> None:
    if args.suggest is not None:
        _handle_suggest(args, config)
        return

    result = asyncio.run(
        reconcile(
            config,
            args.user_id,
            threshold=args.threshold,
            strategy=args.strategy,
        )
    )
    _print_table("Matched transactions", reconciliation_to_dataframe(result))
    print(f"Matched: {result.matched}, failed commits: {len(result.failed)}")


def _handle_suggest(args: argparse.Namespace, config: AppConfig) -> None:
    suggestions = asyncio.run(
        suggest_matches(
            config,
            args.user_id,
            args.suggest,
            limit=args.limit,
            text_filter=args.text_filter,
        )
    )
    _print_table(
        f"Candidates for transaction {args.suggest}",
        suggestions_to_dataframe(suggestions),
    )


def _handle_bank_summary(args: argparse.Namespace, config: AppConfig) -> None:
    summary = asyncio.run(reconciliation_overview(config, args.user_id))
    _print_table("Bank reconciliation", reconciliation_summary_to_dataframe(summary))


HANDLERS = {
    "import": _handle_import,
    "statements": _handle_statements,
    "declaration": _handle_declaration,
    "reconcile": _handle_reconcile,
    "bank-summary": _handle_bank_summary,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the SMB LedgerSight CLI.

    Parses command-line arguments, loads the configuration, configures
    logging and dispatches to the selected command.

    Returns:
        Process exit status (0 on success, 1 on error).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_app_config(args.config_path)
        configure_logging(config.logging.level, config.logging.json)
        HANDLERS[args.command](args, config)
    except (LedgerSightError, FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
