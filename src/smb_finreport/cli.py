# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB FinReport.

The CLI is intentionally thin: it does not implement any financial logic
itself. It loads the configuration, opens the SQLite store and calls the
high-level services.

Subcommands
-----------

    init
        Create the database file and schema.

    import KIND CSV_PATH
        Load source records of one kind (clients, invoices, subscriptions,
        inventory, revenues, expenses, employees) from a CSV file.

    statement [--period KEY | --month YYYY-MM] [--from-date] [--to-date]
              [--as-of] [--json]
        Compute and print the Statement of a period (current month by
        default), with the monthly recurring revenue as of the reference
        date.

    archive [--as-of]
        List the months that can be exported as historical reports.

    trend [--months N] [--as-of]
        Print monthly revenue, expenses and net result for the last months.

    export (--month YYYY-MM | --period KEY) [--format pdf|csv]
           [--output-dir DIR] [--as-of]
        Write a report document for a period.

By default, the configuration is read from ``smb_finreport_config.toml`` in
the current working directory; use ``--config PATH`` to override it.
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import AppConfig, load_app_config
from .db import SQLiteStore, init_database
from .export import export_report
from .formatting import format_money
from .io import RECORD_KINDS, import_records
from .multi_periods import revenue_trend
from .periods import PERIOD_KEYS, Period, period_for_month, resolve_period
from .proration import monthly_recurring_revenue
from .service import (
    FinancialDataUnavailable,
    compute_report,
    fetch_snapshot,
    list_archive_periods,
    statement_from_snapshot,
)

LOGGER = logging.getLogger(__name__)

SUMMARY_LABELS: tuple[tuple[str, str], ...] = (
    ("paid_invoice_revenue", "Paid invoices"),
    ("subscription_revenue", "Subscriptions"),
    ("product_sale_revenue", "Product sales"),
    ("misc_revenue", "Miscellaneous revenue"),
    ("total_revenue", "Total revenue"),
    ("cogs", "Cost of goods sold"),
    ("payroll", "Payroll"),
    ("other_expenses", "Other expenses"),
    ("total_expenses", "Total expenses"),
    ("net_result", "Net result"),
    ("unpaid_amount", "Unpaid invoices"),
)


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--period",
        help=(
            "Named period: one of "
            f"{', '.join(PERIOD_KEYS)}, or a YYYY-MM month. "
            "Defaults to the current month."
        ),
    )
    parser.add_argument(
        "--month",
        help="Explicit calendar month (YYYY-MM). Shortcut for --period YYYY-MM.",
    )
    parser.add_argument(
        "--from-date",
        dest="from_date",
        help="Custom period start date (YYYY-MM-DD), used with --period custom.",
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help="Custom period end date (YYYY-MM-DD), used with --period custom.",
    )


def _add_as_of_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--as-of",
        dest="as_of",
        help="Reference date (YYYY-MM-DD) used as 'today'. Defaults to today.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="smb-finreport",
        description=(
            "SMB FinReport - Financial Aggregation & Reporting Engine for SMBs. "
            "Aggregates invoices, subscriptions, inventory sales, revenues, "
            "payroll and expenses into period statements and exports them as "
            "reports."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_finreport and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. "
            "If omitted, 'smb_finreport_config.toml' in the current directory is used."
        ),
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    subparsers.add_parser("init", help="Create the database and its schema.")

    import_parser = subparsers.add_parser(
        "import",
        help="Import source records of one kind from a CSV file.",
    )
    import_parser.add_argument("kind", choices=RECORD_KINDS)
    import_parser.add_argument("csv_path", metavar="CSV_PATH")

    statement_parser = subparsers.add_parser(
        "statement",
        help="Compute and print the statement of a period.",
    )
    _add_period_arguments(statement_parser)
    _add_as_of_argument(statement_parser)
    statement_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the statement as JSON instead of a table.",
    )

    archive_parser = subparsers.add_parser(
        "archive",
        help="List the months available as historical reports.",
    )
    _add_as_of_argument(archive_parser)

    trend_parser = subparsers.add_parser(
        "trend",
        help="Print monthly revenue, expenses and net result.",
    )
    trend_parser.add_argument(
        "--months",
        type=int,
        default=6,
        help="Number of months to show, current month included (default: 6).",
    )
    _add_as_of_argument(trend_parser)

    export_parser = subparsers.add_parser(
        "export",
        help="Export the report of a period as a PDF or CSV document.",
    )
    _add_period_arguments(export_parser)
    _add_as_of_argument(export_parser)
    export_parser.add_argument(
        "--format",
        dest="fmt",
        choices=["pdf", "csv"],
        help="Document format. Defaults to [export].format from the configuration.",
    )
    export_parser.add_argument(
        "--output-dir",
        dest="output_dir",
        help=(
            "Directory where the document is written. "
            "Defaults to [export].output_dir."
        ),
    )

    return ap


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an optional CLI date argument (YYYY-MM-DD).

    Raises
    ------
    SystemExit
        If the date format is invalid.
    """
    if value is None:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date format: {value!r}. Expected YYYY-MM-DD."
        raise SystemExit(msg) from exc


def _as_of(args: argparse.Namespace) -> date:
    return _parse_optional_date(getattr(args, "as_of", None)) or date.today()


def determine_period_from_args(args: argparse.Namespace, as_of: date) -> Period:
    """
    Build the reporting Period from CLI arguments.

    Priority: --month, then --period, then --from-date/--to-date (custom
    period), then the current month.
    """
    if args.month and args.period:
        raise SystemExit("Use either --month or --period, not both.")

    if args.month:
        try:
            return period_for_month(args.month)
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc

    if args.period:
        key = args.period
    elif args.from_date or args.to_date:
        key = "custom"
    else:
        key = "thisMonth"

    return resolve_period(
        key,
        as_of=as_of,
        custom_start=_parse_optional_date(args.from_date),
        custom_end=_parse_optional_date(args.to_date),
    )


def _print_statement(args: argparse.Namespace, config: AppConfig) -> None:
    as_of = _as_of(args)
    period = determine_period_from_args(args, as_of)
    store = SQLiteStore(config.database)
    owner_id = config.account.owner_id
    currency = config.account.currency

    # MRR comes from the same snapshot as the statement.
    snapshot = fetch_snapshot(store, owner_id, period, max_workers=config.max_workers)
    statement = statement_from_snapshot(snapshot)
    mrr = monthly_recurring_revenue(snapshot.subscriptions, as_of)

    if args.json:
        payload = statement.to_dict()
        payload["monthly_recurring_revenue"] = round(mrr, 2)
        payload["currency"] = currency.value
        print(json.dumps(payload, indent=2))
        return

    print(
        f"Applied period: {period.label} "
        f"({period.start.isoformat()} → {period.end.isoformat()})"
    )
    rows = [
        {"Measure": label, "Amount": format_money(getattr(statement, key), currency)}
        for key, label in SUMMARY_LABELS
    ]
    rows.append({"Measure": "New clients", "Amount": str(statement.new_clients_count)})
    rows.append(
        {"Measure": "Monthly recurring revenue", "Amount": format_money(mrr, currency)}
    )
    print()
    print(pd.DataFrame(rows).to_string(index=False))


def _print_archive(args: argparse.Namespace, config: AppConfig) -> None:
    store = SQLiteStore(config.database)
    months = list_archive_periods(store, config.account.owner_id, _as_of(args))
    if not months:
        print("No financial activity recorded yet.")
        return
    for month in months:
        print(month)


def _print_trend(args: argparse.Namespace, config: AppConfig) -> None:
    store = SQLiteStore(config.database)
    currency = config.account.currency
    try:
        df = revenue_trend(
            store,
            config.account.owner_id,
            _as_of(args),
            months=args.months,
            max_workers=config.max_workers,
        )
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    for col in ("total_revenue", "total_expenses", "net_result"):
        df[col] = df[col].map(lambda v: format_money(v, currency))
    print(df.to_string(index=False))


def _write_export(args: argparse.Namespace, config: AppConfig) -> None:
    if not args.month and not args.period:
        raise SystemExit("export requires --month YYYY-MM or --period KEY.")

    period = determine_period_from_args(args, _as_of(args))
    store = SQLiteStore(config.database)
    report = compute_report(
        store, config.account.owner_id, period, max_workers=config.max_workers
    )

    fmt = args.fmt or config.export.format
    document = export_report(
        report.statement,
        report.line_items,
        period,
        config.account.branding,
        fmt=fmt,
        logo_timeout=config.export.logo_timeout,
    )

    output_dir = Path(args.output_dir) if args.output_dir else config.export.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / document.filename
    output_path.write_bytes(document.content)
    print(f"Report written to {output_path}")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB FinReport CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_finreport version {__version__}")
        return

    if args.command is None:
        parser.print_help()
        return

    config = load_app_config(args.config_path)
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    init_database(config.database)

    if args.command == "init":
        print(f"Database ready at {config.database.path}")
        return

    if args.command == "import":
        csv_path = Path(args.csv_path)
        if not csv_path.is_file():
            parser.error(f"CSV file not found: {csv_path}")
        try:
            count = import_records(
                config.database, config.account.owner_id, args.kind, csv_path
            )
        except ValueError as exc:
            raise SystemExit(f"Import failed: {exc}") from exc
        print(f"Imported {count} {args.kind} record(s) from {csv_path}.")
        return

    handlers = {
        "statement": _print_statement,
        "archive": _print_archive,
        "trend": _print_trend,
        "export": _write_export,
    }
    try:
        handlers[args.command](args, config)
    except FinancialDataUnavailable as exc:
        LOGGER.debug("Command %s failed.", args.command, exc_info=exc)
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
