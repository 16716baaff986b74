"""
ledger-import: command-line entry point for CSV imports and strategy files.

Usage:
    ledger-import [--config FILE] [--database-url URL] <command> ...

Commands:
    import <csv> [--strategy NAME]       Import a statement (auto-matches a strategy).
    export-strategy <name> <out>         Write a strategy as portable JSON (or YAML by suffix).
    import-strategy <file> [--create-missing]
                                         Load a strategy file; unresolved names are listed
                                         unless --create-missing creates them.
    list-strategies                      Show saved strategies and their columns.

Exit codes:
    0  success
    1  user error (bad file, unknown strategy, invalid document)
    2  unresolved references, or no strategy matches the file
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import yaml

from ledger_ingestion.adapters.csv_adapter import CsvSourceAdapter
from ledger_ingestion.codec.json_codec import encode_export, export_to_dict, load_export_file
from ledger_ingestion.domain.export import CreateNew
from ledger_ingestion.services.export_service import StrategyExportService
from ledger_ingestion.services.import_service import CsvImportService
from ledger_ingestion.services.strategy_store import StrategyStore
from ledger_kernel.config import LedgerSettings, load_settings
from ledger_kernel.db.engine import create_tables, init_engine_from_url, session_scope
from ledger_kernel.exceptions import LedgerKernelError, UnresolvedReferenceError
from ledger_kernel.logging_config import configure_logging

EXIT_OK = 0
EXIT_USER_ERROR = 1
EXIT_UNRESOLVED = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-import",
        description="Import bank statement CSV files using saved import strategies.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file.")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (overrides the settings file and LEDGER_DATABASE_URL).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Import a CSV file.")
    p_import.add_argument("csv", type=Path, help="Path to the CSV file.")
    p_import.add_argument("--strategy", default=None, help="Strategy name (default: auto-match).")
    p_import.add_argument("--delimiter", default=None, help="Field delimiter (default from settings).")
    p_import.add_argument("--encoding", default=None, help="File encoding (default from settings).")
    p_import.add_argument("--skip-rows", type=int, default=0, help="Lines to skip before the heading row.")

    p_export = sub.add_parser("export-strategy", help="Export a strategy to a file.")
    p_export.add_argument("name", help="Strategy name.")
    p_export.add_argument("out", type=Path, help="Output path (.json, .yaml or .yml).")

    p_load = sub.add_parser("import-strategy", help="Load a strategy from an export file.")
    p_load.add_argument("file", type=Path, help="Export file (.json, .yaml or .yml).")
    p_load.add_argument(
        "--create-missing",
        action="store_true",
        help="Create every unresolved account, category and currency.",
    )

    sub.add_parser("list-strategies", help="List saved strategies.")
    return parser


def _cmd_import(args: argparse.Namespace, settings: LedgerSettings) -> int:
    if not args.csv.is_file():
        print(f"Error: File not found: {args.csv}", file=sys.stderr)
        return EXIT_USER_ERROR
    table = CsvSourceAdapter().read_table(
        args.csv,
        {
            "delimiter": args.delimiter or settings.csv_delimiter,
            "encoding": args.encoding or settings.csv_encoding,
            "skip_rows": args.skip_rows,
        },
    )

    with session_scope() as session:
        service = CsvImportService(session)
        if args.strategy:
            strategy = StrategyStore(session).get_by_name(args.strategy)
            if strategy is None:
                print(f"Error: Strategy not found: {args.strategy}", file=sys.stderr)
                return EXIT_USER_ERROR
        else:
            strategy = service.select_strategy(table.headings)
            if strategy is None:
                print(
                    f"No strategy matches columns: {', '.join(table.headings)}",
                    file=sys.stderr,
                )
                return EXIT_UNRESOLVED

        run = service.run_import(table, strategy)

    print(f"Strategy:  {strategy.name}")
    print(f"Imported:  {len(run.committed_transfer_ids)}")
    print(f"Accounts:  {len(run.created_accounts)} created")
    if run.error_count:
        print(run.preparation.error_summary(limit=10))
    return EXIT_OK


def _cmd_export(args: argparse.Namespace, settings: LedgerSettings) -> int:
    with session_scope() as session:
        strategy = StrategyStore(session).get_by_name(args.name)
        if strategy is None:
            print(f"Error: Strategy not found: {args.name}", file=sys.stderr)
            return EXIT_USER_ERROR
        export = StrategyExportService(session, app_version=settings.app_version).to_export(strategy)

    if args.out.suffix.lower() in (".yaml", ".yml"):
        text = yaml.safe_dump(export_to_dict(export), sort_keys=False, allow_unicode=True)
    else:
        text = encode_export(export) + "\n"
    args.out.write_text(text, encoding="utf-8")
    print(f"Exported {export.name!r} to {args.out}")
    return EXIT_OK


def _cmd_import_strategy(args: argparse.Namespace, settings: LedgerSettings) -> int:
    if not args.file.is_file():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return EXIT_USER_ERROR
    export = load_export_file(args.file)

    with session_scope() as session:
        service = StrategyExportService(session, app_version=settings.app_version)
        parsed = service.parse_export(export)
        if not parsed.is_fully_resolved and not args.create_missing:
            print(f"Unresolved references in {parsed.strategy_name!r}:", file=sys.stderr)
            for ref in parsed.unresolved_references:
                print(f"  {ref.type.value} {ref.name!r} ({ref.field_type.value})", file=sys.stderr)
            print("Re-run with --create-missing to create them.", file=sys.stderr)
            return EXIT_UNRESOLVED
        resolutions = {ref: CreateNew(ref.name) for ref in parsed.unresolved_references}
        strategy = service.import_strategy(export, resolutions)

    print(f"Imported strategy {strategy.name!r} ({strategy.id})")
    return EXIT_OK


def _cmd_list(args: argparse.Namespace, settings: LedgerSettings) -> int:
    with session_scope() as session:
        strategies = StrategyStore(session).list_all()
    if not strategies:
        print("No strategies.")
    for strategy in strategies:
        status = "complete" if strategy.is_complete else "incomplete"
        print(f"{strategy.name} [{status}]: {', '.join(sorted(strategy.identification_columns))}")
    return EXIT_OK


_COMMANDS = {
    "import": _cmd_import,
    "export-strategy": _cmd_export,
    "import-strategy": _cmd_import_strategy,
    "list-strategies": _cmd_list,
}


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: Cannot load settings: {e}", file=sys.stderr)
        return EXIT_USER_ERROR

    configure_logging(level=settings.log_level)
    init_engine_from_url(args.database_url or settings.database_url)
    create_tables()

    try:
        return _COMMANDS[args.command](args, settings)
    except UnresolvedReferenceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_UNRESOLVED
    except (LedgerKernelError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USER_ERROR


if __name__ == "__main__":
    sys.exit(main())
