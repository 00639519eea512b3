"""Bulk import command line tool for Busana.

Commands:
    run       Import a spreadsheet
    check     Check a spreadsheet for duplicate imports without importing it
    history   List recent imports
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from busana.config import BusanaConfig, load_settings
from busana.database import close_db, init_db
from busana.models import ImportHistoryEntry, ImportType
from busana.services.import_service import (
    ImportServiceError,
    precheck_file,
    run_import,
)

logger = logging.getLogger(__name__)


def read_file(path: str) -> bytes:
    """Read an input file, exiting with an error message if it is missing."""
    file_path = Path(path)
    if not file_path.is_file():
        print(f"Error: File '{path}' not found.")
        sys.exit(1)
    return file_path.read_bytes()


async def import_file(
    import_type: ImportType,
    path: str,
    config: BusanaConfig | None = None,
    skip_db_init: bool = False,
) -> None:
    """Import a spreadsheet and print the result."""
    config = config or load_settings()
    content = read_file(path)

    if not skip_db_init:
        await init_db(config.database)
    try:
        result = await run_import(content, Path(path).name, import_type, config.imports)
    except ImportServiceError as e:
        print(f"Error: {e.message}")
        sys.exit(1)
    finally:
        if not skip_db_init:
            await close_db()

    print(f"Batch:     {result.batch.id} ({result.batch.status.value})")
    print(f"Rows:      {result.total_rows} total, {result.valid_rows} valid, {result.invalid_rows} invalid")
    print(f"Imported:  {result.imported} new, {result.updated} updated")
    print(f"Success:   {result.success_rate:.2f}%")
    if result.products_adjusted is not None:
        print(f"Products:  {result.products_adjusted} stock levels adjusted")
    for warning in result.duplicate_report.warnings:
        print(f"Warning:   {warning}")

    if result.errors:
        print()
        print(f"{'Row':<6} {'Field':<20} {'Message'}")
        print("-" * 70)
        for error in result.errors[: config.imports.error_detail_limit]:
            print(f"{error.row:<6} {error.field:<20} {error.message}")


async def check_file(
    import_type: ImportType,
    path: str,
    config: BusanaConfig | None = None,
    skip_db_init: bool = False,
) -> bool:
    """Print the duplicate check for a spreadsheet. Returns True when it looks like a duplicate."""
    config = config or load_settings()
    content = read_file(path)

    if not skip_db_init:
        await init_db(config.database)
    try:
        precheck = await precheck_file(content, Path(path).name, import_type, config.imports)
    except ImportServiceError as e:
        print(f"Error: {e.message}")
        sys.exit(1)
    finally:
        if not skip_db_init:
            await close_db()

    report = precheck.report
    print(f"Rows:      {precheck.total_rows} total, {precheck.valid_rows} valid")
    print(f"Hash:      {report.file_hash or 'unavailable'}")
    if report.date_range:
        print(f"Dates:     {report.date_range.start} to {report.date_range.end}")
    print(f"Risk:      {report.risk_level.value}")
    print(f"Duplicate: {'yes' if report.is_duplicate else 'no'}")
    for finding in report.findings:
        print(f"  - {finding.kind}: {finding.file_name} ({finding.imported_at:%Y-%m-%d %H:%M})")
    for warning in report.warnings:
        print(f"Warning:   {warning}")
    for recommendation in report.recommendations:
        print(f"Advice:    {recommendation}")

    return report.is_duplicate


async def list_history(
    import_type: ImportType | None = None,
    limit: int = 20,
    config: BusanaConfig | None = None,
    skip_db_init: bool = False,
) -> None:
    """List recent imports, newest first."""
    if not skip_db_init:
        await init_db((config or load_settings()).database)
    try:
        query = (
            ImportHistoryEntry.find(ImportHistoryEntry.import_type == import_type)
            if import_type
            else ImportHistoryEntry.find_all()
        )
        entries = await query.sort(-ImportHistoryEntry.created_at).limit(limit).to_list()
    finally:
        if not skip_db_init:
            await close_db()

    if not entries:
        print("No imports found.")
        return

    print(f"{'Date':<17} {'Type':<26} {'File':<30} {'Rows':>6} {'Stored':>6} {'Rate':>7} {'Status':<10}")
    print("-" * 106)
    for entry in entries:
        print(
            f"{entry.created_at:%Y-%m-%d %H:%M} {entry.import_type.value:<26} {entry.file_name[:30]:<30} "
            f"{entry.total_records:>6} {entry.imported_records:>6} {entry.success_rate:>6.1f}% "
            f"{entry.import_status.value:<10}"
        )


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Bulk spreadsheet imports for Busana",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    type_choices = [t.value for t in ImportType]

    run_parser = subparsers.add_parser("run", help="Import a spreadsheet")
    run_parser.add_argument("import_type", choices=type_choices, help="Kind of data in the file")
    run_parser.add_argument("file", help="CSV, XLSX or XLS file")

    check_parser = subparsers.add_parser("check", help="Check a spreadsheet for duplicate imports")
    check_parser.add_argument("import_type", choices=type_choices, help="Kind of data in the file")
    check_parser.add_argument("file", help="CSV, XLSX or XLS file")

    history_parser = subparsers.add_parser("history", help="List recent imports")
    history_parser.add_argument("--type", "-t", dest="import_type", choices=type_choices, help="Only this import type")
    history_parser.add_argument("--limit", "-n", type=int, default=20, help="Number of imports to show (default: 20)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    config = load_settings()
    logging.basicConfig(level=config.storage.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "run":
        asyncio.run(import_file(ImportType(args.import_type), args.file, config))
    elif args.command == "check":
        is_duplicate = asyncio.run(check_file(ImportType(args.import_type), args.file, config))
        return 2 if is_duplicate else 0
    elif args.command == "history":
        import_type = ImportType(args.import_type) if args.import_type else None
        asyncio.run(list_history(import_type, args.limit, config))

    return 0


if __name__ == "__main__":
    sys.exit(main())
