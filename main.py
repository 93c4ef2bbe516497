#!/usr/bin/env python3
"""
Invoice Consistency Engine - Main Entry Point.

This is the main entry point for the invoice consistency engine. It
loads a snapshot of invoice records, validates it, summarizes one year
and reports duplicate invoice ids, optionally deleting the duplicates
from the store of record.

Usage:
    Command Line:
        python main.py --input invoices.json --year 2025 --output report.json
        python main.py --input outputs/invoices.db --period 2025-01 --resolve-duplicates

    Python:
        from main import run_consistency_check
        report = run_consistency_check("invoices.json", year=2025)

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager
from src.consistency import ConsistencyEngine
from src.models import InvoiceRecord
from src.storage import InvoiceStore, apply_resolutions, load_records
from src.utils.exceptions import ConsistencyEngineError, UnsupportedFileTypeError
from src.utils.helpers import ensure_directory, generate_timestamp, to_plain
from src.utils.logger import ROOT_LOGGER_NAME, get_logger, setup_logger_from_config

DATABASE_EXTENSIONS = ['.db', '.sqlite', '.sqlite3']
FILE_EXTENSIONS = ['.json', '.csv']


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list; defaults to sys.argv.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Invoice Consistency Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Check an exported snapshot:
        python main.py --input invoices.json --year 2025

    Write the report to a file:
        python main.py --input invoices.csv --output outputs/report.json

    Delete duplicates of one month from the database:
        python main.py --input outputs/invoices.db --period 2025-01 --resolve-duplicates
        """
    )

    # Input/Output arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Snapshot file (.json, .csv) or SQLite database (.db)"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Write the JSON report to this file"
    )

    # Scope options
    parser.add_argument(
        "--year", "-y",
        type=int,
        default=None,
        help="Year to summarize (default: most recent year in the snapshot)"
    )

    parser.add_argument(
        "--period", "-p",
        type=str,
        default=None,
        help="Restrict duplicate detection to one YYYY-MM period"
    )

    parser.add_argument(
        "--resolve-duplicates",
        action="store_true",
        help="Delete duplicate records, keeping the most recent of each group"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    # Logging options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize the engine with configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    # Load configuration
    config = ConfigurationManager(args.config)

    # Setup logging
    logger = setup_logger_from_config()

    if args.debug:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = None

    if level is not None:
        app_logger = logging.getLogger(ROOT_LOGGER_NAME)
        app_logger.setLevel(level)
        for handler in app_logger.handlers:
            handler.setLevel(level)

    logger.info("=" * 60)
    logger.info("INVOICE CONSISTENCY ENGINE")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Input: {args.input}")

    return config


def load_snapshot(
    input_path: str
) -> Tuple[Callable[[], List[InvoiceRecord]], Callable[[InvoiceRecord], bool]]:
    """
    Build the fetch and delete interfaces for an input.

    Databases fetch from and delete in the store. File snapshots are read
    once and deletions only drop records from the in-memory list; the
    file itself is never rewritten.

    Args:
        input_path: Snapshot file or database path.

    Returns:
        Tuple of (fetch function, delete function).

    Raises:
        FileNotFoundError: If input path doesn't exist.
        UnsupportedFileTypeError: If the extension is not recognized.
    """
    path = Path(input_path)
    if not path.is_file():
        raise FileNotFoundError(f"Input path not found: {path}")

    suffix = path.suffix.lower()
    if suffix in DATABASE_EXTENSIONS:
        store = InvoiceStore(str(path))
        return store.get_all, store.delete

    if suffix not in FILE_EXTENSIONS:
        raise UnsupportedFileTypeError(suffix, FILE_EXTENSIONS + DATABASE_EXTENSIONS)

    records = load_records(path)

    def fetch() -> List[InvoiceRecord]:
        return list(records)

    def delete(record: InvoiceRecord) -> bool:
        for position, candidate in enumerate(records):
            if candidate is record:
                del records[position]
                return True
        return False

    return fetch, delete


def run_consistency_check(
    input_path: str,
    year: Optional[int] = None,
    period: Optional[str] = None,
    resolve_duplicates: bool = False,
    output_path: Optional[str] = None,
    config_path: Optional[str] = None,
    today: Optional[date] = None
) -> Dict[str, Any]:
    """
    Run the consistency check over one snapshot.

    This is the main programmatic entry point. It validates every
    record, summarizes one year, lists duplicate groups and, when asked,
    deletes the duplicate losers and re-runs detection on the reloaded
    snapshot.

    Args:
        input_path: Snapshot file or database path.
        year: Year to summarize; defaults to the most recent one.
        period: Optional YYYY-MM scope for duplicate handling. When
            absent every month of the summarized year is checked.
        resolve_duplicates: Whether to delete duplicate losers.
        output_path: Optional path of a JSON report file.
        config_path: Optional custom configuration file path.
        today: Reference date for date-relative rules.

    Returns:
        Report dictionary of JSON-friendly values.

    Example:
        >>> report = run_consistency_check("invoices.json", year=2025)
        >>> report['summary']['flagged_count']
        3
    """
    logger = get_logger(__name__)

    # Initialize configuration
    ConfigurationManager(config_path)

    fetch, delete = load_snapshot(input_path)
    engine = ConsistencyEngine(fetch(), today=today)

    issue_map = engine.validate_all()
    summary = engine.summarize(year)
    periods = [period] if period else [month.month for month in summary.months]

    groups = [group for key in periods for group in engine.find_duplicates(key)]

    report: Dict[str, Any] = {
        'input': str(input_path),
        'generated_at': generate_timestamp("%Y-%m-%dT%H:%M:%S"),
        'record_count': len(engine.records),
        'flagged_count': len(engine.flagged_records()),
        'available_years': engine.available_years(),
        'issues': {
            record_id: [issue.to_dict() for issue in issues]
            for record_id, issues in issue_map.items()
            if issues
        },
        'summary': summary,
        'duplicates': groups,
        'resolutions': [],
        'deletions': None,
    }

    if resolve_duplicates and groups:
        resolutions = engine.resolver.resolve_all(groups)
        deletions = apply_resolutions(resolutions, delete)
        report['resolutions'] = resolutions
        report['deletions'] = deletions

        engine.reload(fetch())
        remaining = [group for key in periods for group in engine.find_duplicates(key)]
        report['remaining_duplicates'] = remaining
        logger.info(
            f"Deletions applied: {deletions.succeeded}/{deletions.attempted}, "
            f"{len(remaining)} duplicate groups remain"
        )

    report = to_plain(report)

    if output_path:
        output_file = Path(output_path)
        ensure_directory(output_file.parent)
        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False)
        logger.info(f"Report written: {output_file}")

    return report


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        # Parse command-line arguments
        args = parse_arguments(argv)

        # Initialize system
        initialize_system(args)
        logger = get_logger(__name__)

        report = run_consistency_check(
            input_path=args.input,
            year=args.year,
            period=args.period,
            resolve_duplicates=args.resolve_duplicates,
            output_path=args.output,
            config_path=args.config
        )

        summary = report['summary']
        logger.info("=" * 60)
        logger.info(
            f"Checked {report['record_count']} records: "
            f"{report['flagged_count']} flagged, "
            f"{len(report['duplicates'])} duplicate groups"
        )
        logger.info(
            f"{summary['year']}: {summary['count']} records, "
            f"{summary['sum_excl_vat']} excl. VAT, {summary['sum_vat']} VAT"
        )
        logger.info("=" * 60)

        if not args.output and not args.quiet:
            print(json.dumps(report, indent=2, ensure_ascii=False))

        return 0

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except ConsistencyEngineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if argv is None and "--debug" in sys.argv:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
