"""
OpenCellID Import Utility.

Command-line utility to load an OpenCellID dataset into the cell database,
run the consistency check and prepare the upload file.

Usage:
    python -m utils.celldb.import_cli --data-dir /path/to/data [--check] [--export]
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path


def progress_bar(current: int, total: int, width: int = 50) -> str:
    """Generate a progress bar string."""
    percent = current / total if total > 0 else 0
    filled = int(width * percent)
    bar = '=' * filled + '-' * (width - filled)
    return f'[{bar}] {percent*100:.1f}% ({current:,}/{total:,})'


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the OpenCellID import."""
    import config

    parser = argparse.ArgumentParser(
        description='Import OpenCellID cell data into the cellguard database',
        epilog='The CSV file should be in OpenCellID download format (19 columns).'
    )
    parser.add_argument(
        '--data-dir',
        type=str,
        default=str(config.DATA_DIR),
        help=f'Base data directory holding OpenCellID/ (default: {config.DATA_DIR})'
    )
    parser.add_argument(
        '--db',
        type=str,
        default=str(config.DB_PATH),
        help=f'Database file (default: {config.DB_PATH})'
    )
    parser.add_argument(
        '--csv',
        type=str,
        default=None,
        help='Dataset file (default: <data-dir>/OpenCellID/opencellid.csv)'
    )
    parser.add_argument(
        '--check',
        action='store_true',
        help='Run the consistency check on imported cells afterwards'
    )
    parser.add_argument(
        '--export',
        action='store_true',
        help='Prepare the upload file from unsubmitted measurements'
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Suppress progress output'
    )

    args = parser.parse_args(argv)

    from utils.celldb.service import CellDataService

    service = CellDataService(db_path=args.db, base_dir=args.data_dir)
    csv_path = Path(args.csv) if args.csv else service.paths.import_file

    print("=" * 60)
    print("  CELLGUARD - OpenCellID Import")
    print("=" * 60)
    print()
    print(f"Source:   {csv_path}")
    print(f"Database: {args.db}")
    print()

    last_update = [0]
    start_time = time.time()

    def on_progress(current: int, total: int) -> None:
        if args.quiet:
            return
        # Update every 1%
        if current - last_update[0] >= max(total // 100, 1) or current == total:
            elapsed = time.time() - start_time
            rate = current / elapsed if elapsed > 0 else 0
            print(f"\r{progress_bar(current, total)} | {rate:,.0f} rows/sec", end='', flush=True)
            last_update[0] = current

    try:
        service.start()

        print("Importing cells...")
        result = service.import_ocid(csv_path, progress_callback=on_progress)
        print()
        if not result.success:
            print(f"Error during import: {result.message}")
            return 1

        elapsed = time.time() - start_time
        print()
        print("=" * 60)
        print("  Import Complete")
        print("=" * 60)
        print(f"  Rows read:          {result.rows_read:,}")
        print(f"  Cells imported:     {result.rows_inserted:,}")
        print(f"  Duplicates skipped: {result.rows_duplicate:,}")
        print(f"  Time elapsed:       {elapsed:.1f} seconds")
        print()

        if args.check:
            summary = service.check_imports()
            print("Consistency check:")
            print(f"  Deleted:   {summary.deleted:,}")
            print(f"  Penalized: {summary.penalized:,}")
            print()

        if args.export:
            export = service.prepare_upload()
            print(f"Upload file: {export.message}")
            if export.path:
                print(f"  {export.path}")
            print()

        stats = service.stats()
        print("Database Statistics:")
        print(f"  Imported cells: {stats['imports']:,}")
        print(f"  Base stations:  {stats['base_stations']:,}")
        print(f"  Measurements:   {stats['measurements']:,} ({stats['unsubmitted']:,} unsubmitted)")
        print()
        print("  By radio type:")
        for rat, count in stats['imports_by_rat'].items():
            print(f"    {rat}: {count:,}")
        print()
        print("  Top countries (by MCC):")
        for mcc, count in list(stats['top_mccs'].items())[:10]:
            print(f"    MCC {mcc}: {count:,}")
        print()
    finally:
        service.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
