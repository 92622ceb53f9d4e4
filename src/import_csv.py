"""Script to import a CSV export of the ledger sheet into the stored snapshot."""

import argparse
from pathlib import Path
import sys

from loguru import logger

from src.core.db import create_db_and_tables, engine
from src.core.logging_config import configure_logging
from src.dao.snapshot_dao import SqlSnapshotSink
from src.services.export_service import generate_error_log
from src.services.import_service import ImportResult, commit_import, import_csv_file
from src.services.ledger_store import LedgerStore


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("csv_file", type=Path, help="CSV export of the ledger sheet")
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Replace previously imported sessions instead of adding to them",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Report problems without saving"
    )
    parser.add_argument(
        "--error-log", type=Path, help="Also write the error/warning log to this file"
    )
    args = parser.parse_args(argv)

    if not args.csv_file.exists():
        logger.error(f"Error: {args.csv_file} not found")
        return 1

    parsed = import_csv_file(args.csv_file)
    log_text = generate_error_log(parsed.errors, parsed.warnings)
    for line in log_text.splitlines():
        logger.info(line)
    if args.error_log is not None:
        args.error_log.write_text(log_text, encoding="utf-8")

    if args.dry_run:
        return 1 if parsed.errors else 0

    create_db_and_tables()
    sink = SqlSnapshotSink(engine)
    store = LedgerStore()
    snapshot = sink.load()
    if snapshot is not None:
        store.load_snapshot(snapshot)

    if commit_import(store, parsed, replace=args.replace) == ImportResult.REJECTED:
        return 1
    sink.save(store.to_snapshot())
    logger.success("CSV import script completed successfully")
    return 0


if __name__ == "__main__":
    configure_logging()
    sys.exit(main())
