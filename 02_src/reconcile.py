#!/usr/bin/env python3
"""
Rewrite legacy created_at values to canonical UTC.
Back up the database file before running.
Usage: python3 reconcile.py [--db PATH] [--offset HOURS]
"""

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

from helpdesk.config import Settings, resolve_db_path
from helpdesk.errors import PersistenceFailure
from helpdesk.logging_config import setup_logging
from helpdesk.storage import Storage
from helpdesk.timestamps import ReferenceClock, TableReport, reconcile_all
from helpdesk.tracker import Tracker


async def run(db_path, offset_hours: int) -> list[TableReport]:
    storage = Storage(db_path, clock=ReferenceClock(offset_hours))
    await storage.init(create_schema=False)
    try:
        return await reconcile_all(
            storage, offset_hours=offset_hours, tracker=Tracker(storage)
        )
    finally:
        await storage.close()


def main(argv: list[str] | None = None) -> int:
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Reconcile legacy created_at values")
    parser.add_argument("--db", help="Database path (default: DATABASE_URL)")
    parser.add_argument(
        "--offset",
        type=int,
        default=settings.reference_offset_hours,
        help="Reference UTC offset of legacy rows, in hours",
    )
    args = parser.parse_args(argv)

    setup_logging()
    db_path = resolve_db_path(args.db) if args.db else settings.db_path
    print("BACKUP your database before running this.")
    print(f"Reconciling {db_path} (legacy offset UTC{args.offset:+d})")

    try:
        reports = asyncio.run(run(db_path, args.offset))
    except PersistenceFailure as e:
        print(f"Reconciliation aborted: {e}")
        return 1
    for report in reports:
        print(
            f"{report.table}: scanned={report.scanned} converted={report.converted} "
            f"unchanged={report.unchanged} ambiguous={len(report.ambiguous)} "
            f"failed={len(report.failed)}"
        )
        if report.ambiguous:
            print(f"  review ids: {report.ambiguous}")

    return 1 if any(report.failed for report in reports) else 0


if __name__ == "__main__":
    sys.exit(main())
