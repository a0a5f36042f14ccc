#!/usr/bin/env python3
"""
Create the ledger schema in the configured database.

Usage:
  python3 scripts/init_ledger_db.py [--config PATH] [--db-url URL] [--drop]

The database URL comes from --db-url, else DATABASE_URL, else the settings
file.  --drop removes every ledger table first.
"""

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create (or recreate) the bullion ledger tables")
    p.add_argument(
        "--config",
        default=None,
        help="Settings YAML (default: packaged bullion_config/defaults/ledger.yaml)",
    )
    p.add_argument(
        "--db-url",
        default=None,
        help="Database URL (overrides DATABASE_URL and the settings file)",
    )
    p.add_argument(
        "--drop",
        action="store_true",
        help="Drop all ledger tables before creating them",
    )
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from bullion_config import get_active_settings
    from bullion_kernel.db.engine import (
        create_tables,
        drop_tables,
        init_engine_from_url,
        reset_engine,
    )
    from bullion_kernel.logging_config import configure_logging

    settings = get_active_settings(args.config)
    configure_logging(level=getattr(logging, settings.logging.level))
    url = args.db_url or settings.database.url

    print(f"Database: {url}")
    init_engine_from_url(url, **settings.database.engine_options())
    try:
        if args.drop:
            print("  Dropping ledger tables...")
            drop_tables()
        print("  Creating ledger tables...")
        create_tables()
    finally:
        reset_engine()

    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
