"""
Initialize the Al Hikmah Library database.

This script:
1. Creates all database tables
2. Optionally loads the starter catalog and accounts
3. Optionally generates demo patrons
4. Verifies the expected tables exist

Usage:
    hikmah-library-init [--drop-existing] [--sample-data] [--demo-patrons N]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from .config import get_settings
from .database import generate_demo_patrons, get_db_manager, seed_library, sql_uow_factory
from .database.schema import Base
from .errors import LibraryError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Initialize the Al Hikmah Library database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load the starter catalog and accounts into an empty database",
    )
    parser.add_argument(
        "--demo-patrons",
        type=int,
        default=0,
        metavar="N",
        help="Generate N demo user accounts",
    )
    parser.add_argument("--database-url", help="Override the configured database URL")
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    args = build_parser().parse_args(argv)
    settings = get_settings()

    db_manager = get_db_manager(args.database_url or settings.get_database_url())
    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        return 1

    try:
        db_manager.init_database(drop_existing=args.drop_existing)
        uow_factory = sql_uow_factory(db_manager)

        if args.sample_data:
            with uow_factory() as uow:
                seed_library(uow, loan_days=settings.loan_period_days)

        if args.demo_patrons:
            with uow_factory() as uow:
                generate_demo_patrons(uow, args.demo_patrons)

        tables = set(inspect(db_manager.engine).get_table_names())
        missing = set(Base.metadata.tables) - tables
        if missing:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing)))
            return 1

        logger.info("Database ready with tables: %s", ", ".join(sorted(tables)))
        return 0
    except LibraryError as e:
        logger.error("Database initialization failed: %s", e)
        return 1
    finally:
        db_manager.close()


if __name__ == "__main__":
    sys.exit(main())
