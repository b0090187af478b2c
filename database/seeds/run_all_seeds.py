"""
Barrels - Seed the database from a fixture directory.

Loads every <model>.json file of the fixture directory, seeds the models
in the order given on the command line (or in file name order), then
links optional associations.

Run with:
    python -m database.seeds.run_all_seeds author book tag post
    python -m database.seeds.run_all_seeds --fixtures ./fixtures --no-associate
    python -m database.seeds.run_all_seeds --create-tables --continue-on-error

Exit codes:
    0: All models seeded
    1: Seeding failed or some models were recorded as failed
"""

import argparse
import asyncio
import logging
import sys

from database.connection import close_db, get_session_factory, init_db
from database.seeds.fixture_seeder import FixtureSeeder
from database.store.sql import SQLAlchemyStore
from shared.config import ErrorPolicy, get_settings
from shared.errors import SeedError
from shared.logging_config import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="run_all_seeds",
        description="Seed the database from JSON fixture files.",
    )
    parser.add_argument(
        "models",
        nargs="*",
        help="Models to seed, dependencies first (default: every fixture file)",
    )
    parser.add_argument(
        "--fixtures",
        default=None,
        help="Fixture directory (default: FIXTURES_DIR setting)",
    )
    parser.add_argument(
        "--no-associate",
        action="store_true",
        help="Only insert records, leave optional associations unresolved",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables for the models module before seeding",
    )
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Record per-model failures and keep seeding the next models",
    )
    parser.add_argument(
        "--abort-on-invalid-collection",
        action="store_true",
        help="Stop the run when a fixture collection is missing or empty",
    )
    return parser.parse_args(argv)


async def run_all_seeds(args: argparse.Namespace) -> bool:
    """Seed every requested model. Returns True on full success."""
    settings = get_settings()

    logger.info("=" * 70)
    logger.info(f"{settings.PROJECT_NAME} Database Seeding")
    logger.info("=" * 70)

    try:
        store = SQLAlchemyStore.from_models_module(
            settings.SEED_MODELS_MODULE, get_session_factory()
        )
        if args.create_tables:
            await init_db(store.base)
        seeder = FixtureSeeder.from_directory(
            store,
            args.fixtures,
            error_policy=ErrorPolicy.CONTINUE if args.continue_on_error else None,
            auto_resolve_associations=False if args.no_associate else None,
            abort_on_invalid_collection=True if args.abort_on_invalid_collection else None,
        )
        report = await seeder.seed(args.models or None)
    except SeedError as e:
        logger.error(f"Seeding aborted: {e}")
        return False
    finally:
        await close_db()

    logger.info("=" * 70)
    logger.info("SEEDING SUMMARY")
    logger.info("=" * 70)
    for model, summary in report.summary().items():
        logger.info(
            f"  {model}: {summary['state']} "
            f"({summary['inserted']} inserted, {summary['updated']} updated)"
        )
    for error in report.errors:
        logger.error(f"  [{error.log_ref}] {error.error_type}: {error.message}")

    if report.success:
        logger.info("All seeds completed successfully!")
    else:
        logger.error("Some seeds failed. Check logs above for details.")
    return report.success


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = parse_args(argv)
    success = asyncio.run(run_all_seeds(args))
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
