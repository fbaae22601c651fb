"""
Apply or revert the SQL schema migrations against DATABASE_URL.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy import create_engine

from fitbyte.config import get_settings
from fitbyte.migrator import Migrator

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="FitByte schema migrations")
    parser.add_argument(
        "command",
        choices=["up", "down", "status"],
        help="Apply pending migrations, revert applied ones, or list them",
    )
    parser.add_argument(
        "--steps",
        type=int,
        default=1,
        help="How many migrations to revert with 'down' (0 for all)",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    database_url = args.database_url or get_settings().database_url
    if not database_url:
        logger.error("DATABASE_URL is not set")
        return 1

    migrator = Migrator(create_engine(database_url, future=True))
    if args.command == "up":
        applied = migrator.upgrade()
        logger.info("Applied %d migration(s)", len(applied))
    elif args.command == "down":
        steps = args.steps if args.steps > 0 else None
        reverted = migrator.downgrade(steps=steps)
        logger.info("Reverted %d migration(s)", len(reverted))
    else:
        for migration, applied in migrator.status():
            state = "applied" if applied else "pending"
            print(f"{migration.version}_{migration.name}: {state}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
