"""
Initialize database - create all tables.

Run this script to set up the database schema:
    python scripts/init_db.py [--reset]
"""

import argparse
import sys

from bci_backend.core.config import settings
from bci_backend.core.logging import get_logger
from bci_backend.data.database import drop_db, init_db

logger = get_logger(__name__)


def main():
    """Create the schema, optionally dropping existing tables first."""
    parser = argparse.ArgumentParser(description="Create the BCI game database schema")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="drop all tables before creating them (development only)"
    )
    args = parser.parse_args()

    logger.info("database_init_started", database_url=settings.database_url, reset=args.reset)

    try:
        if args.reset:
            drop_db()
        init_db()
    except Exception as e:
        logger.exception("database_init_failed", error=str(e))
        print(f"✗ Database initialization failed: {e}")
        sys.exit(1)

    print("✓ Database initialized successfully")


if __name__ == "__main__":
    main()
