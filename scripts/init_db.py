"""
Create the import_jobs and note tables without running Alembic.

Usage:
    python scripts/init_db.py [--drop]
"""

import argparse
import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import engine
from core.logging import setup_logging
from models.base import Base
from models.import_job import ImportJob
from models.note import Note

logger = logging.getLogger(__name__)

TABLES = [ImportJob.__table__, Note.__table__]


async def init_database(drop: bool):
    async with engine.begin() as conn:
        if drop:
            logger.warning("Dropping tables: " + ", ".join(t.name for t in TABLES))
            await conn.run_sync(Base.metadata.drop_all, tables=TABLES)
        await conn.run_sync(Base.metadata.create_all, tables=TABLES)

    logger.info("Tables ready: " + ", ".join(t.name for t in TABLES))
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the import service tables")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(init_database(args.drop))
