"""
Run one import job in the foreground, without the API.

Usage:
    python scripts/run_import.py [--limit N] [--recover]

``--recover`` fails jobs left active by a crashed service before starting.
Only use it when no API process is running: recovery cannot tell a crashed
job from one the API is still working on.
"""

import argparse
import asyncio
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import engine, async_session_maker
from core.exceptions import JobAlreadyActiveError
from core.logging import setup_logging
from ingestion.discovery import NotesDiscovery
from ingestion.extractors.archive_fetcher import ArchiveFetcher
from ingestion.job_store import JobStore
from ingestion.loaders.bulk_loader import BulkLoader
from ingestion.loaders.postgres_loader import PostgresLoader
from ingestion.runner import ImportRunner
import logging

logger = logging.getLogger(__name__)


async def run_import(job_store: JobStore, runner: ImportRunner, limit=None, recover=False) -> int:
    """Create a job and run it to the end; returns the process exit code"""
    try:
        if recover:
            await runner.recover_interrupted()
        job = await job_store.create_job()
    except JobAlreadyActiveError as e:
        logger.error(f"{e.message}; not starting another job")
        return 1

    logger.info(f"Running import job {job.id}")
    completed = await runner.run(job.id, limit)

    job = await job_store.get_job(job.id)
    if not completed:
        logger.error(f"Import failed: {job.error_message}")
        return 1

    logger.info(
        f"Import completed: {job.total_rows} rows from {job.total_files} files "
        f"(dataset {job.data_date})"
    )
    return 0


async def main(limit, recover) -> int:
    job_store = JobStore(async_session_maker)
    discovery = NotesDiscovery()
    runner = ImportRunner(
        job_store=job_store,
        discovery=discovery,
        fetcher=ArchiveFetcher(job_store, discovery),
        bulk_loader=BulkLoader(PostgresLoader(engine), job_store)
    )
    try:
        return await run_import(job_store, runner, limit, recover)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a notes import job")
    parser.add_argument("--limit", type=int, default=None, help="Keep only this many rows per file")
    parser.add_argument(
        "--recover",
        action="store_true",
        help="Fail jobs left active by a crashed service first (no API may be running)"
    )
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(main(args.limit, args.recover)))
