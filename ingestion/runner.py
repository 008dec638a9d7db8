# ============================================================================
# File: ingestion/runner.py
# Description: Import job orchestrator
# ============================================================================
"""
Import Runner - Orchestrates Discover, Fetch, Load for one import job.

State machine of a job row::

    downloading -> importing -> completed
         \\             \\
          +-------------+--> failed   (error, abort, or interrupted)

This module provides:
- Background dispatch: the creating request returns once the row exists
- Phase sequencing with abort checkpoints
- A single error boundary: every failure is recorded on the job row and
  never propagates out of the background task
- Crash recovery for jobs left active by a previous process
"""

import asyncio
import time
import uuid
from typing import List, Optional, Set
from core.config import settings
from core.exceptions import ImportJobError, ImportAbortedError
from core.logging import job_logger
from ingestion.discovery import NotesDiscovery
from ingestion.extractors.archive_fetcher import ArchiveFetcher, FileDescriptor
from ingestion.job_store import JobStore
from ingestion.loaders.bulk_loader import BulkLoader
from ingestion.transformers.payload import count_rows, truncate_payload
from models.import_job import ImportJob
import logging

logger = logging.getLogger(__name__)


class ImportRunner:
    """
    Import orchestrator.

    Responsibilities:
    - Create jobs and run them as background tasks
    - Discovery -> download/extract -> (optional truncation) -> bulk load
    - Persist every phase transition through the JobStore
    - Stop at checkpoints when the job was aborted externally
    """

    def __init__(
        self,
        job_store: JobStore,
        discovery: NotesDiscovery,
        fetcher: ArchiveFetcher,
        bulk_loader: BulkLoader,
        lookback_days: Optional[int] = None
    ):
        self.job_store = job_store
        self.discovery = discovery
        self.fetcher = fetcher
        self.bulk_loader = bulk_loader
        self.lookback_days = settings.LOOKBACK_DAYS if lookback_days is None else lookback_days
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def recover_interrupted(self) -> int:
        """Startup routine: fail jobs a crashed process left active"""
        return await self.job_store.recover_interrupted()

    async def start_import(self, limit: Optional[int] = None) -> ImportJob:
        """
        Create a job and run it in the background.

        Args:
            limit: Test mode; keep only this many data rows per payload

        Raises:
            JobAlreadyActiveError: If a job is already downloading or importing
        """
        job = await self.job_store.create_job()

        task = asyncio.create_task(self.run(job.id, limit), name=f"import-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(f"Import started: job {job.id}" + (f" (limit={limit})" if limit else ""))
        return job

    async def shutdown(self):
        """Cancel running jobs; the next startup marks them interrupted"""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.warning(f"Cancelled {len(tasks)} running import job(s)")

    # ------------------------------------------------------------------
    # Job execution
    # ------------------------------------------------------------------

    async def run(self, job_id: uuid.UUID, limit: Optional[int] = None) -> bool:
        """
        Run a job to completion. Never raises for job failures.

        Returns:
            True if the job completed
        """
        try:
            await self._run_phases(job_id, limit)
            return True

        except ImportAbortedError:
            # The abort already recorded its reason on the row
            job_logger(logger, job_id).info("Stopped at a checkpoint")

        except ImportJobError as e:
            job_logger(logger, job_id).error(
                f"Import pipeline failed: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            await self._record_failure(job_id, e.message)

        except Exception as e:
            job_logger(logger, job_id).exception("Unexpected error")
            await self._record_failure(job_id, str(e))

        return False

    async def _run_phases(self, job_id: uuid.UUID, limit: Optional[int]):
        checkpoint = self._checkpoint_for(job_id)
        log = job_logger(logger, job_id)

        # --------------------------------------------------
        # PHASE 1: DOWNLOADING
        # --------------------------------------------------
        await checkpoint()

        data_date = await self.discovery.find_latest_date(self.lookback_days)
        total_files = await self.discovery.count_files(data_date)
        log.info(f"Importing {total_files} file(s) for {data_date.isoformat()}")

        files = await self.fetcher.fetch_all(job_id, data_date, total_files, checkpoint)

        if limit and limit > 0:
            await self._truncate_payloads(files, limit)

        expected_rows = await self._expected_rows(files)

        # --------------------------------------------------
        # PHASE 2: IMPORTING
        # --------------------------------------------------
        await checkpoint()

        await self.job_store.start_import_phase(
            job_id,
            total_rows=expected_rows,
            file_size=sum(f.file_size for f in files),
            file_names=[f.file_name for f in files]
        )

        import_started = time.monotonic()
        total_rows = await self.bulk_loader.load(job_id, files, checkpoint)
        import_duration = int(time.monotonic() - import_started)

        # --------------------------------------------------
        # PHASE 3: FINALIZE
        # --------------------------------------------------
        await self.job_store.complete_job(
            job_id,
            total_rows=total_rows,
            import_duration=import_duration,
            data_date=data_date
        )
        log.info(
            f"Import completed: {total_rows} rows, "
            f"{len(files)} files, {import_duration}s"
        )

        removed = await asyncio.to_thread(self.fetcher.cleanup_cache, data_date)
        if removed:
            log.info(f"Removed {removed} cached file(s) from older datasets")

    def _checkpoint_for(self, job_id: uuid.UUID):
        async def checkpoint():
            if await self.job_store.is_failed(job_id):
                raise ImportAbortedError(
                    "Import job was failed externally",
                    context={"job_id": str(job_id)}
                )
        return checkpoint

    async def _truncate_payloads(self, files: List[FileDescriptor], limit: int):
        for descriptor in files:
            logger.info(f"Truncating {descriptor.payload_path} to {limit} rows")
            try:
                await asyncio.to_thread(truncate_payload, descriptor.payload_path, limit)
            except OSError as e:
                logger.warning(f"Failed to truncate {descriptor.payload_path}: {e}")

    async def _expected_rows(self, files: List[FileDescriptor]) -> int:
        """Sum of data rows across payloads, computed before the load"""
        expected = 0
        for descriptor in files:
            try:
                expected += await asyncio.to_thread(count_rows, descriptor.payload_path)
            except OSError as e:
                logger.warning(f"Failed to count rows in {descriptor.payload_path}: {e}")
        return expected

    async def _record_failure(self, job_id: uuid.UUID, message: str):
        try:
            await self.job_store.fail_job(job_id, message)
        except Exception:
            logger.exception(f"Could not record failure of import job {job_id}")
