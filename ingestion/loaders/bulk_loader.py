"""
Load extracted payloads into the store while reporting live row progress.

A job always replaces the whole dataset: the table is truncated once, then
every payload is COPYed in discovery order. While a COPY is running a sampler
task reads the in-flight row count every ``PROGRESS_SAMPLE_INTERVAL`` seconds
and publishes ``baseline + in_flight`` as ``rows_processed``, where the
baseline is the table's row count after the previous file.
"""

import asyncio
import time
import uuid
from typing import Awaitable, Callable, List, Optional
from core.config import settings
from ingestion.extractors.archive_fetcher import FileDescriptor
from ingestion.job_store import JobStore
from ingestion.loaders.postgres_loader import PostgresLoader
import logging

logger = logging.getLogger(__name__)

Checkpoint = Callable[[], Awaitable[None]]


class ProgressSampler:
    """
    Background task publishing ``rows_processed`` during a bulk load.

    Started once per job and stopped exactly once after the last file. The
    cumulative baseline is shared with the loading sequence and guarded by a
    lock; published values never decrease.
    """

    def __init__(
        self,
        job_id: uuid.UUID,
        loader: PostgresLoader,
        job_store: JobStore,
        interval: Optional[float] = None
    ):
        self.job_id = job_id
        self.loader = loader
        self.job_store = job_store
        self.interval = interval if interval is not None else settings.PROGRESS_SAMPLE_INTERVAL

        self._lock = asyncio.Lock()
        self._baseline = 0
        self._generation = 0
        self._reported = 0
        self._started_at = time.monotonic()
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._stopped = False
        self._progress_unavailable = False

    @property
    def reported(self) -> int:
        return self._reported

    def start(self):
        if self._task is not None:
            raise RuntimeError("progress sampler already started")
        self._started_at = time.monotonic()
        self._task = asyncio.create_task(self._run(), name=f"progress-sampler-{self.job_id}")

    async def stop(self):
        if self._stopped:
            raise RuntimeError("progress sampler already stopped")
        self._stopped = True
        self._stop_event.set()
        if self._task is not None:
            await self._task

    async def set_baseline(self, rows: int):
        """Record the row count after a completed file and publish it"""
        async with self._lock:
            self._baseline = rows
            self._generation += 1
            await self._publish(rows)

    async def _run(self):
        while True:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                return
            except asyncio.TimeoutError:
                pass
            await self.sample()

    async def sample(self):
        async with self._lock:
            generation = self._generation
            baseline = self._baseline

        try:
            in_flight = await self.loader.copy_progress()
        except Exception as e:
            if not self._progress_unavailable:
                logger.warning(f"COPY progress is unavailable, reporting per file only: {e}")
                self._progress_unavailable = True
            return

        if in_flight is None:
            return

        async with self._lock:
            # A file finished while the query ran; in_flight belongs to it and
            # is already part of the new baseline
            if self._generation != generation:
                return
            await self._publish(baseline + in_flight)

    async def _publish(self, total: int):
        # Caller holds the lock
        if total <= self._reported:
            return
        self._reported = total
        await self.job_store.update_progress_quietly(
            self.job_id,
            rows_processed=total,
            import_duration=int(time.monotonic() - self._started_at)
        )


class BulkLoader:
    """
    Truncate the table and COPY each payload, with abort checkpoints.

    Ensures:
    - Truncate happens once, before the first file
    - Files are loaded strictly in order
    - The checkpoint runs before the phase and before every file; when it
      raises, no further file is loaded
    """

    def __init__(
        self,
        loader: PostgresLoader,
        job_store: JobStore,
        sample_interval: Optional[float] = None
    ):
        self.loader = loader
        self.job_store = job_store
        self.sample_interval = sample_interval

    async def load(
        self,
        job_id: uuid.UUID,
        files: List[FileDescriptor],
        checkpoint: Optional[Checkpoint] = None
    ) -> int:
        """
        Replace the table contents with the given payloads.

        Returns:
            Row count of the table after the last file
        """
        if checkpoint is not None:
            await checkpoint()

        await self.loader.truncate()

        total_rows = 0
        sampler = ProgressSampler(job_id, self.loader, self.job_store, self.sample_interval)
        sampler.start()
        try:
            for index, descriptor in enumerate(files):
                if checkpoint is not None:
                    await checkpoint()

                await self.job_store.update_progress_quietly(
                    job_id,
                    current_file_index=index,
                    file_name=descriptor.file_name
                )

                await self.loader.copy_file(descriptor.payload_path)

                # A file either loads fully or not at all, so the table count is
                # the new baseline
                total_rows = await self.loader.count_rows()
                await sampler.set_baseline(total_rows)

                await self.job_store.update_progress_quietly(job_id, files_processed=index + 1)
                logger.info(f"File imported: {descriptor.file_name} ({index + 1}/{len(files)})")
        finally:
            await sampler.stop()

        return total_rows
