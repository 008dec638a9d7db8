import logging
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from core.exceptions import NoDataFoundError, JobAlreadyActiveError
from ingestion.discovery import NotesDiscovery
from ingestion.job_store import JobStore
from ingestion.runner import ImportRunner
from models.base import utcnow

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Reader-preferring lock: any number of readers, or one writer"""

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False

    @asynccontextmanager
    async def read(self):
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self):
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class SchedulerState:
    """last_check / next_run, written by the tick and read by status requests"""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._last_check: Optional[datetime] = None
        self._next_run: Optional[datetime] = None

    async def record(self, last_check: Optional[datetime], next_run: Optional[datetime]):
        async with self._lock.write():
            if last_check is not None:
                self._last_check = last_check
            self._next_run = next_run

    async def snapshot(self) -> Dict[str, Optional[datetime]]:
        async with self._lock.read():
            return {"last_check": self._last_check, "next_run": self._next_run}


class ImportScheduler:
    """
    Periodically trigger an import when newer data is published.

    Each tick compares the newest remote date with the ``data_date`` of the
    last completed job and starts a job only if the remote one is strictly
    newer. Ticks are idempotent.
    """

    JOB_ID = "import_check"

    def __init__(
        self,
        runner: ImportRunner,
        job_store: JobStore,
        discovery: NotesDiscovery,
        enabled: Optional[bool] = None,
        interval_minutes: Optional[int] = None,
        lookback_days: Optional[int] = None
    ):
        self.runner = runner
        self.job_store = job_store
        self.discovery = discovery
        self.enabled = settings.SCHEDULER_ENABLED if enabled is None else enabled
        self.interval_minutes = interval_minutes or settings.SCHEDULER_INTERVAL_MINUTES
        self.lookback_days = settings.LOOKBACK_DAYS if lookback_days is None else lookback_days
        self.scheduler = AsyncIOScheduler()
        self.state = SchedulerState()

    def next_run_time(self) -> Optional[datetime]:
        """Next fire time of the interval job as naive UTC, None when not scheduled"""
        job = self.scheduler.get_job(self.JOB_ID)
        if job is None or job.next_run_time is None:
            return None
        return job.next_run_time.astimezone(timezone.utc).replace(tzinfo=None)

    async def check_for_updates(self) -> bool:
        """
        Scheduler tick.

        Returns:
            True if a new import job was started
        """
        await self.state.record(last_check=utcnow(), next_run=self.next_run_time())

        try:
            latest = await self.discovery.find_latest_date(self.lookback_days)
        except NoDataFoundError as e:
            logger.info(f"Scheduler: {e.message}")
            return False
        except Exception as e:
            logger.error(f"Scheduler: discovery failed - {e}")
            return False

        try:
            last_job = await self.job_store.last_completed_job()
            last_date = last_job.data_date if last_job else None

            if last_date is not None and latest <= last_date:
                logger.info(f"Scheduler: data is up to date ({last_date.isoformat()})")
                return False

            logger.info(
                f"Scheduler: newer data available ({latest.isoformat()}, "
                f"last import {last_date.isoformat() if last_date else 'never'})"
            )
            await self.runner.start_import()
            return True

        except JobAlreadyActiveError:
            logger.info("Scheduler: an import is already running, skipping")
            return False
        except Exception as e:
            logger.error(f"Scheduler: import trigger failed - {e}")
            return False

    async def status(self) -> Dict[str, Any]:
        snapshot = await self.state.snapshot()
        last_job = await self.job_store.last_completed_job()
        return {
            "enabled": self.enabled,
            "interval_minutes": self.interval_minutes,
            "last_check": snapshot["last_check"],
            "next_run": snapshot["next_run"],
            "last_import_date": last_job.data_date if last_job else None,
        }

    async def start(self):
        """Start the scheduler"""
        if not self.enabled:
            logger.info("Import scheduler disabled")
            return

        self.scheduler.add_job(
            self.check_for_updates,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=self.JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        await self.state.record(last_check=None, next_run=self.next_run_time())
        logger.info(f"Import scheduler started (every {self.interval_minutes} min)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Import scheduler stopped")
