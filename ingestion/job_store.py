"""
Persistence for import jobs.

The ``import_jobs`` table is the only shared mutable state of the service.
Each call opens its own short-lived session so the orchestrator, the bulk-load
progress sampler and request handlers can all use the store concurrently.
State transitions are conditional updates: a job that already reached a
terminal status is never overwritten.
"""

from typing import Any, List, Optional
from datetime import date
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
from models.base import ImportStatus, ACTIVE_STATUSES, utcnow
from models.import_job import ImportJob, ACTIVE_SLOT_MARKER
from core.exceptions import ImportAbortedError, JobAlreadyActiveError, JobNotFoundError
import logging
import uuid

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Interrupted"
ABORTED_MESSAGE = "Aborted by user"


class JobStore:
    """
    Job lifecycle and progress tracking backed by the ``import_jobs`` table.

    Responsibilities:
    - Enforce "at most one active job" (count check plus unique constraint)
    - Persist phase transitions and live progress
    - Crash recovery and user abort
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.SessionLocal = session_factory

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_job(self, job_id: uuid.UUID) -> Optional[ImportJob]:
        async with self.SessionLocal() as session:
            return await session.get(ImportJob, job_id)

    async def list_jobs(self, limit: int = 50) -> List[ImportJob]:
        """Most recent jobs first"""
        async with self.SessionLocal() as session:
            result = await session.execute(
                select(ImportJob).order_by(ImportJob.started_at.desc()).limit(limit)
            )
            return list(result.scalars().all())

    async def latest_job(self) -> Optional[ImportJob]:
        jobs = await self.list_jobs(limit=1)
        return jobs[0] if jobs else None

    async def active_job(self) -> Optional[ImportJob]:
        async with self.SessionLocal() as session:
            result = await session.execute(
                select(ImportJob)
                .where(ImportJob.status.in_(ACTIVE_STATUSES))
                .order_by(ImportJob.started_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def count_active(self) -> int:
        async with self.SessionLocal() as session:
            result = await session.execute(
                select(func.count()).select_from(ImportJob).where(
                    ImportJob.status.in_(ACTIVE_STATUSES)
                )
            )
            return result.scalar() or 0

    async def is_failed(self, job_id: uuid.UUID) -> bool:
        """Abort checkpoint: has someone else already failed this job?"""
        async with self.SessionLocal() as session:
            result = await session.execute(
                select(ImportJob.status).where(ImportJob.id == job_id)
            )
            status = result.scalar_one_or_none()
            return status == ImportStatus.FAILED

    async def last_completed_job(self) -> Optional[ImportJob]:
        """Most recently completed job that recorded its dataset date"""
        async with self.SessionLocal() as session:
            result = await session.execute(
                select(ImportJob)
                .where(
                    ImportJob.status == ImportStatus.COMPLETED,
                    ImportJob.data_date.isnot(None)
                )
                .order_by(ImportJob.completed_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_job(self) -> ImportJob:
        """
        Create a new job in the ``downloading`` state.

        Raises:
            JobAlreadyActiveError: If another job is downloading or importing
        """
        if await self.count_active() > 0:
            raise JobAlreadyActiveError("Import already in progress")

        job = ImportJob(
            id=uuid.uuid4(),
            status=ImportStatus.DOWNLOADING,
            active_slot=ACTIVE_SLOT_MARKER,
            started_at=utcnow(),
            download_percentage=0,
            rows_processed=0,
            files_processed=0,
            download_cached=False
        )

        async with self.SessionLocal() as session:
            session.add(job)
            try:
                await session.commit()
            except IntegrityError as e:
                # Lost the race against a concurrent create
                await session.rollback()
                raise JobAlreadyActiveError(
                    "Import already in progress",
                    original_exception=e
                )

        logger.info(f"Created import job {job.id}")
        return job

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def update_progress(self, job_id: uuid.UUID, **fields: Any) -> None:
        async with self.SessionLocal() as session:
            await session.execute(
                update(ImportJob)
                .where(ImportJob.id == job_id)
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
            await session.commit()

    async def update_progress_quietly(self, job_id: uuid.UUID, **fields: Any) -> None:
        """Telemetry write; a failure here must never fail the job"""
        try:
            await self.update_progress(job_id, **fields)
        except Exception as e:
            logger.warning(f"Progress update for job {job_id} failed: {e}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _transition(self, job_id: uuid.UUID, from_statuses, **values: Any) -> bool:
        async with self.SessionLocal() as session:
            result = await session.execute(
                update(ImportJob)
                .where(
                    ImportJob.id == job_id,
                    ImportJob.status.in_(from_statuses)
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount > 0

    async def start_import_phase(
        self,
        job_id: uuid.UUID,
        total_rows: int,
        file_size: int,
        file_names: List[str]
    ) -> None:
        """
        downloading -> importing.

        Raises:
            ImportAbortedError: If the job is no longer downloading
        """
        now = utcnow()
        moved = await self._transition(
            job_id,
            (ImportStatus.DOWNLOADING,),
            status=ImportStatus.IMPORTING,
            download_percentage=100,
            download_completed_at=now,
            import_started_at=now,
            total_rows=total_rows,
            rows_processed=0,
            files_processed=0,
            file_name=f"{len(file_names)} files",
            file_size=file_size,
            file_names=file_names
        )
        if not moved:
            raise ImportAbortedError(
                "Job left the downloading state",
                context={"job_id": str(job_id)}
            )

    async def complete_job(
        self,
        job_id: uuid.UUID,
        total_rows: int,
        import_duration: int,
        data_date: date
    ) -> None:
        """
        importing -> completed.

        Raises:
            ImportAbortedError: If the job is no longer importing
        """
        moved = await self._transition(
            job_id,
            (ImportStatus.IMPORTING,),
            status=ImportStatus.COMPLETED,
            active_slot=None,
            completed_at=utcnow(),
            total_rows=total_rows,
            rows_processed=total_rows,
            import_duration=import_duration,
            data_date=data_date
        )
        if not moved:
            raise ImportAbortedError(
                "Job left the importing state",
                context={"job_id": str(job_id)}
            )

    async def fail_job(self, job_id: uuid.UUID, error_message: str) -> bool:
        """Any active state -> failed. Returns False if the job was already terminal."""
        failed = await self._transition(
            job_id,
            ACTIVE_STATUSES,
            status=ImportStatus.FAILED,
            active_slot=None,
            error_message=error_message,
            completed_at=utcnow()
        )
        if failed:
            logger.error(f"Import job {job_id} failed: {error_message}")
        return failed

    async def abort_job(self, job_id: uuid.UUID) -> None:
        """
        Fail an active job on behalf of the user.

        Raises:
            JobNotFoundError: If the job is unknown or no longer active
        """
        if not await self.fail_job(job_id, ABORTED_MESSAGE):
            raise JobNotFoundError(
                "No active import job with this id",
                context={"job_id": str(job_id)}
            )
        logger.info(f"Import job {job_id} aborted by user")

    async def recover_interrupted(self) -> int:
        """
        Fail every job left active by a previous process.

        Must run at startup before any new job is accepted.
        """
        async with self.SessionLocal() as session:
            result = await session.execute(
                update(ImportJob)
                .where(ImportJob.status.in_(ACTIVE_STATUSES))
                .values(
                    status=ImportStatus.FAILED,
                    active_slot=None,
                    error_message=INTERRUPTED_MESSAGE,
                    completed_at=utcnow()
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            recovered = result.rowcount or 0

        if recovered:
            logger.warning(f"Marked {recovered} interrupted import job(s) as failed")
        else:
            logger.info("No interrupted import jobs found")
        return recovered
