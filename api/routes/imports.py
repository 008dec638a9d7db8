"""
Import job endpoints: trigger, inspect, abort, discovery and scheduler status
"""

from fastapi import APIRouter, Depends, Query, Response
from typing import List, Optional
import uuid
import logging

from api.dependencies import get_discovery, get_job_store, get_runner, get_scheduler
from core.config import settings
from core.exceptions import JobNotFoundError
from ingestion.discovery import NotesDiscovery
from ingestion.job_store import JobStore
from ingestion.runner import ImportRunner
from ingestion.scheduler import ImportScheduler
from models.base import ImportStatus
from schemas.api import (
    CurrentImportResponse,
    ImportCreatedResponse,
    ImportJobResponse,
    LastImportDateResponse,
    LatestAvailableResponse,
    Problem,
    SchedulerStatusResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/imports", tags=["Imports"])

PROBLEM_RESPONSES = {
    404: {"model": Problem, "description": "Not found"},
    409: {"model": Problem, "description": "An import is already running"},
}


def _parse_job_id(job_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(job_id)
    except ValueError:
        raise JobNotFoundError("Import job not found", context={"job_id": job_id})


@router.post(
    "",
    status_code=201,
    response_model=ImportCreatedResponse,
    responses={409: PROBLEM_RESPONSES[409]}
)
async def create_import(
    response: Response,
    limit: Optional[int] = Query(None, description="Test mode: keep only this many rows per file"),
    runner: ImportRunner = Depends(get_runner)
):
    """
    Start a new import job in the background.

    Returns as soon as the job row exists; poll ``GET /imports/{id}`` for progress.
    """
    if limit is not None and limit <= 0:
        limit = None

    job = await runner.start_import(limit=limit)

    response.headers["Location"] = f"/imports/{job.id}"
    return ImportCreatedResponse(job_id=job.id)


@router.get("", response_model=List[ImportJobResponse])
async def list_imports(
    limit: int = Query(settings.IMPORT_HISTORY_LIMIT, ge=1, le=500, description="Number of jobs to return"),
    job_store: JobStore = Depends(get_job_store)
):
    """Import history, newest first"""
    jobs = await job_store.list_jobs(limit=limit)
    return [ImportJobResponse.model_validate(job) for job in jobs]


@router.get("/current", response_model=CurrentImportResponse, responses={404: PROBLEM_RESPONSES[404]})
async def get_current_import(job_store: JobStore = Depends(get_job_store)):
    """Most recent job, active or not"""
    job = await job_store.latest_job()
    if job is None:
        raise JobNotFoundError("No import has been run yet")

    current = CurrentImportResponse.model_validate(job)
    if job.status == ImportStatus.IMPORTING and job.total_rows:
        current.percentage = min(100, ((job.rows_processed or 0) * 100) // job.total_rows)
    return current


@router.get(
    "/latest-available",
    response_model=LatestAvailableResponse,
    responses={404: PROBLEM_RESPONSES[404]}
)
async def get_latest_available(discovery: NotesDiscovery = Depends(get_discovery)):
    """Newest remote date within the lookback window"""
    latest = await discovery.find_latest_date(settings.LOOKBACK_DAYS)
    return LatestAvailableResponse(data_date=latest, lookback_days=settings.LOOKBACK_DAYS)


@router.get(
    "/last-import-date",
    response_model=LastImportDateResponse,
    responses={404: PROBLEM_RESPONSES[404]}
)
async def get_last_import_date(job_store: JobStore = Depends(get_job_store)):
    """Dataset date of the most recent completed import"""
    job = await job_store.last_completed_job()
    if job is None:
        raise JobNotFoundError("No completed import yet")
    return LastImportDateResponse(data_date=job.data_date, job_id=job.id, completed_at=job.completed_at)


@router.get("/scheduler", response_model=SchedulerStatusResponse)
async def get_scheduler_status(scheduler: ImportScheduler = Depends(get_scheduler)):
    return SchedulerStatusResponse(**await scheduler.status())


@router.get("/{job_id}", response_model=ImportJobResponse, responses={404: PROBLEM_RESPONSES[404]})
async def get_import(job_id: str, job_store: JobStore = Depends(get_job_store)):
    job = await job_store.get_job(_parse_job_id(job_id))
    if job is None:
        raise JobNotFoundError("Import job not found", context={"job_id": job_id})
    return ImportJobResponse.model_validate(job)


@router.post("/{job_id}/abort", status_code=204, responses={404: PROBLEM_RESPONSES[404]})
async def abort_import(job_id: str, job_store: JobStore = Depends(get_job_store)):
    """Request cancellation; takes effect at the job's next checkpoint"""
    await job_store.abort_job(_parse_job_id(job_id))
    return Response(status_code=204)


@router.delete("/{job_id}", status_code=204, responses={404: PROBLEM_RESPONSES[404]})
async def delete_import(job_id: str, job_store: JobStore = Depends(get_job_store)):
    """Alias of ``POST /imports/{id}/abort``; job rows are never deleted"""
    await job_store.abort_job(_parse_job_id(job_id))
    return Response(status_code=204)
