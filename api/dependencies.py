"""
Dependency providers for the API.

Service objects are process-wide singletons built lazily from settings.
Tests replace them through ``app.dependency_overrides``.
"""

from functools import lru_cache
from core.database import engine, async_session_maker
from ingestion.discovery import NotesDiscovery
from ingestion.extractors.archive_fetcher import ArchiveFetcher
from ingestion.job_store import JobStore
from ingestion.loaders.bulk_loader import BulkLoader
from ingestion.loaders.postgres_loader import PostgresLoader
from ingestion.runner import ImportRunner
from ingestion.scheduler import ImportScheduler


@lru_cache
def get_job_store() -> JobStore:
    return JobStore(async_session_maker)


@lru_cache
def get_discovery() -> NotesDiscovery:
    return NotesDiscovery()


@lru_cache
def get_runner() -> ImportRunner:
    job_store = get_job_store()
    discovery = get_discovery()
    return ImportRunner(
        job_store=job_store,
        discovery=discovery,
        fetcher=ArchiveFetcher(job_store, discovery),
        bulk_loader=BulkLoader(PostgresLoader(engine), job_store)
    )


@lru_cache
def get_scheduler() -> ImportScheduler:
    return ImportScheduler(
        runner=get_runner(),
        job_store=get_job_store(),
        discovery=get_discovery()
    )
