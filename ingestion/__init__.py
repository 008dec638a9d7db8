"""
Import pipeline components.

This package contains every component of an import job:

Modules:
    discovery: Locate the newest published date and its file count
    job_store: Persistence, state transitions and crash recovery for jobs
    runner: Orchestrator that sequences the phases of a job
    scheduler: APScheduler tick that triggers imports when newer data exists

Subpackages:
    extractors: Archive download/cache/extraction and download progress
    transformers: Payload row counting and test-mode truncation
    loaders: Store operations and the bulk loader with live progress

Architecture:
    A job moves through two phases:

    1. Downloading - discover, then download or reuse each archive and
       extract its payload
    2. Importing - truncate the table once, then COPY every payload in order

    Abort requests are honoured at checkpoints before each phase and before
    each file.

Usage:
    from ingestion.runner import ImportRunner

Example:
    runner = ImportRunner(job_store, discovery, fetcher, bulk_loader)
    job = await runner.start_import(limit=1000)
    print(f"Started job {job.id}")
"""

__all__ = [
    "NotesDiscovery",
    "JobStore",
    "ImportRunner",
    "ImportScheduler",
    "ArchiveFetcher",
    "ProgressTracker",
    "BulkLoader",
    "PostgresLoader",
]
