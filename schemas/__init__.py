"""
Pydantic schemas for the HTTP surface.

Schemas:
    api: Import job records, discovery and scheduler status, health and
         RFC 7807 problem bodies

Usage:
    from schemas.api import ImportJobResponse, Problem

Example:
    job = await job_store.get_job(job_id)
    body = ImportJobResponse.model_validate(job)
"""

__all__ = [
    "ImportJobResponse",
    "CurrentImportResponse",
    "ImportCreatedResponse",
    "LatestAvailableResponse",
    "LastImportDateResponse",
    "SchedulerStatusResponse",
    "HealthResponse",
    "Problem",
]
