"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class, the ImportStatus enum and timestamp helper
    import_job: One row per import attempt, with live progress fields
    note: Bulk-load target table for the notes payload

Usage:
    from models.import_job import ImportJob
    from models.base import ImportStatus, ACTIVE_STATUSES

Example:
    job = ImportJob(status=ImportStatus.DOWNLOADING, active_slot=ACTIVE_SLOT_MARKER)
    session.add(job)
    await session.commit()
"""

__all__ = [
    "Base",
    "ImportStatus",
    "ImportJob",
    "Note",
]
