"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID
from models.base import ImportStatus


# ============================================================================
# Import Job Schemas
# ============================================================================

class ImportJobResponse(BaseModel):
    """Full import job record"""
    id: UUID
    status: ImportStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    # Download phase
    total_files: Optional[int] = None
    current_file_index: Optional[int] = None
    files_processed: Optional[int] = None
    file_names: Optional[List[str]] = None
    file_name: Optional[str] = None
    download_percentage: Optional[int] = None
    download_speed: Optional[str] = None
    download_cached: Optional[bool] = None
    file_size: Optional[int] = None
    download_duration: Optional[int] = None
    download_completed_at: Optional[datetime] = None

    # Import phase
    import_started_at: Optional[datetime] = None
    total_rows: Optional[int] = None
    rows_processed: Optional[int] = None
    import_duration: Optional[int] = None

    data_date: Optional[date] = None

    class Config:
        from_attributes = True
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "id": "0b8a4f7e-8f7e-4b1c-9d39-1f3c7c0c9a10",
                "status": "importing",
                "started_at": "2024-01-10T08:00:00",
                "total_files": 3,
                "current_file_index": 1,
                "files_processed": 1,
                "file_names": [
                    "2024-01-10-notes-00000.zip",
                    "2024-01-10-notes-00001.zip",
                    "2024-01-10-notes-00002.zip"
                ],
                "download_percentage": 100,
                "download_speed": "2.3 MB/s",
                "download_cached": False,
                "total_rows": 1500000,
                "rows_processed": 620000
            }
        }


class CurrentImportResponse(ImportJobResponse):
    """Most recent job, with a load percentage while importing"""
    percentage: Optional[int] = None


class ImportCreatedResponse(BaseModel):
    message: str = "Import started"
    job_id: UUID


# ============================================================================
# Discovery / Scheduler Schemas
# ============================================================================

class LatestAvailableResponse(BaseModel):
    data_date: date
    lookback_days: int


class LastImportDateResponse(BaseModel):
    data_date: date
    job_id: UUID
    completed_at: Optional[datetime] = None


class SchedulerStatusResponse(BaseModel):
    enabled: bool
    interval_minutes: int
    last_check: Optional[datetime] = None
    next_run: Optional[datetime] = None
    last_import_date: Optional[date] = None


# ============================================================================
# Health / Errors
# ============================================================================

class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime


class VersionResponse(BaseModel):
    name: str
    version: str


class Problem(BaseModel):
    """RFC 7807 problem details"""
    type: str = Field(..., description="URI identifying the problem type")
    title: str
    status: int
    detail: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "type": "https://httpstatuses.com/409",
                "title": "Conflict",
                "status": 409,
                "detail": "Import already in progress"
            }
        }
