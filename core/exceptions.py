"""
Custom exceptions for the import pipeline with structured error context.

Every failure that can end an import job is expressed as one of these
exceptions. The orchestrator catches them at the job boundary and records
``message`` on the job row; the API layer maps the job-lifecycle errors to
problem responses.

Exception Hierarchy:
    ImportJobError (base)
    ├── DiscoveryError
    │   └── NoDataFoundError
    ├── TransferError
    ├── ExtractionError
    ├── StoreError
    ├── ImportAbortedError
    ├── JobAlreadyActiveError
    └── JobNotFoundError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ImportJobError(Exception):
    """
    Base exception for all import-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (url, path, job id, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Discovery Errors
# ============================================================================

class DiscoveryError(ImportJobError):
    """Base exception for failures while locating the published dataset."""
    pass


class NoDataFoundError(DiscoveryError):
    """
    Raised when no published date exists within the lookback window, or the
    discovered date has no files.

    Context should include:
        - lookback_days: Size of the window that was searched
        - date: The date that was probed (for an empty file sequence)
    """
    pass


# ============================================================================
# Fetch Errors
# ============================================================================

class TransferError(ImportJobError):
    """
    Raised when downloading an archive fails (network error or non-success
    status). The partial file has already been removed when this is raised.

    Context should include:
        - url: The remote file URL
        - status_code: HTTP status code (if applicable)
    """
    pass


class ExtractionError(ImportJobError):
    """
    Raised when an archive is corrupt or does not contain the expected
    payload entry. Never retried.

    Context should include:
        - archive_path: Local archive path
        - expected_entry: Name of the payload entry that was looked up
    """
    pass


# ============================================================================
# Store Errors
# ============================================================================

class StoreError(ImportJobError):
    """
    Raised when the relational store fails during truncate, bulk load or
    row count. ``message`` includes the store's own error text.

    Context should include:
        - operation: TRUNCATE, COPY or COUNT
        - table_name: Name of the target table
    """
    pass


# ============================================================================
# Job Lifecycle Errors
# ============================================================================

class ImportAbortedError(ImportJobError):
    """Raised at a checkpoint when the job was already failed by an external actor."""
    pass


class JobAlreadyActiveError(ImportJobError):
    """Raised when a job is created while another one is downloading or importing."""
    pass


class JobNotFoundError(ImportJobError):
    """Raised for an unknown job id, or for an abort of a job that is no longer active."""
    pass
