"""
Core utilities and configuration for the notes mirror import service.

This package provides foundational components used throughout the service:

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory
    exceptions: Exception hierarchy for import failures
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import NoDataFoundError, TransferError
    from core.logging import setup_logging

Example:
    setup_logging()

    async with async_session_maker() as session:
        # Perform database operations
        pass
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    # Exceptions
    "ImportJobError",
    "DiscoveryError",
    "NoDataFoundError",
    "TransferError",
    "ExtractionError",
    "StoreError",
    "ImportAbortedError",
    "JobAlreadyActiveError",
    "JobNotFoundError",
]
