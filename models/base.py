from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class ImportStatus(str, enum.Enum):
    """Import job status"""
    DOWNLOADING = "downloading"
    IMPORTING = "importing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = (ImportStatus.DOWNLOADING, ImportStatus.IMPORTING)
TERMINAL_STATUSES = (ImportStatus.COMPLETED, ImportStatus.FAILED)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
