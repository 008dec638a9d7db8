from sqlalchemy import (
    Column, BigInteger, Boolean, Date, DateTime, Enum, Integer, JSON, String, Text, Uuid,
    Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
import uuid
from models.base import Base, ImportStatus, utcnow

# Value held in ``active_slot`` while a job is downloading or importing.
ACTIVE_SLOT_MARKER = "active"


class ImportJob(Base):
    """
    One row per import attempt.

    Purpose:
    - Single source of truth for job state (the API always re-reads it)
    - Live progress for the download and import phases
    - Accumulated history; rows are never deleted

    Design:
    - ``active_slot`` carries ACTIVE_SLOT_MARKER while the job is active and
      NULL once it is terminal. The unique constraint on it lets the database
      refuse a second active job, closing the count-then-insert race.
    - ``data_date`` is the logical date of the imported dataset, which is not
      the same as ``started_at``.
    """
    __tablename__ = "import_jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    status = Column(
        Enum(ImportStatus, name="import_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ImportStatus.DOWNLOADING,
        index=True
    )
    active_slot = Column(String(16), nullable=True)
    error_message = Column(Text, nullable=True)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    download_completed_at = Column(DateTime, nullable=True)
    import_started_at = Column(DateTime, nullable=True)

    # Download phase
    total_files = Column(Integer, nullable=True)
    current_file_index = Column(Integer, nullable=True)
    files_processed = Column(Integer, nullable=True)
    file_names = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    file_name = Column(String(255), nullable=True)
    download_percentage = Column(Integer, nullable=True, default=0)
    download_speed = Column(String(32), nullable=True)
    download_cached = Column(Boolean, nullable=True, default=False)
    file_size = Column(BigInteger, nullable=True)
    download_duration = Column(Integer, nullable=True)

    # Import phase
    total_rows = Column(BigInteger, nullable=True)
    rows_processed = Column(BigInteger, nullable=True, default=0)
    import_duration = Column(Integer, nullable=True)

    # Dataset
    data_date = Column(Date, nullable=True, index=True)

    __table_args__ = (
        UniqueConstraint("active_slot", name="uq_import_jobs_active_slot"),
        Index("idx_import_jobs_status_started", "status", "started_at"),
    )
