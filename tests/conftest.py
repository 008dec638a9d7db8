"""
Pytest configuration and fixtures
"""

import io
import os
import zipfile
from pathlib import Path
from typing import List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from models.base import Base
from models.import_job import ImportJob  # noqa: F401  registers the table
from models.note import Note  # noqa: F401  registers the table
from ingestion.job_store import JobStore
from ingestion.transformers.payload import count_rows

# Defaults to a throwaway SQLite file; point it at PostgreSQL to run the
# store tests against the real dialect.
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

PAYLOAD_HEADER = "noteId\tnoteAuthorParticipantId\tcreatedAtMillis\ttweetId\tclassification"


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'import_jobs.db'}",
        echo=False,
        poolclass=NullPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def job_store(session_factory) -> JobStore:
    return JobStore(session_factory)


# ============================================================================
# Payload / archive builders
# ============================================================================

def build_payload(rows: int, trailing_newline: bool = True) -> bytes:
    lines = [PAYLOAD_HEADER]
    for i in range(rows):
        lines.append(f"{1000 + i}\tauthor{i}\t{1700000000000 + i}\t{5000 + i}\tNOT_MISLEADING")
    text = "\n".join(lines)
    if trailing_newline:
        text += "\n"
    return text.encode()


def build_archive(entry_name: str, payload: bytes) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(entry_name, payload)
    return buffer.getvalue()


@pytest.fixture
def payload_factory():
    """Build a tab-separated payload with a header and ``rows`` data rows"""
    return build_payload


@pytest.fixture
def archive_factory():
    """Build zip bytes holding ``notes-xxxxx.tsv`` for a file index"""
    def factory(index: int, rows: int, entry_name: Optional[str] = None) -> bytes:
        return build_archive(entry_name or f"notes-{index:05d}.tsv", build_payload(rows))
    return factory


# ============================================================================
# Store double
# ============================================================================

class FakeStoreLoader:
    """
    Stands in for PostgresLoader: keeps a row count instead of a table.

    ``calls`` records the store operations in order.
    """

    def __init__(self):
        self.calls: List[str] = []
        self.rows = 0
        self.in_flight: Optional[int] = None

    async def truncate(self):
        self.calls.append("truncate")
        self.rows = 0

    async def copy_file(self, payload_path) -> int:
        rows = count_rows(payload_path)
        self.calls.append(f"copy:{Path(payload_path).name}")
        self.rows += rows
        return rows

    async def count_rows(self) -> int:
        return self.rows

    async def copy_progress(self) -> Optional[int]:
        return self.in_flight

    @property
    def copied(self) -> List[str]:
        return [c.split(":", 1)[1] for c in self.calls if c.startswith("copy:")]


@pytest.fixture
def fake_loader() -> FakeStoreLoader:
    return FakeStoreLoader()
