"""
Bulk-load the notes payload into PostgreSQL
"""

from typing import List, Optional
from pathlib import Path
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from models.note import Note, NOTE_COLUMNS
from core.exceptions import StoreError
import logging

logger = logging.getLogger(__name__)


class PostgresLoader:
    """
    Store operations needed by an import job.

    - Truncate the target table
    - COPY one tab-separated payload into it (client-side, through asyncpg)
    - Count the rows currently in the table
    - Read the in-flight row count of a running COPY from
      ``pg_stat_progress_copy`` (PostgreSQL 14+)

    Every operation uses its own connection from the engine, so the progress
    query can run while a COPY holds another connection.
    """

    def __init__(self, engine: AsyncEngine, table_name: str = Note.__tablename__, columns: Optional[List[str]] = None):
        self.engine = engine
        self.table_name = table_name
        self.columns = columns or NOTE_COLUMNS

    async def truncate(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text(f'TRUNCATE "{self.table_name}"'))
        except Exception as e:
            raise StoreError(
                f"failed to truncate table: {e}",
                context={"operation": "TRUNCATE", "table_name": self.table_name},
                original_exception=e
            )
        logger.info(f"Truncated table {self.table_name}")

    async def copy_file(self, payload_path: Path) -> int:
        """
        COPY a payload with a header line into the table.

        Returns:
            Rows reported by the COPY command
        """
        try:
            async with self.engine.connect() as conn:
                raw = await conn.get_raw_connection()
                status = await raw.driver_connection.copy_to_table(
                    self.table_name,
                    source=str(payload_path),
                    columns=self.columns,
                    format="csv",
                    delimiter="\t",
                    header=True
                )
        except Exception as e:
            raise StoreError(
                f"failed to import {Path(payload_path).name}: {e}",
                context={"operation": "COPY", "table_name": self.table_name, "path": str(payload_path)},
                original_exception=e
            )

        # asyncpg returns the command tag, e.g. "COPY 1234"
        copied = int(status.split()[-1]) if status else 0
        logger.info(f"COPY {Path(payload_path).name}: {copied} rows")
        return copied

    async def count_rows(self) -> int:
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(text(f'SELECT COUNT(*) FROM "{self.table_name}"'))
                return result.scalar() or 0
        except Exception as e:
            raise StoreError(
                f"failed to count rows: {e}",
                context={"operation": "COUNT", "table_name": self.table_name},
                original_exception=e
            )

    async def copy_progress(self) -> Optional[int]:
        """
        Tuples processed by the COPY currently running into the table.

        Returns None when no COPY is in flight.
        """
        async with self.engine.connect() as conn:
            result = await conn.execute(
                text(
                    "SELECT COALESCE(tuples_processed, 0) FROM pg_stat_progress_copy "
                    "WHERE relid = CAST(:table AS regclass) LIMIT 1"
                ),
                {"table": self.table_name}
            )
            return result.scalar_one_or_none()
