"""
Archive fetcher: download (or reuse) each published archive and extract its payload.

Cache layout under ``DATA_DIR``::

    2024-01-10-notes-00000.zip   archive as published
    2024-01-10-notes-00000.tsv   extracted payload

An archive already present under its canonical name is reused without any
network transfer. Downloads stream into a ``.part`` file that is renamed on
success and deleted on any failure, so a cached name always refers to a
complete archive. There is no resume: a failed transfer fails the job and the
next job downloads the file again.
"""

import asyncio
import httpx
import os
import shutil
import time
import uuid
import zipfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Awaitable, Callable, List, Optional
from core.config import settings
from core.exceptions import TransferError, ExtractionError
from ingestion.discovery import NotesDiscovery, archive_name, payload_name
from ingestion.extractors.progress import ProgressTracker, ProgressObservation, format_speed
from ingestion.job_store import JobStore
import logging

logger = logging.getLogger(__name__)

Checkpoint = Callable[[], Awaitable[None]]


@dataclass
class FileDescriptor:
    """One materialised file, handed from the fetcher to the bulk loader"""
    archive_path: Path
    payload_path: Path
    file_name: str
    file_size: int


def cached_archive_name(data_date: date, index: int) -> str:
    return f"{data_date.isoformat()}-{archive_name(index)}"


def extract_payload(archive_path: Path, index: int) -> Path:
    """
    Extract the payload entry for ``index`` next to the archive.

    Blocking; run it with ``asyncio.to_thread``.

    Raises:
        ExtractionError: If the archive is corrupt or lacks the entry
    """
    expected_entry = payload_name(index)
    payload_path = archive_path.with_suffix(".tsv")

    try:
        with zipfile.ZipFile(archive_path) as archive:
            if expected_entry not in archive.namelist():
                raise ExtractionError(
                    f"{expected_entry} not found in {archive_path.name}",
                    context={
                        "archive_path": str(archive_path),
                        "expected_entry": expected_entry
                    }
                )
            with archive.open(expected_entry) as src, open(payload_path, "wb") as dst:
                shutil.copyfileobj(src, dst, length=1024 * 1024)
    except zipfile.BadZipFile as e:
        # A corrupt cached archive would otherwise be reused by every later job
        archive_path.unlink(missing_ok=True)
        raise ExtractionError(
            f"failed to open {archive_path.name}: {e}",
            context={"archive_path": str(archive_path), "expected_entry": expected_entry},
            original_exception=e
        )

    logger.info(f"Extracted {payload_path}")
    return payload_path


class ArchiveFetcher:
    """
    Materialise every discovered file locally, reporting progress on the job row.

    Progress fields written (best effort, never fatal):
    - total_files, file_names, current_file_index
    - file_size (cumulative archive bytes so far)
    - download_cached (for the current file)
    - download_percentage (whole download phase), download_speed, download_duration
    """

    def __init__(
        self,
        job_store: JobStore,
        discovery: NotesDiscovery,
        data_dir: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        chunk_size: int = 64 * 1024
    ):
        self.job_store = job_store
        self.discovery = discovery
        self.data_dir = Path(data_dir or settings.DATA_DIR)
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self._client = client
        self.chunk_size = chunk_size

    def archive_path(self, data_date: date, index: int) -> Path:
        return self.data_dir / cached_archive_name(data_date, index)

    async def fetch_all(
        self,
        job_id: uuid.UUID,
        data_date: date,
        total_files: int,
        checkpoint: Optional[Checkpoint] = None
    ) -> List[FileDescriptor]:
        """
        Download and extract files ``0..total_files-1`` in order.

        Args:
            job_id: Job receiving progress updates
            data_date: Discovered dataset date
            total_files: Discovered file count
            checkpoint: Awaited before each file; raises to stop the phase

        Returns:
            One FileDescriptor per file, in index order

        Raises:
            TransferError: On any download failure
            ExtractionError: On a corrupt archive or missing payload entry
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)

        file_names = [cached_archive_name(data_date, i) for i in range(total_files)]
        await self.job_store.update_progress_quietly(
            job_id,
            total_files=total_files,
            current_file_index=0,
            file_names=file_names
        )

        started = time.monotonic()
        cumulative_size = 0
        files: List[FileDescriptor] = []

        client = self._client or httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        try:
            for index in range(total_files):
                if checkpoint is not None:
                    await checkpoint()

                archive_path = self.archive_path(data_date, index)

                if archive_path.exists():
                    file_size = archive_path.stat().st_size
                    cached = True
                    logger.info(f"File already exists: {archive_path}")
                else:
                    file_size = await self._download(
                        client, job_id, data_date, index, total_files,
                        archive_path, cumulative_size, started
                    )
                    cached = False

                cumulative_size += file_size
                await self.job_store.update_progress_quietly(
                    job_id,
                    current_file_index=index,
                    file_size=cumulative_size,
                    download_cached=cached,
                    download_percentage=((index + 1) * 100) // total_files,
                    download_duration=int(time.monotonic() - started)
                )

                payload_path = await asyncio.to_thread(extract_payload, archive_path, index)

                files.append(FileDescriptor(
                    archive_path=archive_path,
                    payload_path=payload_path,
                    file_name=archive_path.name,
                    file_size=file_size
                ))
        finally:
            if client is not self._client:
                await client.aclose()

        return files

    async def _download(
        self,
        client: httpx.AsyncClient,
        job_id: uuid.UUID,
        data_date: date,
        index: int,
        total_files: int,
        archive_path: Path,
        size_before: int,
        started: float
    ) -> int:
        url = self.discovery.file_url(data_date, index)
        part_path = archive_path.with_name(archive_path.name + ".part")
        logger.info(f"Downloading {url} to {archive_path}")

        async def on_progress(observation: ProgressObservation):
            overall = (index * 100 + observation.percentage) // total_files
            await self.job_store.update_progress_quietly(
                job_id,
                current_file_index=index,
                download_percentage=overall,
                download_speed=format_speed(observation.bytes_per_second),
                download_duration=int(time.monotonic() - started),
                file_size=size_before + observation.total_bytes
            )

        written = 0
        try:
            async with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise TransferError(
                        f"failed to download {url}: status {response.status_code}",
                        context={"url": url, "status_code": response.status_code}
                    )

                content_length = response.headers.get("Content-Length")
                total_bytes = int(content_length) if content_length and content_length.isdigit() else None

                tracker = ProgressTracker(
                    response.aiter_bytes(self.chunk_size),
                    total_bytes,
                    on_progress
                )
                with open(part_path, "wb") as out:
                    async for chunk in tracker:
                        out.write(chunk)
                        written += len(chunk)

            os.replace(part_path, archive_path)
        except httpx.HTTPError as e:
            raise TransferError(
                f"failed to download {url}: {e}",
                context={"url": url},
                original_exception=e
            )
        except OSError as e:
            raise TransferError(
                f"failed to write {archive_path.name}: {e}",
                context={"url": url, "path": str(archive_path)},
                original_exception=e
            )
        finally:
            part_path.unlink(missing_ok=True)

        logger.info(f"Downloaded {archive_path} ({written} bytes)")
        return written

    def cleanup_cache(self, keep_date: date) -> int:
        """
        Remove cached files that do not belong to ``keep_date``.

        Returns:
            Number of files removed
        """
        if not self.data_dir.exists():
            return 0

        prefix = keep_date.isoformat()
        removed = 0
        for entry in self.data_dir.iterdir():
            if entry.name.startswith(prefix) or not entry.is_file():
                continue
            try:
                entry.unlink()
                removed += 1
                logger.info(f"Removed old file {entry}")
            except OSError as e:
                logger.warning(f"Failed to remove old file {entry}: {e}")
        return removed
