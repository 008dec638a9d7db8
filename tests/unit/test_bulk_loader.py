"""
Unit tests for the bulk loader and its progress sampler
"""

import asyncio
import pytest
from unittest.mock import AsyncMock
from core.exceptions import ImportAbortedError
from ingestion.extractors.archive_fetcher import FileDescriptor
from ingestion.loaders.bulk_loader import BulkLoader, ProgressSampler


def rows_published(job_store):
    return [
        c.kwargs["rows_processed"]
        for c in job_store.update_progress_quietly.call_args_list
        if "rows_processed" in c.kwargs
    ]


@pytest.fixture
def job_store():
    store = AsyncMock()
    store.update_progress_quietly = AsyncMock()
    return store


@pytest.fixture
def payload_files(tmp_path, payload_factory):
    files = []
    for index, rows in enumerate((4, 5, 6)):
        payload_path = tmp_path / f"2024-01-10-notes-{index:05d}.tsv"
        payload_path.write_bytes(payload_factory(rows))
        files.append(FileDescriptor(
            archive_path=payload_path.with_suffix(".zip"),
            payload_path=payload_path,
            file_name=f"2024-01-10-notes-{index:05d}.zip",
            file_size=100
        ))
    return files


class TestBulkLoader:

    @pytest.mark.asyncio
    async def test_truncates_once_then_loads_in_order(self, fake_loader, job_store, payload_files):
        loader = BulkLoader(fake_loader, job_store, sample_interval=60)

        total = await loader.load("job-1", payload_files)

        assert total == 15
        assert fake_loader.calls == [
            "truncate",
            "copy:2024-01-10-notes-00000.tsv",
            "copy:2024-01-10-notes-00001.tsv",
            "copy:2024-01-10-notes-00002.tsv",
        ]
        assert rows_published(job_store) == [4, 9, 15]

        processed = [
            c.kwargs["files_processed"]
            for c in job_store.update_progress_quietly.call_args_list
            if "files_processed" in c.kwargs
        ]
        assert processed == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_abort_between_files(self, fake_loader, job_store, payload_files):
        """Checkpoint before file 3 fails: two files loaded, no third COPY"""
        loader = BulkLoader(fake_loader, job_store, sample_interval=60)
        checkpoint = AsyncMock(side_effect=[None, None, None, ImportAbortedError("aborted")])

        with pytest.raises(ImportAbortedError):
            await loader.load("job-1", payload_files, checkpoint)

        assert fake_loader.copied == [
            "2024-01-10-notes-00000.tsv",
            "2024-01-10-notes-00001.tsv",
        ]
        processed = [
            c.kwargs["files_processed"]
            for c in job_store.update_progress_quietly.call_args_list
            if "files_processed" in c.kwargs
        ]
        assert processed[-1] == 2

    @pytest.mark.asyncio
    async def test_abort_before_truncate(self, fake_loader, job_store, payload_files):
        loader = BulkLoader(fake_loader, job_store, sample_interval=60)
        checkpoint = AsyncMock(side_effect=ImportAbortedError("aborted"))

        with pytest.raises(ImportAbortedError):
            await loader.load("job-1", payload_files, checkpoint)

        assert fake_loader.calls == []

    @pytest.mark.asyncio
    async def test_copy_failure_propagates(self, fake_loader, job_store, payload_files):
        fake_loader.copy_file = AsyncMock(side_effect=RuntimeError("copy failed"))
        loader = BulkLoader(fake_loader, job_store, sample_interval=60)

        with pytest.raises(RuntimeError):
            await loader.load("job-1", payload_files)

    @pytest.mark.asyncio
    async def test_sampled_progress_is_monotonic(self, fake_loader, job_store, payload_files):
        """In-flight samples interleave with per-file baselines without going backwards"""
        copy_file = fake_loader.copy_file

        async def slow_copy(path):
            fake_loader.in_flight = 3
            await asyncio.sleep(0.05)
            fake_loader.in_flight = None
            return await copy_file(path)

        fake_loader.copy_file = slow_copy
        loader = BulkLoader(fake_loader, job_store, sample_interval=0.01)

        total = await loader.load("job-1", payload_files)

        published = rows_published(job_store)
        assert total == 15
        assert published == sorted(set(published))
        assert published[-1] == 15


class TestProgressSampler:

    @pytest.mark.asyncio
    async def test_publishes_baseline_plus_in_flight(self, fake_loader, job_store):
        sampler = ProgressSampler("job-1", fake_loader, job_store, interval=60)

        await sampler.set_baseline(100)
        fake_loader.in_flight = 50
        await sampler.sample()

        assert rows_published(job_store) == [100, 150]
        assert sampler.reported == 150

    @pytest.mark.asyncio
    async def test_never_publishes_a_smaller_value(self, fake_loader, job_store):
        sampler = ProgressSampler("job-1", fake_loader, job_store, interval=60)

        await sampler.set_baseline(100)
        fake_loader.in_flight = 50
        await sampler.sample()
        fake_loader.in_flight = 10
        await sampler.sample()

        assert rows_published(job_store) == [100, 150]

    @pytest.mark.asyncio
    async def test_sample_spanning_a_finished_file_is_dropped(self, fake_loader, job_store):
        """In-flight count read before a file finished must not be added to its final count"""
        sampler = ProgressSampler("job-1", fake_loader, job_store, interval=60)
        query_started = asyncio.Event()
        file_finished = asyncio.Event()

        async def slow_progress():
            query_started.set()
            await file_finished.wait()
            return 990

        fake_loader.copy_progress = slow_progress

        sample = asyncio.create_task(sampler.sample())
        await query_started.wait()
        await sampler.set_baseline(1000)
        file_finished.set()
        await sample

        published = rows_published(job_store)
        assert published == [1000]
        assert max(published) <= 1000

    @pytest.mark.asyncio
    async def test_idle_store_publishes_nothing(self, fake_loader, job_store):
        sampler = ProgressSampler("job-1", fake_loader, job_store, interval=60)

        await sampler.sample()

        assert rows_published(job_store) == []

    @pytest.mark.asyncio
    async def test_progress_query_failure_is_tolerated(self, fake_loader, job_store):
        fake_loader.copy_progress = AsyncMock(side_effect=RuntimeError("relation does not exist"))
        sampler = ProgressSampler("job-1", fake_loader, job_store, interval=60)

        await sampler.sample()
        await sampler.sample()

        assert rows_published(job_store) == []

    @pytest.mark.asyncio
    async def test_stop_is_single_use(self, fake_loader, job_store):
        sampler = ProgressSampler("job-1", fake_loader, job_store, interval=60)
        sampler.start()

        await sampler.stop()

        with pytest.raises(RuntimeError):
            await sampler.stop()

    @pytest.mark.asyncio
    async def test_start_is_single_use(self, fake_loader, job_store):
        sampler = ProgressSampler("job-1", fake_loader, job_store, interval=60)
        sampler.start()
        try:
            with pytest.raises(RuntimeError):
                sampler.start()
        finally:
            await sampler.stop()
