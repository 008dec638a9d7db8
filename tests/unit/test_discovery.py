"""
Unit tests for remote dataset discovery
"""

import httpx
import pytest
from datetime import date
from core.exceptions import NoDataFoundError
from ingestion.discovery import NotesDiscovery, archive_name, payload_name

BASE_URL = "https://data.example.com/public"


def make_discovery(existing_paths, seen=None, max_file_scan=100):
    """Discovery whose HEAD requests succeed only for ``existing_paths``"""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append((request.method, request.url.path))
        if request.url.path in existing_paths:
            return httpx.Response(200)
        return httpx.Response(404)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return NotesDiscovery(base_url=BASE_URL, max_file_scan=max_file_scan, client=client)


def path_for(data_date: date, index: int) -> str:
    return f"/public/{data_date:%Y/%m/%d}/notes/notes-{index:05d}.zip"


class TestNames:

    def test_archive_and_payload_names(self):
        assert archive_name(0) == "notes-00000.zip"
        assert archive_name(12) == "notes-00012.zip"
        assert payload_name(3) == "notes-00003.tsv"

    def test_file_url(self):
        discovery = NotesDiscovery(base_url=BASE_URL + "/")
        assert discovery.file_url(date(2024, 1, 10), 2) == (
            "https://data.example.com/public/2024/01/10/notes/notes-00002.zip"
        )


class TestFindLatestDate:

    @pytest.mark.asyncio
    async def test_walks_back_to_first_published_day(self):
        seen = []
        discovery = make_discovery({path_for(date(2024, 1, 10), 0)}, seen)

        latest = await discovery.find_latest_date(7, today=date(2024, 1, 12))

        assert latest == date(2024, 1, 10)
        assert seen == [
            ("HEAD", path_for(date(2024, 1, 12), 0)),
            ("HEAD", path_for(date(2024, 1, 11), 0)),
            ("HEAD", path_for(date(2024, 1, 10), 0)),
        ]

    @pytest.mark.asyncio
    async def test_today_is_tried_first(self):
        discovery = make_discovery({
            path_for(date(2024, 1, 12), 0),
            path_for(date(2024, 1, 10), 0),
        })
        assert await discovery.find_latest_date(7, today=date(2024, 1, 12)) == date(2024, 1, 12)

    @pytest.mark.asyncio
    async def test_nothing_in_window(self):
        seen = []
        discovery = make_discovery({path_for(date(2024, 1, 1), 0)}, seen)

        with pytest.raises(NoDataFoundError) as exc_info:
            await discovery.find_latest_date(7, today=date(2024, 1, 12))

        assert exc_info.value.message == "no data files found in the last 7 days"
        assert len(seen) == 7

    @pytest.mark.asyncio
    async def test_zero_lookback_sends_no_requests(self):
        seen = []
        discovery = make_discovery({path_for(date(2024, 1, 12), 0)}, seen)

        with pytest.raises(NoDataFoundError) as exc_info:
            await discovery.find_latest_date(0, today=date(2024, 1, 12))

        assert exc_info.value.message == "no data files found in the last 0 days"
        assert seen == []

    @pytest.mark.asyncio
    async def test_transport_errors_count_as_missing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        discovery = NotesDiscovery(base_url=BASE_URL, client=client)

        with pytest.raises(NoDataFoundError):
            await discovery.find_latest_date(3, today=date(2024, 1, 12))

    @pytest.mark.asyncio
    async def test_only_200_counts_as_present(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        discovery = NotesDiscovery(base_url=BASE_URL, client=client)

        assert await discovery.exists(date(2024, 1, 12), 0) is False

    @pytest.mark.asyncio
    async def test_repeated_calls_agree(self):
        discovery = make_discovery({path_for(date(2024, 1, 10), 0)})

        first = await discovery.find_latest_date(7, today=date(2024, 1, 12))
        second = await discovery.find_latest_date(7, today=date(2024, 1, 12))

        assert first == second == date(2024, 1, 10)


class TestCountFiles:

    @pytest.mark.asyncio
    async def test_stops_at_first_gap(self):
        day = date(2024, 1, 10)
        discovery = make_discovery({path_for(day, i) for i in (0, 1, 2, 4)})

        assert await discovery.count_files(day) == 3

    @pytest.mark.asyncio
    async def test_capped_by_max_file_scan(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        discovery = NotesDiscovery(base_url=BASE_URL, max_file_scan=5, client=client)

        assert await discovery.count_files(date(2024, 1, 10)) == 5

    @pytest.mark.asyncio
    async def test_no_files_for_date(self):
        discovery = make_discovery(set())

        with pytest.raises(NoDataFoundError):
            await discovery.count_files(date(2024, 1, 10))

    @pytest.mark.asyncio
    async def test_only_head_requests_are_issued(self):
        seen = []
        day = date(2024, 1, 10)
        discovery = make_discovery({path_for(day, 0), path_for(day, 1)}, seen)

        await discovery.count_files(day)

        assert {method for method, _ in seen} == {"HEAD"}
        assert len(seen) == 3
