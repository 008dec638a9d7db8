"""
Locate the newest published notes dataset.

Files are published under a date directory as ``notes-00000.zip``,
``notes-00001.zip``, ... with contiguous indices starting at 0. Discovery only
issues HEAD requests and never downloads a body, so it is safe to call from
the scheduler without starting a job.
"""

import httpx
from typing import Optional
from datetime import date, timedelta
from core.config import settings
from core.exceptions import NoDataFoundError
import logging

logger = logging.getLogger(__name__)


def archive_name(index: int) -> str:
    """Remote archive name for a file index"""
    return f"notes-{index:05d}.zip"


def payload_name(index: int) -> str:
    """Name of the payload entry inside the archive for a file index"""
    return f"notes-{index:05d}.tsv"


class NotesDiscovery:
    """
    Find the latest published date and how many files it contains.

    Attributes:
        base_url: Root of the public dataset
        max_file_scan: Upper bound on probed file indices
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        max_file_scan: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = (base_url or settings.NOTES_BASE_URL).rstrip("/")
        self.max_file_scan = max_file_scan or settings.MAX_FILE_SCAN
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self._client = client

    def file_url(self, data_date: date, index: int) -> str:
        return f"{self.base_url}/{data_date:%Y/%m/%d}/notes/{archive_name(index)}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)

    async def _exists(self, client: httpx.AsyncClient, url: str) -> bool:
        try:
            response = await client.head(url)
        except httpx.HTTPError as e:
            logger.debug(f"Probe failed for {url}: {e}")
            return False
        return response.status_code == 200

    async def exists(self, data_date: date, index: int) -> bool:
        """Cheap existence check for one remote file"""
        client = self._get_client()
        try:
            return await self._exists(client, self.file_url(data_date, index))
        finally:
            if client is not self._client:
                await client.aclose()

    async def find_latest_date(
        self,
        lookback_days: Optional[int] = None,
        today: Optional[date] = None
    ) -> date:
        """
        Walk back from today until file 0 exists.

        Args:
            lookback_days: Number of days to try, today included
            today: Starting day (defaults to the current date)

        Returns:
            The newest date with published data

        Raises:
            NoDataFoundError: If no date within the window has data
        """
        if lookback_days is None:
            lookback_days = settings.LOOKBACK_DAYS
        today = today or date.today()

        client = self._get_client()
        try:
            for days_ago in range(lookback_days):
                candidate = today - timedelta(days=days_ago)
                if await self._exists(client, self.file_url(candidate, 0)):
                    logger.info(f"Latest published dataset is {candidate.isoformat()}")
                    return candidate
        finally:
            if client is not self._client:
                await client.aclose()

        raise NoDataFoundError(
            f"no data files found in the last {lookback_days} days",
            context={"lookback_days": lookback_days, "base_url": self.base_url}
        )

    async def count_files(self, data_date: date) -> int:
        """
        Probe indices 0, 1, 2, ... and stop at the first gap.

        Raises:
            NoDataFoundError: If not even file 0 exists
        """
        count = 0
        client = self._get_client()
        try:
            while count < self.max_file_scan:
                if not await self._exists(client, self.file_url(data_date, count)):
                    break
                count += 1
        finally:
            if client is not self._client:
                await client.aclose()

        if count == 0:
            raise NoDataFoundError(
                f"no files found for date {data_date.isoformat()}",
                context={"date": data_date.isoformat()}
            )

        if count == self.max_file_scan:
            logger.warning(f"File scan for {data_date.isoformat()} stopped at the {self.max_file_scan} file limit")

        logger.info(f"Found {count} file(s) for {data_date.isoformat()}")
        return count
