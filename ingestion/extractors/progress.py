"""
Throttled download progress.

Wraps the chunk stream of an HTTP response and reports percentage and average
speed at most every 5 percentage points or every second, whichever comes
first. Each report becomes one write to the job row, so the throttle bounds
write amplification while keeping the UI responsive.
"""

import time
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional


@dataclass
class ProgressObservation:
    percentage: int
    bytes_per_second: float
    bytes_read: int
    total_bytes: int
    elapsed_seconds: float


def format_speed(bytes_per_second: float) -> str:
    """Human-readable transfer speed"""
    if bytes_per_second >= 1024 * 1024:
        return f"{bytes_per_second / (1024 * 1024):.1f} MB/s"
    if bytes_per_second >= 1024:
        return f"{bytes_per_second / 1024:.1f} KB/s"
    return f"{bytes_per_second:.0f} B/s"


class ProgressTracker:
    """
    Async iterator over ``chunks`` that emits ProgressObservation callbacks.

    No observation is emitted when ``total_bytes`` is unknown or zero
    (e.g. a chunked response without Content-Length).
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        total_bytes: Optional[int],
        on_progress: Callable[[ProgressObservation], Awaitable[None]],
        min_step: int = 5,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.chunks = chunks
        self.total_bytes = total_bytes or 0
        self.on_progress = on_progress
        self.min_step = min_step
        self.min_interval = min_interval
        self.clock = clock

        self.bytes_read = 0
        self.start_time = clock()
        self.last_update = self.start_time
        self.last_percentage = 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        async for chunk in self.chunks:
            self.bytes_read += len(chunk)
            await self._maybe_report()
            yield chunk

    @property
    def percentage(self) -> Optional[int]:
        if self.total_bytes <= 0:
            return None
        return min(100, (self.bytes_read * 100) // self.total_bytes)

    async def _maybe_report(self):
        percentage = self.percentage
        if percentage is None:
            return

        now = self.clock()
        step_reached = percentage >= self.last_percentage + self.min_step
        interval_reached = now - self.last_update >= self.min_interval
        if not (step_reached or interval_reached):
            return

        self.last_percentage = percentage
        self.last_update = now

        elapsed = now - self.start_time
        speed = self.bytes_read / elapsed if elapsed > 0 else 0.0

        await self.on_progress(ProgressObservation(
            percentage=percentage,
            bytes_per_second=speed,
            bytes_read=self.bytes_read,
            total_bytes=self.total_bytes,
            elapsed_seconds=elapsed
        ))
