"""
Helpers for the extracted tab-separated payload.

Both helpers stream the file instead of parsing it: payloads are large and
only line structure matters here. They are blocking and meant to be run with
``asyncio.to_thread``.
"""

from pathlib import Path
import logging
import os

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def count_rows(payload_path) -> int:
    """
    Number of data rows (lines minus the header).

    A final line without a trailing newline still counts.
    """
    lines = 0
    last_byte = b""
    with open(payload_path, "rb") as f:
        while True:
            chunk = f.read(_CHUNK_SIZE)
            if not chunk:
                break
            lines += chunk.count(b"\n")
            last_byte = chunk[-1:]

    if last_byte and last_byte != b"\n":
        lines += 1

    return max(0, lines - 1)


def truncate_payload(payload_path, max_rows: int) -> int:
    """
    Rewrite the payload in place with the header and the first ``max_rows`` rows.

    Returns:
        Number of data rows kept
    """
    if max_rows <= 0:
        return count_rows(payload_path)

    payload_path = Path(payload_path)
    tmp_path = payload_path.with_name(payload_path.name + ".tmp")

    kept = -1  # header
    with open(payload_path, "rb") as src, open(tmp_path, "wb") as dst:
        for line in src:
            if kept >= max_rows:
                break
            dst.write(line)
            kept += 1

    os.replace(tmp_path, payload_path)
    kept = max(0, kept)
    logger.info(f"Truncated {payload_path.name} to {kept} rows")
    return kept
