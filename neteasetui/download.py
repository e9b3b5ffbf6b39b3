"""Downloading audio files with retries, and cache directory housekeeping."""

from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path
from typing import Optional, Union

import httpx

__all__ = [
    "DownloadError",
    "DownloadStatusError",
    "backoff_delay_ms",
    "clear_dir_files",
    "download_to_path",
    "is_retryable_status",
    "now_ms",
]

INDEX_FILE_NAME = "index.json"

PathLike = Union[str, "os.PathLike[str]"]


class DownloadError(Exception):
    """A download could not be completed."""


class DownloadStatusError(DownloadError):
    """The server answered with a non-success status."""

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"HTTP status {status} for {url}")
        self.status = status
        self.url = url


def clear_dir_files(directory: PathLike, keep: Optional[PathLike]) -> tuple[int, int]:
    """Delete the regular files in ``directory``.

    The index file and the file named like ``keep`` are left in place.
    Returns the number of files removed and the bytes they held.
    """
    directory = Path(directory)
    keep_path = directory / Path(keep).name if keep is not None else None
    removed_files = 0
    removed_bytes = 0
    try:
        entries = list(os.scandir(directory))
    except OSError:
        return 0, 0
    for entry in entries:
        path = Path(entry.path)
        try:
            if entry.is_dir():
                continue
        except OSError:
            continue
        if entry.name == INDEX_FILE_NAME:
            continue
        if keep_path is not None and path == keep_path:
            continue
        try:
            removed_bytes += entry.stat().st_size
        except OSError:
            pass
        try:
            path.unlink()
        except OSError:
            continue
        removed_files += 1
    return removed_files, removed_bytes


def now_ms() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


def is_retryable_status(status: int) -> bool:
    """Timeouts, rate limiting and server errors are worth another attempt."""
    return status in (408, 429) or 500 <= status <= 599


def backoff_delay_ms(attempt: int, base_ms: int, max_ms: int) -> int:
    """Exponential delay before retry ``attempt``, with a little jitter, capped at ``max_ms``."""
    exp = base_ms * 2 ** min(attempt, 6)
    delay = min(exp, max_ms)
    jitter = now_ms() % 251
    return min(delay + jitter, max_ms)


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


async def _attempt(client: httpx.AsyncClient, out_path: Path, url: str, title: str) -> None:
    try:
        async with client.stream("GET", url) as response:
            if not response.is_success:
                raise DownloadStatusError(response.status_code, url)
            try:
                handle = open(out_path, "wb")
            except OSError as err:
                raise DownloadError(f"cannot create {out_path}: {err}") from err
            with handle:
                async for chunk in response.aiter_bytes():
                    try:
                        handle.write(chunk)
                    except OSError as err:
                        raise DownloadError(f"write failed ({title}): {err}") from err
                try:
                    handle.flush()
                except OSError as err:
                    raise DownloadError(f"write failed ({title}): {err}") from err
    except httpx.HTTPError as err:
        raise DownloadError(f"request failed ({title}): {err}") from err


async def download_to_path(
    client: httpx.AsyncClient,
    out_path: PathLike,
    url: str,
    title: str,
    retries: int,
    backoff_ms: int,
    backoff_max_ms: int,
) -> None:
    """Stream ``url`` into ``out_path``, retrying up to ``retries`` times.

    Each attempt starts from an empty file. Non-success statuses are only
    retried when :func:`is_retryable_status` allows it.
    """
    out_path = Path(out_path)
    for attempt in range(retries + 1):
        can_retry = attempt < retries
        _remove_quietly(out_path)
        try:
            await _attempt(client, out_path, url, title)
        except DownloadStatusError as err:
            if can_retry and is_retryable_status(err.status):
                await asyncio.sleep(backoff_delay_ms(attempt, backoff_ms, backoff_max_ms) / 1000)
                continue
            raise
        except DownloadError:
            if can_retry:
                await asyncio.sleep(backoff_delay_ms(attempt, backoff_ms, backoff_max_ms) / 1000)
                continue
            raise
        return