"""Background actor that downloads audio into the cache, one job per song and bitrate."""

from __future__ import annotations

import asyncio
import heapq
import logging
import os
import re
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Callable, Mapping, Optional, Union

import httpx

from .cache import AudioCache, CacheError
from .download import DownloadError, download_to_path, now_ms

__all__ = [
    "CacheCleared",
    "CacheKey",
    "Cancel",
    "ClearAll",
    "EnsureCached",
    "Invalidate",
    "Priority",
    "PurgeNotBr",
    "Ready",
    "TransferActor",
    "TransferCommand",
    "TransferConfig",
    "TransferError",
    "TransferEvent",
    "spawn_transfer_actor",
    "tmp_path_for",
]

log = logging.getLogger(__name__)

QUEUE_SIZE = 256
CACHE_DIR_UNAVAILABLE = "cache directory unavailable"

PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class CacheKey:
    song_id: int
    br: int


class Priority(IntEnum):
    LOW = 0
    HIGH = 1


@dataclass(frozen=True)
class EnsureCached:
    """Make sure ``key`` is cached; token 0 asks for no reply."""

    token: int
    key: CacheKey
    url: str
    title: str
    priority: Priority


@dataclass(frozen=True)
class Cancel:
    """Stop waiting for ``key`` on behalf of ``token``."""

    token: int
    key: CacheKey


@dataclass(frozen=True)
class Invalidate:
    key: CacheKey


@dataclass(frozen=True)
class ClearAll:
    keep: Optional[Path] = None


@dataclass(frozen=True)
class PurgeNotBr:
    """Keep only cached audio of bitrate ``br`` from now on."""

    br: int
    keep: Optional[Path] = None


TransferCommand = Union[EnsureCached, Cancel, Invalidate, ClearAll, PurgeNotBr]


@dataclass(frozen=True)
class Ready:
    token: int
    key: CacheKey
    path: Path


@dataclass(frozen=True)
class TransferError:
    token: int
    message: str


@dataclass(frozen=True)
class CacheCleared:
    files: int
    bytes: int


TransferEvent = Union[Ready, TransferError, CacheCleared]

_UINT_RE = re.compile(r"\+?[0-9]+")


def _parse_unsigned(text: Optional[str], bits: int) -> Optional[int]:
    if text is None or not _UINT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value < 2**bits else None


@dataclass
class TransferConfig:
    """Network and cache settings for the transfer actor."""

    http_timeout_secs: int = 30
    http_connect_timeout_secs: int = 10
    download_concurrency: Optional[int] = None
    download_retries: int = 2
    download_retry_backoff_ms: int = 250
    download_retry_backoff_max_ms: int = 2_000
    audio_cache_max_mb: int = 2048

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> TransferConfig:
        """Defaults, overridden by ``NETEASE_AUDIO_*`` variables that parse."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def read(name: str, bits: int, default: Optional[int]) -> Optional[int]:
            value = _parse_unsigned(env.get(name), bits)
            return default if value is None else value

        concurrency = _parse_unsigned(env.get("NETEASE_AUDIO_DOWNLOAD_CONCURRENCY"), 64)
        return cls(
            http_timeout_secs=read(
                "NETEASE_AUDIO_HTTP_TIMEOUT_SECS", 64, defaults.http_timeout_secs
            ),
            http_connect_timeout_secs=read(
                "NETEASE_AUDIO_HTTP_CONNECT_TIMEOUT_SECS", 64, defaults.http_connect_timeout_secs
            ),
            download_concurrency=concurrency if concurrency else None,
            download_retries=read(
                "NETEASE_AUDIO_DOWNLOAD_RETRIES", 32, defaults.download_retries
            ),
            download_retry_backoff_ms=read(
                "NETEASE_AUDIO_DOWNLOAD_RETRY_BACKOFF_MS", 64, defaults.download_retry_backoff_ms
            ),
            download_retry_backoff_max_ms=read(
                "NETEASE_AUDIO_DOWNLOAD_RETRY_BACKOFF_MAX_MS",
                64,
                defaults.download_retry_backoff_max_ms,
            ),
            audio_cache_max_mb=read(
                "NETEASE_AUDIO_CACHE_MAX_MB", 64, defaults.audio_cache_max_mb
            ),
        )


def tmp_path_for(directory: PathLike, key: CacheKey, seq: int) -> Path:
    """A unique temporary download path for ``key`` inside ``directory``."""
    return Path(directory) / f"{key.song_id}_{key.br}.{now_ms()}.{seq}.tmp"


@dataclass
class _Job:
    url: str
    title: str
    prio: int
    waiters: list[int] = field(default_factory=list)
    in_flight: bool = False


@dataclass(frozen=True)
class _Downloaded:
    key: CacheKey
    tmp_path: Path


@dataclass(frozen=True)
class _Failed:
    key: CacheKey
    error: DownloadError


_CLOSED = object()


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


class TransferActor:
    """Serves :data:`TransferCommand` items from ``commands`` and reports on ``events``.

    Downloads for the same key are shared; queued jobs start by priority,
    then in arrival order, with at most ``download_concurrency`` running.
    Putting ``None`` on ``commands`` shuts the actor down once running
    downloads have finished.
    """

    def __init__(
        self,
        data_dir: PathLike,
        config: TransferConfig,
        commands: asyncio.Queue,
        events: asyncio.Queue,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._data_dir = Path(data_dir)
        self._config = config
        self._commands = commands
        self._events = events
        self._client = client
        self._concurrency = config.download_concurrency or os.cpu_count() or 1
        self._cache: Optional[AudioCache] = None
        self._heap: list[tuple[int, int, CacheKey]] = []
        self._jobs: dict[CacheKey, _Job] = {}
        self._tasks: set[asyncio.Task] = set()
        self._in_flight = 0
        self._seq = 1
        self._tmp_seq = 1
        self._active_br = 0

    async def run(self) -> None:
        """Process commands until the command queue is closed."""
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                self._config.http_timeout_secs,
                connect=self._config.http_connect_timeout_secs,
            ),
            follow_redirects=True,
        )
        self._cache = AudioCache(self._data_dir, self._config.audio_cache_max_mb)
        log.info(
            "transfer actor started: concurrency=%s retries=%s cache_max_mb=%s",
            self._concurrency,
            self._config.download_retries,
            self._config.audio_cache_max_mb,
        )
        inbox: asyncio.Queue = asyncio.Queue()
        pump = asyncio.create_task(self._pump(inbox))
        closed = False
        try:
            while not (closed and self._in_flight == 0):
                item = await inbox.get()
                if item is _CLOSED:
                    closed = True
                elif isinstance(item, (_Downloaded, _Failed)):
                    self._in_flight -= 1
                    await self._finish(item)
                else:
                    await self._handle(item)
                await self._start_jobs(client, inbox)
        finally:
            pump.cancel()
            pending = [pump, *self._tasks]
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self._cache.close()
            if owns_client:
                await client.aclose()

    async def _pump(self, inbox: asyncio.Queue) -> None:
        while True:
            cmd = await self._commands.get()
            if cmd is None:
                inbox.put_nowait(_CLOSED)
                return
            inbox.put_nowait(cmd)

    async def _handle(self, cmd: TransferCommand) -> None:
        cache = self._cache
        if isinstance(cmd, EnsureCached):
            key = cmd.key
            path = cache.lookup_path(key.song_id, key.br)
            if path is not None:
                log.info("cache hit: song_id=%s br=%s token=%s", key.song_id, key.br, cmd.token)
                if cmd.token != 0:
                    await self._events.put(Ready(cmd.token, key, path))
                return
            log.info("cache miss, enqueue: song_id=%s br=%s token=%s", key.song_id, key.br, cmd.token)
            prio = int(cmd.priority)
            job = self._jobs.setdefault(key, _Job(cmd.url, cmd.title, prio))
            job.url = cmd.url
            job.title = cmd.title
            job.prio = max(job.prio, prio)
            job.waiters.append(cmd.token)
            if not job.in_flight:
                heapq.heappush(self._heap, (-job.prio, self._seq, key))
                self._seq += 1
        elif isinstance(cmd, Cancel):
            if cmd.token == 0:
                return
            job = self._jobs.get(cmd.key)
            if job is None:
                return
            remaining = [token for token in job.waiters if token != cmd.token]
            removed = len(remaining) != len(job.waiters)
            job.waiters = remaining
            if removed:
                log.debug("cancel waiter: song_id=%s token=%s", cmd.key.song_id, cmd.token)
            if removed and not remaining and not job.in_flight:
                del self._jobs[cmd.key]
        elif isinstance(cmd, Invalidate):
            log.info("cache invalidate: song_id=%s br=%s", cmd.key.song_id, cmd.key.br)
            cache.invalidate(cmd.key.song_id, cmd.key.br)
        elif isinstance(cmd, ClearAll):
            files, size = cache.clear_all(cmd.keep)
            await self._events.put(CacheCleared(files=files, bytes=size))
        elif isinstance(cmd, PurgeNotBr):
            log.info("cache purge other bitrates: br=%s", cmd.br)
            self._active_br = cmd.br
            cache.purge_not_br(cmd.br, cmd.keep)
        else:
            raise TypeError(f"unknown transfer command: {cmd!r}")

    async def _finish(self, result: Union[_Downloaded, _Failed]) -> None:
        key = result.key
        if isinstance(result, _Failed):
            log.warning("download failed: song_id=%s br=%s: %s", key.song_id, key.br, result.error)
            message = str(result.error)
            await self._fan_out(key, lambda token: TransferError(token, message))
            return
        cache = self._cache
        try:
            final_path = cache.commit_tmp_file(key.song_id, key.br, result.tmp_path)
        except CacheError as err:
            _remove_quietly(result.tmp_path)
            log.warning("cache commit failed: song_id=%s br=%s: %s", key.song_id, key.br, err)
            message = str(err)
            await self._fan_out(key, lambda token: TransferError(token, message))
            return
        log.info("download complete: song_id=%s br=%s path=%s", key.song_id, key.br, final_path)
        if self._active_br != 0:
            if key.br == self._active_br:
                cache.purge_song_other_brs(key.song_id, key.br, None)
            else:
                cache.purge_not_br(self._active_br, None)
        await self._fan_out(key, lambda token: Ready(token, key, final_path))

    async def _fan_out(self, key: CacheKey, make: Callable[[int], TransferEvent]) -> None:
        job = self._jobs.pop(key, None)
        if job is None:
            return
        for token in job.waiters:
            if token != 0:
                await self._events.put(make(token))

    def _pop_next(self) -> Optional[CacheKey]:
        while self._heap:
            neg_prio, _, key = heapq.heappop(self._heap)
            job = self._jobs.get(key)
            if job is None or job.in_flight or job.prio != -neg_prio:
                continue
            return key
        return None

    async def _start_jobs(self, client: httpx.AsyncClient, inbox: asyncio.Queue) -> None:
        while self._in_flight < self._concurrency:
            key = self._pop_next()
            if key is None:
                return
            job = self._jobs[key]
            directory = self._cache.cache_dir
            if directory is None:
                log.warning("cache directory unavailable: song_id=%s br=%s", key.song_id, key.br)
                await self._fan_out(key, lambda token: TransferError(token, CACHE_DIR_UNAVAILABLE))
                continue
            job.in_flight = True
            tmp_path = tmp_path_for(directory, key, self._tmp_seq)
            self._tmp_seq += 1
            self._in_flight += 1
            task = asyncio.create_task(
                self._download(client, inbox, key, job.url, job.title, tmp_path)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _download(
        self,
        client: httpx.AsyncClient,
        inbox: asyncio.Queue,
        key: CacheKey,
        url: str,
        title: str,
        tmp_path: Path,
    ) -> None:
        log.info("download start: song_id=%s br=%s title=%s", key.song_id, key.br, title)
        try:
            await download_to_path(
                client,
                tmp_path,
                url,
                title,
                self._config.download_retries,
                self._config.download_retry_backoff_ms,
                self._config.download_retry_backoff_max_ms,
            )
        except DownloadError as err:
            _remove_quietly(tmp_path)
            inbox.put_nowait(_Failed(key, err))
            return
        inbox.put_nowait(_Downloaded(key, tmp_path))


def spawn_transfer_actor(
    data_dir: PathLike,
    config: Optional[TransferConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> tuple[asyncio.Queue, asyncio.Queue, asyncio.Task]:
    """Start a :class:`TransferActor` on the running loop.

    Returns the command queue, the event queue and the actor's task.
    """
    commands: asyncio.Queue = asyncio.Queue(QUEUE_SIZE)
    events: asyncio.Queue = asyncio.Queue(QUEUE_SIZE)
    actor = TransferActor(
        data_dir, config if config is not None else TransferConfig.from_env(), commands, events, client
    )
    task = asyncio.create_task(actor.run())
    return commands, events, task