"""An audio engine that plays nothing but keeps the cache and the event flow working."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import httpx

from .messages import (
    AudioCommand,
    CacheCleared,
    ClearCache,
    NowPlaying,
    Paused,
    PlayTrack,
    PrefetchAudio,
    SeekToMs,
    SetCacheBr,
    SetCrossfadeMs,
    SetVolume,
    Stop,
    Stopped,
    TogglePause,
)
from .transfer import CacheCleared as TransferCacheCleared
from .transfer import (
    CacheKey,
    ClearAll,
    EnsureCached,
    Priority,
    PurgeNotBr,
    TransferConfig,
    spawn_transfer_actor,
)

__all__ = ["AudioSettings", "NullEngine", "spawn_null_engine"]

log = logging.getLogger(__name__)

_U64_MODULUS = 2**64

PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class AudioSettings:
    """Playback settings handed to an audio engine."""

    crossfade_ms: int = 300


class NullEngine:
    """Answers audio commands as if playing, without producing any sound.

    Caching commands are forwarded to the transfer actor, and cache-cleared
    reports from it are passed on as audio events. Putting ``None`` on
    ``commands`` (or on ``transfer_events``) stops the engine; on stopping it
    puts ``None`` on ``transfer_commands`` so the transfer actor shuts down too.
    """

    def __init__(
        self,
        events: asyncio.Queue,
        commands: asyncio.Queue,
        transfer_commands: asyncio.Queue,
        transfer_events: asyncio.Queue,
        settings: Optional[AudioSettings] = None,
    ) -> None:
        self._events = events
        self._commands = commands
        self._transfer_commands = transfer_commands
        self._transfer_events = transfer_events
        self.settings = settings if settings is not None else AudioSettings()
        self.play_id = 0
        self.paused = False

    async def run(self) -> None:
        """Serve commands and transfer events until either queue is closed."""
        cmd_task = asyncio.ensure_future(self._commands.get())
        evt_task = asyncio.ensure_future(self._transfer_events.get())
        try:
            while True:
                done, _ = await asyncio.wait(
                    {cmd_task, evt_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if evt_task in done:
                    evt = evt_task.result()
                    if evt is None:
                        break
                    if isinstance(evt, TransferCacheCleared):
                        await self._events.put(CacheCleared(files=evt.files, bytes=evt.bytes))
                    evt_task = asyncio.ensure_future(self._transfer_events.get())
                if cmd_task in done:
                    cmd = cmd_task.result()
                    if cmd is None:
                        break
                    await self.handle_command(cmd)
                    cmd_task = asyncio.ensure_future(self._commands.get())
        finally:
            for task in (cmd_task, evt_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(cmd_task, evt_task, return_exceptions=True)
            await self._transfer_commands.put(None)

    async def handle_command(self, cmd: AudioCommand) -> None:
        """Apply one audio command."""
        if isinstance(cmd, PlayTrack):
            self.play_id = (self.play_id + 1) % _U64_MODULUS or 1
            self.paused = False
            await self._events.put(
                NowPlaying(song_id=cmd.id, play_id=self.play_id, title=cmd.title, duration_ms=None)
            )
        elif isinstance(cmd, TogglePause):
            self.paused = not self.paused
            await self._events.put(Paused(self.paused))
        elif isinstance(cmd, Stop):
            self.paused = False
            await self._events.put(Stopped())
        elif isinstance(cmd, (SeekToMs, SetVolume, SetCrossfadeMs)):
            return
        elif isinstance(cmd, ClearCache):
            await self._transfer_commands.put(ClearAll(keep=None))
        elif isinstance(cmd, SetCacheBr):
            await self._transfer_commands.put(PurgeNotBr(br=cmd.br, keep=None))
        elif isinstance(cmd, PrefetchAudio):
            await self._transfer_commands.put(
                EnsureCached(
                    token=0,
                    key=CacheKey(song_id=cmd.id, br=cmd.br),
                    url=cmd.url,
                    title=cmd.title,
                    priority=Priority.LOW,
                )
            )
        else:
            raise TypeError(f"unknown audio command: {cmd!r}")


def spawn_null_engine(
    commands: asyncio.Queue,
    events: asyncio.Queue,
    data_dir: PathLike,
    transfer_config: Optional[TransferConfig] = None,
    settings: Optional[AudioSettings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> asyncio.Task:
    """Start a transfer actor and a :class:`NullEngine` on the running loop.

    The returned task finishes once both the engine and the transfer actor
    have stopped.
    """
    transfer_commands, transfer_events, transfer_task = spawn_transfer_actor(
        Path(data_dir), transfer_config, client
    )
    engine = NullEngine(events, commands, transfer_commands, transfer_events, settings)

    async def _run() -> None:
        try:
            await engine.run()
        finally:
            await transfer_task

    return asyncio.create_task(_run())