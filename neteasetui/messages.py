"""Commands sent to the audio worker and events it reports back."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

__all__ = [
    "AudioCommand",
    "AudioError",
    "AudioEvent",
    "CacheCleared",
    "ClearCache",
    "Ended",
    "NeedsReload",
    "NowPlaying",
    "Paused",
    "PlayTrack",
    "PrefetchAudio",
    "SeekToMs",
    "SetCacheBr",
    "SetCrossfadeMs",
    "SetVolume",
    "Stop",
    "Stopped",
    "TogglePause",
]


@dataclass(frozen=True)
class PlayTrack:
    """Fetch (or reuse from cache) and play a track."""

    id: int
    br: int
    url: str
    title: str


@dataclass(frozen=True)
class TogglePause:
    """Flip between paused and playing."""


@dataclass(frozen=True)
class Stop:
    """Stop playback and forget any pending request."""


@dataclass(frozen=True)
class SeekToMs:
    ms: int


@dataclass(frozen=True)
class SetVolume:
    volume: float


@dataclass(frozen=True)
class SetCrossfadeMs:
    ms: int


@dataclass(frozen=True)
class ClearCache:
    """Remove every cached audio file except the one playing."""


@dataclass(frozen=True)
class SetCacheBr:
    """Keep only cached audio of this bitrate."""

    br: int


@dataclass(frozen=True)
class PrefetchAudio:
    """Cache a track without playing it."""

    id: int
    br: int
    url: str
    title: str


AudioCommand = Union[
    PlayTrack,
    TogglePause,
    Stop,
    SeekToMs,
    SetVolume,
    SetCrossfadeMs,
    ClearCache,
    SetCacheBr,
    PrefetchAudio,
]


@dataclass(frozen=True)
class NowPlaying:
    song_id: int
    play_id: int
    title: str
    duration_ms: Optional[int]


@dataclass(frozen=True)
class Paused:
    paused: bool


@dataclass(frozen=True)
class Stopped:
    pass


@dataclass(frozen=True)
class Ended:
    play_id: int


@dataclass(frozen=True)
class CacheCleared:
    files: int
    bytes: int


@dataclass(frozen=True)
class AudioError:
    """A failure reported by the worker, as a message for the user."""

    message: str


@dataclass(frozen=True)
class NeedsReload:
    """Playback was requested but nothing is loaded; the track must be fetched again."""


AudioEvent = Union[
    NowPlaying,
    Paused,
    Stopped,
    Ended,
    CacheCleared,
    AudioError,
    NeedsReload,
]