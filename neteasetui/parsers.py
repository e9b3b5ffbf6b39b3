"""Parsing of song and playlist listings returned by the music API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


@dataclass(frozen=True)
class Song:
    """A playable track."""

    id: int
    name: str
    artists: str


@dataclass(frozen=True)
class Playlist:
    """A user playlist."""

    id: int
    name: str
    track_count: int
    special_type: int


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if not _I64_MIN <= value <= _I64_MAX:
        return None
    return value


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _song_list(v: Any) -> list[Any] | None:
    if not isinstance(v, dict):
        return None
    result = v.get("result")
    if isinstance(result, dict) and "songs" in result:
        songs = result["songs"]
    elif "songs" in v:
        songs = v["songs"]
    else:
        return None
    return songs if isinstance(songs, list) else None


def _artists_of(entry: dict[str, Any]) -> str:
    if "ar" in entry:
        raw = entry["ar"]
    elif "artists" in entry:
        raw = entry["artists"]
    else:
        return ""
    if not isinstance(raw, list):
        return ""
    names = (
        artist["name"]
        for artist in raw
        if isinstance(artist, dict) and isinstance(artist.get("name"), str)
    )
    return "/".join(names)


def parse_search_songs(v: Any) -> list[Song]:
    """Extract songs from a search result or a song-detail response.

    Both ``{"result": {"songs": [...]}}`` and ``{"songs": [...]}`` are accepted.
    Entries without an integer ``id`` or a string ``name`` are skipped.
    """
    songs = _song_list(v)
    if songs is None:
        return []
    parsed: list[Song] = []
    for entry in songs:
        if not isinstance(entry, dict):
            continue
        song_id = _as_int(entry.get("id"))
        name = _as_str(entry.get("name"))
        if song_id is None or name is None:
            continue
        parsed.append(Song(id=song_id, name=name, artists=_artists_of(entry)))
    return parsed


def parse_user_playlists(v: Any) -> list[Playlist]:
    """Extract playlists from a user-playlist response."""
    if not isinstance(v, dict):
        return []
    entries = v.get("playlist")
    if not isinstance(entries, list):
        return []
    parsed: list[Playlist] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        playlist_id = _as_int(entry.get("id"))
        name = _as_str(entry.get("name"))
        if playlist_id is None or name is None:
            continue
        track_count = _as_int(entry.get("trackCount"))
        special_type = _as_int(entry.get("specialType"))
        parsed.append(
            Playlist(
                id=playlist_id,
                name=name,
                track_count=track_count if track_count is not None else 0,
                special_type=special_type if special_type is not None else 0,
            )
        )
    return parsed