"""On-disk audio cache with an LRU size limit and a JSON index."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .download import clear_dir_files, now_ms

__all__ = ["AudioCache", "CacheError", "cache_key", "parse_cache_key"]

log = logging.getLogger(__name__)

INDEX_VERSION = 2
INDEX_FILE_NAME = "index.json"
CACHE_DIR_NAME = "audio_cache"

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_INT_RE = re.compile(r"[+-]?[0-9]+")

PathLike = Union[str, "os.PathLike[str]"]


class CacheError(Exception):
    """The cache could not store a file."""


def cache_key(song_id: int, br: int) -> str:
    return f"{song_id}_{br}"


def _parse_i64(text: str) -> Optional[int]:
    if not _INT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if _I64_MIN <= value <= _I64_MAX else None


def parse_cache_key(key: str) -> Optional[tuple[int, int]]:
    """Split ``"<song_id>_<br>"`` back into its numbers, or None if malformed."""
    song_part, sep, br_part = key.partition("_")
    if not sep:
        return None
    song_id = _parse_i64(song_part)
    br = _parse_i64(br_part)
    if song_id is None or br is None:
        return None
    return song_id, br


@dataclass
class _Entry:
    file_name: str
    size_bytes: int
    last_access_ms: int


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _load_index(path: Path) -> tuple[int, dict[str, _Entry]]:
    """Read the index; anything unreadable counts as an empty version-0 index."""
    empty: tuple[int, dict[str, _Entry]] = (0, {})
    try:
        data = json.loads(path.read_bytes())
    except (OSError, ValueError):
        return empty
    if not isinstance(data, dict) or not isinstance(data.get("entries"), dict):
        return empty
    version = data.get("version", 0)
    if not _is_count(version):
        return empty
    entries: dict[str, _Entry] = {}
    for key, raw in data["entries"].items():
        if not isinstance(raw, dict):
            return empty
        file_name = raw.get("file_name")
        size = raw.get("size_bytes")
        access = raw.get("last_access_ms")
        if not isinstance(file_name, str) or not _is_count(size) or not _is_count(access):
            return empty
        entries[key] = _Entry(file_name, size, access)
    return version, entries


class AudioCache:
    """Audio files stored as ``<song_id>_<br>.bin`` under ``<data_dir>/audio_cache``.

    When the directory cannot be created the cache is disabled: lookups miss
    and commits raise :class:`CacheError`.
    """

    def __init__(self, data_dir: PathLike, max_mb: int) -> None:
        self.max_bytes = max(0, int(max_mb)) * 1024 * 1024
        self.dirty = False
        self._entries: dict[str, _Entry] = {}
        self._dir: Optional[Path] = None
        self._index_path: Optional[Path] = None

        directory = Path(data_dir) / CACHE_DIR_NAME
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            log.warning("cannot create audio cache dir %s, cache disabled: %s", directory, err)
            return

        self._dir = directory
        self._index_path = directory / INDEX_FILE_NAME
        version, entries = _load_index(self._index_path)
        if version != INDEX_VERSION:
            # Old index or naming scheme: start over with an empty directory.
            clear_dir_files(directory, None)
            entries = {}
            self._entries = entries
            if not self._persist_index():
                log.warning("cannot write audio cache index %s", self._index_path)
        self._entries = entries

    @property
    def cache_dir(self) -> Optional[Path]:
        return self._dir

    def lookup_path(self, song_id: int, br: int) -> Optional[Path]:
        """Path of the cached file, refreshing its access time; None on a miss."""
        if self._dir is None:
            return None
        key = cache_key(song_id, br)
        file_name = f"{key}.bin"
        path = self._dir / file_name
        if not path.exists():
            self._entries.pop(key, None)
            self.dirty = True
            return None
        self._touch(key, file_name, path)
        self.dirty = True
        return path

    def commit_tmp_file(self, song_id: int, br: int, tmp_path: PathLike) -> Path:
        """Move a finished download into the cache and return its final path."""
        if self._dir is None:
            raise CacheError("cache directory unavailable")
        key = cache_key(song_id, br)
        file_name = f"{key}.bin"
        final_path = self._dir / file_name
        try:
            final_path.unlink()
        except OSError:
            pass
        try:
            os.replace(tmp_path, final_path)
        except OSError as err:
            raise CacheError(f"cannot rename temporary file: {err}") from err
        self._touch(key, file_name, final_path)
        self._cleanup(final_path)
        self.dirty = True
        self.persist_index_if_dirty()
        return final_path

    def persist_index_if_dirty(self) -> None:
        if self.dirty:
            self._persist_index()
            self.dirty = False

    def invalidate(self, song_id: int, br: int) -> None:
        """Drop one cached file."""
        if self._dir is None:
            return
        key = cache_key(song_id, br)
        entry = self._entries.pop(key, None)
        file_name = entry.file_name if entry is not None else f"{key}.bin"
        self._remove_file(self._dir / file_name)
        self.dirty = True
        self.persist_index_if_dirty()

    def clear_all(self, keep: Optional[PathLike]) -> tuple[int, int]:
        """Delete every cached file except ``keep``; return files and bytes removed."""
        if self._dir is None:
            return 0, 0
        result = clear_dir_files(self._dir, keep)
        self._entries.clear()
        self.dirty = True
        self.persist_index_if_dirty()
        return result

    def purge_not_br(self, keep_br: int, keep: Optional[PathLike]) -> None:
        """Delete cached files of every bitrate but ``keep_br``."""
        self._purge(lambda song_id, br: br != keep_br, keep)

    def purge_song_other_brs(self, song_id: int, keep_br: int, keep: Optional[PathLike]) -> None:
        """Delete one song's cached files of bitrates other than ``keep_br``."""
        self._purge(lambda sid, br: sid == song_id and br != keep_br, keep)

    def close(self) -> None:
        """Write the index if it has unsaved changes."""
        if self.dirty:
            self._persist_index()
            self.dirty = False

    def __enter__(self) -> AudioCache:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _purge(self, should_remove, keep: Optional[PathLike]) -> None:
        if self._dir is None:
            return
        keep_path = self._dir / Path(keep).name if keep is not None else None
        for key in list(self._entries):
            parsed = parse_cache_key(key)
            if parsed is None or not should_remove(*parsed):
                continue
            path = self._dir / self._entries[key].file_name
            if keep_path is not None and path == keep_path:
                continue
            del self._entries[key]
            self._remove_file(path)
        self._cleanup(keep_path)
        self.dirty = True
        self.persist_index_if_dirty()

    def _touch(self, key: str, file_name: str, path: Path) -> None:
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        self._entries[key] = _Entry(file_name, size, now_ms())

    def _cleanup(self, keep: Optional[Path]) -> None:
        """Forget missing files, then evict least recently used ones over the limit."""
        if self._dir is None:
            return
        directory = self._dir
        self._entries = {
            key: entry
            for key, entry in self._entries.items()
            if (directory / entry.file_name).exists()
        }
        total = sum(entry.size_bytes for entry in self._entries.values())
        if total <= self.max_bytes:
            return
        oldest_first = sorted(self._entries.items(), key=lambda item: item[1].last_access_ms)
        for key, entry in oldest_first:
            if total <= self.max_bytes:
                break
            path = directory / entry.file_name
            if keep is not None and path == keep:
                continue
            self._remove_file(path)
            del self._entries[key]
            total = max(0, total - entry.size_bytes)

    def _persist_index(self) -> bool:
        if self._dir is None or self._index_path is None:
            return False
        payload = {
            "version": INDEX_VERSION,
            "entries": {key: asdict(entry) for key, entry in self._entries.items()},
        }
        data = json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
        tmp_name: Optional[str] = None
        try:
            with tempfile.NamedTemporaryFile(dir=self._dir, delete=False) as handle:
                tmp_name = handle.name
                handle.write(data)
            os.replace(tmp_name, self._index_path)
        except OSError:
            if tmp_name is not None:
                self._remove_file(Path(tmp_name))
            return False
        return True

    @staticmethod
    def _remove_file(path: Path) -> None:
        try:
            path.unlink()
        except OSError:
            pass