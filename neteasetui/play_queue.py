"""Play queue with sequential, looping and shuffled ordering."""

from __future__ import annotations

import random
from enum import Enum

from .parsers import Song


class PlayMode(Enum):
    """How the queue advances after a track."""

    SEQUENTIAL = "Sequential"
    LIST_LOOP = "ListLoop"
    SINGLE_LOOP = "SingleLoop"
    SHUFFLE = "Shuffle"


class PlayQueue:
    """A list of songs plus a play order and a cursor into that order."""

    def __init__(self, mode: PlayMode) -> None:
        self._songs: list[Song] = []
        self._order: list[int] = []
        self._cursor: int | None = None
        self._mode = mode
        self._rng = random.Random()

    def set_mode(self, mode: PlayMode) -> None:
        """Change the mode, rebuilding the order around the current song."""
        if self._mode == mode:
            return
        current = self.current_index
        self._mode = mode
        self._rebuild_order(current)

    def set_songs(self, songs: list[Song], start_index: int | None) -> list[Song]:
        """Replace the songs and return the previous list."""
        old = self._songs
        self._songs = list(songs)
        self._rebuild_order(start_index)
        return old

    def clear(self) -> None:
        self._songs = []
        self._order = []
        self._cursor = None

    def __len__(self) -> int:
        return len(self._songs)

    @property
    def songs(self) -> list[Song]:
        """Songs in their original order."""
        return list(self._songs)

    @property
    def mode(self) -> PlayMode:
        return self._mode

    def ordered_songs(self) -> list[Song]:
        """Songs in play order."""
        return [self._songs[idx] for idx in self._order if idx < len(self._songs)]

    @property
    def current_index(self) -> int | None:
        """Index into ``songs`` of the song under the cursor."""
        if self._cursor is None:
            return None
        return self._at(self._cursor)

    @property
    def cursor_pos(self) -> int | None:
        """Position of the cursor within the play order."""
        return self._cursor

    @property
    def current(self) -> Song | None:
        idx = self.current_index
        if idx is None or idx >= len(self._songs):
            return None
        return self._songs[idx]

    def set_current_index(self, index: int) -> bool:
        """Move the cursor to the song at ``index``; return whether it moved."""
        if not 0 <= index < len(self._songs):
            return False
        try:
            self._cursor = self._order.index(index)
        except ValueError:
            return False
        return True

    def clear_cursor(self) -> None:
        self._cursor = None

    def set_cursor_pos(self, pos: int) -> None:
        """Place the cursor at an order position, or clear it when out of range."""
        self._cursor = pos if 0 <= pos < len(self._order) else None

    def peek_next_index(self) -> int | None:
        """The song index that ``next_index`` would return, without moving."""
        if self._cursor is None or not self._order:
            return None
        pos = self._cursor
        size = len(self._order)
        if self._mode is PlayMode.SINGLE_LOOP:
            return self._at(pos)
        if self._mode is PlayMode.SEQUENTIAL:
            return self._at(pos + 1) if pos + 1 < size else None
        return self._at((pos + 1) % size)

    def next_index(self) -> int | None:
        """Advance the cursor and return the new song index."""
        if self._cursor is None or not self._order:
            return None
        pos = self._cursor
        size = len(self._order)
        if self._mode is PlayMode.SINGLE_LOOP:
            return self._at(pos)
        if self._mode is PlayMode.SEQUENTIAL:
            if pos + 1 < size:
                self._cursor = pos + 1
                return self._at(pos + 1)
            self._cursor = None
            return None
        self._cursor = (pos + 1) % size
        return self._at(self._cursor)

    def prev_index(self) -> int | None:
        """Move the cursor back and return the new song index."""
        if self._cursor is None or not self._order:
            return None
        pos = self._cursor
        size = len(self._order)
        if self._mode is PlayMode.SINGLE_LOOP:
            return self._at(pos)
        if self._mode is PlayMode.SEQUENTIAL:
            self._cursor = max(pos - 1, 0)
        else:
            self._cursor = (pos - 1) % size
        return self._at(self._cursor)

    def _at(self, pos: int) -> int | None:
        return self._order[pos] if 0 <= pos < len(self._order) else None

    def _rebuild_order(self, start_index: int | None) -> None:
        size = len(self._songs)
        if size == 0:
            self._order = []
            self._cursor = None
            return
        self._order = list(range(size))
        if self._mode is PlayMode.SHUFFLE:
            self._rng.shuffle(self._order)
        start = min(start_index or 0, size - 1)
        try:
            self._cursor = self._order.index(start)
        except ValueError:
            self._cursor = 0