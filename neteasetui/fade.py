"""Volume crossfade between the outgoing and incoming playback sinks."""

from __future__ import annotations

import time
from typing import Callable, Optional, Protocol

__all__ = ["Crossfade", "Sink"]


class Sink(Protocol):
    """The playback controls a crossfade needs."""

    def set_volume(self, volume: float) -> None: ...

    def pause(self) -> None: ...

    def play(self) -> None: ...

    def stop(self) -> None: ...


class Crossfade:
    """Ramps ``source`` down and ``target`` up over a fixed duration.

    Time spent paused does not count towards the fade. ``clock`` returns
    seconds and defaults to :func:`time.monotonic`.
    """

    def __init__(
        self,
        source: Sink,
        target: Sink,
        duration_ms: int,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._clock = clock if clock is not None else time.monotonic
        self.source = source
        self.target = target
        self.duration = max(int(duration_ms), 1) / 1000
        self._start = self._clock()
        self._paused_at: Optional[float] = None
        self._paused_total = 0.0
        self.last_ratio = 0.0

    def pause(self) -> None:
        """Freeze the fade's progress."""
        if self._paused_at is None:
            self._paused_at = self._clock()

    def resume(self) -> None:
        """Continue the fade, discounting the time spent paused."""
        if self._paused_at is not None:
            self._paused_total += max(0.0, self._clock() - self._paused_at)
            self._paused_at = None

    def pause_sinks(self) -> None:
        self.source.pause()
        self.target.pause()

    def resume_sinks(self) -> None:
        self.source.play()
        self.target.play()

    def apply(self, base_volume: float) -> bool:
        """Set both volumes for the current moment; return True once the fade is done.

        When done, the outgoing sink is stopped.
        """
        now = self._paused_at if self._paused_at is not None else self._clock()
        elapsed = max(0.0, max(0.0, now - self._start) - self._paused_total)
        ratio = min(max(elapsed / self.duration, 0.0), 1.0)
        self.last_ratio = ratio
        self.source.set_volume(base_volume * (1.0 - ratio))
        self.target.set_volume(base_volume * ratio)
        if ratio >= 1.0:
            self.source.stop()
            return True
        return False

    def stop(self) -> None:
        """Abandon the fade, silencing the outgoing sink."""
        self.source.stop()