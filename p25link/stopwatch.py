"""Millisecond stopwatch on the monotonic clock."""

from __future__ import annotations

import time as _time


def _monotonic_ms() -> int:
    return _time.monotonic_ns() // 1_000_000


class StopWatch:
    """Measures milliseconds elapsed since the last start."""

    def __init__(self) -> None:
        self._start_ms = 0

    def time(self) -> int:
        """Wall-clock time in milliseconds since the epoch."""
        return _time.time_ns() // 1_000_000

    def start(self) -> int:
        """Restart the stopwatch and return the start point in milliseconds."""
        self._start_ms = _monotonic_ms()
        return self._start_ms

    def elapsed(self) -> int:
        """Milliseconds since the last start."""
        return _monotonic_ms() - self._start_ms