"""Record-and-replay buffer for the parrot."""

from __future__ import annotations


class ParrotBuffer:
    """Stores frames up to a byte budget and plays them back in order.

    Each frame costs its length plus one byte, as a length-prefixed record.
    """

    def __init__(self, timeout: int) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._capacity = timeout * 1000 + 1000
        self._frames: list[bytes] = []
        self._used = 0
        self._next = 0

    def write(self, data: bytes) -> bool:
        """Append a frame; returns False if there is no room for it."""
        if len(data) > 0xFF:
            raise ValueError("a frame may hold at most 255 bytes")
        if self._capacity - self._used < len(data) + 2:
            return False
        self._frames.append(bytes(data))
        self._used += len(data) + 1
        return True

    def read(self) -> bytes | None:
        """The next stored frame, or None once the buffer is empty.

        Reading past the last frame empties the buffer.
        """
        if not self._frames:
            return None
        frame = self._frames[self._next]
        self._next += 1
        if self._next >= len(self._frames):
            self.clear()
        return frame

    def end(self) -> None:
        """Rewind playback to the first stored frame."""
        self._next = 0

    def clear(self) -> None:
        """Discard all stored frames."""
        self._frames = []
        self._used = 0
        self._next = 0