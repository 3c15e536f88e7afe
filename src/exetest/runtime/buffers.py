"""Bounded byte buffers shared by the collectors and interactive sessions."""

from __future__ import annotations

__all__ = ["BoundedBuffer", "LineCursor"]


class BoundedBuffer:
    """Byte accumulator that never holds more than ``ceiling`` bytes.

    Bytes past the ceiling are counted and discarded.
    """

    def __init__(self, ceiling: int) -> None:
        if ceiling < 0:
            raise ValueError(f"ceiling must be >= 0, got {ceiling}")
        self.ceiling = ceiling
        self.discarded = 0
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    @property
    def full(self) -> bool:
        return len(self._data) >= self.ceiling

    @property
    def truncated(self) -> bool:
        return self.discarded > 0

    def append(self, chunk: bytes) -> int:
        """Append as much of ``chunk`` as fits. Returns the bytes kept."""
        room = self.ceiling - len(self._data)
        kept = chunk[:room] if room > 0 else b""
        self._data += kept
        self.discarded += len(chunk) - len(kept)
        return len(kept)

    def getvalue(self) -> bytes:
        return bytes(self._data)

    def clear(self) -> None:
        self._data.clear()


class LineCursor:
    """Scratch buffer holding bytes read from a stream but not yet returned.

    Persists across ``read_line`` calls so that a chunk containing several
    lines is handed out one line at a time.
    """

    def __init__(self) -> None:
        self._pending = bytearray()

    def __len__(self) -> int:
        return len(self._pending)

    def feed(self, chunk: bytes) -> None:
        self._pending += chunk

    def next_line(self) -> bytes | None:
        """Pop the next complete line, or None if no terminator is buffered.

        The ``\\n`` terminator and one trailing ``\\r`` are stripped.
        """
        index = self._pending.find(b"\n")
        if index < 0:
            return None
        line = bytes(self._pending[:index])
        del self._pending[: index + 1]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line

    def drop(self) -> int:
        """Discard pending bytes. Returns how many were dropped."""
        dropped = len(self._pending)
        self._pending.clear()
        return dropped
