"""exetest exception hierarchy.

exetest v0.1.0

Two families live here:

- Faults: ``SpawnError``, ``WriteFailed``, ``ReadFailed``. Something went
  wrong at the OS process/pipe boundary.
- ``ProcessExited``: not a fault. The pipe end an operation needs is already
  gone (closed, or the child was reaped), so the operation cannot proceed.

How a child terminated (signal, stop, unknown) is a value on
``Termination``, never an exception.
"""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "ExetestError",
    "SpawnError",
    "WriteFailed",
    "ReadFailed",
    "ProcessExited",
]


class ExetestError(Exception):
    """Base exception for exetest."""
    pass


class SpawnError(ExetestError):
    """The child could not be started.

    Nothing needs cleaning up after this error: no handle was created.

    Attributes:
        argv: Argument vector that failed to launch
        cause: Underlying OS error
    """

    def __init__(self, argv: Sequence[str | bytes], cause: OSError) -> None:
        self.argv = tuple(argv)
        self.cause = cause
        program = argv[0] if argv else "<empty>"
        super().__init__(f"failed to spawn {program!r}: {cause}")


class WriteFailed(ExetestError):
    """I/O fault while writing to the child's stdin."""
    pass


class ReadFailed(ExetestError):
    """I/O fault while reading the child's stdout or stderr.

    Also raised when a stream ends with pending bytes but no line
    terminator; those bytes are dropped.
    """
    pass


class ProcessExited(ExetestError):
    """The pipe end needed by the operation is already gone.

    Attributes:
        stream: Name of the stream involved ("stdin", "stdout", "stderr")
    """

    def __init__(self, stream: str, message: str | None = None) -> None:
        self.stream = stream
        super().__init__(message or f"{stream} is no longer available")
