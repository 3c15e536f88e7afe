"""Interactive, line-oriented conversation with a running child.

exetest runtime module v0.1.0

Example:
    async with InteractiveSession.spawn(LaunchConfig(argv=["my-repl"])) as session:
        await session.write(b"PING\\n")
        assert await session.read_line(Stream.STDOUT) == b"PONG"

Outcomes of write/read_line:
- ``ProcessExited``: the pipe end needed is gone (closed, never connected,
  or the child was reaped). Reading also raises it when the stream ends with
  nothing pending.
- ``WriteFailed`` / ``ReadFailed``: a real I/O fault. A stream that ends in
  the middle of a line raises ReadFailed and the partial line is dropped.

A successful write only means the bytes reached the OS pipe buffer. A child
that exits quickly can make a write succeed even though nothing will ever
read it, so callers cannot rely on write raising ProcessExited after the
child is gone.

Only the stream passed to read_line is read. A child that fills the other
pipe (say, a large burst on stderr before its next stdout line) blocks in
its own write, and read_line on the first stream waits until that pipe is
read. Read both streams, or bound the call with ``asyncio.wait_for``.
close() is unaffected: it drains whatever is left while reaping.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

from ..config import get_config
from ..errors import ProcessExited, ReadFailed, WriteFailed
from .buffers import LineCursor
from .feeder import close_stdin
from .launcher import ChildHandle, LaunchConfig, Pipe, ProcessLauncher
from .termination import Termination

__all__ = ["Stream", "InteractiveSession", "spawn"]

logger = logging.getLogger(__name__)


class Stream(str, Enum):
    """Output stream selector for read_line."""

    STDOUT = "stdout"
    STDERR = "stderr"


class InteractiveSession:
    """A live child with line cursors on stdout and stderr.

    Create with ``await InteractiveSession.spawn(config)`` or use
    ``InteractiveSession.spawn(config)`` as an async context manager. The
    session owns the child: ``close()`` (or leaving the context) always reaps
    it, even if nothing was ever read.
    """

    def __init__(self, child: ChildHandle, chunk_size: int | None = None) -> None:
        self._child = child
        self.chunk_size = chunk_size or get_config().read_chunk_size
        self.max_line_bytes = child.config.max_output_bytes
        self._cursors = {Stream.STDOUT: LineCursor(), Stream.STDERR: LineCursor()}
        self._termination: Termination | None = None
        self._reap_task: asyncio.Future[Termination] | None = None
        # Readers the caller can no longer use; drained while reaping
        self._released_readers: list[asyncio.StreamReader] = []

    def __repr__(self) -> str:
        return (
            f"InteractiveSession(pid={self.pid}, stdin={self._child.stdin.state.value}, "
            f"stdout={self._child.stdout.state.value}, "
            f"stderr={self._child.stderr.state.value})"
        )

    @classmethod
    def spawn(
        cls,
        config: LaunchConfig,
        launcher: ProcessLauncher | None = None,
    ) -> "_SpawnContext":
        """Start a child with all three streams piped.

        Awaiting the return value gives the session; ``async with`` also
        closes it on exit.

        Raises:
            SpawnError: The child could not be started
        """
        return _SpawnContext(cls, config, launcher or ProcessLauncher())

    @property
    def pid(self) -> int:
        return self._child.pid

    @property
    def closed(self) -> bool:
        return self._termination is not None

    @property
    def termination(self) -> Termination | None:
        """Termination outcome once the child has been reaped."""
        return self._termination

    def _pipe(self, stream: Stream) -> Pipe:
        return self._child.stdout if stream is Stream.STDOUT else self._child.stderr

    async def write(self, data: bytes) -> None:
        """Write ``data`` to the child's stdin and drain it to the OS pipe.

        Raises:
            ProcessExited: stdin is closed or the child was reaped
            WriteFailed: Any other I/O fault
        """
        if self._child.reaped:
            raise ProcessExited("stdin", "child has been reaped")
        writer = self._child.stdin.get()

        try:
            writer.write(data)
            await writer.drain()
        except OSError as e:
            raise WriteFailed(f"failed writing {len(data)} bytes to stdin: {e}") from e

    async def close_stdin(self) -> None:
        """Close stdin so the child sees EOF. Idempotent."""
        await close_stdin(self._child.stdin)

    async def read_line(self, stream: Stream = Stream.STDOUT) -> bytes:
        """Read the next line from ``stream``.

        The ``\\n`` terminator and a trailing ``\\r`` are stripped.

        Raises:
            ProcessExited: The stream is closed, or ended with nothing pending
            ReadFailed: I/O fault, the stream ended mid-line, or a line grew
                past max_output_bytes without a terminator
        """
        stream = Stream(stream)
        pipe = self._pipe(stream)
        cursor = self._cursors[stream]

        line = cursor.next_line()
        if line is not None:
            return line

        reader = pipe.get()
        while True:
            try:
                chunk = await reader.read(self.chunk_size)
            except OSError as e:
                self._close_reader(stream)
                raise ReadFailed(f"failed reading {stream.value}: {e}") from e

            if not chunk:
                dropped = self._close_reader(stream)
                if dropped:
                    raise ReadFailed(
                        f"{stream.value} ended with {dropped} bytes "
                        f"and no line terminator"
                    )
                raise ProcessExited(stream.value, f"{stream.value} reached end of stream")

            cursor.feed(chunk)
            line = cursor.next_line()
            if line is not None:
                return line

            if len(cursor) > self.max_line_bytes:
                dropped = self._close_reader(stream)
                raise ReadFailed(
                    f"{stream.value} line exceeded {self.max_line_bytes} bytes "
                    f"({dropped} bytes dropped)"
                )

    def _close_reader(self, stream: Stream) -> int:
        """Mark a stream CLOSED and drop its pending bytes."""
        reader = self._pipe(stream).detach()
        if reader is not None:
            self._released_readers.append(reader)
        dropped = self._cursors[stream].drop()
        if dropped:
            logger.debug(f"Dropped {dropped} unterminated bytes from {stream.value}")
        return dropped

    async def wait(self) -> Termination:
        """Close stdin and wait for the child to exit on its own.

        Blocks until the child exits; nothing here times out. stdout and
        stderr stay readable afterwards. A child blocked writing output
        nobody reads will not exit, so read what it produces first.
        """
        if self._termination is not None:
            return self._termination
        await self.close_stdin()
        return await self._reap()

    async def close(self) -> Termination:
        """Tear down the session: close pipes, kill if running, reap.

        Safe to call repeatedly; later calls return the same Termination.
        """
        await self.close_stdin()
        for stream in Stream:
            self._close_reader(stream)

        if self._termination is not None:
            return self._termination

        self._child.kill()
        return await self._reap()

    async def _reap(self) -> Termination:
        # The reap runs as its own task so a cancelled caller cannot leave
        # the child unreaped, and concurrent teardowns share one wait.
        if self._reap_task is None:
            self._reap_task = asyncio.ensure_future(self._wait_child(self._released_readers))
        self._termination = await asyncio.shield(self._reap_task)
        logger.debug(f"Interactive session closed pid={self.pid} ({self._termination})")
        return self._termination

    async def _wait_child(self, readers: list[asyncio.StreamReader]) -> Termination:
        # Unread output must keep flowing or the pipes never disconnect
        # and the wait cannot finish.
        discards = [asyncio.ensure_future(self._discard(reader)) for reader in readers]
        try:
            return await self._child.wait()
        finally:
            for task in discards:
                task.cancel()

    async def _discard(self, reader: asyncio.StreamReader) -> None:
        try:
            while await reader.read(self.chunk_size):
                pass
        except OSError as e:
            logger.debug(f"Error discarding output pid={self.pid}: {e}")

    async def __aenter__(self) -> "InteractiveSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class _SpawnContext:
    """Awaitable / async context manager returned by InteractiveSession.spawn."""

    def __init__(
        self,
        session_cls: type[InteractiveSession],
        config: LaunchConfig,
        launcher: ProcessLauncher,
    ) -> None:
        self._session_cls = session_cls
        self._config = config
        self._launcher = launcher
        self._session: InteractiveSession | None = None

    async def _open(self) -> InteractiveSession:
        child = await self._launcher.launch(self._config, stdin_pipe=True)
        self._session = self._session_cls(child)
        return self._session

    def __await__(self):
        return self._open().__await__()

    async def __aenter__(self) -> InteractiveSession:
        return await self._open()

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._session is not None:
            await self._session.close()


def spawn(config: LaunchConfig, launcher: ProcessLauncher | None = None) -> _SpawnContext:
    """Shortcut for :meth:`InteractiveSession.spawn`."""
    return InteractiveSession.spawn(config, launcher)
