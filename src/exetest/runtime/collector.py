"""Concurrent, bounded draining of a child's stdout and stderr.

Each stream is drained by its own asyncio task so that neither reader waits
on the other, and both run while the child is still executing. A child that
fills one pipe while the caller waits on the other therefore cannot deadlock.

Draining always continues to end-of-stream. Bytes beyond the ceiling are read
and thrown away, which keeps memory bounded without stalling the child on a
full pipe.
"""

from __future__ import annotations

import asyncio
import logging

from ..config import get_config
from ..errors import ReadFailed
from .buffers import BoundedBuffer
from .launcher import ChildHandle, Pipe

__all__ = ["OutputCollector"]

logger = logging.getLogger(__name__)


class OutputCollector:
    """Collects stdout and stderr of one child into bounded buffers.

    Example:
        collector = OutputCollector(ceiling=1024)
        collector.start(child)
        stdout, stderr = await collector.finish()
    """

    def __init__(self, ceiling: int, chunk_size: int | None = None) -> None:
        self.ceiling = ceiling
        self.chunk_size = chunk_size or get_config().read_chunk_size
        self._tasks: list[asyncio.Task[BoundedBuffer]] = []

    def start(self, child: ChildHandle) -> None:
        """Start one draining task per stream."""
        if self._tasks:
            raise RuntimeError("collector already started")
        self._tasks = [
            asyncio.create_task(self._drain(child.stdout)),
            asyncio.create_task(self._drain(child.stderr)),
        ]

    async def finish(self) -> tuple[BoundedBuffer, BoundedBuffer]:
        """Wait until both streams reach end-of-stream.

        Raises:
            ReadFailed: Reading either stream failed
        """
        stdout, stderr = await asyncio.gather(*self._tasks)
        return stdout, stderr

    async def cancel(self) -> None:
        """Stop draining. Used on error paths only."""
        for task in self._tasks:
            if not task.done():
                task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except ReadFailed as e:
                logger.debug(f"Discarding collector error during cancel: {e}")

    async def _drain(self, pipe: Pipe) -> BoundedBuffer:
        buffer = BoundedBuffer(self.ceiling)
        if not pipe.is_open:
            return buffer

        reader = pipe.get()
        try:
            while True:
                chunk = await reader.read(self.chunk_size)
                if not chunk:
                    break
                buffer.append(chunk)
        except OSError as e:
            raise ReadFailed(f"failed reading {pipe.name}: {e}") from e
        finally:
            pipe.detach()

        if buffer.truncated:
            logger.debug(
                f"Truncated {pipe.name} at {buffer.ceiling} bytes "
                f"({buffer.discarded} bytes discarded)"
            )
        return buffer
