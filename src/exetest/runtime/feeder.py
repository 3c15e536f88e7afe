"""Bounded stdin feeding for one-shot runs."""

from __future__ import annotations

import logging

from ..errors import WriteFailed
from .launcher import Pipe

__all__ = ["StdinFeeder", "close_stdin"]

logger = logging.getLogger(__name__)


async def close_stdin(pipe: Pipe) -> bool:
    """Close the write end of a stdin pipe so the child sees EOF.

    Idempotent: returns False if the pipe was already closed or never
    connected. A broken pipe reported while closing only means the child has
    stopped reading, which is not a fault at this point.
    """
    writer = pipe.detach()
    if writer is None:
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except (BrokenPipeError, ConnectionResetError) as e:
        logger.debug(f"stdin peer already closed: {e}")
    return True


class StdinFeeder:
    """Writes at most ``ceiling`` bytes to a child's stdin, then closes it.

    Input beyond the ceiling is silently dropped. Write faults are raised as
    WriteFailed and never retried.
    """

    def __init__(self, ceiling: int) -> None:
        if ceiling < 0:
            raise ValueError(f"ceiling must be >= 0, got {ceiling}")
        self.ceiling = ceiling

    async def feed(self, pipe: Pipe, data: bytes) -> int:
        """Write the bounded prefix of ``data`` and close the pipe.

        Returns:
            Number of bytes handed to the OS pipe

        Raises:
            ProcessExited: The pipe is not open
            WriteFailed: The child closed its end before all bytes were written
        """
        writer = pipe.get()
        payload = bytes(data[: self.ceiling])
        if len(data) > self.ceiling:
            logger.debug(f"Truncating stdin from {len(data)} to {self.ceiling} bytes")

        try:
            if payload:
                writer.write(payload)
                await writer.drain()
        except OSError as e:
            await close_stdin(pipe)
            raise WriteFailed(f"failed writing {len(payload)} bytes to stdin: {e}") from e

        await close_stdin(pipe)
        logger.debug(f"Wrote {len(payload)} bytes to stdin")
        return len(payload)
