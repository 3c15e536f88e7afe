"""One-shot execution: launch, feed, collect, wait, classify.

exetest runtime module v0.1.0

This module provides:
- ``run()``: run a child to completion and return its captured output
- ``run_blocking()``: the same for synchronous callers
- ``CapturedResult``: termination info plus bounded stdout/stderr

Key design points:
- stdout/stderr collection starts before stdin is fed and runs concurrently
  with the wait for exit, so large outputs or inputs never deadlock
- Any failure after spawn kills the child before the error propagates
- The kill on an error path is best-effort and does not wait for exit
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any

import anyio

from .collector import OutputCollector
from .feeder import StdinFeeder
from .launcher import LaunchConfig, ProcessLauncher
from .termination import Termination, TerminationKind

__all__ = [
    "CapturedResult",
    "RunSession",
    "run",
    "run_blocking",
]

logger = logging.getLogger(__name__)


@dataclass
class CapturedResult:
    """Result of a one-shot run.

    ``code`` is only meaningful when ``kind`` is EXITED. A signaled or
    stopped child also reports ``code == 0``; check ``kind`` before trusting
    ``code``.

    Attributes:
        termination: Classified termination outcome
        stdout: Captured stdout (at most max_output_bytes)
        stderr: Captured stderr (at most max_output_bytes)
        stdout_truncated: stdout exceeded the ceiling
        stderr_truncated: stderr exceeded the ceiling
    """

    termination: Termination
    stdout: bytes = b""
    stderr: bytes = b""
    stdout_truncated: bool = False
    stderr_truncated: bool = False
    released: bool = False

    @property
    def kind(self) -> TerminationKind:
        return self.termination.kind

    @property
    def code(self) -> int:
        return self.termination.code

    @property
    def success(self) -> bool:
        return self.termination.success

    def release(self) -> None:
        """Drop the captured buffers. Safe to call more than once."""
        self.stdout = b""
        self.stderr = b""
        self.released = True

    def __enter__(self) -> "CapturedResult":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "signal": self.termination.signal,
            "stdout": self.stdout.decode("utf-8", errors="replace"),
            "stderr": self.stderr.decode("utf-8", errors="replace"),
            "stdout_truncated": self.stdout_truncated,
            "stderr_truncated": self.stderr_truncated,
        }


class RunSession:
    """Runs one child to completion.

    Example:
        session = RunSession(LaunchConfig(argv=["cat"], stdin=b"a\\nb\\n"))
        result = await session.run()
        assert result.stdout == b"a\\nb\\n"
    """

    def __init__(
        self,
        config: LaunchConfig,
        launcher: ProcessLauncher | None = None,
    ) -> None:
        self.config = config
        self._launcher = launcher or ProcessLauncher()

    async def run(self) -> CapturedResult:
        """Launch, feed stdin, collect output, wait and classify.

        Raises:
            SpawnError: The child could not be started
            WriteFailed: Feeding stdin failed (the child is killed first)
            ReadFailed: Collecting output failed (the child is killed first)
        """
        config = self.config
        child = await self._launcher.launch(config, stdin_pipe=config.stdin is not None)

        collector = OutputCollector(config.max_output_bytes)
        collector.start(child)
        reap: asyncio.Task[Termination] | None = None

        try:
            if config.stdin is not None:
                await StdinFeeder(config.max_stdin_bytes).feed(child.stdin, config.stdin)

            reap = asyncio.create_task(child.wait())
            (stdout, stderr), termination = await asyncio.gather(collector.finish(), reap)
        except BaseException as e:
            logger.debug(f"Run failed pid={child.pid}, killing: {e!r}")
            child.kill()
            await collector.cancel()
            if reap is not None:
                await _cancel_reap(reap)
            raise

        return CapturedResult(
            termination=termination,
            stdout=stdout.getvalue(),
            stderr=stderr.getvalue(),
            stdout_truncated=stdout.truncated,
            stderr_truncated=stderr.truncated,
        )


async def _cancel_reap(reap: asyncio.Task[Termination]) -> None:
    """Stop a pending reap so it does not outlive the run."""
    if not reap.done():
        reap.cancel()
    try:
        await reap
    except asyncio.CancelledError:
        pass
    except RuntimeError as e:
        logger.debug(f"Discarding reap error during cancel: {e}")


def _as_config(config: LaunchConfig | Sequence[str | bytes], **options: Any) -> LaunchConfig:
    if isinstance(config, LaunchConfig):
        if options:
            raise TypeError("options cannot be combined with a LaunchConfig")
        return config
    return LaunchConfig(argv=config, **options)


async def run(config: LaunchConfig | Sequence[str | bytes], **options: Any) -> CapturedResult:
    """Run a child to completion.

    Args:
        config: A LaunchConfig, or an argv sequence
        **options: LaunchConfig fields, when ``config`` is an argv sequence

    Example:
        result = await run(["echo", "hello"])
        assert result.stdout == b"hello\\n"
    """
    return await RunSession(_as_config(config, **options)).run()


def run_blocking(config: LaunchConfig | Sequence[str | bytes], **options: Any) -> CapturedResult:
    """Synchronous wrapper around :func:`run` for code outside an event loop."""
    return anyio.run(partial(run, _as_config(config, **options)))
