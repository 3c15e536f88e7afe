"""Child process launching, stream wiring and handle ownership.

exetest runtime module v0.1.0

This module provides:
- ``LaunchConfig``: the immutable description of one invocation
- ``Pipe``: one exclusively owned pipe end with an explicit state
- ``ChildHandle``: the spawned process, its three pipes, kill and reap
- ``ProcessLauncher``: spawns a child with the requested stream wiring

Key design points:
- A pipe end is OPEN, CLOSED or DISCONNECTED. DISCONNECTED means the stream
  was never a pipe (stdin from /dev/null, inherited stdout), CLOSED means it
  was a pipe and has been closed. A closed pipe is never reopened.
- A child is reaped exactly once. Reaping twice is a programming error and
  raises RuntimeError.
- kill() is best-effort and never waits for the child to exit.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from ..config import get_config
from ..errors import ProcessExited, SpawnError
from .termination import Termination, classify_returncode

__all__ = [
    "LaunchConfig",
    "PipeState",
    "Pipe",
    "ChildHandle",
    "ProcessLauncher",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"


@dataclass(frozen=True)
class LaunchConfig:
    """Specification for a child process to launch.

    Attributes:
        argv: Argument vector, element 0 is the executable name or path
        cwd: Working directory (None = inherit parent)
        env: Environment (None = inherit parent). When given it replaces the
            parent environment entirely, nothing is merged.
        stdin: Bytes to feed to the child in one-shot mode (None = no stdin pipe)
        max_stdin_bytes: Ceiling on bytes written to stdin (None = config default)
        max_output_bytes: Ceiling on captured bytes per stream (None = config default)
        capture_output: Pipe stdout/stderr back to the caller (False = inherit)
        new_session: Start the child in its own session/process group
    """

    argv: Sequence[str | bytes]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    stdin: bytes | None = None
    max_stdin_bytes: int | None = None
    max_output_bytes: int | None = None
    capture_output: bool = True
    new_session: bool = False

    def __post_init__(self) -> None:
        """Freeze argv, normalize cwd and resolve default ceilings."""
        if isinstance(self.argv, (str, bytes)):
            raise TypeError("argv must be a sequence of arguments, not a single string")
        argv = tuple(self.argv)
        if not argv:
            raise ValueError("argv must not be empty")
        object.__setattr__(self, "argv", argv)

        if self.cwd is not None and not isinstance(self.cwd, Path):
            object.__setattr__(self, "cwd", Path(self.cwd))
        if self.env is not None:
            object.__setattr__(self, "env", dict(self.env))
        if self.stdin is not None and not isinstance(self.stdin, (bytes, bytearray, memoryview)):
            raise TypeError(f"stdin must be bytes, got {type(self.stdin).__name__}")

        config = get_config()
        if self.max_stdin_bytes is None:
            object.__setattr__(self, "max_stdin_bytes", config.max_stdin_bytes)
        if self.max_output_bytes is None:
            object.__setattr__(self, "max_output_bytes", config.max_output_bytes)
        if self.max_stdin_bytes < 0:
            raise ValueError(f"max_stdin_bytes must be >= 0, got {self.max_stdin_bytes}")
        if self.max_output_bytes < 0:
            raise ValueError(f"max_output_bytes must be >= 0, got {self.max_output_bytes}")

    @property
    def program(self) -> str:
        program = self.argv[0]
        return os.fsdecode(program)


class PipeState(str, Enum):
    """State of one pipe end owned by a session."""

    OPEN = "open"
    CLOSED = "closed"
    DISCONNECTED = "disconnected"


class Pipe:
    """One exclusively owned pipe end.

    Args:
        name: Stream name ("stdin", "stdout", "stderr")
        stream: The asyncio stream, or None if the child's stream is not a pipe
    """

    def __init__(self, name: str, stream: Any = None) -> None:
        self.name = name
        self._stream = stream
        self.state = PipeState.OPEN if stream is not None else PipeState.DISCONNECTED

    def __repr__(self) -> str:
        return f"Pipe({self.name}, {self.state.value})"

    @property
    def is_open(self) -> bool:
        return self.state is PipeState.OPEN

    def get(self) -> Any:
        """Return the live stream.

        Raises:
            ProcessExited: The pipe is closed or was never connected
        """
        if self.state is not PipeState.OPEN:
            raise ProcessExited(self.name, f"{self.name} is {self.state.value}")
        return self._stream

    def detach(self) -> Any:
        """Mark the pipe CLOSED and hand the stream to the caller for closing.

        Returns None if the pipe was not OPEN, so only one caller ever gets
        the stream to close.
        """
        if self.state is not PipeState.OPEN:
            return None
        stream, self._stream = self._stream, None
        self.state = PipeState.CLOSED
        return stream


class ChildHandle:
    """A spawned child process and the pipe ends connected to it."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        config: LaunchConfig,
    ) -> None:
        self._process: asyncio.subprocess.Process | None = process
        self._reap_started = False
        self.pid = process.pid
        self.config = config
        self.stdin = Pipe("stdin", process.stdin)
        self.stdout = Pipe("stdout", process.stdout)
        self.stderr = Pipe("stderr", process.stderr)
        self.termination: Termination | None = None

    def __repr__(self) -> str:
        return f"ChildHandle(pid={self.pid}, program={self.config.program!r}, reaped={self.reaped})"

    @property
    def reaped(self) -> bool:
        return self._process is None

    @property
    def returncode(self) -> int | None:
        """Return code if the event loop has already observed the exit."""
        if self._process is None:
            return None
        return self._process.returncode

    def kill(self) -> None:
        """Send SIGKILL (TerminateProcess on Windows). Does not wait.

        Errors are swallowed: the child may have exited on its own already.
        """
        process = self._process
        if process is None or process.returncode is not None:
            return

        try:
            if self.config.new_session and not IS_WINDOWS:
                pgid = os.getpgid(process.pid)
                os.killpg(pgid, signal.SIGKILL)
                logger.debug(f"Sent SIGKILL to process group pgid={pgid}")
            else:
                process.kill()
                logger.debug(f"Killed subprocess pid={process.pid}")
        except ProcessLookupError:
            logger.debug(f"Subprocess already exited pid={process.pid}")
        except OSError as e:
            logger.debug(f"Error killing subprocess pid={process.pid}: {e}")

    async def wait(self) -> Termination:
        """Wait for the child to exit and reap it. May block indefinitely.

        Raises:
            RuntimeError: The child was already reaped
        """
        if self._reap_started:
            raise RuntimeError(f"subprocess pid={self.pid} already reaped")
        self._reap_started = True

        process = self._process
        if process is None:
            raise RuntimeError(f"subprocess pid={self.pid} has no process to reap")
        returncode = await process.wait()
        self._process = None

        self.termination = classify_returncode(returncode)
        logger.debug(
            f"Reaped subprocess pid={self.pid} "
            f"returncode={returncode} ({self.termination})"
        )
        return self.termination


class ProcessLauncher:
    """Spawns children with the requested stream wiring.

    stdin is a pipe when ``stdin_pipe`` is set and /dev/null otherwise. It is
    never inherited, so a child cannot consume the caller's own stdin.
    stdout/stderr are pipes when ``config.capture_output`` is set and are
    inherited otherwise.
    """

    async def launch(self, config: LaunchConfig, *, stdin_pipe: bool) -> ChildHandle:
        """Start the child.

        Raises:
            SpawnError: Executable not found, bad working directory, or exec failed
        """
        output = asyncio.subprocess.PIPE if config.capture_output else None
        kwargs = self._build_subprocess_kwargs(config)

        try:
            process = await asyncio.create_subprocess_exec(
                *config.argv,
                stdin=asyncio.subprocess.PIPE if stdin_pipe else asyncio.subprocess.DEVNULL,
                stdout=output,
                stderr=output,
                **kwargs,
            )
        except OSError as e:
            logger.debug(f"Spawn failed argv={config.program}: {e}")
            raise SpawnError(config.argv, e) from e

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={config.program} cwd={config.cwd}"
        )
        return ChildHandle(process, config)

    def _build_subprocess_kwargs(self, config: LaunchConfig) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs."""
        kwargs: dict[str, Any] = {}

        if config.cwd is not None:
            kwargs["cwd"] = config.cwd
        if config.env is not None:
            kwargs["env"] = dict(config.env)

        if config.new_session:
            if IS_WINDOWS:
                kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
            else:
                kwargs["start_new_session"] = True

        return kwargs
