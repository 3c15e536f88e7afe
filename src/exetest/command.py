"""Fluent builder for a single invocation.

Example:
    result = await Command("main").add_arg("--greet").stdin(b"hi").run()
    assert result.code == 0

    async with Command("my-repl").spawn() as session:
        await session.write(b"PING\\n")
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from .runtime.interactive import InteractiveSession, _SpawnContext
from .runtime.launcher import LaunchConfig
from .runtime.run_session import CapturedResult, RunSession

__all__ = ["Command"]


class Command:
    """Builds a LaunchConfig one piece at a time.

    The builder is mutable; each ``to_config()`` snapshot is not.
    """

    def __init__(self, program: str | bytes | os.PathLike[str]) -> None:
        if isinstance(program, os.PathLike):
            program = os.fspath(program)
        self._argv: list[str | bytes] = [program]
        self._stdin: bytes | None = None
        self._cwd: Path | None = None
        self._env: dict[str, str] | None = None
        self._max_stdin_bytes: int | None = None
        self._max_output_bytes: int | None = None
        self._new_session = False

    def __repr__(self) -> str:
        return f"Command({self._argv!r})"

    @property
    def argv(self) -> list[str | bytes]:
        return list(self._argv)

    def add_arg(self, value: str | bytes) -> "Command":
        self._argv.append(value)
        return self

    def add_args(self, values: Iterable[str | bytes]) -> "Command":
        self._argv.extend(values)
        return self

    def stdin(self, data: bytes | str) -> "Command":
        """Bytes to feed to the child. ``str`` is encoded as UTF-8."""
        self._stdin = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        return self

    def cwd(self, path: str | os.PathLike[str]) -> "Command":
        self._cwd = Path(path)
        return self

    def env(self, env: Mapping[str, str]) -> "Command":
        """Replace the child's environment entirely."""
        self._env = dict(env)
        return self

    def max_stdin_bytes(self, ceiling: int) -> "Command":
        self._max_stdin_bytes = ceiling
        return self

    def max_output_bytes(self, ceiling: int) -> "Command":
        self._max_output_bytes = ceiling
        return self

    def new_session(self, enabled: bool = True) -> "Command":
        self._new_session = enabled
        return self

    def to_config(self) -> LaunchConfig:
        return LaunchConfig(
            argv=tuple(self._argv),
            cwd=self._cwd,
            env=self._env,
            stdin=self._stdin,
            max_stdin_bytes=self._max_stdin_bytes,
            max_output_bytes=self._max_output_bytes,
            new_session=self._new_session,
        )

    async def run(self) -> CapturedResult:
        """Run to completion. See :func:`exetest.run`."""
        return await RunSession(self.to_config()).run()

    def spawn(self) -> _SpawnContext:
        """Start an interactive session. Any configured stdin bytes are ignored."""
        return InteractiveSession.spawn(self.to_config())
