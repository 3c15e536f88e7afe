"""exetest - run and converse with executables from tests.

Environment variables:
    EXETEST_MAX_STDIN_BYTES: default stdin ceiling (default 64 KiB)
    EXETEST_MAX_OUTPUT_BYTES: default stdout/stderr ceiling (default 64 KiB)
    EXETEST_LOG_DEBUG: CLI debug logging to a temp file (default false)

Usage:
    result = await exetest.run(["echo", "hello"])
    assert result.kind is exetest.TerminationKind.EXITED
    assert result.stdout == b"hello\\n"
"""

__version__ = "0.1.0"

from .command import Command
from .errors import ExetestError, ProcessExited, ReadFailed, SpawnError, WriteFailed
from .runtime import (
    CapturedResult,
    InteractiveSession,
    LaunchConfig,
    Stream,
    Termination,
    TerminationKind,
    run,
    run_blocking,
    spawn,
)

__all__ = [
    "__version__",
    "CapturedResult",
    "Command",
    "ExetestError",
    "InteractiveSession",
    "LaunchConfig",
    "ProcessExited",
    "ReadFailed",
    "SpawnError",
    "Stream",
    "Termination",
    "TerminationKind",
    "WriteFailed",
    "run",
    "run_blocking",
    "spawn",
]
