"""Classification of child process termination.

exetest runtime module v0.1.0

A finished child is described by two independent fields:

- ``kind``: how it ended (EXITED, SIGNALED, STOPPED, UNKNOWN)
- ``code``: the exit status, 0-255

``code`` is only meaningful when ``kind`` is EXITED. Every other kind reports
``code == 0``, which is indistinguishable from a clean exit if you look at the
code alone. Always branch on ``kind`` first.
"""

from __future__ import annotations

import os
import signal
import sys
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "TerminationKind",
    "Termination",
    "classify_returncode",
    "classify_wait_status",
]

IS_WINDOWS = sys.platform == "win32"


class TerminationKind(str, Enum):
    """How a process ended."""

    EXITED = "exited"
    SIGNALED = "signaled"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Termination:
    """Classified termination outcome.

    Attributes:
        kind: Termination kind
        code: Exit code (0-255), 0 unless kind is EXITED
        signal: Signal number for SIGNALED/STOPPED, otherwise None
    """

    kind: TerminationKind
    code: int = 0
    signal: int | None = None

    @classmethod
    def exited(cls, code: int) -> "Termination":
        return cls(TerminationKind.EXITED, code & 0xFF)

    @classmethod
    def signaled(cls, signum: int) -> "Termination":
        return cls(TerminationKind.SIGNALED, 0, signum)

    @classmethod
    def stopped(cls, signum: int) -> "Termination":
        return cls(TerminationKind.STOPPED, 0, signum)

    @classmethod
    def unknown(cls) -> "Termination":
        return cls(TerminationKind.UNKNOWN)

    @property
    def success(self) -> bool:
        """Exited with code 0."""
        return self.kind is TerminationKind.EXITED and self.code == 0

    @property
    def signal_name(self) -> str | None:
        if self.signal is None:
            return None
        try:
            return signal.Signals(self.signal).name
        except ValueError:
            return f"signal {self.signal}"

    def __str__(self) -> str:
        if self.kind is TerminationKind.EXITED:
            return f"exited with code {self.code}"
        if self.kind is TerminationKind.UNKNOWN:
            return "terminated for an unknown reason"
        return f"{self.kind.value} by {self.signal_name}"


def classify_returncode(returncode: int | None) -> Termination:
    """Classify an asyncio/subprocess return code.

    Negative return codes are the POSIX convention for "killed by signal -N".
    ``None`` means the process has not been reaped.
    """
    if returncode is None:
        return Termination.unknown()
    if returncode < 0:
        return Termination.signaled(-returncode)
    return Termination.exited(returncode)


def classify_wait_status(status: int) -> Termination:
    """Classify a raw ``os.waitpid`` status word."""
    if IS_WINDOWS:
        # waitpid on Windows returns the exit code shifted left by 8
        return Termination.exited(status >> 8)

    if os.WIFEXITED(status):
        return Termination.exited(os.WEXITSTATUS(status))
    if os.WIFSIGNALED(status):
        return Termination.signaled(os.WTERMSIG(status))
    if os.WIFSTOPPED(status):
        return Termination.stopped(os.WSTOPSIG(status))
    return Termination.unknown()
