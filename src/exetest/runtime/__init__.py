"""Runtime module for child process execution and interaction.

This module provides one-shot runs with bounded stdin/stdout/stderr and
interactive line-oriented sessions against a live child.
"""

from __future__ import annotations

from .buffers import BoundedBuffer, LineCursor
from .collector import OutputCollector
from .feeder import StdinFeeder
from .interactive import InteractiveSession, Stream, spawn
from .launcher import ChildHandle, LaunchConfig, Pipe, PipeState, ProcessLauncher
from .run_session import CapturedResult, RunSession, run, run_blocking
from .termination import (
    Termination,
    TerminationKind,
    classify_returncode,
    classify_wait_status,
)

__all__ = [
    "BoundedBuffer",
    "CapturedResult",
    "ChildHandle",
    "InteractiveSession",
    "LaunchConfig",
    "LineCursor",
    "OutputCollector",
    "Pipe",
    "PipeState",
    "ProcessLauncher",
    "RunSession",
    "StdinFeeder",
    "Stream",
    "Termination",
    "TerminationKind",
    "classify_returncode",
    "classify_wait_status",
    "run",
    "run_blocking",
    "spawn",
]
