"""Command line runner.

Usage:
    python -m exetest [options] -- PROG [ARGS...]

Runs PROG once, replays its captured stdout/stderr (or prints a JSON report
with --json) and exits with its exit code. A signaled child exits with
128 + signal number, a spawn failure with 127.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import Config, get_config
from .errors import ExetestError, SpawnError
from .runtime.launcher import LaunchConfig
from .runtime.run_session import CapturedResult, run_blocking
from .runtime.termination import TerminationKind

__all__ = ["main", "exit_status"]

logger = logging.getLogger(__name__)

EXIT_SPAWN_FAILED = 127
EXIT_IO_FAILED = 125


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exetest",
        description="Run an executable with bounded input and captured output",
    )
    parser.add_argument("--cwd", type=Path, default=None, help="Working directory for the child")
    parser.add_argument(
        "--stdin-file",
        type=Path,
        default=None,
        help="File whose contents are fed to the child's stdin",
    )
    parser.add_argument("--max-stdin-bytes", type=int, default=None, help="stdin ceiling")
    parser.add_argument("--max-output-bytes", type=int, default=None, help="stdout/stderr ceiling")
    parser.add_argument("--json", action="store_true", help="Print a JSON report instead")
    parser.add_argument("argv", nargs=argparse.REMAINDER, help="Program and arguments")
    return parser


def _configure_logging(config: Config) -> None:
    """Configure logging the same way for every entry point."""
    log_handlers: list[logging.Handler] = []
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if config.log_debug and config.log_file:
        # LOG_DEBUG mode: write to a temp file
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Third-party libraries stay at WARNING
    logging.basicConfig(level=logging.WARNING, handlers=log_handlers)
    logging.getLogger("exetest").setLevel(log_level)


def exit_status(result: CapturedResult) -> int:
    """Map a result to a shell-style exit status."""
    termination = result.termination
    if termination.kind is TerminationKind.EXITED:
        return termination.code
    if termination.signal is not None:
        return 128 + termination.signal
    return 1


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    config = get_config()
    _configure_logging(config)

    parser = _build_parser()
    args = parser.parse_args(argv)
    child_argv = args.argv
    if child_argv and child_argv[0] == "--":
        child_argv = child_argv[1:]
    if not child_argv:
        parser.error("no program given")

    try:
        stdin_bytes = args.stdin_file.read_bytes() if args.stdin_file else None
    except OSError as e:
        parser.error(f"cannot read --stdin-file {args.stdin_file}: {e.strerror or e}")

    try:
        launch = LaunchConfig(
            argv=child_argv,
            cwd=args.cwd,
            stdin=stdin_bytes,
            max_stdin_bytes=args.max_stdin_bytes,
            max_output_bytes=args.max_output_bytes,
        )
    except ValueError as e:
        parser.error(str(e))

    try:
        result = run_blocking(launch)
    except SpawnError as e:
        logger.error(str(e))
        sys.exit(EXIT_SPAWN_FAILED)
    except ExetestError as e:
        logger.error(f"Run failed: {e}")
        sys.exit(EXIT_IO_FAILED)

    if result.kind is not TerminationKind.EXITED:
        logger.info(f"{launch.program} {result.termination}")

    with result:
        if args.json:
            sys.stdout.write(json.dumps(result.to_dict(), ensure_ascii=False) + "\n")
            sys.stdout.flush()
        else:
            sys.stdout.buffer.write(result.stdout)
            sys.stdout.buffer.flush()
            sys.stderr.buffer.write(result.stderr)
            sys.stderr.buffer.flush()
        status = exit_status(result)

    sys.exit(status)


if __name__ == "__main__":
    main()
