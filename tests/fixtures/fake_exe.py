#!/usr/bin/env python3
"""Fake executable for integration testing.

Usage:
    python fake_exe.py [ARGS...] [--stderr TEXT] [--exit CODE] [--abort]
                       [--print-cwd] [--env NAME] [--flood N] [--flood-stream NAME]
                       [--count-stdin] [--echo-lines] [--crlf] [--partial TEXT]

Behavior:
    no options and no ARGS: prints "OK"
    ARGS: each printed on its own line
    --stderr: TEXT printed to stderr
    --exit: exit with CODE
    --abort: kill itself with SIGABRT
    --print-cwd: print the working directory
    --env: print the value of NAME, or "<unset>"
    --flood: write N bytes of "x" to --flood-stream (stdout, stderr or both)
    --count-stdin: read stdin to EOF and print the byte count
    --echo-lines: answer each stdin line ("PING" -> "PONG", else echo it)
    --crlf: terminate --echo-lines replies with CRLF
    --partial: print TEXT without a line terminator, then exit
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import NoReturn


def emit(data: bytes, stream=None) -> None:
    """Write raw bytes and flush immediately."""
    out = stream or sys.stdout.buffer
    out.write(data)
    out.flush()


def echo_lines(crlf: bool) -> None:
    terminator = b"\r\n" if crlf else b"\n"
    for raw in sys.stdin.buffer:
        line = raw.rstrip(b"\r\n")
        reply = b"PONG" if line == b"PING" else line
        emit(reply + terminator)


def flood(count: int, stream_name: str) -> None:
    targets = {
        "stdout": [sys.stdout.buffer],
        "stderr": [sys.stderr.buffer],
        "both": [sys.stdout.buffer, sys.stderr.buffer],
    }[stream_name]
    block = b"x" * 65536
    remaining = count
    while remaining > 0:
        piece = block[: min(remaining, len(block))]
        for target in targets:
            emit(piece, target)
        remaining -= len(piece)


def main() -> NoReturn:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Fake executable for testing")
    parser.add_argument("--stderr", type=str, default=None)
    parser.add_argument("--exit", type=int, default=0)
    parser.add_argument("--abort", action="store_true")
    parser.add_argument("--print-cwd", action="store_true")
    parser.add_argument("--env", type=str, default=None)
    parser.add_argument("--flood", type=int, default=None)
    parser.add_argument("--flood-stream", choices=["stdout", "stderr", "both"], default="stdout")
    parser.add_argument("--count-stdin", action="store_true")
    parser.add_argument("--echo-lines", action="store_true")
    parser.add_argument("--crlf", action="store_true")
    parser.add_argument("--partial", type=str, default=None)
    parser.add_argument("args", nargs="*")

    args = parser.parse_args()
    did_something = False

    for arg in args.args:
        emit(arg.encode() + b"\n")
        did_something = True

    if args.stderr is not None:
        emit(args.stderr.encode() + b"\n", sys.stderr.buffer)
        did_something = True

    if args.print_cwd:
        emit(os.getcwd().encode() + b"\n")
        did_something = True

    if args.env is not None:
        emit(os.environ.get(args.env, "<unset>").encode() + b"\n")
        did_something = True

    if args.flood is not None:
        flood(args.flood, args.flood_stream)
        did_something = True

    if args.count_stdin:
        data = sys.stdin.buffer.read()
        emit(f"{len(data)}\n".encode())
        did_something = True

    if args.echo_lines:
        echo_lines(args.crlf)
        did_something = True

    if args.partial is not None:
        emit(args.partial.encode())
        did_something = True

    if args.abort:
        os.abort()

    if not did_something and args.exit == 0:
        emit(b"OK\n")

    sys.exit(args.exit)


if __name__ == "__main__":
    main()
