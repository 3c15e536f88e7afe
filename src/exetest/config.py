"""exetest environment variable configuration.

Environment variables:
    EXETEST_MAX_STDIN_BYTES: default ceiling on bytes written to a child's stdin
        - default 65536 (64 KiB)
        - negative or unparsable values fall back to the default

    EXETEST_MAX_OUTPUT_BYTES: default ceiling on captured stdout/stderr bytes
        - default 65536 (64 KiB), applied to each stream separately

    EXETEST_READ_CHUNK_SIZE: bytes requested per pipe read
        - default 4096, clamped to 1..1048576

    EXETEST_LOG_DEBUG: debug logging mode (used by the CLI)
        - true/1/yes = on (debug log written to a temp file)
        - false/0/no = off (default, INFO logging to stderr)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reload_config",
    "DEFAULT_MAX_STDIN_BYTES",
    "DEFAULT_MAX_OUTPUT_BYTES",
    "DEFAULT_READ_CHUNK_SIZE",
]

DEFAULT_MAX_STDIN_BYTES = 64 * 1024
DEFAULT_MAX_OUTPUT_BYTES = 64 * 1024
DEFAULT_READ_CHUNK_SIZE = 4096
MAX_READ_CHUNK_SIZE = 1024 * 1024


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_ceiling(value: str | None, default: int) -> int:
    """Parse a byte ceiling. Invalid or negative values give the default."""
    if not value or not value.strip():
        return default
    try:
        ceiling = int(value.strip())
    except ValueError:
        return default
    return ceiling if ceiling >= 0 else default


def _parse_chunk_size(value: str | None) -> int:
    """Parse the pipe read size."""
    if not value:
        return DEFAULT_READ_CHUNK_SIZE
    try:
        size = int(value)
    except ValueError:
        return DEFAULT_READ_CHUNK_SIZE
    return max(1, min(size, MAX_READ_CHUNK_SIZE))


@dataclass
class Config:
    """exetest configuration.

    Attributes:
        max_stdin_bytes: Default stdin ceiling for launches that set none
        max_output_bytes: Default per-stream capture ceiling
        read_chunk_size: Bytes requested per pipe read
        log_debug: Debug logging to a temp file
        log_file: Log file path (set automatically when log_debug=True)
    """

    max_stdin_bytes: int = DEFAULT_MAX_STDIN_BYTES
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(max_stdin_bytes={self.max_stdin_bytes}, "
            f"max_output_bytes={self.max_output_bytes}, "
            f"read_chunk_size={self.read_chunk_size}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the system temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "exetest"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"exetest_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("EXETEST_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        max_stdin_bytes=_parse_ceiling(
            os.environ.get("EXETEST_MAX_STDIN_BYTES"), DEFAULT_MAX_STDIN_BYTES
        ),
        max_output_bytes=_parse_ceiling(
            os.environ.get("EXETEST_MAX_OUTPUT_BYTES"), DEFAULT_MAX_OUTPUT_BYTES
        ),
        read_chunk_size=_parse_chunk_size(os.environ.get("EXETEST_READ_CHUNK_SIZE")),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global instance, loaded lazily
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from the environment (used by tests)."""
    global _config
    _config = load_config()
    return _config
