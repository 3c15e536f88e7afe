"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

FIXTURES_DIR = Path(__file__).parent / "fixtures"
FAKE_EXE = FIXTURES_DIR / "fake_exe.py"

IS_WINDOWS = sys.platform == "win32"


@pytest.fixture
def fake_exe() -> list[str]:
    """argv prefix that runs the fake executable."""
    return [sys.executable, str(FAKE_EXE)]


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """Create temporary workspace directory."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from EXETEST_* variables in the caller's environment."""
    from exetest.config import reload_config

    for name in (
        "EXETEST_MAX_STDIN_BYTES",
        "EXETEST_MAX_OUTPUT_BYTES",
        "EXETEST_READ_CHUNK_SIZE",
        "EXETEST_LOG_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    reload_config()
    yield
    monkeypatch.undo()
    reload_config()
