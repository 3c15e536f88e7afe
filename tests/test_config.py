"""Config module tests.

Test EXETEST_* environment variable parsing and the global instance.
"""

from __future__ import annotations

import os
from unittest import mock

import pytest

from exetest.config import (
    DEFAULT_MAX_OUTPUT_BYTES,
    DEFAULT_MAX_STDIN_BYTES,
    DEFAULT_READ_CHUNK_SIZE,
    Config,
    get_config,
    load_config,
    reload_config,
)


class TestDefaults:
    """Test default values with no environment set."""

    def test_defaults(self):
        config = load_config()
        assert config.max_stdin_bytes == DEFAULT_MAX_STDIN_BYTES == 64 * 1024
        assert config.max_output_bytes == DEFAULT_MAX_OUTPUT_BYTES == 64 * 1024
        assert config.read_chunk_size == DEFAULT_READ_CHUNK_SIZE
        assert config.log_debug is False
        assert config.log_file is None


class TestCeilings:
    """Test ceiling parsing."""

    def test_custom_values(self):
        env = {"EXETEST_MAX_STDIN_BYTES": "1024", "EXETEST_MAX_OUTPUT_BYTES": "2048"}
        with mock.patch.dict(os.environ, env, clear=False):
            config = load_config()
            assert config.max_stdin_bytes == 1024
            assert config.max_output_bytes == 2048

    def test_zero_allowed(self):
        with mock.patch.dict(os.environ, {"EXETEST_MAX_OUTPUT_BYTES": "0"}, clear=False):
            assert load_config().max_output_bytes == 0

    @pytest.mark.parametrize("value", ["", "  ", "abc", "-5", "1.5"])
    def test_invalid_falls_back(self, value: str):
        with mock.patch.dict(os.environ, {"EXETEST_MAX_STDIN_BYTES": value}, clear=False):
            assert load_config().max_stdin_bytes == DEFAULT_MAX_STDIN_BYTES


class TestChunkSize:
    """Test read chunk size parsing."""

    def test_clamped_low(self):
        with mock.patch.dict(os.environ, {"EXETEST_READ_CHUNK_SIZE": "0"}, clear=False):
            assert load_config().read_chunk_size == 1

    def test_clamped_high(self):
        with mock.patch.dict(os.environ, {"EXETEST_READ_CHUNK_SIZE": "999999999"}, clear=False):
            assert load_config().read_chunk_size == 1024 * 1024

    def test_invalid(self):
        with mock.patch.dict(os.environ, {"EXETEST_READ_CHUNK_SIZE": "big"}, clear=False):
            assert load_config().read_chunk_size == DEFAULT_READ_CHUNK_SIZE


class TestLogDebug:
    """Test log debug mode."""

    @pytest.mark.parametrize("value", ["true", "True", "1", "yes", "on"])
    def test_truthy_values(self, value: str):
        with mock.patch.dict(os.environ, {"EXETEST_LOG_DEBUG": value}, clear=False):
            config = load_config()
            assert config.log_debug is True
            assert config.log_file is not None
            assert config.log_file.endswith(".log")

    @pytest.mark.parametrize("value", ["false", "0", "no", "off", ""])
    def test_falsy_values(self, value: str):
        with mock.patch.dict(os.environ, {"EXETEST_LOG_DEBUG": value}, clear=False):
            config = load_config()
            assert config.log_debug is False
            assert config.log_file is None


class TestGlobalConfig:
    """Test the lazily loaded global instance."""

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reload_picks_up_changes(self):
        with mock.patch.dict(os.environ, {"EXETEST_MAX_OUTPUT_BYTES": "77"}, clear=False):
            config = reload_config()
            assert config.max_output_bytes == 77
            assert get_config() is config

    def test_repr(self):
        text = repr(Config())
        assert "max_stdin_bytes=65536" in text
        assert "log_debug=False" in text
