"""Tests for configuration dataclasses."""

import os

import pytest

from autoreel.config.models import (
    LoggingConfig,
    RenderConfig,
    ServerConfig,
    WorkerConfig,
)


class TestWorkerConfig:
    """Tests for WorkerConfig validation."""

    def test_defaults(self):
        config = WorkerConfig()
        assert config.poll_interval == 5.0
        assert config.max_retries == 2

    def test_default_worker_id_uses_pid(self):
        assert WorkerConfig().resolved_worker_id == f"autoreel-worker-{os.getpid()}"

    def test_explicit_worker_id(self):
        assert WorkerConfig(worker_id="render-1").resolved_worker_id == "render-1"

    @pytest.mark.parametrize(
        "kwargs,match",
        [
            ({"poll_interval": 0}, "poll_interval"),
            ({"max_retries": -1}, "max_retries"),
            ({"heartbeat_interval": 0}, "heartbeat_interval"),
            ({"heartbeat_interval": 60, "stale_timeout": 60}, "stale_timeout"),
        ],
    )
    def test_invalid(self, kwargs, match):
        with pytest.raises(ValueError, match=match):
            WorkerConfig(**kwargs)

    def test_zero_retries_allowed(self):
        assert WorkerConfig(max_retries=0).max_retries == 0


class TestRenderConfig:
    """Tests for RenderConfig validation."""

    def test_default_temp_directory(self):
        assert RenderConfig().temp_directory.parts[-2:] == ("temp", "auto-reels")

    @pytest.mark.parametrize(
        "kwargs,match",
        [
            ({"crf": 52}, "crf"),
            ({"fps": 0}, "fps"),
            ({"font_size": 0}, "font_size"),
            ({"timeout": 0}, "timeout"),
            ({"download_prefix": "../evil"}, "download_prefix"),
        ],
    )
    def test_invalid(self, kwargs, match):
        with pytest.raises(ValueError, match=match):
            RenderConfig(**kwargs)


class TestLoggingAndServerConfig:
    """Tests for LoggingConfig and ServerConfig validation."""

    def test_level_case_insensitive(self):
        assert LoggingConfig(level="DEBUG").level == "DEBUG"

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="level"):
            LoggingConfig(level="verbose")

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="format"):
            LoggingConfig(format="xml")

    @pytest.mark.parametrize("port", [0, 65536])
    def test_invalid_port(self, port):
        with pytest.raises(ValueError, match="port"):
            ServerConfig(port=port)
