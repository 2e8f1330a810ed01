"""Configuration builder with explicit layering.

Sources are applied lowest precedence first (file, then environment,
then CLI); a None value in a source means "not specified here" and never
overrides an earlier value.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from autoreel.config.env import EnvReader
from autoreel.config.models import (
    AutoReelConfig,
    LoggingConfig,
    RenderConfig,
    ServerConfig,
    ToolPathsConfig,
    WorkerConfig,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source."""

    # Tool paths
    ffmpeg_path: Path | None = None

    # Database
    database_path: Path | None = None

    # Worker config
    worker_id: str | None = None
    worker_poll_interval: float | None = None
    worker_max_retries: int | None = None
    worker_heartbeat_interval: int | None = None
    worker_stale_timeout: int | None = None

    # Render config
    render_temp_directory: Path | None = None
    render_font_path: Path | None = None
    render_fps: int | None = None
    render_preset: str | None = None
    render_crf: int | None = None
    render_font_size: int | None = None
    render_timeout: int | None = None
    render_download_prefix: str | None = None

    # Server config
    server_bind: str | None = None
    server_port: int | None = None
    server_shutdown_timeout: float | None = None

    # Logging config
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds AutoReelConfig by layering ConfigSources with precedence.

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config))
        builder.apply(source_from_env(reader))
        builder.apply(cli_source)
        config = builder.build()
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._origins: dict[str, str] = {}

    def apply(self, source: ConfigSource, source_name: str = "unknown") -> None:
        """Apply a source; its non-None values override existing ones."""
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value
                self._origins[field_obj.name] = source_name

    def origin_of(self, key: str) -> str:
        """Name of the source that supplied key, or "default"."""
        return self._origins.get(key, "default")

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> AutoReelConfig:
        """Build the final AutoReelConfig with defaults for unset values.

        Raises:
            ValueError: If any section fails validation.
        """
        tools = ToolPathsConfig(ffmpeg=self._get("ffmpeg_path", None))

        worker = WorkerConfig(
            worker_id=self._get("worker_id", None),
            poll_interval=self._get("worker_poll_interval", 5.0),
            max_retries=self._get("worker_max_retries", 2),
            heartbeat_interval=self._get("worker_heartbeat_interval", 30),
            stale_timeout=self._get("worker_stale_timeout", 300),
        )

        render_defaults = RenderConfig()
        render = RenderConfig(
            temp_directory=self._get(
                "render_temp_directory", render_defaults.temp_directory
            ),
            font_path=self._get("render_font_path", None),
            fps=self._get("render_fps", render_defaults.fps),
            preset=self._get("render_preset", render_defaults.preset),
            crf=self._get("render_crf", render_defaults.crf),
            font_size=self._get("render_font_size", render_defaults.font_size),
            timeout=self._get("render_timeout", render_defaults.timeout),
            download_prefix=self._get(
                "render_download_prefix", render_defaults.download_prefix
            ),
        )

        server = ServerConfig(
            bind=self._get("server_bind", "127.0.0.1"),
            port=self._get("server_port", 8321),
            shutdown_timeout=self._get("server_shutdown_timeout", 30.0),
        )

        logging_config = LoggingConfig(
            level=self._get("logging_level", "info"),
            file=self._get("logging_file", None),
            format=self._get("logging_format", "text"),
            include_stderr=self._get("logging_include_stderr", False),
            max_bytes=self._get("logging_max_bytes", 10_485_760),
            backup_count=self._get("logging_backup_count", 5),
        )

        return AutoReelConfig(
            tools=tools,
            worker=worker,
            render=render,
            logging=logging_config,
            server=server,
            database_path=self._get("database_path", None),
        )


def _path_or_none(value: Any) -> Path | None:
    return Path(value).expanduser() if value else None


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from a parsed TOML config file."""
    tools = file_config.get("tools", {})
    worker = file_config.get("worker", {})
    render = file_config.get("render", {})
    server = file_config.get("server", {})
    logging_conf = file_config.get("logging", {})

    return ConfigSource(
        ffmpeg_path=_path_or_none(tools.get("ffmpeg")),
        database_path=_path_or_none(file_config.get("database_path")),
        worker_id=worker.get("worker_id"),
        worker_poll_interval=worker.get("poll_interval"),
        worker_max_retries=worker.get("max_retries"),
        worker_heartbeat_interval=worker.get("heartbeat_interval"),
        worker_stale_timeout=worker.get("stale_timeout"),
        render_temp_directory=_path_or_none(render.get("temp_directory")),
        render_font_path=_path_or_none(render.get("font_path")),
        render_fps=render.get("fps"),
        render_preset=render.get("preset"),
        render_crf=render.get("crf"),
        render_font_size=render.get("font_size"),
        render_timeout=render.get("timeout"),
        render_download_prefix=render.get("download_prefix"),
        server_bind=server.get("bind"),
        server_port=server.get("port"),
        server_shutdown_timeout=server.get("shutdown_timeout"),
        logging_level=logging_conf.get("level"),
        logging_file=_path_or_none(logging_conf.get("file")),
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from AUTOREEL_* environment variables."""
    return ConfigSource(
        ffmpeg_path=reader.get_path("AUTOREEL_FFMPEG_PATH"),
        database_path=reader.get_path("AUTOREEL_DATABASE_PATH"),
        worker_id=reader.get_str("AUTOREEL_WORKER_ID"),
        worker_poll_interval=reader.get_float("AUTOREEL_POLL_INTERVAL"),
        worker_max_retries=reader.get_int("AUTOREEL_MAX_RETRIES"),
        worker_stale_timeout=reader.get_int("AUTOREEL_STALE_TIMEOUT"),
        render_temp_directory=reader.get_path("AUTOREEL_TEMP_DIR"),
        render_font_path=reader.get_path("AUTOREEL_FONT_PATH"),
        server_bind=reader.get_str("AUTOREEL_SERVER_BIND"),
        server_port=reader.get_int("AUTOREEL_SERVER_PORT"),
        logging_level=reader.get_str("AUTOREEL_LOG_LEVEL"),
        logging_file=reader.get_path("AUTOREEL_LOG_FILE"),
        logging_format=reader.get_str("AUTOREEL_LOG_FORMAT"),
    )
