"""Configuration data models for autoreel.

Each section validates itself in __post_init__, so an invalid value fails
at load time rather than halfway through a render.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def default_worker_id() -> str:
    """Worker identity used when none is configured."""
    return f"autoreel-worker-{os.getpid()}"


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None


@dataclass
class WorkerConfig:
    """Configuration for the render worker."""

    # Identity written into claims (None = autoreel-worker-<pid>)
    worker_id: str | None = None

    # Seconds to wait when no job is claimable
    poll_interval: float = 5.0

    # Failures a job may accumulate before it is marked failed
    max_retries: int = 2

    # Seconds between heartbeats while rendering
    heartbeat_interval: int = 30

    # Seconds without heartbeat before a claim is considered abandoned
    stale_timeout: int = 300

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.poll_interval <= 0:
            raise ValueError(
                f"poll_interval must be positive, got {self.poll_interval}"
            )
        if self.max_retries < 0:
            raise ValueError(
                f"max_retries must be non-negative, got {self.max_retries}"
            )
        if self.heartbeat_interval <= 0:
            raise ValueError(
                f"heartbeat_interval must be positive, got {self.heartbeat_interval}"
            )
        if self.stale_timeout <= self.heartbeat_interval:
            raise ValueError(
                "stale_timeout must be longer than heartbeat_interval "
                f"({self.stale_timeout} <= {self.heartbeat_interval})"
            )

    @property
    def resolved_worker_id(self) -> str:
        return self.worker_id or default_worker_id()


@dataclass
class RenderConfig:
    """Configuration for scratch storage and encoding."""

    # Root of the per-job scratch directories
    temp_directory: Path = field(
        default_factory=lambda: Path.cwd() / "temp" / "auto-reels"
    )

    # Font for the overlay text (None or missing file = system Arial)
    font_path: Path | None = None

    fps: int = 30
    preset: str = "veryfast"
    crf: int = 20
    font_size: int = 64

    # Per-invocation ffmpeg timeout in seconds
    timeout: int = 1800

    # Download filename is <prefix>-<job id>.mp4
    download_prefix: str = "auto-reel"

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 0 <= self.crf <= 51:
            raise ValueError(f"crf must be 0-51, got {self.crf}")
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")
        if self.font_size <= 0:
            raise ValueError(f"font_size must be positive, got {self.font_size}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if not self.download_prefix or "/" in self.download_prefix:
            raise ValueError(f"Invalid download_prefix: {self.download_prefix!r}")


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class ServerConfig:
    """Configuration for `autoreel serve`."""

    bind: str = "127.0.0.1"
    """Network address to bind to. Default localhost."""

    port: int = 8321
    """Port number for the HTTP server."""

    shutdown_timeout: float = 30.0
    """Seconds to wait for graceful shutdown before cancelling tasks."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1-65535, got {self.port}")
        if self.shutdown_timeout <= 0:
            raise ValueError(
                f"shutdown_timeout must be positive, got {self.shutdown_timeout}"
            )


@dataclass
class AutoReelConfig:
    """Main configuration container. Aggregates all sections."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    worker: WorkerConfig = field(default_factory=WorkerConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    # Database path (None = <data dir>/jobs.db)
    database_path: Path | None = None
