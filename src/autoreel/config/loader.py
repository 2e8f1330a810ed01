"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to get_config)
2. Environment variables (AUTOREEL_*)
3. Config file (~/.autoreel/config.toml)
4. Default values

Environment variables:
- AUTOREEL_CONFIG_PATH: Path to config file (overrides default location)
- AUTOREEL_DATA_DIR: Path to the data directory (overrides ~/.autoreel/)
- AUTOREEL_DATABASE_PATH: Path to database file
- AUTOREEL_FFMPEG_PATH: Path to ffmpeg executable
- AUTOREEL_WORKER_ID, AUTOREEL_POLL_INTERVAL, AUTOREEL_MAX_RETRIES,
  AUTOREEL_STALE_TIMEOUT: Worker settings
- AUTOREEL_TEMP_DIR, AUTOREEL_FONT_PATH: Render settings
- AUTOREEL_SERVER_BIND, AUTOREEL_SERVER_PORT: Server settings
- AUTOREEL_LOG_LEVEL, AUTOREEL_LOG_FILE, AUTOREEL_LOG_FORMAT: Logging
"""

import logging
import tomllib
from pathlib import Path
from typing import Any

from autoreel.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from autoreel.config.env import EnvReader
from autoreel.config.models import AutoReelConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".autoreel"
CONFIG_FILENAME = "config.toml"
DB_FILENAME = "jobs.db"


def get_data_dir(env_reader: EnvReader | None = None) -> Path:
    """Get the autoreel data directory.

    Holds the database and the default config file. Can be overridden
    by AUTOREEL_DATA_DIR.
    """
    reader = env_reader or EnvReader()
    return reader.get_path("AUTOREEL_DATA_DIR", default=DEFAULT_CONFIG_DIR)


def get_default_config_path(env_reader: EnvReader | None = None) -> Path:
    """Get the config file path, honouring AUTOREEL_CONFIG_PATH."""
    reader = env_reader or EnvReader()
    env_path = reader.get_path("AUTOREEL_CONFIG_PATH")
    if env_path is not None:
        return env_path
    return get_data_dir(reader) / CONFIG_FILENAME


def load_config_file(path: Path | None = None, strict: bool = False) -> dict[str, Any]:
    """Load configuration from a TOML file.

    Args:
        path: Path to config file. If None, uses default location.
        strict: Raise on unreadable or malformed files instead of
            logging a warning and returning an empty dict.

    Returns:
        Parsed configuration dict. Empty dict if the file doesn't exist.

    Raises:
        ValueError: If strict and the file cannot be parsed.
    """
    if path is None:
        path = get_default_config_path()

    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}

    try:
        config = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        if strict:
            raise ValueError(f"Failed to load config file {path}: {e}") from e
        logger.warning("Failed to load config file %s: %s", path, e)
        return {}

    logger.debug("Loaded config from %s", path)
    return config


def get_config(
    config_path: Path | None = None,
    *,
    database_path: Path | None = None,
    worker_id: str | None = None,
    log_level: str | None = None,
    log_file: Path | None = None,
    log_json: bool | None = None,
    env_reader: EnvReader | None = None,
) -> AutoReelConfig:
    """Build the effective configuration.

    Args:
        config_path: Explicit config file (None = default location).
        database_path: CLI override for the database path.
        worker_id: CLI override for the worker identity.
        log_level: CLI override for the log level.
        log_file: CLI override for the log file.
        log_json: CLI override selecting JSON log output.
        env_reader: Environment source (None = os.environ).

    Returns:
        Validated AutoReelConfig.

    Raises:
        ValueError: If a merged value fails validation, or an explicitly
            named config file cannot be parsed.
    """
    reader = env_reader or EnvReader()
    explicit = config_path is not None
    path = config_path if explicit else get_default_config_path(reader)

    builder = ConfigBuilder()
    builder.apply(source_from_file(load_config_file(path, strict=explicit)), "file")
    builder.apply(source_from_env(reader), "env")
    builder.apply(
        ConfigSource(
            database_path=database_path,
            worker_id=worker_id,
            logging_level=log_level,
            logging_file=log_file,
            logging_format=("json" if log_json else None),
        ),
        "cli",
    )
    config = builder.build()

    if config.database_path is None:
        config.database_path = get_data_dir(reader) / DB_FILENAME
    return config
