"""Configuration for autoreel.

Usage:
    from autoreel.config import get_config
    config = get_config()
"""

from autoreel.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from autoreel.config.env import EnvReader
from autoreel.config.loader import (
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
)
from autoreel.config.models import (
    AutoReelConfig,
    LoggingConfig,
    RenderConfig,
    ServerConfig,
    ToolPathsConfig,
    WorkerConfig,
    default_worker_id,
)

__all__ = [
    "AutoReelConfig",
    "ConfigBuilder",
    "ConfigSource",
    "EnvReader",
    "LoggingConfig",
    "RenderConfig",
    "ServerConfig",
    "ToolPathsConfig",
    "WorkerConfig",
    "default_worker_id",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "load_config_file",
    "source_from_env",
    "source_from_file",
]
