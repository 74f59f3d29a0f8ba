"""ztr Infrastructure Layer.

Services used by the rule, walk and archive layers:
- ConfigManager: Layered YAML configuration with environment overrides
- Logger: Structured logging
"""

from .config_manager import (
    ConfigError,
    ConfigManager,
    ConfigSource,
    ZtrConfig,
    load_ignore_file,
    render_default_config,
    write_default_config,
)
from .logger import Logger, LogLevel, get_logger, set_global_logger

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "get_logger",
    "set_global_logger",
    # ConfigManager exports
    "ConfigSource",
    "ConfigError",
    "ConfigManager",
    "ZtrConfig",
    "load_ignore_file",
    "render_default_config",
    "write_default_config",
]
