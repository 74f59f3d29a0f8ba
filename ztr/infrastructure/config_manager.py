#!/usr/bin/env python3
"""Layered configuration for ztr.

This module provides configuration management with:
- Precedence hierarchy (defaults < config file < environment < runtime)
- YAML config file loading
- ZTR_* environment variable overrides
- Validation into a typed ZtrConfig record
- Ignore-file resolution and rule-source merging
- Default config file rendering (Jinja2 template)

Example:
    >>> manager = ConfigManager()
    >>> manager.load_file("ztr.yaml")
    >>> config = manager.to_config(base_dir="/src/app")
    >>> config.archive_format
    <ArchiveFormat.TAR_GZ: 'tar.gz'>
"""

import copy
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jinja2
import yaml

from ztr.core.constants import (
    DEFAULT_CONFIG,
    DEFAULT_CONFIG_NAME,
    DEFAULT_FORMAT,
    DEFAULT_IGNORE_RULES,
    FALLBACK_OUTPUT_NAME,
    ArchiveFormat,
    ConfigKey,
    ErrorCode,
)
from ztr.core.validators import ValidationError, validate_config
from ztr.infrastructure.logger import Logger, get_logger
from ztr.rules.patterns import PatternError, RuleSet

# Environment variables and the config keys they override
ENV_KEYS = {
    "ZTR_FORMAT": ConfigKey.FORMAT,
    "ZTR_OUTPUT_NAME": ConfigKey.OUTPUT_NAME,
    "ZTR_IGNORE_FILE": ConfigKey.IGNORE_FILE,
    "ZTR_LOG_LEVEL": f"{ConfigKey.LOGGING}.{ConfigKey.LOG_LEVEL}",
}

DEFAULT_CONFIG_TEMPLATE = """\
# ztr configuration

# Archive format: "zip", "tar.gz" or "7z"
format: {{ format | tojson }}

# Output file name without extension (default: name of the base directory)
{% if output_name %}
output_name: {{ output_name | tojson }}
{% else %}
# output_name: "my_archive"
{% endif %}

# Ignore rules, .gitignore syntax. Later rules override earlier ones.
ignore:
{% for rule in ignore %}
  - {{ rule | tojson }}
{% endfor %}

# Rule file appended after the rules above, relative to the base directory
{% if ignore_file %}
ignore_file: {{ ignore_file | tojson }}
{% else %}
# ignore_file: ".gitignore"
{% endif %}
"""


class ConfigSource(Enum):
    """Configuration source precedence levels."""

    COMPILED_DEFAULTS = 1  # Lowest precedence
    USER_CONFIG = 2
    ENVIRONMENT = 3
    RUNTIME = 4  # Highest precedence


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


@dataclass
class ZtrConfig:
    """Validated configuration for one run.

    ``ignore_file_rules`` holds the resolved contents of ``ignore_file``;
    it is filled in by ``ConfigManager.to_config``.
    """

    archive_format: ArchiveFormat = DEFAULT_FORMAT
    output_name: Optional[str] = None
    ignore: List[str] = field(default_factory=list)
    ignore_file: Optional[str] = None
    ignore_file_rules: List[str] = field(default_factory=list)
    log_level: str = "INFO"

    def get_output_name(self, base_dir: Union[str, Path]) -> str:
        """Configured output name, else the base directory's name."""
        if self.output_name:
            return self.output_name
        name = Path(os.path.abspath(base_dir)).name
        return name or FALLBACK_OUTPUT_NAME

    def ignore_rules(self) -> List[str]:
        """All rule lines in precedence order: inline first, ignore file last."""
        return list(self.ignore) + list(self.ignore_file_rules)

    def rule_set(self) -> RuleSet:
        """Compile both rule sources.

        Raises:
            PatternError: If a rule cannot be tokenized
        """
        return RuleSet.from_sources(
            self.ignore, self.ignore_file_rules, file_source=self.ignore_file
        )


class ConfigManager:
    """Hierarchical configuration manager.

    Manages configuration from multiple sources with precedence:
    1. Compiled defaults (lowest)
    2. Config file (ztr.yaml)
    3. Environment variables (ZTR_FORMAT, ZTR_OUTPUT_NAME, ...)
    4. Runtime updates (highest)

    Nested dictionaries are merged key by key; lists and scalars from a
    higher source replace lower ones wholesale.
    """

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        environ: Optional[Dict[str, str]] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize configuration manager.

        Args:
            config_file: Optional config file to load
            environ: Environment mapping (defaults to os.environ)
            logger: Logger instance
        """
        self._config: Dict[ConfigSource, Dict[str, Any]] = {}
        self._logger = logger or get_logger()
        self._config_path: Optional[Path] = None

        self._config[ConfigSource.COMPILED_DEFAULTS] = copy.deepcopy(DEFAULT_CONFIG)

        if config_file:
            self.load_file(config_file)

        self._load_environment(os.environ if environ is None else environ)

    @property
    def config_path(self) -> Optional[Path]:
        """Path of the loaded config file, if any."""
        return self._config_path

    def load_file(
        self, file_path: Union[str, Path], source: ConfigSource = ConfigSource.USER_CONFIG
    ) -> None:
        """Load configuration from YAML file.

        Args:
            file_path: Path to YAML config file
            source: Configuration source level

        Raises:
            ConfigError: If file cannot be loaded or parsed
        """
        path = Path(file_path).expanduser()

        if not path.exists():
            raise ConfigError(
                f"Config file not found: {file_path} (run 'ztr init' to create one)",
                ErrorCode.NOT_FOUND,
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {file_path}: {e}", ErrorCode.INVALID_INPUT)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Error reading config {file_path}: {e}", ErrorCode.IO_ERROR)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigError(f"Invalid config format in {file_path}", ErrorCode.INVALID_INPUT)

        self._config[source] = config_data
        self._config_path = path.resolve()
        self._logger.debug("Loaded config file", path=str(self._config_path))

    def _load_environment(self, environ: Dict[str, str]) -> None:
        """Load ZTR_* overrides, e.g. ZTR_FORMAT=zip."""
        env_config: Dict[str, Any] = {}

        for name, key in ENV_KEYS.items():
            value = environ.get(name)
            if value is None or value == "":
                continue
            self._set_nested(env_config, key, value)

        if env_config:
            self._config[ConfigSource.ENVIRONMENT] = env_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Dot-separated key path (e.g., "logging.level")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        for source in sorted(self._config.keys(), key=lambda s: s.value, reverse=True):
            value = self._get_nested(self._config[source], key)
            if value is not None:
                return value

        return default

    def _get_nested(self, config: Dict[str, Any], key: str) -> Optional[Any]:
        current: Any = config
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def _set_nested(self, config: Dict[str, Any], key: str, value: Any) -> None:
        parts = key.split(".")
        current = config
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set configuration value.

        Args:
            key: Dot-separated key path
            value: Value to set
            source: Configuration source level
        """
        self._set_nested(self._config.setdefault(source, {}), key, value)

    def get_all(self) -> Dict[str, Any]:
        """Get merged configuration from all sources."""
        merged: Dict[str, Any] = {}

        for source in sorted(self._config.keys(), key=lambda s: s.value):
            merged = self._deep_merge(merged, self._config[source])

        return merged

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def to_config(self, base_dir: Union[str, Path]) -> ZtrConfig:
        """Validate the merged configuration and resolve the ignore file.

        Args:
            base_dir: Directory a relative ignore_file is resolved against

        Returns:
            ZtrConfig for the run

        Raises:
            ConfigError: If the configuration is invalid
            PatternError: If the ignore file is not valid UTF-8
        """
        merged = self.get_all()

        try:
            validate_config(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}", e.error_code)

        ignore = merged.get(ConfigKey.IGNORE)
        logging_section = merged.get(ConfigKey.LOGGING) or {}
        config = ZtrConfig(
            archive_format=ArchiveFormat.from_name(merged[ConfigKey.FORMAT]),
            output_name=merged.get(ConfigKey.OUTPUT_NAME),
            ignore=list(ignore) if ignore is not None else [],
            ignore_file=merged.get(ConfigKey.IGNORE_FILE),
            log_level=str(logging_section.get(ConfigKey.LOG_LEVEL, "INFO")).upper(),
        )

        if config.ignore_file:
            config.ignore_file_rules = load_ignore_file(config.ignore_file, base_dir, self._logger)

        return config


def load_ignore_file(
    ignore_file: Union[str, Path],
    base_dir: Union[str, Path],
    logger: Optional[Logger] = None,
) -> List[str]:
    """Read an external rule file.

    A missing or unreadable file contributes no rules and is reported as a
    warning.

    Args:
        ignore_file: Path to the rule file, relative paths under base_dir
        base_dir: Base directory of the run
        logger: Logger instance

    Returns:
        Raw lines of the file (comments and blanks are dropped at compile time)

    Raises:
        PatternError: If the file is not valid UTF-8
    """
    logger = logger or get_logger()
    path = Path(ignore_file).expanduser()
    if not path.is_absolute():
        path = Path(base_dir) / path

    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        logger.warning("Ignore file not found, no rules loaded from it", path=str(path))
        return []
    except OSError as e:
        logger.warning("Cannot read ignore file", path=str(path), error=str(e))
        return []

    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise PatternError(f"Ignore file {path} is not valid UTF-8: {e}")

    lines = text.splitlines()
    logger.debug("Loaded ignore file", path=str(path), lines=len(lines))
    return lines


def render_default_config(
    archive_format: ArchiveFormat = DEFAULT_FORMAT,
    output_name: Optional[str] = None,
    ignore: Optional[List[str]] = None,
    ignore_file: Optional[str] = None,
) -> str:
    """Render the commented default config document."""
    env = jinja2.Environment(
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=jinja2.StrictUndefined,
        autoescape=False,
    )
    template = env.from_string(DEFAULT_CONFIG_TEMPLATE)
    return template.render(
        format=archive_format.value,
        output_name=output_name,
        ignore=list(DEFAULT_IGNORE_RULES) if ignore is None else ignore,
        ignore_file=ignore_file,
    )


def write_default_config(
    directory: Union[str, Path],
    file_name: str = DEFAULT_CONFIG_NAME,
    overwrite: bool = False,
) -> Path:
    """Write the default config file into ``directory``.

    Returns:
        Path of the written file

    Raises:
        ConfigError: If the file exists and overwrite is False, or on I/O failure
    """
    path = Path(directory) / file_name
    if path.exists() and not overwrite:
        raise ConfigError(
            f"Config file already exists: {path} (use --force to overwrite)",
            ErrorCode.CONFLICT,
        )

    try:
        path.write_text(render_default_config(), encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot write config file {path}: {e}", ErrorCode.IO_ERROR)

    return path
