"""
ztr Core: Input Validators.

Validation functions for the configuration document: archive format,
output name, rule lists and logging settings.
"""
from typing import Any, Dict, List

from ztr.core.constants import ArchiveFormat, ConfigKey, ErrorCode


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.error_code = error_code


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate ztr configuration structure.

    Args:
        config: Configuration dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    if ConfigKey.FORMAT not in config:
        raise ValidationError("Configuration must have 'format' field")

    validate_format(config[ConfigKey.FORMAT])

    if config.get(ConfigKey.OUTPUT_NAME) is not None:
        validate_output_name(config[ConfigKey.OUTPUT_NAME])

    if config.get(ConfigKey.IGNORE) is not None:
        validate_rule_list(config[ConfigKey.IGNORE])

    ignore_file = config.get(ConfigKey.IGNORE_FILE)
    if ignore_file is not None and (not isinstance(ignore_file, str) or not ignore_file.strip()):
        raise ValidationError(f"ignore_file must be a non-empty string: {ignore_file!r}")

    if config.get(ConfigKey.LOGGING) is not None:
        validate_logging_config(config[ConfigKey.LOGGING])

    return True


def validate_format(value: Any) -> ArchiveFormat:
    """Validate an archive format tag.

    Args:
        value: Format tag from configuration

    Returns:
        The matching ArchiveFormat

    Raises:
        ValidationError: If the tag is not a supported format
    """
    if not isinstance(value, str):
        raise ValidationError(f"Format must be string, got {type(value).__name__}")

    try:
        return ArchiveFormat.from_name(value)
    except ValueError as e:
        raise ValidationError(str(e))


def validate_output_name(name: Any) -> bool:
    """Validate the archive output name.

    The name becomes a file name inside the base directory, so it may not
    contain path separators or traversal components.

    Raises:
        ValidationError: If name is invalid
    """
    if not isinstance(name, str):
        raise ValidationError(f"Output name must be string, got {type(name).__name__}")

    if not name.strip():
        raise ValidationError("Output name cannot be empty")

    if "/" in name or "\\" in name:
        raise ValidationError(f"Output name cannot contain path separators: {name}")

    if name in (".", ".."):
        raise ValidationError(f"Invalid output name: {name}")

    if "\0" in name:
        raise ValidationError("Output name contains null bytes")

    return True


def validate_rule_list(rules: Any) -> bool:
    """Validate an inline ignore rule list.

    Raises:
        ValidationError: If rules is not a list of strings
    """
    if not isinstance(rules, list):
        raise ValidationError("Ignore rules must be a list")

    for i, rule in enumerate(rules):
        if not isinstance(rule, str):
            raise ValidationError(
                f"Invalid ignore rule at index {i}: expected string, got {type(rule).__name__}"
            )

    return True


def validate_logging_config(section: Any) -> bool:
    """Validate the logging section."""
    if not isinstance(section, dict):
        raise ValidationError("Logging configuration must be a dictionary")

    level = section.get(ConfigKey.LOG_LEVEL)
    if level is not None:
        valid_levels: List[str] = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if not isinstance(level, str) or level.upper() not in valid_levels:
            raise ValidationError(
                f"Invalid log level: {level}. Must be one of {valid_levels}"
            )

    return True
