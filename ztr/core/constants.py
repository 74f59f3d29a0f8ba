"""
ztr Core: Constants and Type Definitions

This module provides system-wide constants, error codes, archive formats
and the default ignore rule list.
"""
from enum import Enum, IntEnum
from typing import List

# Version information
ZTR_VERSION = "1.0.0"

# Default configuration file name, looked up in the base directory
DEFAULT_CONFIG_NAME = "ztr.yaml"

# Output name used when the base directory has no usable name
FALLBACK_OUTPUT_NAME = "archive"


# Error codes (0-9 range)
class ErrorCode(IntEnum):
    """Standardized error codes for ztr operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad rule text, invalid configuration
    NOT_FOUND = 2  # File or directory doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    CONFLICT = 4  # Output already exists
    INTERNAL_ERROR = 5  # Bug in caller or ztr
    IO_ERROR = 6  # Read/write failure


class ArchiveFormat(Enum):
    """Supported archive container formats."""

    ZIP = "zip"  # Plain container, one member per file
    TAR_GZ = "tar.gz"  # Single gzip stream wrapping a tar
    SEVEN_Z = "7z"  # High-ratio LZMA container

    @property
    def extension(self) -> str:
        """File extension (without leading dot) for this format."""
        return self.value

    @property
    def description(self) -> str:
        """Human readable description."""
        return _FORMAT_DESCRIPTIONS[self]

    @classmethod
    def from_name(cls, name: str) -> "ArchiveFormat":
        """Look up a format by its config tag.

        Raises:
            ValueError: If the tag is not a supported format
        """
        normalized = name.strip().lower()
        for fmt in cls:
            if fmt.value == normalized:
                return fmt
        supported = ", ".join(f.value for f in cls)
        raise ValueError(f"Unsupported archive format: {name} (supported: {supported})")


_FORMAT_DESCRIPTIONS = {
    ArchiveFormat.ZIP: "ZIP archive (widest compatibility)",
    ArchiveFormat.TAR_GZ: "gzip-compressed tar (common on Linux)",
    ArchiveFormat.SEVEN_Z: "7-Zip archive (highest compression ratio)",
}


# Resource limits and defaults
class Limits:
    """Walk limits and writer defaults."""

    # Directory recursion bound, guards against symlink loops
    MAX_WALK_DEPTH = 256

    # Compression levels
    ZIP_COMPRESSION_LEVEL = 6
    GZIP_COMPRESSION_LEVEL = 9

    # Log file rotation
    LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT = 5


# Configuration keys
class ConfigKey:
    """Configuration key constants."""

    FORMAT = "format"
    OUTPUT_NAME = "output_name"
    IGNORE = "ignore"
    IGNORE_FILE = "ignore_file"
    LOGGING = "logging"
    LOG_LEVEL = "level"


DEFAULT_FORMAT = ArchiveFormat.TAR_GZ

# Rules written by `ztr init` and used when no config file exists
DEFAULT_IGNORE_RULES: List[str] = [
    "target/",
    "*.tmp",
    "*.log",
    ".DS_Store",
    "Thumbs.db",
    "*.swp",
    "*.swo",
    "*~",
    ".git/",
    ".svn/",
    ".hg/",
    "node_modules/",
    "__pycache__/",
    ".pytest_cache/",
    ".venv/",
    "venv/",
    "env/",
    "*.pyc",
    "*.pyo",
    "*.pyd",
    ".idea/",
    ".vscode/",
    "*.iml",
]

# Default configuration values
DEFAULT_CONFIG = {
    ConfigKey.FORMAT: DEFAULT_FORMAT.value,
    ConfigKey.OUTPUT_NAME: None,
    ConfigKey.IGNORE: list(DEFAULT_IGNORE_RULES),
    ConfigKey.IGNORE_FILE: None,
    ConfigKey.LOGGING: {
        ConfigKey.LOG_LEVEL: "INFO",
    },
}
