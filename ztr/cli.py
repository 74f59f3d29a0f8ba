#!/usr/bin/env python3
"""Command-line interface for ztr.

This module provides the CLI for creating archives of a directory tree:
- ``init``: write a commented default ztr.yaml
- ``show``: list the supported archive formats
- ``compress``: archive the base directory per the configuration
- Logging setup and error-to-exit-code mapping

Example:
    >>> from ztr.cli import parse_arguments
    >>> args = parse_arguments(["compress", "--base-dir", "/src/app"])
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from ztr.archive.base import ArchiveError
from ztr.core.constants import DEFAULT_CONFIG_NAME, ZTR_VERSION, ArchiveFormat, ConfigKey
from ztr.infrastructure.config_manager import ConfigError, ConfigManager, write_default_config
from ztr.infrastructure.logger import Logger, LogLevel, set_global_logger
from ztr.main import CompressionReport, run_compress
from ztr.rules.patterns import PatternError
from ztr.walker import WalkError

DESCRIPTION = "ztr - archive a directory tree, honoring .gitignore-style rules"

# Stage reported for each error type, most specific first
ERROR_STAGES = (
    (ConfigError, "configuration"),
    (PatternError, "rule compilation"),
    (WalkError, "directory walk"),
    (ArchiveError, "archive writing"),
)


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
    """
    parser = argparse.ArgumentParser(
        prog="ztr",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create ztr.yaml in the current directory
  ztr init

  # List supported archive formats
  ztr show

  # Archive the current directory using ./ztr.yaml
  ztr compress

  # Archive another directory as a zip file
  ztr compress --base-dir ~/projects/app --format zip
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {ZTR_VERSION}",
    )

    # Logging options
    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write log records to FILE (rotated)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # init
    init_parser = subparsers.add_parser("init", help="Write a default configuration file")
    init_parser.add_argument(
        "-d",
        "--directory",
        metavar="DIR",
        type=str,
        default=".",
        help="Directory to write the configuration into (default: current directory)",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help=f"Overwrite an existing {DEFAULT_CONFIG_NAME}",
    )

    # show
    subparsers.add_parser("show", help="List supported archive formats")

    # compress
    compress_parser = subparsers.add_parser("compress", help="Create the archive")
    compress_parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help=f"Configuration file (default: {DEFAULT_CONFIG_NAME} in the base directory)",
    )
    compress_parser.add_argument(
        "-d",
        "--base-dir",
        metavar="DIR",
        type=str,
        default=".",
        help="Directory to archive (default: current directory)",
    )
    compress_parser.add_argument(
        "-f",
        "--format",
        dest="archive_format",
        metavar="FORMAT",
        type=str,
        help="Override the configured archive format",
    )
    compress_parser.add_argument(
        "-o",
        "--output-name",
        metavar="NAME",
        type=str,
        help="Override the configured output file name (without extension)",
    )

    parsed = parser.parse_args(args)

    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Raises:
        CLIError: If validation fails
    """
    if args.command == "compress":
        base_path = Path(args.base_dir)

        if not base_path.exists():
            raise CLIError(f"Base directory does not exist: {args.base_dir}")

        if not base_path.is_dir():
            raise CLIError(f"Base path is not a directory: {args.base_dir}")

        if args.config:
            config_path = Path(args.config)
            if config_path.exists() and not config_path.is_file():
                raise CLIError(f"Configuration path is not a file: {args.config}")

    if args.command == "init":
        if not Path(args.directory).is_dir():
            raise CLIError(f"Directory does not exist: {args.directory}")


def setup_logging(args: argparse.Namespace, level: str = "INFO") -> Logger:
    """
    Setup logging based on arguments.

    ``--debug`` wins over any configured level. The logger becomes the
    process-wide default returned by ``get_logger()``.

    Args:
        args: Parsed arguments namespace
        level: Log level to use without --debug

    Returns:
        Configured logger instance
    """
    logger = Logger("ztr", level=LogLevel.DEBUG if args.debug else level)

    if args.log_file:
        try:
            logger.add_handler(logger.create_file_handler(args.log_file))
        except OSError as e:
            raise CLIError(f"Cannot open log file {args.log_file}: {e}")

    set_global_logger(logger)
    return logger


def format_size(size_bytes: int) -> str:
    """Render a byte count for humans, e.g. ``1.5 MiB``."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    size = size_bytes / 1024
    for unit in ("KiB", "MiB", "GiB"):
        if size < 1024 or unit == "GiB":
            break
        size /= 1024
    return f"{size:.1f} {unit}"


def show_supported_formats() -> str:
    """Text listing every archive format and its extension."""
    lines = ["Supported archive formats:"]
    for fmt in ArchiveFormat:
        lines.append(f"  {fmt.value:<8} .{fmt.extension:<8} {fmt.description}")
    return "\n".join(lines)


def load_configuration(args: argparse.Namespace, logger: Logger) -> ConfigManager:
    """
    Build the layered configuration for ``compress``.

    Command-line overrides land in the runtime layer, above the config
    file and environment.

    Raises:
        ConfigError: If the configuration file cannot be loaded
    """
    config_file = args.config or os.path.join(args.base_dir, DEFAULT_CONFIG_NAME)
    manager = ConfigManager(config_file, logger=logger)

    if args.archive_format:
        manager.set(ConfigKey.FORMAT, args.archive_format)
    if args.output_name:
        manager.set(ConfigKey.OUTPUT_NAME, args.output_name)

    return manager


def print_report(report: CompressionReport) -> None:
    """Print the outcome of a compression run to stdout."""
    if not report.written:
        print("No files matched; archive not created")
        return

    print(
        f"Created {report.output_path} "
        f"({report.file_count} files, {format_size(report.size_bytes)})"
    )
    if report.partial:
        print(
            f"Warning: {len(report.walk_errors)} directories could not be read "
            "and are missing from the archive",
            file=sys.stderr,
        )


def cmd_init(args: argparse.Namespace, logger: Logger) -> int:
    """Write the default configuration file."""
    path = write_default_config(args.directory, overwrite=args.force)
    logger.debug("Wrote default configuration", path=str(path))
    print(f"Created {path}")
    return 0


def cmd_show(args: argparse.Namespace, logger: Logger) -> int:
    """List supported formats."""
    print(show_supported_formats())
    return 0


def cmd_compress(args: argparse.Namespace, logger: Logger) -> int:
    """Run the compression pipeline."""
    manager = load_configuration(args, logger)
    config = manager.to_config(args.base_dir)

    if not args.debug:
        logger.set_level(config.log_level)

    report = run_compress(config, args.base_dir, logger)
    print_report(report)
    return 0


COMMANDS = {
    "init": cmd_init,
    "show": cmd_show,
    "compress": cmd_compress,
}


def describe_error(error: Exception) -> str:
    """Prefix an error message with the stage that failed."""
    for error_type, stage in ERROR_STAGES:
        if isinstance(error, error_type):
            return f"{stage} failed: {error}"
    return str(error)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code: 0 on success, 1 on any error, 130 when interrupted
    """
    try:
        args = parse_arguments(argv)
        logger = setup_logging(args)
        return COMMANDS[args.command](args, logger)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except (ConfigError, PatternError, WalkError, ArchiveError) as e:
        print(f"Error: {describe_error(e)}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
