#!/usr/bin/env python3
"""Compression pipeline for ztr.

This module runs one compression from a validated configuration:
- Rule compilation (inline rules, then the ignore file)
- Pruned walk of the base directory
- Exclusion of the output archive from its own input
- Archive writing and final size reporting

Example:
    >>> from ztr.main import run_compress
    >>> report = run_compress(config, "/path/to/project")
    >>> report.output_path
    PosixPath('/path/to/project/project.tar.gz')
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from ztr.archive import ArchiveTarget, LoggingProgress, ProgressListener, create_writer
from ztr.core.constants import ArchiveFormat
from ztr.infrastructure.config_manager import ZtrConfig
from ztr.infrastructure.logger import Logger, get_logger
from ztr.rules.engine import IgnoreMatcher
from ztr.walker import TreeWalker, WalkError, WalkResult


@dataclass
class CompressionReport:
    """Outcome of one compression run."""

    output_path: Optional[Path]  # None when nothing was written
    archive_format: ArchiveFormat
    file_count: int = 0
    size_bytes: int = 0
    walk_errors: List[WalkError] = field(default_factory=list)
    pruned_directories: List[str] = field(default_factory=list)

    @property
    def written(self) -> bool:
        return self.output_path is not None

    @property
    def partial(self) -> bool:
        """True when some subtree could not be read and is missing."""
        return bool(self.walk_errors)


class CompressionRun:
    """
    Controller for one compression of a base directory.

    Stages run in order and each one aborts the run on failure:
    rules (PatternError), walk (WalkError on the root only), archive
    (ArchiveError, partial output removed).
    """

    def __init__(
        self,
        config: ZtrConfig,
        base_dir: Union[str, Path],
        logger: Optional[Logger] = None,
        progress: Optional[ProgressListener] = None,
    ):
        """
        Initialize compression run.

        Args:
            config: Validated configuration
            base_dir: Directory to compress; also where the archive is written
            logger: Logger instance
            progress: Listener for archive progress (defaults to logging)
        """
        self.config = config
        self.base_dir = Path(os.path.abspath(base_dir))
        self.logger = logger or get_logger()
        self.progress = progress or LoggingProgress(self.logger)

        self.target = ArchiveTarget.for_directory(
            self.base_dir, config.get_output_name(self.base_dir), config.archive_format
        )
        self.matcher: Optional[IgnoreMatcher] = None

    def compile_rules(self) -> IgnoreMatcher:
        """
        Compile the configured rules.

        Raises:
            PatternError: If a rule cannot be tokenized
        """
        rules = self.config.rule_set()
        self.matcher = IgnoreMatcher(rules, base_dir=self.base_dir)
        self.logger.debug(
            "Compiled ignore rules",
            inline=len(self.config.ignore),
            from_file=len(self.config.ignore_file_rules),
            patterns=len(rules),
        )
        return self.matcher

    def collect_files(self, matcher: IgnoreMatcher) -> WalkResult:
        """
        Walk the base directory and drop the output archive from the result.

        Raises:
            WalkError: If the base directory cannot be read
        """
        walker = TreeWalker(matcher, logger=self.logger)
        result = walker.walk(self.base_dir)

        # The archive and its in-progress sibling are never their own input
        own_files = {self.target.output_path, self.target.working_path}
        kept = [entry for entry in result.entries if entry.path not in own_files]
        if len(kept) != len(result.entries):
            self.logger.debug(
                "Excluded output archive from input", path=str(self.target.output_path)
            )
            result.entries = kept

        return result

    def run(self) -> CompressionReport:
        """
        Run every stage.

        Returns:
            CompressionReport; ``output_path`` is None when no file survived

        Raises:
            PatternError: Rule compilation failed
            WalkError: The base directory could not be read
            ArchiveError: Writing the archive failed
        """
        report = CompressionReport(output_path=None, archive_format=self.config.archive_format)

        with self.logger.add_context(base_dir=str(self.base_dir)):
            matcher = self.compile_rules()
            result = self.collect_files(matcher)

            report.walk_errors = list(result.errors)
            report.pruned_directories = list(result.pruned_directories)

            if not result.entries:
                self.logger.warning("No files to compress, archive not created")
                return report

            writer = create_writer(self.target, progress=self.progress, logger=self.logger)
            written = writer.write(result.files, self.base_dir)

            report.output_path = written.output_path
            report.file_count = written.entry_count
            report.size_bytes = written.size_bytes

            self.logger.info(
                "Archive written",
                path=str(written.output_path),
                files=written.entry_count,
                size_bytes=written.size_bytes,
                partial=report.partial,
            )

        return report


def run_compress(
    config: ZtrConfig,
    base_dir: Union[str, Path],
    logger: Optional[Logger] = None,
    progress: Optional[ProgressListener] = None,
) -> CompressionReport:
    """
    Compress ``base_dir`` according to ``config``.

    Args:
        config: Validated configuration
        base_dir: Directory to compress
        logger: Logger instance
        progress: Listener for archive progress

    Returns:
        CompressionReport for the run
    """
    return CompressionRun(config, base_dir, logger, progress).run()
