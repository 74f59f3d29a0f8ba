#!/usr/bin/env python3
"""Progress events emitted while an archive is written.

Writers call a ProgressListener; they never print. The CLI plugs in a
listener that logs, tests plug in ProgressCounter.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ztr.infrastructure.logger import Logger


class ProgressListener:
    """Receives archive progress events. All hooks default to no-ops."""

    def on_start(self, total: int) -> None:
        """Called once before the first entry with the file count."""

    def on_entry(self, relative_path: str, processed: int) -> None:
        """Called after each entry is written.

        Args:
            relative_path: Archive name of the entry just written
            processed: Number of entries written so far
        """

    def on_finish(self, success: bool, size_bytes: Optional[int] = None) -> None:
        """Called once the archive is finalized or abandoned."""


@dataclass
class ProgressCounter(ProgressListener):
    """Listener that records every event it receives."""

    total: Optional[int] = None
    processed: int = 0
    entries: List[str] = field(default_factory=list)
    finished: bool = False
    success: Optional[bool] = None
    size_bytes: Optional[int] = None

    def on_start(self, total: int) -> None:
        self.total = total

    def on_entry(self, relative_path: str, processed: int) -> None:
        self.processed = processed
        self.entries.append(relative_path)

    def on_finish(self, success: bool, size_bytes: Optional[int] = None) -> None:
        self.finished = True
        self.success = success
        self.size_bytes = size_bytes


class LoggingProgress(ProgressListener):
    """Reports progress through a Logger.

    Per-entry events go to debug; a summary line is logged every
    ``every`` entries at info level.
    """

    def __init__(self, logger: Logger, every: int = 100):
        self._logger = logger
        self._every = max(1, every)
        self._total = 0

    def on_start(self, total: int) -> None:
        self._total = total
        self._logger.info("Compressing files", total=total)

    def on_entry(self, relative_path: str, processed: int) -> None:
        self._logger.debug("Added entry", path=relative_path, processed=processed)
        if processed % self._every == 0 and processed != self._total:
            self._logger.info("Progress", processed=processed, total=self._total)

    def on_finish(self, success: bool, size_bytes: Optional[int] = None) -> None:
        if success:
            self._logger.info("Compression complete", size_bytes=size_bytes)
        else:
            self._logger.error("Compression failed")
