#!/usr/bin/env python3
"""7-Zip writer backed by py7zr.

The LZMA2 encoder is handed whole-file buffers: each file is read into
memory before it is added.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import py7zr

from ztr.archive.base import ArchiveError, ArchiveTarget, ArchiveWriter
from ztr.archive.progress import ProgressListener
from ztr.core.constants import ArchiveFormat, ErrorCode
from ztr.infrastructure.logger import Logger


class SevenZipArchiveWriter(ArchiveWriter):
    """Writer for high-ratio .7z archives."""

    archive_format = ArchiveFormat.SEVEN_Z

    def __init__(
        self,
        target: ArchiveTarget,
        progress: Optional[ProgressListener] = None,
        logger: Optional[Logger] = None,
        filters: Optional[List[Dict[str, Any]]] = None,
    ):
        """Initialize 7z writer.

        Args:
            target: Format and output path
            progress: Listener for per-entry events
            logger: Logger instance
            filters: py7zr filter chain (None uses py7zr's default)
        """
        super().__init__(target, progress, logger)
        self._filters = filters
        self._archive: Optional[py7zr.SevenZipFile] = None
        self._buffered_bytes = 0

    def start(self) -> None:
        self._archive = py7zr.SevenZipFile(self.working_path, mode="w", filters=self._filters)

    def add_entry(self, relative_path: str, source: Path) -> None:
        if self._archive is None:
            raise ArchiveError(
                "start() must be called before add_entry()",
                self.output_path,
                ErrorCode.INTERNAL_ERROR,
            )
        content = source.read_bytes()
        self._buffered_bytes += len(content)
        self._archive.writestr(content, relative_path)

    def finish(self) -> None:
        if self._archive is not None:
            self._archive.close()
            self._archive = None
            self._logger.debug("7z archive closed", input_bytes=self._buffered_bytes)

    def _close(self) -> None:
        archive, self._archive = self._archive, None
        if archive is not None:
            archive.close()
