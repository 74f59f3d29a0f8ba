#!/usr/bin/env python3
"""ZIP container writer.

Each file becomes an independent deflate-compressed member named by its
forward-slash path relative to the base directory.
"""

import zipfile
from pathlib import Path
from typing import Optional

from ztr.archive.base import ArchiveError, ArchiveTarget, ArchiveWriter
from ztr.archive.progress import ProgressListener
from ztr.core.constants import ArchiveFormat, ErrorCode, Limits
from ztr.infrastructure.logger import Logger


class ZipArchiveWriter(ArchiveWriter):
    """Writer for plain ZIP archives."""

    archive_format = ArchiveFormat.ZIP

    def __init__(
        self,
        target: ArchiveTarget,
        progress: Optional[ProgressListener] = None,
        logger: Optional[Logger] = None,
        compression_level: int = Limits.ZIP_COMPRESSION_LEVEL,
    ):
        super().__init__(target, progress, logger)
        self._compression_level = max(0, min(9, compression_level))
        self._zip: Optional[zipfile.ZipFile] = None

    def start(self) -> None:
        # Timestamps before 1980 are clamped instead of rejected
        self._zip = zipfile.ZipFile(
            self.working_path,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self._compression_level,
            strict_timestamps=False,
        )

    def add_entry(self, relative_path: str, source: Path) -> None:
        if self._zip is None:
            raise ArchiveError(
                "start() must be called before add_entry()",
                self.output_path,
                ErrorCode.INTERNAL_ERROR,
            )
        self._zip.write(source, arcname=relative_path)

    def finish(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def _close(self) -> None:
        zf, self._zip = self._zip, None
        if zf is not None:
            zf.close()
