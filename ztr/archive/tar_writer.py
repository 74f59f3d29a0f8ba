#!/usr/bin/env python3
"""Gzip-compressed tar writer.

One gzip stream wraps the tar entry sequence. Symlinked files are stored
by content, matching what the walker followed.
"""

import tarfile
from pathlib import Path
from typing import Optional

from ztr.archive.base import ArchiveError, ArchiveTarget, ArchiveWriter
from ztr.archive.progress import ProgressListener
from ztr.core.constants import ArchiveFormat, ErrorCode, Limits
from ztr.infrastructure.logger import Logger


class TarGzArchiveWriter(ArchiveWriter):
    """Writer for .tar.gz archives."""

    archive_format = ArchiveFormat.TAR_GZ

    def __init__(
        self,
        target: ArchiveTarget,
        progress: Optional[ProgressListener] = None,
        logger: Optional[Logger] = None,
        compression_level: int = Limits.GZIP_COMPRESSION_LEVEL,
    ):
        super().__init__(target, progress, logger)
        self._compression_level = max(1, min(9, compression_level))
        self._tar: Optional[tarfile.TarFile] = None

    def start(self) -> None:
        self._tar = tarfile.open(
            self.working_path,
            mode="w:gz",
            compresslevel=self._compression_level,
            dereference=True,
        )

    def add_entry(self, relative_path: str, source: Path) -> None:
        if self._tar is None:
            raise ArchiveError(
                "start() must be called before add_entry()",
                self.output_path,
                ErrorCode.INTERNAL_ERROR,
            )
        self._tar.add(str(source), arcname=relative_path, recursive=False)

    def finish(self) -> None:
        # close() writes the end-of-archive blocks and flushes the gzip stream
        if self._tar is not None:
            self._tar.close()
            self._tar = None

    def _close(self) -> None:
        tar, self._tar = self._tar, None
        if tar is not None:
            tar.close()
