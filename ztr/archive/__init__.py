"""ztr Archive Writers.

This module provides the container formats selected files are written to:
- ZipArchiveWriter: plain ZIP, one member per file
- TarGzArchiveWriter: gzip-compressed tar
- SevenZipArchiveWriter: high-ratio 7z (py7zr)

``create_writer`` picks the writer for an ArchiveTarget's format; all
stages before it are format-agnostic.
"""

from pathlib import Path
from typing import Dict, Iterable, Optional, Type, Union

from ztr.core.constants import ArchiveFormat, ErrorCode
from ztr.infrastructure.logger import Logger

from .base import (
    ArchiveError,
    ArchiveTarget,
    ArchiveWriter,
    RelativePathError,
    WriteResult,
    relative_archive_name,
)
from .progress import LoggingProgress, ProgressCounter, ProgressListener
from .sevenz_writer import SevenZipArchiveWriter
from .tar_writer import TarGzArchiveWriter
from .zip_writer import ZipArchiveWriter

WRITERS: Dict[ArchiveFormat, Type[ArchiveWriter]] = {
    ArchiveFormat.ZIP: ZipArchiveWriter,
    ArchiveFormat.TAR_GZ: TarGzArchiveWriter,
    ArchiveFormat.SEVEN_Z: SevenZipArchiveWriter,
}


def create_writer(
    target: ArchiveTarget,
    progress: Optional[ProgressListener] = None,
    logger: Optional[Logger] = None,
    **options,
) -> ArchiveWriter:
    """Create the writer for ``target.format``.

    Args:
        target: Format and output path
        progress: Listener for per-entry events
        logger: Logger instance
        **options: Format-specific writer options (compression_level, filters)

    Raises:
        ArchiveError: If no writer handles the format
    """
    writer_class = WRITERS.get(target.format)
    if writer_class is None:
        raise ArchiveError(
            f"No writer for format: {target.format}", target.output_path, ErrorCode.INVALID_INPUT
        )
    return writer_class(target, progress=progress, logger=logger, **options)


def write_archive(
    files: Iterable[Union[str, Path]],
    base_dir: Union[str, Path],
    target: ArchiveTarget,
    progress: Optional[ProgressListener] = None,
    logger: Optional[Logger] = None,
) -> WriteResult:
    """Write ``files`` (absolute paths under ``base_dir``) to ``target``."""
    return create_writer(target, progress=progress, logger=logger).write(files, base_dir)


__all__ = [
    # Base
    "ArchiveError",
    "RelativePathError",
    "ArchiveTarget",
    "ArchiveWriter",
    "WriteResult",
    "relative_archive_name",
    # Progress
    "ProgressListener",
    "ProgressCounter",
    "LoggingProgress",
    # Writers
    "ZipArchiveWriter",
    "TarGzArchiveWriter",
    "SevenZipArchiveWriter",
    "WRITERS",
    "create_writer",
    "write_archive",
]
