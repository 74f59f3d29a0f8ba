#!/usr/bin/env python3
"""Base classes for archive writers.

This module provides the foundation for all container formats:
- ArchiveTarget: the chosen format and output path for a run
- ArchiveWriter: abstract start / add_entry / finish writer
- ArchiveError and RelativePathError for error handling
- relative_archive_name(): forward-slash member names

Example:
    >>> target = ArchiveTarget.for_directory("/src/app", "app", ArchiveFormat.ZIP)
    >>> writer = ZipArchiveWriter(target)
    >>> result = writer.write(files, base_dir="/src/app")
    >>> result.entry_count
    2
"""

import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Iterable, Optional, Union

from ztr.archive.progress import ProgressListener
from ztr.core.constants import ArchiveFormat, ErrorCode
from ztr.infrastructure.logger import Logger, get_logger


class ArchiveError(Exception):
    """Error while writing the output archive."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        error_code: ErrorCode = ErrorCode.IO_ERROR,
    ):
        self.message = message
        self.path = path
        self.error_code = error_code
        super().__init__(message)


class RelativePathError(ArchiveError):
    """A file handed to a writer is not under the declared base directory."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message, path, ErrorCode.INTERNAL_ERROR)


@dataclass(frozen=True)
class ArchiveTarget:
    """Container format and output location for one run."""

    format: ArchiveFormat
    output_path: Path

    @classmethod
    def for_directory(
        cls,
        base_dir: Union[str, Path],
        output_name: str,
        archive_format: ArchiveFormat,
    ) -> "ArchiveTarget":
        """Build ``{base_dir}/{output_name}.{ext}``."""
        base = Path(os.path.abspath(base_dir))
        return cls(archive_format, base / f"{output_name}.{archive_format.extension}")

    @property
    def working_path(self) -> Path:
        """Sibling file the container is built in before it replaces output_path."""
        return self.output_path.with_name(self.output_path.name + ".tmp")


@dataclass
class WriteResult:
    """Outcome of a successful ``ArchiveWriter.write``."""

    output_path: Path
    archive_format: ArchiveFormat
    entry_count: int
    size_bytes: int
    duration_ms: float = 0.0


def relative_archive_name(path: Union[str, Path], base_dir: Union[str, Path]) -> str:
    """Compute the archive member name of ``path``.

    Returns:
        Forward-slash path of ``path`` relative to ``base_dir``

    Raises:
        RelativePathError: If ``path`` is not strictly under ``base_dir``
    """
    absolute = Path(os.path.abspath(path))
    base = Path(os.path.abspath(base_dir))
    try:
        relative = absolute.relative_to(base)
    except ValueError:
        raise RelativePathError(f"{absolute} is not under base directory {base}", absolute)

    name = relative.as_posix().replace("\\", "/")
    if name in ("", "."):
        raise RelativePathError(f"{absolute} is the base directory itself", absolute)
    return name


class ArchiveWriter(ABC):
    """Abstract base class for container format writers.

    Subclasses implement:
    - start(): Open the output file and encoder
    - add_entry(): Store one file under its archive name
    - finish(): Write the trailer and close the output
    - _close(): Release handles without finalizing (used on failure)

    ``write()`` drives the sequence and guarantees that a failed run never
    leaves a valid-looking archive behind. The container is built in
    ``working_path`` and replaces ``output_path`` only once finished; on
    failure handles are closed and the partial file is deleted before the
    error propagates.
    """

    archive_format: ClassVar[ArchiveFormat]

    def __init__(
        self,
        target: ArchiveTarget,
        progress: Optional[ProgressListener] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize writer.

        Args:
            target: Format and output path (format must match the writer)
            progress: Listener for per-entry events
            logger: Logger instance
        """
        if target.format is not self.archive_format:
            raise ArchiveError(
                f"{self.__class__.__name__} cannot write {target.format.value} archives",
                target.output_path,
                ErrorCode.INVALID_INPUT,
            )
        self.target = target
        self._progress = progress or ProgressListener()
        self._logger = logger or get_logger()
        self._entry_count = 0

    @property
    def output_path(self) -> Path:
        return self.target.output_path

    @property
    def working_path(self) -> Path:
        return self.target.working_path

    @property
    def entry_count(self) -> int:
        return self._entry_count

    @abstractmethod
    def start(self) -> None:
        """Open the container at ``working_path``."""

    @abstractmethod
    def add_entry(self, relative_path: str, source: Path) -> None:
        """Store ``source`` under ``relative_path`` byte for byte."""

    @abstractmethod
    def finish(self) -> None:
        """Finalize the container (trailer, compression flush) and close it."""

    @abstractmethod
    def _close(self) -> None:
        """Close any open handle without finalizing."""

    def abort(self) -> None:
        """Release handles and delete the partial output.

        An archive already at ``output_path`` from an earlier run is left alone.
        """
        try:
            self._close()
        except Exception as e:
            self._logger.warning("Error closing partial archive", error=str(e))

        try:
            self.working_path.unlink()
            self._logger.info("Removed incomplete archive", path=str(self.working_path))
        except FileNotFoundError:
            pass
        except OSError as e:
            self._logger.error(
                "Could not remove incomplete archive", path=str(self.working_path), error=str(e)
            )

    def write(
        self, files: Iterable[Union[str, Path]], base_dir: Union[str, Path]
    ) -> WriteResult:
        """Write every file into the container, in the order given.

        Args:
            files: Absolute paths of the files to store
            base_dir: Directory member names are computed relative to

        Returns:
            WriteResult for the finished archive

        Raises:
            RelativePathError: If a file is not under base_dir
            ArchiveError: If reading a file or writing the container fails
        """
        files = list(files)
        start_time = time.time()
        completed = False

        self._progress.on_start(len(files))
        with self._logger.add_context(stage="archive", format=self.archive_format.value):
            try:
                self.start()
                for source in files:
                    relative = relative_archive_name(source, base_dir)
                    try:
                        self.add_entry(relative, Path(source))
                    except ArchiveError:
                        raise
                    except Exception as e:
                        raise ArchiveError(f"Failed to add {relative}: {e}", source) from e
                    self._entry_count += 1
                    self._progress.on_entry(relative, self._entry_count)
                self.finish()
                os.replace(self.working_path, self.output_path)
                completed = True
            except ArchiveError:
                raise
            except Exception as e:
                raise ArchiveError(
                    f"Failed to write {self.output_path}: {e}", self.output_path
                ) from e
            finally:
                if not completed:
                    self.abort()
                    self._progress.on_finish(False)

        size_bytes = self.output_path.stat().st_size
        self._progress.on_finish(True, size_bytes)

        return WriteResult(
            output_path=self.output_path,
            archive_format=self.archive_format,
            entry_count=self._entry_count,
            size_bytes=size_bytes,
            duration_ms=(time.time() - start_time) * 1000,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} output={self.output_path}>"
