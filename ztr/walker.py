#!/usr/bin/env python3
"""Depth-first directory walk pruned by ignore rules.

This module produces the list of files to archive:
- Pre-order traversal, children visited in sorted name order
- Ignored directories are never descended into
- Unreadable subdirectories are recorded and skipped
- Symlinked directories are followed, guarded against loops

Example:
    >>> result = walk("/path/to/project", compile_rules(["build/", "*.log"]))
    >>> [entry.relative_path for entry in result]
    ['README.md', 'src/main.py']
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Tuple, Union

from ztr.core.constants import ErrorCode, Limits
from ztr.infrastructure.logger import Logger, get_logger
from ztr.rules.engine import IgnoreMatcher
from ztr.rules.patterns import RuleSet


class WalkError(Exception):
    """A directory could not be read."""

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


@dataclass(frozen=True)
class FileSystemEntry:
    """One path discovered by the walk."""

    path: Path  # Absolute path
    relative_path: str  # Forward-slash path relative to the walk root
    is_directory: bool = False


@dataclass
class WalkResult:
    """Files that survived filtering, plus what went wrong on the way."""

    root: Path
    entries: List[FileSystemEntry] = field(default_factory=list)
    errors: List[WalkError] = field(default_factory=list)
    pruned_directories: List[str] = field(default_factory=list)
    skipped: int = 0  # Broken symlinks, sockets, devices

    @property
    def files(self) -> List[Path]:
        """Absolute paths of the surviving files, in walk order."""
        return [entry.path for entry in self.entries]

    @property
    def partial(self) -> bool:
        """True when some subtree could not be read."""
        return bool(self.errors)

    def __iter__(self) -> Iterator[FileSystemEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


class TreeWalker:
    """Walks a directory tree, consulting the rule engine at every entry.

    A directory is tested before it is listed; once ignored, nothing
    below it is read. Since every directory that gets listed already
    passed, children are tested without re-checking their ancestors.
    """

    def __init__(
        self,
        rules: Union[RuleSet, IgnoreMatcher, Iterable[str]],
        follow_symlinks: bool = True,
        max_depth: int = Limits.MAX_WALK_DEPTH,
        sort_entries: bool = True,
        logger: Optional[Logger] = None,
    ):
        """Initialize walker.

        Args:
            rules: Rule set (or a ready matcher) deciding exclusions
            follow_symlinks: Descend into symlinked directories
            max_depth: Deepest directory level that is listed
            sort_entries: Visit children in name order (deterministic output)
            logger: Logger for pruning and error reports
        """
        self._matcher = rules if isinstance(rules, IgnoreMatcher) else IgnoreMatcher(rules)
        self._follow_symlinks = follow_symlinks
        self._max_depth = max_depth
        self._sort_entries = sort_entries
        self._logger = logger or get_logger()

    @property
    def matcher(self) -> IgnoreMatcher:
        return self._matcher

    def walk(self, root: Union[str, Path]) -> WalkResult:
        """Walk ``root`` and collect every non-ignored file.

        Args:
            root: Directory to walk

        Returns:
            WalkResult with entries in pre-order

        Raises:
            WalkError: If the root itself cannot be read
        """
        root_path = Path(os.path.abspath(root))
        result = WalkResult(root=root_path)

        if not root_path.exists():
            raise WalkError(
                f"Base directory does not exist: {root_path}", root_path, ErrorCode.NOT_FOUND
            )
        if not root_path.is_dir():
            raise WalkError(
                f"Base path is not a directory: {root_path}", root_path, ErrorCode.INVALID_INPUT
            )

        try:
            children = self._list_directory(root_path)
            root_stat = root_path.stat()
        except PermissionError as e:
            raise WalkError(
                f"Cannot read base directory {root_path}: {e}",
                root_path,
                ErrorCode.PERMISSION_DENIED,
            ) from e
        except OSError as e:
            raise WalkError(f"Cannot read base directory {root_path}: {e}", root_path) from e

        with self._logger.add_context(stage="walk"):
            active = {(root_stat.st_dev, root_stat.st_ino)}
            self._visit(children, "", 1, active, result)

            self._logger.info(
                "Walk finished",
                root=str(root_path),
                files=len(result.entries),
                pruned=len(result.pruned_directories),
                errors=len(result.errors),
            )

        return result

    def _visit(
        self,
        children: List[os.DirEntry],
        prefix: str,
        depth: int,
        active: Set[Tuple[int, int]],
        result: WalkResult,
    ) -> None:
        """Visit one directory's children in order, recursing into survivors.

        ``active`` holds the (device, inode) keys of the directories on the
        current recursion path.
        """
        for child in children:
            relative = f"{prefix}/{child.name}" if prefix else child.name

            if self._is_directory(child):
                if self._matcher.is_ignored(relative, True, check_parents=False):
                    result.pruned_directories.append(relative)
                    self._logger.debug("Pruned ignored directory", path=relative)
                    continue
                self._descend(child, relative, depth, active, result)
                continue

            if not self._is_regular_file(child):
                result.skipped += 1
                self._logger.debug("Skipped non-regular file", path=relative)
                continue

            if self._matcher.is_ignored(relative, False, check_parents=False):
                self._logger.debug("Ignored file", path=relative)
                continue

            result.entries.append(FileSystemEntry(Path(child.path), relative, False))

    def _descend(
        self,
        child: os.DirEntry,
        relative: str,
        depth: int,
        active: Set[Tuple[int, int]],
        result: WalkResult,
    ) -> None:
        if depth >= self._max_depth:
            self._record_error(
                result,
                WalkError(
                    f"Maximum walk depth ({self._max_depth}) reached at {relative}", child.path
                ),
            )
            return

        try:
            st = child.stat(follow_symlinks=True)
            grandchildren = self._list_directory(Path(child.path))
        except PermissionError as e:
            self._record_error(
                result,
                WalkError(
                    f"Cannot read directory {relative}: {e}",
                    child.path,
                    ErrorCode.PERMISSION_DENIED,
                ),
            )
            return
        except OSError as e:
            self._record_error(
                result, WalkError(f"Cannot read directory {relative}: {e}", child.path)
            )
            return

        key = (st.st_dev, st.st_ino)
        if key in active:
            self._logger.warning("Skipped directory symlink loop", path=relative)
            return

        active.add(key)
        try:
            self._visit(grandchildren, relative, depth + 1, active, result)
        finally:
            active.discard(key)

    def _list_directory(self, directory: Path) -> List[os.DirEntry]:
        with os.scandir(directory) as it:
            children = list(it)
        if self._sort_entries:
            children.sort(key=lambda entry: entry.name)
        return children

    def _is_directory(self, child: os.DirEntry) -> bool:
        try:
            return child.is_dir(follow_symlinks=self._follow_symlinks)
        except OSError:
            return False

    def _is_regular_file(self, child: os.DirEntry) -> bool:
        try:
            return child.is_file(follow_symlinks=True)
        except OSError:
            return False

    def _record_error(self, result: WalkResult, error: WalkError) -> None:
        result.errors.append(error)
        self._logger.warning(
            "Skipped unreadable subtree", path=str(error.path), reason=error.message
        )


def walk(
    root: Union[str, Path],
    rules: Union[RuleSet, IgnoreMatcher, Iterable[str]],
    **kwargs,
) -> WalkResult:
    """Walk ``root`` with ``rules``; see ``TreeWalker`` for options."""
    return TreeWalker(rules, **kwargs).walk(root)
