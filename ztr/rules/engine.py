#!/usr/bin/env python3
"""Rule engine deciding whether a path is ignored.

This module evaluates a compiled RuleSet against relative paths:
- Last-match-wins precedence across the full ordered rule list
- Negated rules re-include what earlier rules excluded
- Directory-only rules apply to directories alone
- An ignored ancestor directory ignores everything beneath it, and a
  negated rule for a file inside it cannot bring the file back

Example:
    >>> matcher = IgnoreMatcher(compile_rules(["build/", "!build/keep.txt"]))
    >>> matcher.is_ignored("build", is_directory=True)
    True
    >>> matcher.is_ignored("build/keep.txt", is_directory=False)
    True
"""

import os
from pathlib import Path, PurePath
from typing import Any, Dict, Iterable, List, Optional, Union

from ztr.rules.patterns import Pattern, RuleSet, compile_rules

PathLike = Union[str, PurePath]


class IgnoreMatcher:
    """Evaluates paths against an ordered rule set.

    The rule set is read-only for the matcher's lifetime, so directory
    decisions are memoized.
    """

    def __init__(
        self,
        rules: Union[RuleSet, Iterable[str]],
        base_dir: Optional[PathLike] = None,
    ):
        """Initialize matcher.

        Args:
            rules: Compiled RuleSet, or raw rule lines to compile
            base_dir: Directory absolute paths are made relative to
        """
        if not isinstance(rules, RuleSet):
            rules = compile_rules(rules)
        self._rules = rules
        self._reversed = tuple(reversed(rules.patterns))
        self._base_dir = Path(os.path.abspath(base_dir)) if base_dir is not None else None
        self._dir_cache: Dict[str, bool] = {}
        self._stats = {"evaluations": 0, "ignored": 0}

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def base_dir(self) -> Optional[Path]:
        return self._base_dir

    def normalize(self, path: PathLike) -> Optional[str]:
        """Normalize a path to a forward-slash path relative to the root.

        Returns:
            The relative path ("" for the root itself), or None when an
            absolute path lies outside ``base_dir``
        """
        raw = str(path)
        if os.path.isabs(raw):
            absolute = Path(os.path.abspath(raw))
            if self._base_dir is None:
                raw = absolute.as_posix().lstrip("/")
            else:
                try:
                    raw = absolute.relative_to(self._base_dir).as_posix()
                except ValueError:
                    return None

        parts = [part for part in raw.replace("\\", "/").split("/") if part not in ("", ".")]
        return "/".join(parts)

    def matching_pattern(self, path: PathLike, is_directory: bool) -> Optional[Pattern]:
        """Return the last pattern matching the path itself.

        Ancestors are not consulted. Scanning from the end of the rule
        list finds the same pattern a forward scan would record last.
        """
        relative = self.normalize(path)
        if not relative:
            return None
        return self._last_match(relative, is_directory)

    def is_ignored(
        self, path: PathLike, is_directory: bool, check_parents: bool = True
    ) -> bool:
        """Decide whether a path is ignored.

        Args:
            path: Path relative to the root (or absolute under base_dir)
            is_directory: Whether the path is a directory
            check_parents: Test every proper ancestor first; pass False
                only when the caller already knows no ancestor is ignored

        Returns:
            True if the path is excluded
        """
        relative = self.normalize(path)
        if not relative:
            return False

        self._stats["evaluations"] += 1

        if check_parents and self.ignored_ancestor(relative) is not None:
            self._stats["ignored"] += 1
            return True

        ignored = self._decide(relative, is_directory)
        if ignored:
            self._stats["ignored"] += 1
        return ignored

    def ignored_ancestor(self, path: PathLike) -> Optional[str]:
        """Return the nearest-to-root ignored ancestor directory, if any."""
        relative = self.normalize(path)
        if not relative:
            return None

        parts = relative.split("/")
        for depth in range(1, len(parts)):
            ancestor = "/".join(parts[:depth])
            if self._directory_ignored(ancestor):
                return ancestor
        return None

    def filter_paths(self, paths: Iterable[PathLike]) -> List[PathLike]:
        """Keep the paths that are not ignored.

        Directory-ness is read from the filesystem, so relative paths are
        resolved against ``base_dir`` when one is set.
        """
        kept = []
        for path in paths:
            on_disk = path
            if self._base_dir is not None and not os.path.isabs(str(path)):
                on_disk = self._base_dir / str(path)
            if not self.is_ignored(path, os.path.isdir(on_disk)):
                kept.append(path)
        return kept

    def get_stats(self) -> Dict[str, Any]:
        """Get evaluation counters."""
        return dict(self._stats)

    def _directory_ignored(self, relative: str) -> bool:
        cached = self._dir_cache.get(relative)
        if cached is None:
            cached = self._decide(relative, True)
            self._dir_cache[relative] = cached
        return cached

    def _decide(self, relative: str, is_directory: bool) -> bool:
        pattern = self._last_match(relative, is_directory)
        return pattern is not None and not pattern.negated

    def _last_match(self, relative: str, is_directory: bool) -> Optional[Pattern]:
        for pattern in self._reversed:
            if pattern.matches(relative, is_directory):
                return pattern
        return None

    def __len__(self) -> int:
        return len(self._rules)


def is_ignored(
    path: PathLike,
    is_directory: bool,
    rules: Union[RuleSet, Iterable[str]],
) -> bool:
    """Decide whether a relative path is ignored by a rule set.

    Convenience wrapper around ``IgnoreMatcher.is_ignored`` with ancestor
    checking enabled.
    """
    return IgnoreMatcher(rules).is_ignored(path, is_directory)
