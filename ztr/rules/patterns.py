#!/usr/bin/env python3
r"""Compilation of gitignore-style rule text into patterns.

This module turns raw rule lines into immutable ``Pattern`` values:
- Comments (``#``) and blank lines are skipped
- ``!`` marks a negated (re-include) rule
- A trailing ``/`` restricts the rule to directories
- A ``/`` anywhere else anchors the rule at the walk root
- ``*``, ``?``, ``[...]`` and ``**`` wildcards are kept per segment and
  translated to a regular expression once, at compile time

Example:
    >>> rules = compile_rules(["*.tmp", "!keep.tmp", "build/"])
    >>> [p.text for p in rules]
    ['*.tmp', '!keep.tmp', 'build/']
    >>> rules[2].directory_only
    True
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union, overload

from ztr.core.constants import ErrorCode

DOUBLESTAR = "**"


class PatternError(Exception):
    """Rule text that cannot be tokenized."""

    def __init__(
        self,
        message: str,
        line: object = None,
        line_number: Optional[int] = None,
        error_code: ErrorCode = ErrorCode.INVALID_INPUT,
    ):
        self.message = message
        self.line = line
        self.line_number = line_number
        self.error_code = error_code
        if line_number is not None:
            message = f"{message} (rule {line_number}: {line!r})"
        super().__init__(message)


@dataclass(frozen=True)
class Pattern:
    """A single compiled ignore rule.

    ``segments`` keeps the wildcard text verbatim, split on ``/``; the
    matcher uses the precompiled ``regex`` built from them.
    """

    text: str
    segments: Tuple[str, ...]
    negated: bool = False
    directory_only: bool = False
    anchored: bool = False
    source: Optional[str] = None
    line_number: Optional[int] = None
    regex: Optional[re.Pattern] = field(default=None, compare=False, repr=False)

    def matches(self, path: str, is_directory: bool) -> bool:
        """Check this pattern alone against a normalized relative path.

        Precedence and ancestor handling live in the rule engine; this is
        the raw per-rule test.
        """
        if self.directory_only and not is_directory:
            return False
        if self.regex is None:
            return False
        return self.regex.match(path) is not None


class RuleSet:
    """Ordered, immutable sequence of patterns.

    Order is declaration order and is never changed: later patterns win
    over earlier ones when both match.
    """

    def __init__(self, patterns: Iterable[Pattern] = ()):
        self._patterns: Tuple[Pattern, ...] = tuple(patterns)

    @classmethod
    def from_sources(
        cls,
        inline_rules: Optional[Sequence[str]] = None,
        file_rules: Optional[Sequence[str]] = None,
        file_source: Optional[str] = None,
        case_sensitive: bool = True,
    ) -> "RuleSet":
        """Compile and merge the two rule sources.

        Inline config rules come first, rule-file rules second, so the
        rule file wins on conflicting matches. Back-to-back identical
        rules collapse; every other duplicate is kept.

        Raises:
            PatternError: If any line cannot be tokenized
        """
        inline = compile_rules(
            inline_rules or (), source="config", case_sensitive=case_sensitive
        )
        from_file = compile_rules(
            file_rules or (), source=file_source or "ignore_file", case_sensitive=case_sensitive
        )
        return cls(_collapse_adjacent(list(inline) + list(from_file)))

    @property
    def patterns(self) -> Tuple[Pattern, ...]:
        return self._patterns

    def __iter__(self) -> Iterator[Pattern]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __bool__(self) -> bool:
        return bool(self._patterns)

    @overload
    def __getitem__(self, index: int) -> Pattern: ...

    @overload
    def __getitem__(self, index: slice) -> "RuleSet": ...

    def __getitem__(self, index: Union[int, slice]) -> Union[Pattern, "RuleSet"]:
        if isinstance(index, slice):
            return RuleSet(self._patterns[index])
        return self._patterns[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return self._patterns == other._patterns

    def __hash__(self) -> int:
        return hash(self._patterns)

    def __repr__(self) -> str:
        return f"<RuleSet {[p.text for p in self._patterns]}>"


def compile_rules(
    lines: Iterable[str],
    source: Optional[str] = None,
    case_sensitive: bool = True,
) -> RuleSet:
    """Compile rule lines into a RuleSet.

    Args:
        lines: Raw rule lines (config list entries or ignore-file lines)
        source: Label recorded on each pattern (for diagnostics)
        case_sensitive: Whether matching is case-sensitive

    Returns:
        RuleSet in declaration order

    Raises:
        PatternError: If a line cannot be tokenized
    """
    if isinstance(lines, bytes):
        raise PatternError("Rule text must be decoded before compiling", lines)
    if isinstance(lines, str):
        lines = lines.splitlines()

    patterns: List[Pattern] = []
    for number, line in enumerate(lines, start=1):
        pattern = compile_pattern(
            line, source=source, line_number=number, case_sensitive=case_sensitive
        )
        if pattern is not None:
            patterns.append(pattern)
    return RuleSet(patterns)


def compile_pattern(
    line: str,
    source: Optional[str] = None,
    line_number: Optional[int] = None,
    case_sensitive: bool = True,
) -> Optional[Pattern]:
    """Compile one rule line.

    Returns:
        The compiled Pattern, or None for blank lines and comments

    Raises:
        PatternError: If the line cannot be tokenized
    """
    if not isinstance(line, str):
        raise PatternError(
            f"Rule must be text, got {type(line).__name__}", line, line_number
        )

    if "\0" in line or any(0xD800 <= ord(c) <= 0xDFFF for c in line):
        raise PatternError("Rule contains invalid characters", line, line_number)

    text = _strip_rule(line)
    if not text or text.startswith("#"):
        return None

    body = text
    negated = False
    if body.startswith("!"):
        negated = True
        body = body[1:]
    elif body.startswith("\\!") or body.startswith("\\#"):
        body = body[1:]

    if _ends_with_escape(body):
        raise PatternError("Rule ends with an unescaped backslash", line, line_number)

    directory_only = False
    if body.endswith("/"):
        directory_only = True
        body = body.rstrip("/")

    anchored = "/" in body
    body = body.lstrip("/")

    # Bare markers such as "/", "!" or "!/" name no path and match nothing
    if not body:
        return None

    segments = _split_segments(body)
    flags = 0 if case_sensitive else re.IGNORECASE
    regex = re.compile(_build_regex(segments, anchored), flags)

    return Pattern(
        text=text,
        segments=segments,
        negated=negated,
        directory_only=directory_only,
        anchored=anchored,
        source=source,
        line_number=line_number,
        regex=regex,
    )


def _strip_rule(line: str) -> str:
    """Trim surrounding whitespace, keeping a backslash-escaped trailing space."""
    stripped = line.strip()
    rest = line.lstrip()
    if _ends_with_escape(stripped) and rest[len(stripped) : len(stripped) + 1] == " ":
        return stripped + " "
    return stripped


def _ends_with_escape(text: str) -> bool:
    """True when text ends with an odd run of backslashes."""
    run = len(text) - len(text.rstrip("\\"))
    return run % 2 == 1


def _split_segments(body: str) -> Tuple[str, ...]:
    """Split on ``/`` dropping empty segments and repeated ``**``."""
    segments: List[str] = []
    for segment in body.split("/"):
        if not segment:
            continue
        if segment == DOUBLESTAR and segments and segments[-1] == DOUBLESTAR:
            continue
        segments.append(segment)
    return tuple(segments)


def _build_regex(segments: Tuple[str, ...], anchored: bool) -> str:
    """Translate a segment list to a full-path regular expression.

    Unanchored patterns match the last path component at any depth;
    anchored ones match from the root. A ``**`` segment spans zero or
    more whole components.
    """
    if not anchored:
        return r"^(?:.*/)?" + _translate_segment(segments[0]) + r"\Z"

    regex = ""
    last = len(segments) - 1
    for index, segment in enumerate(segments):
        if segment == DOUBLESTAR:
            if index == 0 and index == last:
                regex += ".*"
            elif index == 0:
                regex += "(?:.*/)?"
            elif index == last:
                regex += "/.*"
            else:
                regex += "/(?:.*/)?"
            continue

        if index > 0 and segments[index - 1] != DOUBLESTAR:
            regex += "/"
        regex += _translate_segment(segment)

    return "^" + regex + r"\Z"


def _translate_segment(segment: str) -> str:
    """Translate one segment's wildcards to regex (never crossing ``/``)."""
    out: List[str] = []
    i = 0
    n = len(segment)
    while i < n:
        c = segment[i]
        if c == "\\" and i + 1 < n:
            out.append(re.escape(segment[i + 1]))
            i += 2
        elif c == "*":
            while i < n and segment[i] == "*":
                i += 1
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            end = _find_class_end(segment, i)
            if end < 0:
                out.append(re.escape(c))
                i += 1
            else:
                out.append(_translate_class(segment[i + 1 : end]))
                i = end + 1
        else:
            out.append(re.escape(c))
            i += 1
    return "".join(out)


def _find_class_end(segment: str, start: int) -> int:
    """Index of the ``]`` closing the class opened at ``start``, or -1."""
    i = start + 1
    if i < len(segment) and segment[i] in "!^":
        i += 1
    # A leading ] is a literal member
    if i < len(segment) and segment[i] == "]":
        i += 1
    while i < len(segment):
        if segment[i] == "\\":
            i += 2
            continue
        if segment[i] == "]":
            return i
        i += 1
    return -1


def _translate_class(body: str) -> str:
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]

    members: List[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\" and i + 1 < len(body):
            members.append(re.escape(body[i + 1]))
            i += 2
            continue
        if c == "-" and 0 < i < len(body) - 1:
            members.append("-")
        elif c in "\\[]^&~|-":
            members.append("\\" + c)
        else:
            members.append(c)
        i += 1

    if negate:
        return "[^/" + "".join(members) + "]"
    return "[" + "".join(members) + "]"


def _collapse_adjacent(patterns: List[Pattern]) -> List[Pattern]:
    collapsed: List[Pattern] = []
    for pattern in patterns:
        if collapsed and collapsed[-1].text == pattern.text:
            continue
        collapsed.append(pattern)
    return collapsed
