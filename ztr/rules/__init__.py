"""ztr Rules System.

This module provides gitignore-style rule compilation and evaluation:
- Pattern / RuleSet: compiled rules in declaration order
- IgnoreMatcher: last-match-wins evaluation with ancestor pruning

Rules decide which files under the base directory are left out of the
archive.
"""

from .engine import IgnoreMatcher, is_ignored
from .patterns import Pattern, PatternError, RuleSet, compile_pattern, compile_rules

__all__ = [
    # Pattern compilation
    "Pattern",
    "PatternError",
    "RuleSet",
    "compile_pattern",
    "compile_rules",
    # Rule engine
    "IgnoreMatcher",
    "is_ignored",
]
