"""
Validation for rule-supplied regular expressions.

Banned patterns come from a rule-authoring surface, so every pattern is
checked for catastrophic-backtracking shapes before the scanner compiles it.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

MAX_PATTERN_LENGTH = 500

_ESCAPED_CHAR = re.compile(r"\\.")
_CHAR_CLASS = re.compile(r"\[\^?\]?[^\]]*\]")

_QUANTIFIERS = "+*{"

_CATASTROPHIC_SHAPES = (
    # stacked + / * quantifiers: a+*, a**, a++
    re.compile(r"[+*][+*]"),
    # back-to-back bounded repetitions: {m,n}{p,q}
    re.compile(r"\{\d*,?\d*\}\s*\{\d*,?\d*\}"),
)


def _structural_skeleton(pattern: str) -> str:
    """Blank out escapes and character classes so only regex structure remains."""
    skeleton = _ESCAPED_CHAR.sub("_", pattern)
    return _CHAR_CLASS.sub("_", skeleton)


def _has_quantified_repeated_group(skeleton: str) -> bool:
    """
    Detect a group whose body repeats and which is itself repeated.

    Covers (a+)+, (\\w+\\s?)*, (a{1,3}){2,} and the same shapes wrapped in any
    number of plain or non-capturing groups, e.g. ((a+))+ or (?:(a+))*.
    """
    # one flag per open group: does its body (including closed inner groups) repeat?
    open_groups = []
    for idx, char in enumerate(skeleton):
        if char == "(":
            open_groups.append(False)
        elif char in _QUANTIFIERS:
            if open_groups:
                open_groups[-1] = True
        elif char == ")":
            body_repeats = open_groups.pop() if open_groups else False
            following = skeleton[idx + 1 : idx + 2]
            if body_repeats and following and following in _QUANTIFIERS:
                return True
            if body_repeats and open_groups:
                open_groups[-1] = True
    return False


def validate(pattern: str) -> bool:
    """Return True when the pattern is safe to evaluate."""
    if not isinstance(pattern, str) or not pattern.strip():
        return False
    if len(pattern) > MAX_PATTERN_LENGTH:
        return False

    skeleton = _structural_skeleton(pattern)
    if _has_quantified_repeated_group(skeleton):
        return False
    if any(shape.search(skeleton) for shape in _CATASTROPHIC_SHAPES):
        return False

    try:
        re.compile(pattern)
    except re.error:
        return False
    return True


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Optional[re.Pattern[str]]:
    """Compile a validated pattern case-insensitively, or return None if unsafe."""
    if not validate(pattern):
        return None
    return re.compile(pattern, re.IGNORECASE)


__all__ = ["MAX_PATTERN_LENGTH", "compile_pattern", "validate"]
