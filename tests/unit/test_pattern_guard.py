import re

import pytest

from copy_compliance.compliance.guard import MAX_PATTERN_LENGTH, compile_pattern, validate


@pytest.mark.parametrize(
    "pattern",
    [
        "(a+)+",
        "(a*)*",
        "(a+)*",
        "(?:ab+)+",
        r"(\w+\s?)*",
        "(a{1,3}){2,}",
        "a{1,3}{2,5}",
        "a+*",
        "((a+)+)$",
        "((a+))+$",
        "(?:(a+))*$",
        "((a*))*b",
        "(x(?:a{1,3}))+",
    ],
)
def test_validate_rejects_catastrophic_shapes(pattern):
    assert validate(pattern) is False


@pytest.mark.parametrize("pattern", ["", "   ", "[unclosed", "(missing", "*leading"])
def test_validate_rejects_empty_and_uncompilable(pattern):
    assert validate(pattern) is False


def test_validate_rejects_overlong_pattern():
    assert validate("a" * MAX_PATTERN_LENGTH) is True
    assert validate("a" * (MAX_PATTERN_LENGTH + 1)) is False


@pytest.mark.parametrize(
    "pattern",
    [
        r"guarantee[ds]?\s+\w+",
        r"only \d+ spots",
        r"c\+\+",
        r"\d+\+",
        r"[+*]+",
        r"(results|outcomes) guaranteed",
        r"\b100%\s+effective\b",
        r"((results|outcomes)) guaranteed",
        r"(a+)(b+)",
    ],
)
def test_validate_accepts_ordinary_patterns(pattern):
    assert validate(pattern) is True


def test_compile_pattern_is_case_insensitive_and_cached():
    compiled = compile_pattern(r"guarantee[ds]?\s+\w+")
    assert compiled is not None
    assert compiled.flags & re.IGNORECASE
    assert compiled.search("GUARANTEED Results")
    assert compile_pattern(r"guarantee[ds]?\s+\w+") is compiled


def test_compile_pattern_returns_none_for_unsafe_pattern():
    assert compile_pattern("(a+)+") is None
