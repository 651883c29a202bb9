"""
Deterministic rule-based scan of candidate ad copy.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from copy_compliance.compliance.guard import compile_pattern
from copy_compliance.compliance.rules import Rule
from copy_compliance.services.types import Finding, IssueType, ReviewContext

logger = logging.getLogger("copy_compliance.compliance.scanner")

MAX_SCAN_CHARS = 10_000
MAX_SEGMENT_CHARS = 100


def build_search_text(context: ReviewContext) -> str:
    """Concatenate all copy fields into one bounded, lowercase search string."""
    combined = " ".join(
        (context.headline, context.primary_text, context.secondary_text or "", context.cta)
    ).lower()
    return combined[:MAX_SCAN_CHARS]


def _phrase_finding(rule: Rule, phrase: str) -> Finding:
    return Finding(
        source_id=rule.id,
        rule_name=rule.name,
        category=rule.category,
        severity=rule.severity,
        text_segment=phrase,
        issue_type=IssueType.BANNED_PHRASE,
        explanation=rule.description,
        suggested_revision=f'Remove or replace "{phrase}"',
    )


def _pattern_finding(rule: Rule, matched: str) -> Finding:
    return Finding(
        source_id=rule.id,
        rule_name=rule.name,
        category=rule.category,
        severity=rule.severity,
        text_segment=matched[:MAX_SEGMENT_CHARS],
        issue_type=IssueType.BANNED_PATTERN,
        explanation=rule.description,
        suggested_revision="Revise to remove prohibited claim",
    )


def scan(context: ReviewContext, rules: Iterable[Rule]) -> List[Finding]:
    """Evaluate applicable active rules against the copy, in rule order."""
    text = build_search_text(context)
    findings: List[Finding] = []

    for rule in rules:
        if not rule.active or rule.is_documentation_only:
            continue
        if not rule.applies_to(context.jurisdiction, context.services):
            continue

        for phrase in rule.banned_phrases:
            if phrase and phrase.lower() in text:
                findings.append(_phrase_finding(rule, phrase))

        for pattern in rule.banned_patterns:
            compiled = compile_pattern(pattern)
            if compiled is None:
                logger.warning("Skipping unsafe or invalid pattern %r in rule '%s'", pattern, rule.name)
                continue
            match = compiled.search(text)
            if match:
                findings.append(_pattern_finding(rule, match.group(0)))

    return findings


__all__ = ["MAX_SCAN_CHARS", "MAX_SEGMENT_CHARS", "build_search_text", "scan"]
