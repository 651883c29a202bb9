"""
Dataclasses describing compliance check inputs, findings, and verdicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class RuleCategory(str, Enum):
    """Fixed compliance taxonomy shared by rules and reviewer findings."""

    REGULATORY_CLAIMS = "regulatory-claims"
    PRICING = "pricing"
    DISCLOSURE = "disclosure"
    PLATFORM_POLICY = "platform-policy"
    DATA_PRIVACY = "data-privacy"
    URGENCY_TACTICS = "urgency-tactics"
    GENERIC = "generic"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class IssueType(str, Enum):
    """Tags attached to findings by the scanner, reviewer, or system."""

    BANNED_PHRASE = "banned_phrase"
    BANNED_PATTERN = "banned_pattern"
    OFF_LABEL = "off_label"
    GUARANTEED_OUTCOME = "guaranteed_outcome"
    DIAGNOSIS_CLAIM = "diagnosis_claim"
    EVIDENCE_NEEDED = "evidence_needed"
    HIPAA = "hipaa"
    STATE_VIOLATION = "state_violation"
    META_POLICY = "meta_policy"
    MISSING_DISCLAIMER = "missing_disclaimer"
    REVIEW_FAILED = "review_failed"
    OTHER = "other"


class VerdictStatus(str, Enum):
    PASSED = "passed"
    FLAGGED = "flagged"
    REJECTED = "rejected"


class ReviewStatus(str, Enum):
    """Overall status vocabulary returned by the semantic reviewer."""

    PASS = "pass"
    FLAG = "flag"
    REJECT = "reject"


class InvalidReviewContext(ValueError):
    """Raised when the caller omits a required field of the review context."""


@dataclass(frozen=True, slots=True)
class ReviewContext:
    """Candidate ad copy plus the business context it will run under."""

    headline: str
    primary_text: str
    cta: str
    jurisdiction: str
    secondary_text: Optional[str] = None
    services: Tuple[str, ...] = ()
    practitioner_credentials: Tuple[str, ...] = ()

    def validate(self) -> None:
        missing = [
            name
            for name in ("headline", "primary_text", "cta", "jurisdiction")
            if not isinstance(getattr(self, name), str) or not getattr(self, name).strip()
        ]
        if missing:
            raise InvalidReviewContext(f"Missing required review context fields: {', '.join(missing)}")


@dataclass(frozen=True, slots=True)
class Finding:
    """Single localized compliance issue from the scanner or the reviewer."""

    source_id: str
    rule_name: str
    category: RuleCategory
    severity: Severity
    text_segment: str
    issue_type: IssueType
    explanation: str
    suggested_revision: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "rule_name": self.rule_name,
            "category": self.category.value,
            "severity": self.severity.value,
            "text_segment": self.text_segment,
            "issue_type": self.issue_type.value,
            "explanation": self.explanation,
            "suggested_revision": self.suggested_revision,
        }


@dataclass(frozen=True, slots=True)
class ReviewResult:
    """Normalized outcome of one semantic review call."""

    status: ReviewStatus
    findings: Tuple[Finding, ...] = ()
    notes: str = ""
    recommended_disclaimers: Tuple[str, ...] = ()
    failed: bool = False


@dataclass(frozen=True, slots=True)
class Verdict:
    """Final decision for one candidate text."""

    status: VerdictStatus
    findings: Tuple[Finding, ...] = ()
    notes: str = ""
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    recommended_disclaimers: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "findings": [finding.to_dict() for finding in self.findings],
            "notes": self.notes,
            "checked_at": self.checked_at.isoformat(),
            "recommended_disclaimers": list(self.recommended_disclaimers),
        }


__all__ = [
    "RuleCategory",
    "Severity",
    "IssueType",
    "VerdictStatus",
    "ReviewStatus",
    "InvalidReviewContext",
    "ReviewContext",
    "Finding",
    "ReviewResult",
    "Verdict",
]
