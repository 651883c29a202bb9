"""
Semantic review of ad copy through an external LLM classifier.

Any failure to obtain a well-formed verdict (transport error, timeout,
unparseable or mis-shaped JSON) is converted into a `flag` result carrying a
single `review_failed` finding. Only caller cancellation propagates.
"""

from __future__ import annotations

import json
import logging
import textwrap
import threading
import time
from typing import Any, Callable, Dict, Optional, Sequence

import requests

from copy_compliance.compliance.rules import Rule
from copy_compliance.config.models import ReviewerConfig
from copy_compliance.services.models import LLMClient, LLMRequestError, LLMResponse
from copy_compliance.services.types import (
    Finding,
    IssueType,
    ReviewContext,
    ReviewResult,
    ReviewStatus,
    RuleCategory,
    Severity,
)

logger = logging.getLogger("copy_compliance.services.reviewer")

REVIEWER_SOURCE_ID = "semantic-review"
SYSTEM_ERROR_SOURCE_ID = "system-error"
MAX_REVIEW_SEGMENT_CHARS = 500

SYSTEM_PROMPT = "You are a healthcare advertising compliance attorney. Respond with valid JSON only."

ISSUE_CATEGORIES: Dict[IssueType, RuleCategory] = {
    IssueType.OFF_LABEL: RuleCategory.REGULATORY_CLAIMS,
    IssueType.GUARANTEED_OUTCOME: RuleCategory.REGULATORY_CLAIMS,
    IssueType.EVIDENCE_NEEDED: RuleCategory.REGULATORY_CLAIMS,
    IssueType.DIAGNOSIS_CLAIM: RuleCategory.DATA_PRIVACY,
    IssueType.HIPAA: RuleCategory.DATA_PRIVACY,
    IssueType.STATE_VIOLATION: RuleCategory.DISCLOSURE,
    IssueType.MISSING_DISCLAIMER: RuleCategory.DISCLOSURE,
    IssueType.META_POLICY: RuleCategory.PLATFORM_POLICY,
}

REVIEWER_ISSUE_TYPES = tuple(ISSUE_CATEGORIES)


class CheckCancelled(RuntimeError):
    """Raised when the caller abandons a check before the review finished."""


class ReviewParseError(ValueError):
    """The classifier response did not match the expected verdict shape."""


class BaseReviewer:
    """Interface for semantic reviewer implementations."""

    def review(
        self,
        context: ReviewContext,
        *,
        policy_notes: Sequence[Rule] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> ReviewResult:
        raise NotImplementedError


def review_failed_result(reason: str) -> ReviewResult:
    """Fail-safe outcome used whenever the reviewer cannot produce a verdict."""
    finding = Finding(
        source_id=SYSTEM_ERROR_SOURCE_ID,
        rule_name="Review Failed",
        category=RuleCategory.GENERIC,
        severity=Severity.WARNING,
        text_segment="",
        issue_type=IssueType.REVIEW_FAILED,
        explanation="Automated compliance review encountered an error. Manual review required.",
        suggested_revision="Request manual compliance review",
    )
    return ReviewResult(
        status=ReviewStatus.FLAG,
        findings=(finding,),
        notes=f"Compliance review failed ({reason}); manual review required.",
        failed=True,
    )


REVIEW_PROMPT_TEMPLATE = textwrap.dedent(
    """
    You are a healthcare advertising compliance attorney reviewing ad copy for regulatory violations. You are thorough, conservative, and protect the clinic from legal exposure.

    CLINIC CONTEXT:
    - Services: {services}
    - Jurisdiction: {jurisdiction}
    - Practitioner credentials: {credentials}

    REVIEW THIS AD:
    Headline: {headline}
    Primary Text: {primary_text}
    Description: {description}
    CTA: {cta}

    CHECK FOR:
    1. FDA violations: off-label marketing (TRT approved only for hypogonadism), unapproved claims, implied drug efficacy
    2. FTC violations: deceptive advertising, unsubstantiated claims, missing material disclosures
    3. HIPAA concerns: references to patient data, diagnosis, treatment history
    4. Meta Health Policy: personal health targeting, conversion optimization restrictions, Special Ad Category requirements
    5. Jurisdiction-specific rules for {jurisdiction}: required disclaimers, physician name requirements, before/after restrictions
    6. Implied guarantees: "you will feel better", "transform your life", absolute outcome language
    7. Missing disclaimers: "individual results may vary", jurisdiction-required notices

    RESPOND WITH ONLY THIS JSON:
    {{
      "overall_status": "pass|flag|reject",
      "issues": [
        {{
          "text_segment": "the exact problematic text from the ad",
          "issue_type": "{issue_types}",
          "severity": "critical|warning",
          "explanation": "clear explanation of why this violates regulations",
          "suggested_revision": "compliant alternative text"
        }}
      ],
      "recommended_disclaimers": ["any disclaimers that should be appended"],
      "overall_notes": "brief summary of compliance status"
    }}

    RULES:
    - If ANY critical issue exists, overall_status = "reject"
    - If only warnings, overall_status = "flag"
    - If clean, overall_status = "pass"
    - Be conservative. When in doubt, flag it.
    - No markdown. JSON only.
    """
).strip()


def build_review_prompt(context: ReviewContext, policy_notes: Sequence[Rule] = ()) -> str:
    prompt = REVIEW_PROMPT_TEMPLATE.format(
        services=", ".join(context.services) or "N/A",
        jurisdiction=context.jurisdiction,
        credentials=", ".join(context.practitioner_credentials) or "N/A",
        headline=context.headline,
        primary_text=context.primary_text,
        description=context.secondary_text or "N/A",
        cta=context.cta,
        issue_types="|".join(issue.value for issue in REVIEWER_ISSUE_TYPES),
    )

    if policy_notes:
        notes = "\n".join(f"- {rule.name} ({rule.severity.value}): {rule.description}" for rule in policy_notes)
        prompt += f"\n\nHOUSE POLICY NOTES (also enforce these):\n{notes}"
    return prompt


def _parse_json_response(text: str) -> Optional[Dict[str, object]]:
    text = text.strip()
    if not text:
        return None
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        # Attempt to extract JSON substring
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            payload = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            return None
    return payload if isinstance(payload, dict) else None


def _optional_text(item: Dict[str, Any], key: str) -> str:
    value = item.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ReviewParseError(f"Issue field '{key}' must be a string.")
    return value.strip()


def _parse_issue(item: Any) -> Finding:
    if not isinstance(item, dict):
        raise ReviewParseError("Each issue must be a JSON object.")
    try:
        severity = Severity(str(item.get("severity", "")).strip().lower())
    except ValueError as exc:
        raise ReviewParseError(f"Unknown issue severity {item.get('severity')!r}.") from exc

    raw_type = _optional_text(item, "issue_type").lower()
    try:
        issue_type = IssueType(raw_type)
    except ValueError:
        issue_type = IssueType.OTHER
    if issue_type not in ISSUE_CATEGORIES:
        issue_type = IssueType.OTHER

    return Finding(
        source_id=REVIEWER_SOURCE_ID,
        rule_name=raw_type or issue_type.value,
        category=ISSUE_CATEGORIES.get(issue_type, RuleCategory.GENERIC),
        severity=severity,
        text_segment=_optional_text(item, "text_segment")[:MAX_REVIEW_SEGMENT_CHARS],
        issue_type=issue_type,
        explanation=_optional_text(item, "explanation"),
        suggested_revision=_optional_text(item, "suggested_revision"),
    )


def parse_review_payload(text: str) -> ReviewResult:
    """Validate the classifier's JSON verdict; raise ReviewParseError on any deviation."""
    payload = _parse_json_response(text or "")
    if payload is None:
        raise ReviewParseError("No JSON object found in reviewer response.")

    try:
        status = ReviewStatus(str(payload.get("overall_status", "")).strip().lower())
    except ValueError as exc:
        raise ReviewParseError(f"Unknown overall_status {payload.get('overall_status')!r}.") from exc

    issues = payload.get("issues", [])
    if not isinstance(issues, list):
        raise ReviewParseError("'issues' must be a list.")
    findings = tuple(_parse_issue(item) for item in issues)

    disclaimers = payload.get("recommended_disclaimers") or []
    if not isinstance(disclaimers, list) or not all(isinstance(item, str) for item in disclaimers):
        raise ReviewParseError("'recommended_disclaimers' must be a list of strings.")

    notes = payload.get("overall_notes") or ""
    if not isinstance(notes, str):
        raise ReviewParseError("'overall_notes' must be a string.")

    return ReviewResult(
        status=status,
        findings=findings,
        notes=notes.strip(),
        recommended_disclaimers=tuple(item.strip() for item in disclaimers if item.strip()),
    )


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, LLMRequestError):
        return exc.retryable
    return isinstance(exc, (requests.ConnectionError, requests.Timeout, ConnectionError, TimeoutError))


class SemanticReviewer(BaseReviewer):
    """Reviewer backed by an LLM that returns a structured JSON verdict."""

    def __init__(
        self,
        config: Optional[ReviewerConfig] = None,
        *,
        llm_client: Optional[LLMClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or ReviewerConfig()
        self.client = llm_client or LLMClient(
            endpoint=self.config.endpoint,
            auth_token=self.config.resolve_auth_token(),
            api_mode=self.config.api_mode,
        )
        self._sleep = sleep

    def review(
        self,
        context: ReviewContext,
        *,
        policy_notes: Sequence[Rule] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> ReviewResult:
        prompt = build_review_prompt(context, policy_notes)
        try:
            response = self._call_with_retries(prompt, cancel_event)
            return parse_review_payload(response.text)
        except CheckCancelled:
            raise
        except (LLMRequestError, ReviewParseError) as exc:
            logger.warning("Semantic review failed; defaulting to flagged: %s", exc)
            return review_failed_result(type(exc).__name__)
        except Exception as exc:  # substituted clients may raise anything
            logger.exception("Unexpected semantic review error; defaulting to flagged")
            return review_failed_result(type(exc).__name__)

    def _call_with_retries(self, prompt: str, cancel_event: Optional[threading.Event]) -> LLMResponse:
        attempts = self.config.max_retries + 1
        for attempt in range(attempts):
            if cancel_event is not None and cancel_event.is_set():
                raise CheckCancelled("Compliance check cancelled before review completed.")
            try:
                return self.client.call(
                    self.config.model,
                    prompt,
                    system=SYSTEM_PROMPT,
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens,
                    timeout=self.config.timeout,
                )
            except Exception as exc:
                if attempt + 1 >= attempts or not _is_transient(exc):
                    raise
                delay = self.config.backoff_seconds * (2**attempt)
                logger.info(
                    "Reviewer attempt %s/%s failed: %s. Retrying in %.2fs",
                    attempt + 1,
                    attempts,
                    exc,
                    delay,
                )
                if cancel_event is not None:
                    if cancel_event.wait(delay):
                        raise CheckCancelled("Compliance check cancelled during review backoff.") from exc
                elif delay > 0:
                    self._sleep(delay)


__all__ = [
    "BaseReviewer",
    "CheckCancelled",
    "ReviewParseError",
    "SemanticReviewer",
    "build_review_prompt",
    "parse_review_payload",
    "review_failed_result",
]
