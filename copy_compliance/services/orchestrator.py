"""
Two-stage compliance check: rule scan, then semantic review.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence

from copy_compliance.compliance.rules import Rule, RuleSnapshot, RuleStore, documentation_rules
from copy_compliance.compliance.scanner import build_search_text, scan
from copy_compliance.services.reviewer import BaseReviewer, CheckCancelled
from copy_compliance.services.types import (
    Finding,
    ReviewContext,
    ReviewStatus,
    Severity,
    Verdict,
    VerdictStatus,
)

logger = logging.getLogger("copy_compliance.services.orchestrator")

SCANNER_REJECTION_NOTE = "Critical compliance violations detected in rule-based scan"


class CheckState(str, Enum):
    PENDING = "pending"
    SCANNED = "scanned"
    REJECTED_BY_SCANNER = "rejected-by-scanner"
    REVIEWED = "reviewed"
    FINAL = "final"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _transition(state: CheckState, **details: object) -> None:
    logger.debug("compliance check -> %s %s", state.value, details or "")


def _required_disclaimers(
    context: ReviewContext,
    rules: Iterable[Rule],
    findings: Sequence[Finding],
) -> List[str]:
    """Disclaimers demanded by rules that fired and are not already in the copy."""
    fired = {finding.rule_name for finding in findings}
    text = build_search_text(context)
    disclaimers: List[str] = []
    for rule in rules:
        if rule.name not in fired:
            continue
        for disclaimer in rule.required_disclaimers:
            if disclaimer.lower().rstrip(".") not in text:
                disclaimers.append(disclaimer)
    return disclaimers


def _dedupe(items: Iterable[str]) -> tuple[str, ...]:
    seen = set()
    ordered = []
    for item in items:
        key = item.strip().lower()
        if key and key not in seen:
            seen.add(key)
            ordered.append(item.strip())
    return tuple(ordered)


def check_compliance(
    context: ReviewContext,
    rules: RuleSnapshot | Sequence[Rule],
    reviewer: BaseReviewer,
    *,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> Verdict:
    """
    Run one compliance check against an injected, read-only rule snapshot.

    Raises `InvalidReviewContext` for caller misuse and `CheckCancelled` when
    the caller abandons the check; every other condition yields a verdict.
    """
    context.validate()
    _transition(CheckState.PENDING)
    rules = tuple(rules)

    scanner_findings = scan(context, rules)
    _transition(CheckState.SCANNED, findings=len(scanner_findings))

    if any(finding.severity is Severity.CRITICAL for finding in scanner_findings):
        _transition(CheckState.REJECTED_BY_SCANNER, findings=len(scanner_findings))
        logger.info("Rejected by rule scan with %d findings; semantic review skipped", len(scanner_findings))
        return Verdict(
            status=VerdictStatus.REJECTED,
            findings=tuple(scanner_findings),
            notes=SCANNER_REJECTION_NOTE,
            checked_at=clock(),
            recommended_disclaimers=_dedupe(_required_disclaimers(context, rules, scanner_findings)),
        )

    policy_notes = documentation_rules(rules, context.jurisdiction, context.services)
    review = reviewer.review(context, policy_notes=policy_notes, cancel_event=cancel_event)
    _transition(CheckState.REVIEWED, review_failed=review.failed)

    if review.status is ReviewStatus.REJECT:
        status = VerdictStatus.REJECTED
    elif review.status is ReviewStatus.FLAG or scanner_findings:
        status = VerdictStatus.FLAGGED
    else:
        status = VerdictStatus.PASSED

    disclaimers = _dedupe(
        list(review.recommended_disclaimers) + _required_disclaimers(context, rules, scanner_findings)
    )
    verdict = Verdict(
        status=status,
        findings=tuple(scanner_findings) + tuple(review.findings),
        notes=review.notes,
        checked_at=clock(),
        recommended_disclaimers=disclaimers,
    )
    _transition(CheckState.FINAL, status=verdict.status.value)
    return verdict


@dataclass(slots=True)
class ComplianceOrchestrator:
    """Binds a rule store and reviewer; every check reads one fresh snapshot."""

    store: RuleStore
    reviewer: BaseReviewer
    clock: Callable[[], datetime] = field(default=_utcnow)

    def check(
        self,
        context: ReviewContext,
        *,
        rules: Optional[RuleSnapshot] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Verdict:
        snapshot = rules if rules is not None else self.store.snapshot()
        return check_compliance(
            context,
            snapshot,
            self.reviewer,
            cancel_event=cancel_event,
            clock=self.clock,
        )

    def check_batch(
        self,
        contexts: Sequence[ReviewContext],
        *,
        max_workers: int = 4,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[Optional[Verdict]]:
        """
        Check independent candidates concurrently, preserving input order.

        Slots for checks that were cancelled through `cancel_event` are None;
        verdicts completed before cancellation are returned as-is. Input errors
        in any candidate propagate.
        """
        if not contexts:
            return []
        snapshot = self.store.snapshot()
        results: List[Optional[Verdict]] = [None] * len(contexts)

        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(contexts)))) as pool:
            futures: List[Future] = [
                pool.submit(self.check, context, rules=snapshot, cancel_event=cancel_event)
                for context in contexts
            ]
            if cancel_event is not None:
                watcher = threading.Thread(
                    target=_cancel_pending_on_event,
                    args=(cancel_event, futures),
                    daemon=True,
                )
                watcher.start()

            for idx, future in enumerate(futures):
                try:
                    results[idx] = future.result()
                except (CancelledError, CheckCancelled):
                    logger.info("Compliance check %d cancelled", idx)
                    results[idx] = None
        return results


def _cancel_pending_on_event(cancel_event: threading.Event, futures: Sequence[Future]) -> None:
    while not cancel_event.wait(0.05):
        if all(future.done() for future in futures):
            return
    for future in futures:
        future.cancel()


__all__ = [
    "CheckState",
    "ComplianceOrchestrator",
    "SCANNER_REJECTION_NOTE",
    "check_compliance",
]
