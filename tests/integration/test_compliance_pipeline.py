import json
import threading
import time
from datetime import datetime, timezone

import pytest
import requests

from copy_compliance.compliance.rules import Rule, RuleStore
from copy_compliance.compliance.seed_rules import seed_rule_store
from copy_compliance.config.models import ReviewerConfig
from copy_compliance.services.compliance_service import ComplianceService
from copy_compliance.services.orchestrator import (
    SCANNER_REJECTION_NOTE,
    ComplianceOrchestrator,
    check_compliance,
)
from copy_compliance.services.reviewer import BaseReviewer, CheckCancelled, SemanticReviewer
from copy_compliance.services.types import (
    Finding,
    InvalidReviewContext,
    IssueType,
    ReviewContext,
    ReviewResult,
    ReviewStatus,
    RuleCategory,
    Severity,
    VerdictStatus,
)

FIXED_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_TIME


class FakeReviewer(BaseReviewer):
    """Returns a fixed review result and records what it was asked."""

    def __init__(self, result: ReviewResult | None = None):
        self.result = result or ReviewResult(status=ReviewStatus.PASS, notes="Looks compliant.")
        self.calls = []

    def review(self, context, *, policy_notes=(), cancel_event=None):
        self.calls.append((context, tuple(policy_notes)))
        return self.result


class BlockingReviewer(BaseReviewer):
    """Blocks until the cancel event fires, then abandons the review."""

    def review(self, context, *, policy_notes=(), cancel_event=None):
        assert cancel_event is not None
        cancel_event.wait(5.0)
        raise CheckCancelled("cancelled")


class FailingClient:
    def __init__(self):
        self.calls = 0

    def call(self, model, prompt, **kwargs):
        self.calls += 1
        raise requests.ConnectionError("network unreachable")


def make_context(**overrides) -> ReviewContext:
    fields = dict(
        headline="Feel your best with personalized care in Austin",
        primary_text="Board-certified physicians build a plan around you.",
        secondary_text=None,
        cta="Book a consultation",
        services=("trt",),
        jurisdiction="TX",
        practitioner_credentials=("MD",),
    )
    fields.update(overrides)
    return ReviewContext(**fields)


def guaranteed_rule() -> Rule:
    return Rule.from_dict(
        {
            "name": "Guaranteed outcomes",
            "category": "regulatory-claims",
            "severity": "critical",
            "banned_phrases": ["guaranteed"],
            "description": "Cannot guarantee treatment outcomes.",
        }
    )


def seeded_snapshot():
    return seed_rule_store(RuleStore())


def test_critical_phrase_rejects_without_semantic_review():
    reviewer = FakeReviewer()
    context = make_context(headline="Guaranteed results for TRT patients", jurisdiction="CA")

    verdict = check_compliance(context, [guaranteed_rule()], reviewer)

    assert verdict.status is VerdictStatus.REJECTED
    assert verdict.notes == SCANNER_REJECTION_NOTE
    assert len(verdict.findings) == 1
    finding = verdict.findings[0]
    assert finding.issue_type is IssueType.BANNED_PHRASE
    assert finding.text_segment == "guaranteed"
    assert reviewer.calls == []


def test_clean_copy_passes_when_reviewer_passes():
    reviewer = FakeReviewer()

    verdict = check_compliance(make_context(), seeded_snapshot(), reviewer)

    assert verdict.status is VerdictStatus.PASSED
    assert verdict.findings == ()
    assert verdict.notes == "Looks compliant."
    assert len(reviewer.calls) == 1


def test_reviewer_network_failure_flags_for_manual_review():
    client = FailingClient()
    reviewer = SemanticReviewer(ReviewerConfig(max_retries=2), llm_client=client, sleep=lambda _: None)

    verdict = check_compliance(make_context(), seeded_snapshot(), reviewer)

    assert verdict.status is VerdictStatus.FLAGGED
    assert len(verdict.findings) == 1
    assert verdict.findings[0].issue_type is IssueType.REVIEW_FAILED
    assert verdict.findings[0].category is RuleCategory.GENERIC
    assert client.calls == 3


def test_unsafe_pattern_does_not_stall_the_check():
    rules = [
        Rule.from_dict(
            {"name": "Backtracking", "severity": "critical", "banned_patterns": ["(a+)+$"]}
        )
    ]
    context = make_context(headline="a" * 40 + "!")

    start = time.perf_counter()
    verdict = check_compliance(context, rules, FakeReviewer())
    elapsed = time.perf_counter() - start

    assert verdict.status is VerdictStatus.PASSED
    assert elapsed < 0.1


def test_same_input_yields_identical_verdicts():
    snapshot = seeded_snapshot()
    context = make_context(cta="Act now, only 3 spots left")

    first = check_compliance(context, snapshot, FakeReviewer(), clock=fixed_clock)
    second = check_compliance(context, snapshot, FakeReviewer(), clock=fixed_clock)

    assert first == second
    assert first.to_dict() == second.to_dict()


def test_warning_findings_flag_even_when_reviewer_passes():
    reviewer = FakeReviewer()
    context = make_context(cta="Act now, only 3 spots left")

    verdict = check_compliance(context, seeded_snapshot(), reviewer)

    assert verdict.status is VerdictStatus.FLAGGED
    assert [(f.issue_type, f.text_segment) for f in verdict.findings] == [
        (IssueType.BANNED_PHRASE, "act now"),
        (IssueType.BANNED_PATTERN, "only 3 spots"),
    ]
    assert all(f.severity is Severity.WARNING for f in verdict.findings)
    assert len(reviewer.calls) == 1


def test_reviewer_reject_rejects_and_findings_follow_scanner_first():
    reviewer_finding = Finding(
        source_id="semantic-review",
        rule_name="guaranteed_outcome",
        category=RuleCategory.REGULATORY_CLAIMS,
        severity=Severity.CRITICAL,
        text_segment="feel your best",
        issue_type=IssueType.GUARANTEED_OUTCOME,
        explanation="Implied outcome.",
        suggested_revision="Explore how you might feel",
    )
    reviewer = FakeReviewer(
        ReviewResult(status=ReviewStatus.REJECT, findings=(reviewer_finding,), notes="Implied guarantee.")
    )
    context = make_context(cta="Hurry and book")

    verdict = check_compliance(context, seeded_snapshot(), reviewer)

    assert verdict.status is VerdictStatus.REJECTED
    assert verdict.notes == "Implied guarantee."
    assert [f.source_id for f in verdict.findings] == ["no-urgency-scarcity", "semantic-review"]


def test_reviewer_flag_flags():
    reviewer = FakeReviewer(ReviewResult(status=ReviewStatus.FLAG, notes="Soft claim."))
    verdict = check_compliance(make_context(), seeded_snapshot(), reviewer)
    assert verdict.status is VerdictStatus.FLAGGED
    assert verdict.findings == ()


def test_policy_notes_reach_reviewer():
    reviewer = FakeReviewer()
    check_compliance(make_context(), seeded_snapshot(), reviewer)
    _, notes = reviewer.calls[0]
    assert {rule.name for rule in notes} >= {"Personal health targeting", "AI face prohibition"}
    assert all(rule.is_documentation_only for rule in notes)


def test_missing_disclaimers_are_recommended_once():
    reviewer = FakeReviewer(
        ReviewResult(status=ReviewStatus.PASS, recommended_disclaimers=("Individual results may vary.",))
    )
    context = make_context(primary_text="See the before and after stories from our patients.")

    verdict = check_compliance(context, seeded_snapshot(), reviewer)

    assert verdict.status is VerdictStatus.FLAGGED
    assert verdict.recommended_disclaimers == ("Individual results may vary.",)

    with_disclaimer = make_context(
        primary_text="See the before and after stories from our patients. Individual results may vary."
    )
    verdict = check_compliance(with_disclaimer, seeded_snapshot(), FakeReviewer())
    assert verdict.recommended_disclaimers == ()


def test_disclaimers_follow_rule_names_not_colliding_ids():
    rules = [
        Rule.from_dict({"name": "No urgency/scarcity", "banned_phrases": ["hurry"]}),
        Rule.from_dict(
            {
                "name": "No urgency scarcity",
                "banned_phrases": ["last chance"],
                "required_disclaimers": ["Offer subject to availability."],
            }
        ),
    ]
    assert rules[0].id == rules[1].id

    verdict = check_compliance(make_context(cta="Hurry and book"), rules, FakeReviewer())

    assert verdict.status is VerdictStatus.FLAGGED
    assert [f.rule_name for f in verdict.findings] == ["No urgency/scarcity"]
    assert verdict.recommended_disclaimers == ()


@pytest.mark.parametrize("field_name",["headline", "primary_text", "cta", "jurisdiction"])
def test_missing_required_field_is_a_caller_error(field_name):
    reviewer = FakeReviewer()
    with pytest.raises(InvalidReviewContext):
        check_compliance(make_context(**{field_name: "  "}), seeded_snapshot(), reviewer)
    assert reviewer.calls == []


def test_check_uses_snapshot_taken_at_call_time():
    store = RuleStore([guaranteed_rule()])
    orchestrator = ComplianceOrchestrator(store=store, reviewer=FakeReviewer(), clock=fixed_clock)
    before = store.snapshot()
    store.deactivate("Guaranteed outcomes")

    context = make_context(headline="Guaranteed care")
    assert orchestrator.check(context, rules=before).status is VerdictStatus.REJECTED
    assert orchestrator.check(context).status is VerdictStatus.PASSED


def test_batch_preserves_input_order():
    store = RuleStore()
    seed_rule_store(store)
    orchestrator = ComplianceOrchestrator(store=store, reviewer=FakeReviewer(), clock=fixed_clock)
    contexts = [
        make_context(),
        make_context(headline="Guaranteed results"),
        make_context(cta="Hurry"),
    ]

    verdicts = orchestrator.check_batch(contexts, max_workers=3)

    assert [v.status for v in verdicts] == [
        VerdictStatus.PASSED,
        VerdictStatus.REJECTED,
        VerdictStatus.FLAGGED,
    ]
    assert verdicts == [orchestrator.check(context) for context in contexts]


def test_batch_cancellation_keeps_finished_verdicts():
    store = RuleStore([guaranteed_rule()])
    orchestrator = ComplianceOrchestrator(store=store, reviewer=BlockingReviewer())
    contexts = [
        make_context(headline="Guaranteed results"),
        make_context(),
        make_context(cta="Schedule today"),
    ]
    cancel = threading.Event()
    timer = threading.Timer(0.2, cancel.set)
    timer.start()
    try:
        verdicts = orchestrator.check_batch(contexts, max_workers=1, cancel_event=cancel)
    finally:
        timer.cancel()

    assert verdicts[0] is not None
    assert verdicts[0].status is VerdictStatus.REJECTED
    assert verdicts[1:] == [None, None]


def test_service_facade_checks_and_writes_audit_log(tmp_path):
    audit_path = tmp_path / "logs" / "audit.jsonl"
    service = ComplianceService.from_rules_file(None, reviewer=FakeReviewer(), audit_log_path=audit_path)

    verdict = service.check_compliance(
        headline="Guaranteed results",
        primary_text="Board-certified physicians build a plan around you.",
        secondary_text=None,
        cta="Book a consultation",
        services=["trt"],
        jurisdiction="CA",
        practitioner_credentials=["MD"],
        metadata={"batch_id": "b-1", "concept_id": "c-9"},
    )

    assert verdict.status is VerdictStatus.REJECTED
    [line] = audit_path.read_text(encoding="utf-8").splitlines()
    record = json.loads(line)
    assert record["status"] == "rejected"
    assert record["batch_id"] == "b-1"
    assert record["concept_id"] == "c-9"
    assert record["findings"][0]["text_segment"] in {"guaranteed", "guaranteed results"}


def test_service_loads_rules_file_and_upserts(tmp_path):
    rules_path = tmp_path / "rules.json"
    rules_path.write_text(
        json.dumps([{"name": "No miracle claims", "severity": "critical", "banned_phrases": ["miracle"]}]),
        encoding="utf-8",
    )
    service = ComplianceService.from_rules_file(rules_path, reviewer=FakeReviewer())

    assert [rule.name for rule in service.list_rules()] == ["No miracle claims"]
    assert service.check(make_context(headline="A miracle for you")).status is VerdictStatus.REJECTED

    service.upsert_rules([{"name": "No miracle claims", "severity": "warning", "banned_phrases": ["miracle"]}])
    assert len(service.list_rules()) == 1
    assert service.check(make_context(headline="A miracle for you")).status is VerdictStatus.FLAGGED
