from fastapi.testclient import TestClient

from copy_compliance.compliance.rules import RuleStore
from copy_compliance.compliance.seed_rules import SEED_RULE_RECORDS, seed_rule_store
from copy_compliance.services.compliance_service import ComplianceService
from copy_compliance.services.reviewer import BaseReviewer
from copy_compliance.services.types import ReviewResult, ReviewStatus
from copy_compliance.web.api import create_compliance_api


class PassingReviewer(BaseReviewer):
    def __init__(self):
        self.calls = 0

    def review(self, context, *, policy_notes=(), cancel_event=None):
        self.calls += 1
        return ReviewResult(status=ReviewStatus.PASS, notes="Looks compliant.")


def _client(reviewer=None):
    store = RuleStore()
    seed_rule_store(store)
    service = ComplianceService(store=store, reviewer=reviewer or PassingReviewer())
    return TestClient(create_compliance_api(service=service))


def _payload(**overrides):
    payload = {
        "headline": "Feel your best with personalized care in Austin",
        "primary_text": "Board-certified physicians build a plan around you.",
        "cta": "Book a consultation",
        "services": ["trt"],
        "jurisdiction": "TX",
        "practitioner_credentials": ["MD"],
    }
    payload.update(overrides)
    return payload


def test_health_reports_rule_count():
    response = _client().get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "rules": len(SEED_RULE_RECORDS)}


def test_check_passes_clean_copy():
    response = _client().post("/compliance/check", json=_payload())
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "passed"
    assert body["findings"] == []
    assert body["notes"] == "Looks compliant."


def test_check_rejects_critical_copy_without_review():
    reviewer = PassingReviewer()
    response = _client(reviewer).post("/compliance/check", json=_payload(headline="Guaranteed results for TRT"))
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "rejected"
    assert body["findings"][0]["issue_type"] == "banned_phrase"
    assert body["findings"][0]["severity"] == "critical"
    assert reviewer.calls == 0


def test_check_validation_errors():
    client = _client()
    missing = _payload()
    del missing["cta"]
    assert client.post("/compliance/check", json=missing).status_code == 422

    blank = client.post("/compliance/check", json=_payload(jurisdiction=" "))
    assert blank.status_code == 400
    assert "jurisdiction" in blank.json()["detail"]


def test_list_rules_returns_seed_rules():
    response = _client().get("/rules")
    assert response.status_code == 200
    names = [rule["name"] for rule in response.json()]
    assert names == [record["name"] for record in SEED_RULE_RECORDS]


def test_upsert_rules_is_idempotent_and_reports_unsafe_patterns():
    client = _client()
    body = {
        "rules": [
            {"name": "No miracle claims", "category": "regulatory-claims", "severity": "critical",
             "banned_phrases": ["miracle"], "banned_patterns": ["(a+)+"]},
        ]
    }

    first = client.put("/rules", json=body)
    second = client.put("/rules", json=body)

    assert first.status_code == second.status_code == 200
    assert first.json()["total"] == second.json()["total"] == len(SEED_RULE_RECORDS) + 1
    assert second.json()["rejected_patterns"] == {"No miracle claims": ["(a+)+"]}

    verdict = client.post("/compliance/check", json=_payload(headline="A miracle in Austin")).json()
    assert verdict["status"] == "rejected"


def test_upsert_rejects_unknown_category():
    response = _client().put("/rules", json={"rules": [{"name": "Bad", "category": "fda"}]})
    assert response.status_code == 400
    assert "category" in response.json()["detail"]
