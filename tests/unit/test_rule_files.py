import json

import pytest

from copy_compliance.compliance.seed_rules import seed_rules
from copy_compliance.storage.rule_files import load_rules, save_rules


def test_save_then_load_preserves_rule_set(tmp_path):
    path = tmp_path / "nested" / "rules.json"
    rules = seed_rules()

    save_rules(path, rules)

    assert load_rules(path) == rules


def test_load_accepts_wrapped_rule_list(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(
        json.dumps({"rules": [{"rule_name": "No urgency", "category": "urgency-tactics", "banned_phrases": ["act now"]}]}),
        encoding="utf-8",
    )

    [rule] = load_rules(path)

    assert rule.name == "No urgency"
    assert rule.banned_phrases == ("act now",)


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"rules": "cure"}),
        json.dumps(["cure"]),
        json.dumps([{"name": "Bad", "severity": "blocker"}]),
    ],
)
def test_load_rejects_malformed_files(tmp_path, content):
    path = tmp_path / "rules.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_rules(path)
