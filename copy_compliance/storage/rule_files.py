"""
JSON persistence for externally configured rule sets.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List

from copy_compliance.compliance.rules import Rule


def load_rules(path: Path) -> List[Rule]:
    """Read a JSON list of rule records; malformed records raise ValueError."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Rule file {path} is not valid JSON: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise ValueError(f"Rule file {path} must contain a list of rule records.")
    rules: List[Rule] = []
    for idx, record in enumerate(data):
        if not isinstance(record, dict):
            raise ValueError(f"Rule record #{idx} in {path} must be an object.")
        rules.append(Rule.from_dict(record))
    return rules


def save_rules(path: Path, rules: Iterable[Rule]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [rule.to_dict() for rule in rules]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


__all__ = ["load_rules", "save_rules"]
