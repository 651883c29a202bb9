"""
Compliance rule definitions and the read-mostly rule store.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from copy_compliance.services.types import RuleCategory, Severity


def slugify_rule_name(name: str) -> str:
    """Derive a stable rule id from its human name."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "rule"


def _string_tuple(value: Any, field_name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValueError(f"Rule field '{field_name}' must be a list of strings.")
    items = tuple(value)
    if not all(isinstance(item, str) for item in items):
        raise ValueError(f"Rule field '{field_name}' must contain only strings.")
    return items


def _optional_filter(value: Any, field_name: str) -> Optional[FrozenSet[str]]:
    # None (or an omitted key) means the rule is universally applicable.
    if value is None:
        return None
    return frozenset(_string_tuple(value, field_name))


@dataclass(frozen=True, slots=True)
class Rule:
    """Named policy rule carrying banned phrases, patterns, and filters."""

    id: str
    name: str
    category: RuleCategory
    severity: Severity
    description: str = ""
    banned_phrases: Tuple[str, ...] = ()
    banned_patterns: Tuple[str, ...] = ()
    required_disclaimers: Tuple[str, ...] = ()
    applicable_jurisdictions: Optional[FrozenSet[str]] = None
    applicable_services: Optional[FrozenSet[str]] = None
    active: bool = True

    @property
    def is_documentation_only(self) -> bool:
        """Rules without phrases or patterns only inform the semantic reviewer."""
        return not self.banned_phrases and not self.banned_patterns

    def applies_to(self, jurisdiction: str, services: Iterable[str]) -> bool:
        if self.applicable_jurisdictions is not None and jurisdiction not in self.applicable_jurisdictions:
            return False
        if self.applicable_services is not None and self.applicable_services.isdisjoint(services):
            return False
        return True

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "Rule":
        """Build a rule from a loosely-typed configuration record."""
        name = record.get("name") or record.get("rule_name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Rule record requires a non-empty 'name'.")
        try:
            category = RuleCategory(record.get("category", RuleCategory.GENERIC.value))
        except ValueError as exc:
            raise ValueError(f"Rule '{name}' has unknown category {record.get('category')!r}.") from exc
        try:
            severity = Severity(record.get("severity", Severity.WARNING.value))
        except ValueError as exc:
            raise ValueError(f"Rule '{name}' has unknown severity {record.get('severity')!r}.") from exc

        active = record.get("active", True)
        if not isinstance(active, bool):
            raise ValueError(f"Rule '{name}' field 'active' must be a boolean.")
        description = record.get("description") or ""
        if not isinstance(description, str):
            raise ValueError(f"Rule '{name}' field 'description' must be a string.")

        return cls(
            id=str(record.get("id") or slugify_rule_name(name)),
            name=name.strip(),
            category=category,
            severity=severity,
            description=description,
            banned_phrases=_string_tuple(record.get("banned_phrases"), "banned_phrases"),
            banned_patterns=_string_tuple(record.get("banned_patterns"), "banned_patterns"),
            required_disclaimers=_string_tuple(record.get("required_disclaimers"), "required_disclaimers"),
            applicable_jurisdictions=_optional_filter(
                record.get("applicable_jurisdictions", record.get("applicable_states")),
                "applicable_jurisdictions",
            ),
            applicable_services=_optional_filter(record.get("applicable_services"), "applicable_services"),
            active=active,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "severity": self.severity.value,
            "description": self.description,
            "banned_phrases": list(self.banned_phrases),
            "banned_patterns": list(self.banned_patterns),
            "required_disclaimers": list(self.required_disclaimers),
            "applicable_jurisdictions": (
                sorted(self.applicable_jurisdictions) if self.applicable_jurisdictions is not None else None
            ),
            "applicable_services": (
                sorted(self.applicable_services) if self.applicable_services is not None else None
            ),
            "active": self.active,
        }


class RuleSnapshot:
    """Immutable, ordered view of the rule set used for one check."""

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: Tuple[Rule, ...] = tuple(rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def get(self, name: str) -> Optional[Rule]:
        for rule in self._rules:
            if rule.name == name:
                return rule
        return None

    def active_rules(self) -> Tuple[Rule, ...]:
        return tuple(rule for rule in self._rules if rule.active)


class RuleStore:
    """
    Read-mostly rule store keyed by rule name.

    Readers take the current snapshot reference without locking; writers build
    a new snapshot under a private lock and swap the reference.
    """

    def __init__(self, rules: Iterable[Rule] = ()):
        self._write_lock = threading.Lock()
        self._snapshot = RuleSnapshot()
        rules = list(rules)
        if rules:
            self.upsert_many(rules)

    def snapshot(self) -> RuleSnapshot:
        return self._snapshot

    def upsert_many(self, rules: Iterable[Rule | Mapping[str, Any]]) -> RuleSnapshot:
        """Insert or replace rules by name; re-seeding the same names is a no-op in count."""
        incoming: List[Rule] = [rule if isinstance(rule, Rule) else Rule.from_dict(rule) for rule in rules]
        with self._write_lock:
            current: List[Rule] = list(self._snapshot)
            positions: Dict[str, int] = {rule.name: idx for idx, rule in enumerate(current)}
            for rule in incoming:
                idx = positions.get(rule.name)
                if idx is None:
                    positions[rule.name] = len(current)
                    current.append(rule)
                else:
                    current[idx] = replace(rule, id=current[idx].id)
            self._snapshot = RuleSnapshot(current)
            return self._snapshot

    def deactivate(self, name: str) -> bool:
        with self._write_lock:
            current = list(self._snapshot)
            for idx, rule in enumerate(current):
                if rule.name == name:
                    current[idx] = replace(rule, active=False)
                    self._snapshot = RuleSnapshot(current)
                    return True
        return False


def documentation_rules(rules: Sequence[Rule] | RuleSnapshot, jurisdiction: str, services: Iterable[str]) -> List[Rule]:
    """Active, applicable rules that carry no phrases or patterns."""
    services = tuple(services)
    return [
        rule
        for rule in rules
        if rule.active and rule.is_documentation_only and rule.applies_to(jurisdiction, services)
    ]


__all__ = [
    "Rule",
    "RuleSnapshot",
    "RuleStore",
    "documentation_rules",
    "slugify_rule_name",
]
