"""
Compliance rule definitions and evaluators.

Rules are evaluated by a deterministic scanner; regex rules pass through the
pattern guard before they are ever compiled.
"""

from .guard import compile_pattern, validate
from .rules import Rule, RuleSnapshot, RuleStore, documentation_rules
from .scanner import scan
from .seed_rules import SEED_RULE_RECORDS, seed_rule_store, seed_rules

__all__ = [
    "Rule",
    "RuleSnapshot",
    "RuleStore",
    "SEED_RULE_RECORDS",
    "compile_pattern",
    "documentation_rules",
    "scan",
    "seed_rule_store",
    "seed_rules",
    "validate",
]
