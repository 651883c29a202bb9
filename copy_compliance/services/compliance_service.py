"""
High-level compliance service consumed by ad generation and publishing flows.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from copy_compliance.compliance.rules import Rule, RuleSnapshot, RuleStore
from copy_compliance.compliance.seed_rules import seed_rule_store
from copy_compliance.config.models import ReviewerConfig
from copy_compliance.services.orchestrator import ComplianceOrchestrator
from copy_compliance.services.reviewer import BaseReviewer, SemanticReviewer
from copy_compliance.services.types import ReviewContext, Verdict
from copy_compliance.storage.audit import JsonlAuditLogger
from copy_compliance.storage.rule_files import load_rules


@dataclass(slots=True)
class ComplianceService:
    """Facade that checks ad copy end-to-end and manages the rule set."""

    store: RuleStore = field(default_factory=RuleStore)
    reviewer: Optional[BaseReviewer] = None
    audit_log_path: Optional[Path] = None
    audit_logger: Optional[JsonlAuditLogger] = field(init=False, default=None)
    _orchestrator: ComplianceOrchestrator = field(init=False)

    def __post_init__(self) -> None:
        if self.reviewer is None:
            self.reviewer = SemanticReviewer(ReviewerConfig.from_env())
        if self.audit_log_path is not None:
            self.audit_logger = JsonlAuditLogger(self.audit_log_path)
        self._orchestrator = ComplianceOrchestrator(store=self.store, reviewer=self.reviewer)

    @classmethod
    def from_rules_file(cls, rules_path: Optional[Path] = None, **kwargs: Any) -> "ComplianceService":
        """Build a service over rules from a JSON file, or the seed rules when none is given."""
        store = RuleStore()
        if rules_path is not None and rules_path.exists():
            store.upsert_many(load_rules(rules_path))
        else:
            seed_rule_store(store)
        return cls(store=store, **kwargs)

    def check_compliance(
        self,
        headline: str,
        primary_text: str,
        secondary_text: Optional[str],
        cta: str,
        services: Sequence[str],
        jurisdiction: str,
        practitioner_credentials: Sequence[str],
        *,
        metadata: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Verdict:
        context = ReviewContext(
            headline=headline,
            primary_text=primary_text,
            secondary_text=secondary_text,
            cta=cta,
            services=tuple(services or ()),
            jurisdiction=jurisdiction,
            practitioner_credentials=tuple(practitioner_credentials or ()),
        )
        return self.check(context, metadata=metadata, cancel_event=cancel_event)

    def check(
        self,
        context: ReviewContext,
        *,
        metadata: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Verdict:
        verdict = self._orchestrator.check(context, cancel_event=cancel_event)
        if self.audit_logger is not None:
            self.audit_logger.log(context, verdict, metadata=metadata)
        return verdict

    def check_batch(
        self,
        contexts: Sequence[ReviewContext],
        *,
        max_workers: int = 4,
        cancel_event: Optional[threading.Event] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Optional[Verdict]]:
        verdicts = self._orchestrator.check_batch(contexts, max_workers=max_workers, cancel_event=cancel_event)
        if self.audit_logger is not None:
            for context, verdict in zip(contexts, verdicts):
                if verdict is not None:
                    self.audit_logger.log(context, verdict, metadata=metadata)
        return verdicts

    def upsert_rules(self, records: Iterable[Rule | Mapping[str, Any]]) -> RuleSnapshot:
        return self.store.upsert_many(records)

    def list_rules(self) -> List[Rule]:
        return list(self.store.snapshot())


__all__ = ["ComplianceService"]
