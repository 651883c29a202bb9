"""
Audit logging utilities for compliance checks.
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from copy_compliance.services.types import ReviewContext, Verdict


@dataclass(slots=True)
class AuditRecord:
    """Structured log entry for one compliance check."""

    timestamp: str
    headline: str
    primary_text: str
    secondary_text: str | None
    cta: str
    services: list[str]
    jurisdiction: str
    status: str
    findings: list[dict[str, Any]]
    notes: str
    checked_at: str
    recommended_disclaimers: list[str]
    metadata: Dict[str, Any]
    batch_id: str | None = None
    concept_id: str | None = None


class JsonlAuditLogger:
    """Append-only JSONL logger for compliance verdicts."""

    def __init__(self, path: Path):
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log(self, context: ReviewContext, verdict: Verdict, metadata: Dict[str, Any] | None = None) -> None:
        meta = dict(metadata or {})
        batch_id = meta.get("batch_id")
        concept_id = meta.get("concept_id")

        record = AuditRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            headline=context.headline,
            primary_text=context.primary_text,
            secondary_text=context.secondary_text,
            cta=context.cta,
            services=list(context.services),
            jurisdiction=context.jurisdiction,
            status=verdict.status.value,
            findings=[finding.to_dict() for finding in verdict.findings],
            notes=verdict.notes,
            checked_at=verdict.checked_at.isoformat(),
            recommended_disclaimers=list(verdict.recommended_disclaimers),
            metadata=meta,
            batch_id=str(batch_id) if batch_id else None,
            concept_id=str(concept_id) if concept_id else None,
        )
        line = json.dumps(asdict(record), ensure_ascii=False) + "\n"
        with self._lock, self.path.open("a", encoding="utf-8") as fh:
            fh.write(line)


__all__ = ["AuditRecord", "JsonlAuditLogger"]
