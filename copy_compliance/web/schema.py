"""
Request/response models for the compliance HTTP API.

These pydantic models keep the wire shape explicit; conversion helpers map
them onto the frozen dataclasses used by the check path.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from copy_compliance.services.types import ReviewContext


class CheckRequest(BaseModel):
    headline: str
    primary_text: str
    secondary_text: Optional[str] = None
    cta: str
    services: List[str] = Field(default_factory=list)
    jurisdiction: str
    practitioner_credentials: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_context(self) -> ReviewContext:
        return ReviewContext(
            headline=self.headline,
            primary_text=self.primary_text,
            secondary_text=self.secondary_text,
            cta=self.cta,
            services=tuple(self.services),
            jurisdiction=self.jurisdiction,
            practitioner_credentials=tuple(self.practitioner_credentials),
        )


class FindingModel(BaseModel):
    source_id: str
    rule_name: str
    category: str
    severity: str
    text_segment: str
    issue_type: str
    explanation: str
    suggested_revision: str


class VerdictResponse(BaseModel):
    status: str
    findings: List[FindingModel]
    notes: str
    checked_at: str
    recommended_disclaimers: List[str]


class RuleModel(BaseModel):
    id: Optional[str] = None
    name: str
    category: str = "generic"
    severity: str = "warning"
    description: str = ""
    banned_phrases: List[str] = Field(default_factory=list)
    banned_patterns: List[str] = Field(default_factory=list)
    required_disclaimers: List[str] = Field(default_factory=list)
    applicable_jurisdictions: Optional[List[str]] = None
    applicable_services: Optional[List[str]] = None
    active: bool = True


class RuleUpsertRequest(BaseModel):
    rules: List[RuleModel]


class RuleUpsertResponse(BaseModel):
    upserted: int
    total: int
    rejected_patterns: Dict[str, List[str]] = Field(default_factory=dict)


__all__ = [
    "CheckRequest",
    "FindingModel",
    "RuleModel",
    "RuleUpsertRequest",
    "RuleUpsertResponse",
    "VerdictResponse",
]
