"""
Service layer modules responsible for orchestrating compliance checks.

This package exposes the primary classes via lazy imports to avoid circular
dependencies during test collection (e.g., compliance rules importing
`copy_compliance.services.types`).
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict

__all__ = [
    "ComplianceService",
    "ComplianceOrchestrator",
    "check_compliance",
    "SemanticReviewer",
    "BaseReviewer",
    "CheckCancelled",
    "LLMClient",
    "LLMRequestError",
    "LLMResponse",
    "ReviewContext",
    "Finding",
    "ReviewResult",
    "Verdict",
    "VerdictStatus",
    "InvalidReviewContext",
]

_MODULE_ATTRS: Dict[str, str] = {
    "ComplianceService": "copy_compliance.services.compliance_service",
    "ComplianceOrchestrator": "copy_compliance.services.orchestrator",
    "check_compliance": "copy_compliance.services.orchestrator",
    "SemanticReviewer": "copy_compliance.services.reviewer",
    "BaseReviewer": "copy_compliance.services.reviewer",
    "CheckCancelled": "copy_compliance.services.reviewer",
    "LLMClient": "copy_compliance.services.models",
    "LLMRequestError": "copy_compliance.services.models",
    "LLMResponse": "copy_compliance.services.models",
    "ReviewContext": "copy_compliance.services.types",
    "Finding": "copy_compliance.services.types",
    "ReviewResult": "copy_compliance.services.types",
    "Verdict": "copy_compliance.services.types",
    "VerdictStatus": "copy_compliance.services.types",
    "InvalidReviewContext": "copy_compliance.services.types",
}


def __getattr__(name: str) -> Any:
    module_path = _MODULE_ATTRS.get(name)
    if not module_path:
        raise AttributeError(f"module 'copy_compliance.services' has no attribute '{name}'")  # pragma: no cover
    module = import_module(module_path)
    return getattr(module, name)


def __dir__() -> list[str]:  # pragma: no cover - convenience helper
    return sorted(__all__)
