"""
FastAPI application exposing the compliance check and rule configuration.

The service holds no per-request state: every check reads the current rule
snapshot, and rule upserts swap in a new snapshot.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

logger = logging.getLogger("copy_compliance.web.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO)

from copy_compliance import get_version
from copy_compliance.compliance.guard import validate
from copy_compliance.compliance.rules import Rule
from copy_compliance.config.models import audit_log_path_from_env, rules_path_from_env
from copy_compliance.services.compliance_service import ComplianceService
from copy_compliance.services.types import InvalidReviewContext

from .schema import CheckRequest, RuleModel, RuleUpsertRequest, RuleUpsertResponse, VerdictResponse


def _resolve_service() -> ComplianceService:
    return ComplianceService.from_rules_file(
        rules_path_from_env(),
        audit_log_path=audit_log_path_from_env(),
    )


def create_compliance_api(service: ComplianceService | None = None) -> FastAPI:
    """
    Build a FastAPI app exposing compliance checks and rule management.

    Args:
        service: Optional pre-configured service (useful for tests).

    Returns:
        FastAPI instance with routes registered.
    """

    service_instance = service or _resolve_service()

    app = FastAPI(title="Ad Copy Compliance API", version=get_version())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("COMPLIANCE_API_CORS_ORIGINS", "*").split(","),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_service() -> ComplianceService:
        return service_instance

    @app.get("/health")
    def health() -> dict:
        """Health endpoint for quick status checks."""

        return {"status": "ok", "rules": len(service_instance.store.snapshot())}

    @app.post("/compliance/check", response_model=VerdictResponse)
    def check_copy(
        payload: CheckRequest,
        service_dep: ComplianceService = Depends(get_service),
    ) -> dict:
        try:
            verdict = service_dep.check(payload.to_context(), metadata=payload.metadata)
        except InvalidReviewContext as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        logger.info(
            "Compliance check jurisdiction=%s status=%s findings=%d",
            payload.jurisdiction,
            verdict.status.value,
            len(verdict.findings),
        )
        return verdict.to_dict()

    @app.get("/rules", response_model=List[RuleModel])
    def list_rules(service_dep: ComplianceService = Depends(get_service)) -> List[dict]:
        return [rule.to_dict() for rule in service_dep.list_rules()]

    @app.put("/rules", response_model=RuleUpsertResponse)
    def upsert_rules(
        payload: RuleUpsertRequest,
        service_dep: ComplianceService = Depends(get_service),
    ) -> dict:
        try:
            rules = [Rule.from_dict(item.model_dump()) for item in payload.rules]
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        rejected: Dict[str, List[str]] = {}
        for rule in rules:
            unsafe = [pattern for pattern in rule.banned_patterns if not validate(pattern)]
            if unsafe:
                rejected[rule.name] = unsafe
                logger.warning("Rule '%s' carries %d unsafe patterns; they will be skipped", rule.name, len(unsafe))

        snapshot = service_dep.upsert_rules(rules)
        return {"upserted": len(rules), "total": len(snapshot), "rejected_patterns": rejected}

    return app


app = create_compliance_api()


__all__ = ["create_compliance_api", "app"]
