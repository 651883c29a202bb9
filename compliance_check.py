#!/usr/bin/env python3
"""
Command-line driver for checking one piece of ad copy.

Runs the rule scan and (when reached) the semantic review, prints the verdict
as JSON, and exits 0/1/2 for passed/flagged/rejected.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()

from copy_compliance.config.models import audit_log_path_from_env, rules_path_from_env
from copy_compliance.services.compliance_service import ComplianceService
from copy_compliance.services.types import InvalidReviewContext, VerdictStatus

EXIT_CODES = {
    VerdictStatus.PASSED: 0,
    VerdictStatus.FLAGGED: 1,
    VerdictStatus.REJECTED: 2,
}


def _split(value: str | None) -> List[str]:
    if not value:
        return []
    return [token.strip() for token in value.split(",") if token.strip()]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ad copy compliance check")
    parser.add_argument("--headline", required=True)
    parser.add_argument("--primary-text", required=True)
    parser.add_argument("--secondary-text", default=None)
    parser.add_argument("--cta", required=True)
    parser.add_argument("--services", default="", help="Comma-separated service codes (e.g. trt,hrt)")
    parser.add_argument("--jurisdiction", required=True, help="Jurisdiction code (e.g. CA)")
    parser.add_argument("--credentials", default="", help="Comma-separated practitioner credentials")
    parser.add_argument("--rules-path", type=Path, default=None, help="JSON rule file (default: seed rules)")
    parser.add_argument("--audit-log", type=Path, default=None, help="Append the verdict to this JSONL file")
    return parser.parse_args()


def print_step(message: str) -> None:
    print(f"[compliance] {message}", file=sys.stderr)


def run_check() -> None:
    args = parse_args()

    rules_path = args.rules_path or rules_path_from_env()
    audit_log = args.audit_log or audit_log_path_from_env()
    if rules_path and not rules_path.exists():
        print_step(f"ERROR: rules file not found at {rules_path}")
        sys.exit(3)

    try:
        service = ComplianceService.from_rules_file(rules_path, audit_log_path=audit_log)
    except ValueError as exc:
        print_step(f"ERROR: failed to load rules: {exc}")
        sys.exit(3)
    print_step(f"Loaded {len(service.list_rules())} rules from {rules_path or 'seed set'}")

    try:
        verdict = service.check_compliance(
            headline=args.headline,
            primary_text=args.primary_text,
            secondary_text=args.secondary_text,
            cta=args.cta,
            services=_split(args.services),
            jurisdiction=args.jurisdiction,
            practitioner_credentials=_split(args.credentials),
        )
    except InvalidReviewContext as exc:
        print_step(f"ERROR: {exc}")
        sys.exit(3)

    print(json.dumps(verdict.to_dict(), indent=2, ensure_ascii=False))
    print_step(f"Verdict: {verdict.status.value} ({len(verdict.findings)} findings)")
    sys.exit(EXIT_CODES[verdict.status])


if __name__ == "__main__":
    run_check()
