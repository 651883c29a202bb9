"""
Reviewer and runtime configuration resolved from environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger("copy_compliance.config")

DEFAULT_REVIEWER_MODEL = "claude-opus-4-5-20251101"
DEFAULT_API_MODE = "anthropic"
DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_BACKOFF_SECONDS = 0.5

_AUTH_ENV_BY_MODE = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "ollama": "OLLAMA_BEARER",
    "ollama_chat": "OLLAMA_BEARER",
}


def _int_from_env(*names: str, default: int) -> int:
    for name in names:
        raw = os.getenv(name)
        if not raw:
            continue
        try:
            return int(raw)
        except ValueError:
            logger.warning("Invalid integer for %s: %r. Using %s.", name, raw, default)
    return default


def _float_from_env(*names: str, default: float) -> float:
    for name in names:
        raw = os.getenv(name)
        if not raw:
            continue
        try:
            return float(raw)
        except ValueError:
            logger.warning("Invalid number for %s: %r. Using %s.", name, raw, default)
    return default


@dataclass(slots=True)
class ReviewerConfig:
    """Connection and retry settings for the semantic reviewer."""

    model: str = DEFAULT_REVIEWER_MODEL
    api_mode: str = DEFAULT_API_MODE
    endpoint: Optional[str] = None
    auth_env_var: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS
    temperature: float = 0.0
    max_tokens: int = 2000

    @classmethod
    def from_env(cls) -> "ReviewerConfig":
        api_mode = (os.getenv("COMPLIANCE_REVIEWER_MODE") or DEFAULT_API_MODE).strip().lower()
        return cls(
            model=(os.getenv("COMPLIANCE_REVIEWER_MODEL") or DEFAULT_REVIEWER_MODEL).strip(),
            api_mode=api_mode,
            endpoint=os.getenv("COMPLIANCE_REVIEWER_ENDPOINT") or None,
            auth_env_var=os.getenv("COMPLIANCE_REVIEWER_AUTH_ENV_VAR") or _AUTH_ENV_BY_MODE.get(api_mode),
            timeout=_float_from_env("COMPLIANCE_REVIEWER_TIMEOUT", default=DEFAULT_TIMEOUT_SECONDS),
            max_retries=max(0, _int_from_env("COMPLIANCE_REVIEWER_MAX_RETRIES", default=DEFAULT_MAX_RETRIES)),
            backoff_seconds=max(
                0.0, _float_from_env("COMPLIANCE_REVIEWER_BACKOFF", default=DEFAULT_BACKOFF_SECONDS)
            ),
        )

    def resolve_auth_token(self) -> Optional[str]:
        if not self.auth_env_var:
            return None
        return os.getenv(self.auth_env_var)


def rules_path_from_env() -> Optional[Path]:
    raw = os.getenv("COMPLIANCE_RULES_PATH")
    return Path(raw) if raw else None


def audit_log_path_from_env() -> Optional[Path]:
    raw = os.getenv("COMPLIANCE_AUDIT_LOG")
    return Path(raw) if raw else None


__all__ = [
    "ReviewerConfig",
    "audit_log_path_from_env",
    "rules_path_from_env",
]
