"""
Configuration models for the compliance pipeline.
"""

from .models import ReviewerConfig, audit_log_path_from_env, rules_path_from_env

__all__ = ["ReviewerConfig", "audit_log_path_from_env", "rules_path_from_env"]
