"""
Persistence helpers: verdict audit log and rule files.
"""

from .audit import AuditRecord, JsonlAuditLogger
from .rule_files import load_rules, save_rules

__all__ = ["AuditRecord", "JsonlAuditLogger", "load_rules", "save_rules"]
