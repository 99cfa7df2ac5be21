"""Audit trail for every turn: user messages, plans, denials, approvals and executions."""

from .log import AuditLog, redact_value

__all__ = ["AuditLog", "redact_value"]
