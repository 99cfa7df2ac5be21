"""Schemas and DTOs for the agent core."""

from .domain import (
    AgentPlan,
    ApprovalRequest,
    AuditEntry,
    AuditEventType,
    ChatMessage,
    MessageRole,
    ProposedAction,
    RiskLevel,
    ToolCall,
    ToolName,
    ToolResult,
    risk_rank,
)

__all__ = [
    "AgentPlan",
    "ApprovalRequest",
    "AuditEntry",
    "AuditEventType",
    "ChatMessage",
    "MessageRole",
    "ProposedAction",
    "RiskLevel",
    "ToolCall",
    "ToolName",
    "ToolResult",
    "risk_rank",
]
