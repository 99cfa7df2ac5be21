"""Policy-gated agent core.

This package contains the security kernel of latch-agent: everything between
an untrusted planner and the local filesystem or process table.

Design overview
---------------

- A *planner* (``agent_core.planning``) turns the conversation into an
  ``AgentPlan`` of ``ProposedAction`` items. It only proposes.
- The ``PolicyEngine`` (``agent_core.policy``) decides, deterministically, if
  each tool call may run and at what risk.
- ``AgentOrchestrator`` (``agent_core.runtime``) drives a turn through a
  LangGraph state machine: plan, validate, approve, execute, summarize.
- Capability handlers (``agent_core.capabilities``) re-check policy and act
  strictly inside the workspace root; ``command_exec`` runs through the
  sandboxed ``LocalExecutor``.
- Every step is written to the redacted ``AuditLog`` before the reply is
  returned.

Typical usage
-------------

Most applications should use ``agent_core.factory.build_orchestrator``:

1. Load the policy and settings.
2. Provide an approval handler and a workspace-root provider.
3. Call ``handle_user_message`` once per user turn.
"""

from .errors import AuditLogError, LatchError, WorkspaceError
from .schemas.domain import (
    AgentPlan,
    ChatMessage,
    ProposedAction,
    RiskLevel,
    ToolCall,
    ToolName,
    ToolResult,
)

__all__ = [
    "AgentPlan",
    "AuditLogError",
    "ChatMessage",
    "LatchError",
    "ProposedAction",
    "RiskLevel",
    "ToolCall",
    "ToolName",
    "ToolResult",
    "WorkspaceError",
]
