from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List
from uuid import uuid4

from pydantic import Field, field_validator

from .base import BaseSchema, FrozenSchema

MAX_ARGUMENT_STRING_LENGTH = 50_000


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class MessageRole(str, Enum):
    system = "system"
    user = "user"
    assistant = "assistant"


class ToolName(str, Enum):
    file_search = "file_search"
    file_read = "file_read"
    command_exec = "command_exec"


class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


_RISK_ORDER = {RiskLevel.low: 0, RiskLevel.medium: 1, RiskLevel.high: 2}


def risk_rank(risk: RiskLevel) -> int:
    """Position of ``risk`` in the total order low < medium < high."""
    return _RISK_ORDER[risk]


class AuditEventType(str, Enum):
    user_message = "user_message"
    plan_received = "plan_received"
    action_denied = "action_denied"
    approval_requested = "approval_requested"
    approval_replied = "approval_replied"
    action_executed = "action_executed"
    fail_closed = "fail_closed"
    harness_started = "harness_started"
    harness_denial_expected = "harness_denial_expected"


class ChatMessage(FrozenSchema):
    id: str = Field(default_factory=_new_id)
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=_utc_now)


def _longest_string(value: Any) -> int:
    if isinstance(value, str):
        return len(value)
    if isinstance(value, dict):
        return max([_longest_string(k) for k in value] + [_longest_string(v) for v in value.values()], default=0)
    if isinstance(value, (list, tuple)):
        return max((_longest_string(v) for v in value), default=0)
    return 0


class ToolCall(FrozenSchema):
    """A named capability request produced by the planner.

    ``name`` is a free string on purpose: the planner may propose anything and
    only the policy engine decides whether the name is meaningful.
    """

    id: str = Field(default_factory=_new_id)
    name: str
    arguments: Any = Field(default_factory=dict)

    @field_validator("arguments")
    @classmethod
    def _cap_string_lengths(cls, value: Any) -> Any:
        longest = _longest_string(value)
        if longest > MAX_ARGUMENT_STRING_LENGTH:
            raise ValueError(f"argument string length {longest} exceeds max {MAX_ARGUMENT_STRING_LENGTH}")
        return value


class ProposedAction(FrozenSchema):
    """A tool call annotated for review.

    ``risk`` and ``requires_approval`` default to the most restrictive values;
    the orchestrator overwrites them with the policy engine's verdict.
    """

    id: str = Field(default_factory=_new_id)
    title: str
    tool_call: ToolCall
    justification: str = ""
    risk: RiskLevel = RiskLevel.high
    requires_approval: bool = True


class AgentPlan(BaseSchema):
    summary: str = ""
    questions: List[str] = Field(default_factory=list)
    actions: List[ProposedAction] = Field(default_factory=list)


class ToolResult(FrozenSchema):
    tool_call_id: str
    name: str
    output: Any = None
    is_error: bool = False
    error_message: str | None = None


class ApprovalRequest(FrozenSchema):
    id: str = Field(default_factory=_new_id)
    actions: List[ProposedAction]
    previews: Dict[str, str] = Field(default_factory=dict)

    @property
    def action_ids(self) -> set[str]:
        return {a.id for a in self.actions}


class AuditEntry(BaseSchema):
    timestamp: str
    event_type: str = Field(alias="eventType")
    payload: Dict[str, Any] = Field(default_factory=dict)
