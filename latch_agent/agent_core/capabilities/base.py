from __future__ import annotations

"""Capability protocol and execution context.

A capability is the concrete execution unit behind a ``ToolCall`` name.

The orchestrator resolves ``ToolCall.name`` through a ``CapabilityRegistry``
and executes the implementation with a ``CapabilityContext``.

Capabilities must:

- call ``ctx.policy.evaluate`` themselves before touching anything; the
  orchestrator's check is not the only gate;
- return a ``ToolResult`` for every outcome, denials and malformed arguments
  included, and never raise for those;
- stay inside ``ctx.workspace_root``.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from ..executor.local import LocalExecutor
from ..policy.engine import PolicyEngine
from ..schemas.domain import ToolCall, ToolName, ToolResult


@dataclass(frozen=True)
class CapabilityContext:
    """Execution context passed to capability implementations.

    Attributes
    ----------
    policy:
        The ``PolicyEngine`` in force for this turn.
    workspace_root:
        The validated workspace root, or None when unset.
    executor:
        The process executor used by ``command_exec``.
    """

    policy: PolicyEngine
    workspace_root: Optional[str | os.PathLike[str]]
    executor: Optional[LocalExecutor] = None


class Capability(Protocol):
    """Protocol for capability implementations."""

    name: ToolName

    async def execute(self, ctx: CapabilityContext, *, tool_call: ToolCall) -> ToolResult: ...


def denied_result(tool_call: ToolCall, reason: str) -> ToolResult:
    return ToolResult(
        tool_call_id=tool_call.id,
        name=tool_call.name,
        output={"denied": True, "reason": reason},
        is_error=True,
        error_message=reason,
    )


def error_result(tool_call: ToolCall, message: str, output: Optional[Dict[str, Any]] = None) -> ToolResult:
    return ToolResult(
        tool_call_id=tool_call.id,
        name=tool_call.name,
        output=output if output is not None else {"error": message},
        is_error=True,
        error_message=message,
    )


def ok_result(tool_call: ToolCall, output: Any) -> ToolResult:
    return ToolResult(tool_call_id=tool_call.id, name=tool_call.name, output=output)
