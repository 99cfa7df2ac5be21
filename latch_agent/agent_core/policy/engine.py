from __future__ import annotations

"""Deterministic allow/deny decisions for proposed tool calls.

``PolicyEngine`` is the only authority on whether a ``ToolCall`` may run. The
orchestrator asks it once while validating a plan and every capability handler
asks it again right before acting, so a handler invoked directly (or with
arguments swapped after planning) is still gated.

Rules, first failure wins:

- the tool name must be listed in ``allowedTools``;
- ``file_search`` is always low risk;
- ``file_read`` needs a workspace root and a string ``path`` contained in it;
- ``command_exec`` needs an allowlisted absolute ``executablePath``, an ``args``
  list of strings, and no blocked token anywhere in the command line. It is
  medium risk at best, so it always goes through approval;
- any other name is denied.

Evaluation does no I/O beyond path resolution and never mutates state, so a
single engine can be shared by concurrent callers.
"""

import os
from typing import Any, Optional

from ..schemas.domain import RiskLevel, ToolCall, ToolName
from ..workspace import is_path_under_root, resolve_candidate
from .models import PolicyConfig, PolicyDecision

PREVIEW_MAX_CHARS = 200
PREVIEW_REDACT_OVER = 80
REDACTED = "[REDACTED]"


class PolicyEngine:
    """Evaluate tool calls against a frozen ``PolicyConfig``."""

    def __init__(self, config: PolicyConfig) -> None:
        self._cfg = config

    @property
    def config(self) -> PolicyConfig:
        """Return the underlying configuration object."""
        return self._cfg

    def evaluate(self, tool_call: ToolCall, workspace_root: Optional[str | os.PathLike[str]]) -> PolicyDecision:
        """
        Decide whether ``tool_call`` may run.

        Args:
            tool_call: The call to evaluate. Its name and arguments are untrusted.
            workspace_root: The validated workspace root, or None when unset.

        Returns:
            A PolicyDecision. Denials always carry ``RiskLevel.high`` and a
            human-readable reason.
        """
        name = tool_call.name
        if name not in self._cfg.allowed_tools:
            return PolicyDecision.deny(f"Tool '{name}' is not in allowedTools.")

        if name == ToolName.file_search.value:
            return PolicyDecision(allowed=True, risk=RiskLevel.low, reason="")
        if name == ToolName.file_read.value:
            return self._evaluate_file_read(tool_call.arguments, workspace_root)
        if name == ToolName.command_exec.value:
            return self._evaluate_command_exec(tool_call.arguments)
        return PolicyDecision.deny(f"Tool '{name}' is not allowed.")

    def _evaluate_file_read(self, arguments: Any, workspace_root: Optional[str | os.PathLike[str]]) -> PolicyDecision:
        if workspace_root is None:
            return PolicyDecision.deny("Workspace root is not set.")
        path = arguments.get("path") if isinstance(arguments, dict) else None
        if not isinstance(path, str):
            return PolicyDecision.deny("file_read requires arguments.path (string).")
        if not is_path_under_root(resolve_candidate(path, workspace_root), workspace_root):
            return PolicyDecision.deny("Path is outside workspace root.")
        return PolicyDecision(allowed=True, risk=RiskLevel.low, reason="")

    def _evaluate_command_exec(self, arguments: Any) -> PolicyDecision:
        if not isinstance(arguments, dict):
            return PolicyDecision.deny("command_exec requires arguments.executablePath (absolute path string).")
        exec_path = arguments.get("executablePath")
        if not isinstance(exec_path, str) or not exec_path.startswith("/"):
            return PolicyDecision.deny("command_exec requires arguments.executablePath (absolute path string).")
        if exec_path not in self._cfg.allowed_executables:
            return PolicyDecision.deny(f"Executable '{exec_path}' is not in allowedExecutables.")
        if "args" not in arguments:
            return PolicyDecision.deny("command_exec requires arguments.args (array).")
        args = arguments["args"]
        if not isinstance(args, list):
            return PolicyDecision.deny("arguments.args must be an array of strings.")
        if not all(isinstance(a, str) for a in args):
            return PolicyDecision.deny("arguments.args must contain only strings.")

        tokens = [exec_path, *args]
        for blocked in self._cfg.blocked_tokens:
            if any(blocked in t for t in tokens):
                return PolicyDecision.deny(f"Argument contains blocked token '{blocked}'.")
        return PolicyDecision(allowed=True, risk=RiskLevel.medium, reason="")

    def sanitized_preview(self, tool_call: ToolCall) -> str:
        """
        One-line preview of a tool call for approval prompts.

        Keys are sorted, strings longer than 80 characters are replaced by
        ``[REDACTED]``, lists and objects are summarized by size. The result
        is capped at 200 characters.
        """
        parts = [tool_call.name]
        if isinstance(tool_call.arguments, dict):
            for key in sorted(tool_call.arguments):
                parts.append(f"{key}={_describe(tool_call.arguments[key])}")
        line = " ".join(parts)
        if len(line) <= PREVIEW_MAX_CHARS:
            return line
        return line[: PREVIEW_MAX_CHARS - 3] + "..."


def _describe(value: Any) -> str:
    if isinstance(value, str):
        return REDACTED if len(value) > PREVIEW_REDACT_OVER else value
    if isinstance(value, list):
        return f"[{len(value)} items]"
    if isinstance(value, dict):
        return f"[{len(value)} keys]"
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)

