from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Optional

from ..executor.local import SPAWN_FAILED_EXIT_CODE, LocalExecutor
from ..schemas.domain import ToolCall, ToolName, ToolResult
from .base import Capability, CapabilityContext, denied_result, error_result, ok_result

logger = logging.getLogger(__name__)


def _requested_timeout(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return float(value)


@dataclass(frozen=True)
class CommandExecCapability(Capability):
    """
    Policy-gated execution of one allowlisted binary.

    The process runs through ``ctx.executor`` with the workspace root as its
    working directory and the policy's output caps. ``timeoutSeconds`` is
    honoured when it is a positive number, otherwise the policy default
    applies.
    """

    name: ToolName = ToolName.command_exec

    async def execute(self, ctx: CapabilityContext, *, tool_call: ToolCall) -> ToolResult:
        decision = ctx.policy.evaluate(tool_call, ctx.workspace_root)
        if not decision.allowed:
            return denied_result(tool_call, decision.reason)
        if ctx.workspace_root is None:
            return denied_result(tool_call, "Workspace root is not set.")

        args = tool_call.arguments
        exec_path = args.get("executablePath") if isinstance(args, dict) else None
        argv = args.get("args") if isinstance(args, dict) else None
        if not isinstance(exec_path, str) or not isinstance(argv, list):
            return denied_result(tool_call, "command_exec requires executablePath and args.")
        if not all(isinstance(a, str) for a in argv):
            return error_result(tool_call, "arguments.args must be an array of strings.")

        cfg = ctx.policy.config
        timeout = _requested_timeout(args.get("timeoutSeconds"))
        if timeout is None:
            timeout = float(cfg.default_timeout_seconds)

        executor = ctx.executor if ctx.executor is not None else LocalExecutor()
        logger.debug("Running %s with %d args (timeout %ss)", exec_path, len(argv), timeout)
        result = await executor.run(
            exec_path,
            argv,
            working_directory=os.fspath(ctx.workspace_root),
            timeout_seconds=timeout,
            max_stdout_bytes=cfg.max_stdout_bytes,
            max_stderr_bytes=cfg.max_stderr_bytes,
        )
        output = result.to_output()

        if result.did_timeout:
            message = f"Command timed out after {timeout:g}s."
        elif result.exit_code == SPAWN_FAILED_EXIT_CODE and not result.stdout and result.stderr:
            message = f"Command failed to start: {result.stderr}"
        elif result.exit_code != 0:
            message = f"Command exited with code {result.exit_code}."
        else:
            return ok_result(tool_call, output)
        return error_result(tool_call, message, output)
