from __future__ import annotations

import asyncio
import base64
import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Dict

from ..schemas.domain import ToolCall, ToolName, ToolResult
from ..workspace import is_path_under_root, resolve_candidate
from .base import Capability, CapabilityContext, denied_result, ok_result

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 50_000
HARD_CAP_BYTES = 200_000


def effective_cap(requested: Any) -> int:
    """``min(200_000, maxBytes or 50_000)``; negative requests read nothing."""
    if isinstance(requested, bool) or not isinstance(requested, (int, float)):
        return DEFAULT_MAX_BYTES
    if isinstance(requested, float) and not math.isfinite(requested):
        return HARD_CAP_BYTES if requested > 0 else 0
    return min(HARD_CAP_BYTES, max(0, int(requested)))


class _ReadDenied(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def read_bounded(path: str, root: str, cap: int) -> Dict[str, Any]:
    """Read at most ``cap`` bytes of ``path`` after re-checking it is a contained regular file."""
    if not os.path.exists(path):
        raise _ReadDenied("File does not exist.")
    if os.path.isdir(path):
        raise _ReadDenied("Path is a directory.")
    if not os.path.isfile(path):
        raise _ReadDenied("Path is not a regular file.")
    if not is_path_under_root(path, root):
        raise _ReadDenied("Path is outside workspace root.")

    try:
        with open(path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            data = f.read(cap)
    except OSError as e:
        logger.info("Could not open %s: %s", path, e)
        raise _ReadDenied("Could not open file for reading.") from e

    is_binary = b"\x00" in data
    content = ""
    if not is_binary:
        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError:
            is_binary = True
    if is_binary:
        content = base64.b64encode(data).decode("ascii")

    return {
        "path": path,
        "content": content,
        "isBinary": is_binary,
        "truncated": size > cap,
        "bytesRead": len(data),
        "fileSizeBytes": size,
    }


@dataclass(frozen=True)
class FileReadCapability(Capability):
    """
    Read-only, bounded file read inside the workspace.

    Text is returned as-is. Content containing a NUL byte or that is not
    valid UTF-8 is treated as binary and returned base64-encoded.
    """

    name: ToolName = ToolName.file_read

    async def execute(self, ctx: CapabilityContext, *, tool_call: ToolCall) -> ToolResult:
        decision = ctx.policy.evaluate(tool_call, ctx.workspace_root)
        if not decision.allowed:
            return denied_result(tool_call, decision.reason)
        args = tool_call.arguments
        if ctx.workspace_root is None or not isinstance(args, dict) or not isinstance(args.get("path"), str):
            return denied_result(tool_call, "file_read requires arguments.path (string).")

        root = os.fspath(ctx.workspace_root)
        path = os.fspath(resolve_candidate(args["path"], root))
        cap = effective_cap(args.get("maxBytes"))
        try:
            output = await asyncio.to_thread(read_bounded, path, root, cap)
        except _ReadDenied as e:
            return denied_result(tool_call, e.reason)
        return ok_result(tool_call, output)
