from __future__ import annotations

import asyncio
import logging
import math
import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..schemas.domain import ToolCall, ToolName, ToolResult
from ..workspace import is_path_under_root
from .base import Capability, CapabilityContext, denied_result, error_result, ok_result

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _parse_when(value: Any, field: str) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field} must be an ISO-8601 date string.")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{field} is not a valid ISO-8601 date.") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _clamp_limit(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_LIMIT
    if isinstance(value, float) and not math.isfinite(value):
        return DEFAULT_LIMIT
    return min(MAX_LIMIT, max(0, int(value)))


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def search_workspace(
    root: str,
    *,
    query: Optional[str] = None,
    modified_after: Optional[datetime] = None,
    modified_before: Optional[datetime] = None,
    limit: int = DEFAULT_LIMIT,
) -> List[Dict[str, Any]]:
    """
    Enumerate regular files under ``root`` by metadata only.

    Hidden files and directories are skipped. Symlinked directories are
    followed only while their real path stays inside ``root``; a subtree that
    escapes is pruned, and each real directory is visited once.

    Results come in sorted walk order and stop at ``limit``.
    """
    results: List[Dict[str, Any]] = []
    if limit <= 0:
        return results

    visited = {os.path.realpath(root)}
    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        kept = []
        for d in sorted(dirnames):
            if d.startswith("."):
                continue
            real = os.path.realpath(os.path.join(dirpath, d))
            if real in visited or not is_path_under_root(real, root):
                continue
            visited.add(real)
            kept.append(d)
        dirnames[:] = kept

        for name in sorted(filenames):
            if name.startswith("."):
                continue
            full = os.path.join(dirpath, name)
            if not is_path_under_root(full, root):
                continue
            try:
                st = os.stat(full)
            except OSError:
                continue
            if not stat.S_ISREG(st.st_mode):
                continue

            mtime = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
            if modified_after is not None and mtime < modified_after:
                continue
            if modified_before is not None and mtime > modified_before:
                continue
            if query and query not in full and query not in name:
                continue

            results.append(
                {
                    "path": full,
                    "filename": name,
                    "lastModified": _iso(st.st_mtime),
                    "fileSizeBytes": st.st_size,
                }
            )
            if len(results) >= limit:
                return results
    return results


@dataclass(frozen=True)
class FileSearchCapability(Capability):
    """
    Metadata-only search of the workspace.

    Never opens file contents.
    """

    name: ToolName = ToolName.file_search

    async def execute(self, ctx: CapabilityContext, *, tool_call: ToolCall) -> ToolResult:
        """
        Execute the search.

        Args:
            ctx: The execution context.
            tool_call: ``file_search`` call. Arguments (all optional):
                - query (str): substring matched against path or filename.
                - modifiedAfter / modifiedBefore (str): ISO-8601 date or
                  datetime; naive values are UTC.
                - limit (int): default 20, clamped to [0, 100].

        Returns:
            ToolResult with ``{"results": [...], "count": n, "limit": n}``.
        """
        decision = ctx.policy.evaluate(tool_call, ctx.workspace_root)
        if not decision.allowed:
            return denied_result(tool_call, decision.reason)
        if ctx.workspace_root is None:
            return denied_result(tool_call, "Workspace root is not set.")

        args = tool_call.arguments if tool_call.arguments is not None else {}
        if not isinstance(args, dict):
            return error_result(tool_call, "file_search arguments must be an object.")

        query = args.get("query")
        if query is not None and not isinstance(query, str):
            return error_result(tool_call, "query must be a string.")
        try:
            after = _parse_when(args.get("modifiedAfter"), "modifiedAfter")
            before = _parse_when(args.get("modifiedBefore"), "modifiedBefore")
        except ValueError as e:
            return error_result(tool_call, str(e))
        limit = _clamp_limit(args.get("limit", DEFAULT_LIMIT))

        root = os.fspath(ctx.workspace_root)
        try:
            results = await asyncio.to_thread(
                search_workspace,
                root,
                query=query,
                modified_after=after,
                modified_before=before,
                limit=limit,
            )
        except OSError as e:
            logger.warning("Workspace enumeration failed under %s: %s", root, e)
            return error_result(tool_call, "Could not enumerate workspace.")

        return ok_result(tool_call, {"results": results, "count": len(results), "limit": limit})
