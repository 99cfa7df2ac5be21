from __future__ import annotations

"""Deterministic keyword planner.

``RuleBasedPlanner`` looks only at the most recent user message and maps it to
at most one action:

- ``find`` / ``search`` -> ``file_search``. Recognized modifiers:
  ``modified after YYYY-MM-DD``, ``modified before YYYY-MM-DD``,
  ``query <term>`` (quotes allowed) and ``limit <n>``.
- ``read`` -> ``file_read``: ``read [path|file] <path>``.
- ``run`` / ``execute`` -> ``command_exec``: the rest of the message is split
  like a shell would (no expansion). A bare program name becomes an absolute
  path; an empty command runs ``ls``.

Keywords match whole words only, case-insensitively. The first keyword in the
message picks the intent. Whenever the message is ambiguous (no keyword, both
find and read, a malformed date, no file to read, unbalanced quotes) the plan
carries a clarifying question and no actions.

No network, no randomness, no guessing.
"""

import logging
import re
import shlex
from datetime import date
from typing import Dict, List, Optional, Sequence

from ..schemas.domain import AgentPlan, ChatMessage, ProposedAction, RiskLevel, ToolCall, ToolName
from .base import last_user_message

logger = logging.getLogger(__name__)

_KEYWORD_RE = re.compile(r"\b(find|search|read|run|execute)\b", re.IGNORECASE)
_FIND_RE = re.compile(r"\b(find|search)\b", re.IGNORECASE)
_READ_RE = re.compile(r"\bread\b", re.IGNORECASE)
_AFTER_RE = re.compile(r"\bmodified\s+after\s+(\S+)", re.IGNORECASE)
_BEFORE_RE = re.compile(r"\bmodified\s+before\s+(\S+)", re.IGNORECASE)
_QUERY_RE = re.compile(r"\bquery\s+(?:\"([^\"]*)\"|'([^']*)'|(\S+))", re.IGNORECASE)
_LIMIT_RE = re.compile(r"\blimit\s+(\d+)\b", re.IGNORECASE)
_READ_TARGET_RE = re.compile(
    r"\bread\s+(?:(?:path|file)\s+)?(?:\"([^\"]+)\"|'([^']+)'|(\S+))",
    re.IGNORECASE,
)
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_INTENT_QUESTION = "What would you like to do? (find/search files, read a file, or run a command)"
_AMBIGUOUS_QUESTION = "Please choose one: find/search files or read a file."


def _clarify(summary: str, question: str) -> AgentPlan:
    return AgentPlan(summary=summary, questions=[question], actions=[])


def _first_group(m: re.Match[str]) -> str:
    return next(g for g in m.groups() if g is not None)


def _parse_date(raw: str) -> Optional[str]:
    if not _DATE_RE.match(raw):
        return None
    try:
        return date.fromisoformat(raw).isoformat()
    except ValueError:
        return None


class RuleBasedPlanner:
    """Keyword planner used by the demo harness and whenever no model is configured.

    Args:
        executables: Optional mapping of bare program names to absolute
            paths (``{"head": "/usr/bin/head"}``). Names not in the mapping
            resolve to ``/bin/<name>``.
    """

    def __init__(self, *, executables: Optional[Dict[str, str]] = None) -> None:
        self._executables = dict(executables or {})

    async def plan(self, history: Sequence[ChatMessage]) -> AgentPlan:
        msg = last_user_message(history)
        text = msg.content.strip() if msg is not None else ""

        first = _KEYWORD_RE.search(text)
        if first is None:
            return _clarify("No matching intent.", _INTENT_QUESTION)

        keyword = first.group(1).lower()
        if keyword in ("run", "execute"):
            return self._plan_command(text[first.end():])

        if _FIND_RE.search(text) and _READ_RE.search(text):
            return _clarify("Ambiguous request.", _AMBIGUOUS_QUESTION)
        if keyword in ("find", "search"):
            return self._plan_search(text)
        return self._plan_read(text)

    def _plan_search(self, text: str) -> AgentPlan:
        arguments: Dict[str, object] = {}
        for regex, key, suffix in ((_AFTER_RE, "modifiedAfter", ""), (_BEFORE_RE, "modifiedBefore", "T23:59:59Z")):
            m = regex.search(text)
            if m is None:
                continue
            parsed = _parse_date(m.group(1))
            if parsed is None:
                return _clarify(
                    "Unrecognized date.",
                    f"Could not understand the date '{m.group(1)}'. Please use YYYY-MM-DD.",
                )
            arguments[key] = parsed + suffix

        q = _QUERY_RE.search(text)
        if q is not None:
            arguments["query"] = _first_group(q)
        lim = _LIMIT_RE.search(text)
        if lim is not None:
            arguments["limit"] = int(lim.group(1))

        action = ProposedAction(
            title="Search files",
            tool_call=ToolCall(name=ToolName.file_search.value, arguments=arguments),
            justification="User asked to find or search.",
            risk=RiskLevel.low,
            requires_approval=False,
        )
        return AgentPlan(summary="Single action plan.", actions=[action])

    def _plan_read(self, text: str) -> AgentPlan:
        m = _READ_TARGET_RE.search(text)
        path = _first_group(m) if m is not None else ""
        if not path or path.lower() in ("path", "file"):
            return _clarify("Missing file.", "Which file should I read? (e.g. read path README.md)")

        action = ProposedAction(
            title=f"Read {path}",
            tool_call=ToolCall(name=ToolName.file_read.value, arguments={"path": path}),
            justification="User asked to read a file.",
            risk=RiskLevel.low,
            requires_approval=False,
        )
        return AgentPlan(summary="Single action plan.", actions=[action])

    def _plan_command(self, rest: str) -> AgentPlan:
        try:
            argv: List[str] = shlex.split(rest)
        except ValueError as e:
            logger.debug("Could not split command %r: %s", rest, e)
            return _clarify("Unparseable command.", "The command has unbalanced quotes. Please rephrase it.")
        if not argv:
            argv = ["ls"]

        program, args = argv[0], argv[1:]
        executable = program if program.startswith("/") else self._executables.get(program, f"/bin/{program}")

        action = ProposedAction(
            title=f"Run {program}",
            tool_call=ToolCall(
                name=ToolName.command_exec.value,
                arguments={"executablePath": executable, "args": args},
            ),
            justification="User asked to run or execute.",
            risk=RiskLevel.medium,
            requires_approval=True,
        )
        return AgentPlan(summary="Single action plan.", actions=[action])
