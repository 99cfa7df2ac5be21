from __future__ import annotations

"""Runtime dependency bundle and LangGraph state types.

The orchestrator is dependency-injected.

- ``OrchestratorDeps`` collects the collaborators a turn needs.
- ``_TurnState`` is the state passed between LangGraph nodes for one turn.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, NotRequired, Optional, Required, TypedDict

from ..approval import ApprovalHandler
from ..audit.log import AuditLog
from ..capabilities import CapabilityRegistry
from ..executor.local import LocalExecutor
from ..planning.base import Planner
from ..policy.engine import PolicyEngine
from ..schemas.domain import AgentPlan, ChatMessage, ProposedAction, ToolResult


@dataclass(frozen=True)
class OrchestratorDeps:
    """Dependency bundle for ``AgentOrchestrator``.

    - ``planner`` proposes; ``approvals`` answers approval requests.
    - ``capabilities`` resolves tool names to handlers.
    - ``audit`` receives every turn event before the reply is returned.
    - ``workspace_root`` is called whenever the root is needed, so a root that
      disappears between turns is noticed.
    """

    planner: Planner
    approvals: ApprovalHandler
    capabilities: CapabilityRegistry
    audit: AuditLog
    workspace_root: Callable[[], Optional[Path]]
    executor: LocalExecutor = field(default_factory=LocalExecutor)


class _TurnState(TypedDict):
    """LangGraph state for a single turn.

    Required keys:

    - ``history``: snapshot of the conversation, user message included.
    - ``policy``: the policy engine in force when the turn started.

    Optional keys:

    - ``plan``: the planner's raw plan.
    - ``actions``: plan actions re-annotated with policy risk.
    - ``to_execute``: actions cleared to run, in plan order.
    - ``results``: one ``ToolResult`` per executed action.
    - ``reply``: the assistant text for this turn.
    - ``_finished``: set by any node that ends the turn early.
    """

    history: Required[List[ChatMessage]]
    policy: Required[PolicyEngine]
    plan: NotRequired[AgentPlan]
    actions: NotRequired[List[ProposedAction]]
    to_execute: NotRequired[List[ProposedAction]]
    results: NotRequired[List[ToolResult]]
    reply: NotRequired[str]
    _finished: NotRequired[bool]
