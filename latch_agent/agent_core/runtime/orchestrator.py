from __future__ import annotations

"""LangGraph turn orchestrator.

``AgentOrchestrator`` drives one user turn through a LangGraph state machine:

    plan -> validate -> (approve)? -> execute -> summarize -> finish

Any node may end the turn early by setting ``_finished`` and a ``reply``.

Turn model
----------

1. The user message is appended to history and audited.
2. The planner sees the whole history. Questions stop the turn; so does an
   empty plan.
3. Validation re-evaluates every action with the ``PolicyEngine``. Too many
   actions, any denial, or any high-risk action denies the whole turn.
4. Medium-risk actions go to the approval collaborator in one request.
   Unapproved ones are dropped; low-risk actions always proceed.
5. The workspace root is re-read, then actions run one at a time in plan
   order through their capability handler.
6. The reply summarizes successes or reports the first error.

Failure model
-------------

Denials are terminal for the turn and never retried. Faults (planner or
approval errors, a missing root, an unknown tool, a handler that raises) are
audited as ``fail_closed``. If the audit log itself cannot be written the turn
stops with a generic message; nothing is reported as done without its audit
line.
"""

import asyncio
import logging
from typing import Any, Dict, List, Sequence

from langgraph.graph import END, StateGraph

from ..capabilities.base import CapabilityContext
from ..errors import AuditLogError
from ..policy.engine import PolicyEngine
from ..schemas.domain import (
    AgentPlan,
    ApprovalRequest,
    AuditEventType,
    ChatMessage,
    MessageRole,
    ProposedAction,
    RiskLevel,
    ToolResult,
)
from .models import OrchestratorDeps, _TurnState

logger = logging.getLogger(__name__)

HIGH_RISK_REASON = "High-risk actions are blocked in MVP."
AUDIT_FAILURE_REPLY = "This request was stopped because the audit log could not be written. No further actions were run."
INTERNAL_FAILURE_REPLY = "This request was stopped because of an internal error. No further actions were run."


class AgentOrchestrator:
    """Run user turns with policy enforcement, approval gating and auditing.

    The orchestrator owns the conversation history. It delegates decisions to
    ``PolicyEngine`` and work to the capability handlers registered in
    ``OrchestratorDeps.capabilities``.
    """

    def __init__(self, *, policy: PolicyEngine, deps: OrchestratorDeps) -> None:
        """
        Initialize the orchestrator.

        Args:
            policy: The policy engine used for validation and by handlers.
            deps: Planner, approval, capability, audit and workspace collaborators.
        """
        self._policy = policy
        self._deps = deps
        self._history: List[ChatMessage] = []
        self._turn_lock = asyncio.Lock()
        self._graph = self._build_graph()

    @property
    def history(self) -> Sequence[ChatMessage]:
        return tuple(self._history)

    @property
    def policy(self) -> PolicyEngine:
        return self._policy

    def replace_policy(self, policy: PolicyEngine) -> None:
        """Use ``policy`` from the next turn on. A turn in progress keeps its engine."""
        self._policy = policy

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_TurnState)
        g.add_node("plan", self._node_plan)
        g.add_node("validate", self._node_validate)
        g.add_node("approve", self._node_approve)
        g.add_node("execute", self._node_execute)
        g.add_node("summarize", self._node_summarize)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("plan")
        g.add_conditional_edges("plan", self._route_next, {"finish": "finish", "continue": "validate"})
        g.add_conditional_edges(
            "validate",
            self._route_after_validate,
            {"finish": "finish", "approve": "approve", "execute": "execute"},
        )
        g.add_conditional_edges("approve", self._route_next, {"finish": "finish", "continue": "execute"})
        g.add_conditional_edges("execute", self._route_next, {"finish": "finish", "continue": "summarize"})
        g.add_edge("summarize", "finish")
        g.add_edge("finish", END)
        return g.compile()

    async def handle_user_message(self, text: str) -> ChatMessage:
        """
        Process one user turn and return the assistant reply.

        Turns are serialized: a second call waits until the first has replied.
        """
        async with self._turn_lock:
            user_msg = ChatMessage(role=MessageRole.user, content=text)
            self._history.append(user_msg)
            state: _TurnState = {"history": list(self._history), "policy": self._policy}

            try:
                self._audit(AuditEventType.user_message, {"messageId": user_msg.id, "length": len(text)})
                final = await self._graph.ainvoke(state)
                reply = str(final.get("reply") or INTERNAL_FAILURE_REPLY)
            except AuditLogError as e:
                logger.error("Audit log write failed; failing turn closed: %s", e)
                reply = AUDIT_FAILURE_REPLY
                self._try_audit_fail_closed({"stage": "audit", "error": type(e).__name__})
            except Exception as e:
                logger.exception("Unexpected error during turn; failing closed")
                reply = INTERNAL_FAILURE_REPLY
                self._try_audit_fail_closed({"stage": "turn", "error": type(e).__name__})

            assistant_msg = ChatMessage(role=MessageRole.assistant, content=reply)
            self._history.append(assistant_msg)
            return assistant_msg

    def _audit(self, event_type: AuditEventType, payload: Dict[str, Any]) -> None:
        self._deps.audit.log(event_type, payload)

    def _try_audit_fail_closed(self, payload: Dict[str, Any]) -> None:
        try:
            self._audit(AuditEventType.fail_closed, payload)
        except AuditLogError as e:
            logger.error("Could not record fail_closed entry: %s", e)

    def _finish(self, state: _TurnState, reply: str) -> _TurnState:
        state["reply"] = reply
        state["_finished"] = True
        return state

    def _route_next(self, state: _TurnState) -> str:
        return "finish" if state.get("_finished") else "continue"

    def _route_after_validate(self, state: _TurnState) -> str:
        if state.get("_finished"):
            return "finish"
        if any(a.requires_approval for a in state.get("actions") or []):
            return "approve"
        return "execute"

    async def _node_plan(self, state: _TurnState) -> _TurnState:
        """Ask the planner for a proposal over the full history."""
        try:
            plan = await self._deps.planner.plan(list(state["history"]))
        except Exception as e:
            logger.warning("Planner failed: %s", e)
            self._audit(AuditEventType.fail_closed, {"stage": "plan", "error": type(e).__name__})
            return self._finish(state, "The planner failed, so no actions were run. Please try again.")
        if not isinstance(plan, AgentPlan):
            self._audit(AuditEventType.fail_closed, {"stage": "plan", "error": "planner returned a non-plan value"})
            return self._finish(state, "The planner returned an invalid plan, so no actions were run.")

        self._audit(
            AuditEventType.plan_received,
            {"summary": plan.summary, "questionsCount": len(plan.questions), "actionsCount": len(plan.actions)},
        )
        state["plan"] = plan
        if plan.questions:
            return self._finish(state, "Clarification needed: " + " ".join(plan.questions))
        if not plan.actions:
            return self._finish(state, "No actions to run.")
        return state

    async def _node_validate(self, state: _TurnState) -> _TurnState:
        """Re-evaluate every proposed action; any denial ends the turn."""
        policy = state["policy"]
        plan = state["plan"]
        limit = policy.config.max_actions_per_turn
        if len(plan.actions) > limit:
            reason = f"The plan has {len(plan.actions)} actions but at most {limit} are allowed per turn."
            self._audit(
                AuditEventType.action_denied,
                {"reason": reason, "actionsCount": len(plan.actions), "maxActionsPerTurn": limit},
            )
            return self._finish(state, f"Denied: {reason}")

        root = self._deps.workspace_root()
        annotated: List[ProposedAction] = []
        for action in plan.actions:
            decision = policy.evaluate(action.tool_call, root)
            reason = decision.reason if not decision.allowed else HIGH_RISK_REASON
            if decision.blocking:
                self._audit(
                    AuditEventType.action_denied,
                    {
                        "actionId": action.id,
                        "toolCallId": action.tool_call.id,
                        "name": action.tool_call.name,
                        "reason": reason,
                    },
                )
                return self._finish(state, f"Denied: {reason}")
            annotated.append(
                action.model_copy(update={"risk": decision.risk, "requires_approval": decision.requires_approval})
            )

        state["actions"] = annotated
        state["to_execute"] = list(annotated)
        return state

    async def _node_approve(self, state: _TurnState) -> _TurnState:
        """Send medium-risk actions for approval and keep only what came back approved."""
        policy = state["policy"]
        actions = state["actions"]
        pending = [a for a in actions if a.requires_approval]
        request = ApprovalRequest(
            actions=pending,
            previews={a.id: policy.sanitized_preview(a.tool_call) for a in pending},
        )
        self._audit(
            AuditEventType.approval_requested,
            {"requestId": request.id, "actionIds": [a.id for a in pending], "previews": request.previews},
        )
        try:
            reply = await self._deps.approvals.request_approval(request)
            approved = set(reply) & request.action_ids
        except Exception as e:
            logger.warning("Approval collaborator failed: %s", e)
            self._audit(AuditEventType.fail_closed, {"stage": "approval", "requestId": request.id, "error": type(e).__name__})
            return self._finish(state, "The approval step failed, so no actions were run.")

        self._audit(
            AuditEventType.approval_replied,
            {"requestId": request.id, "approvedIds": sorted(approved)},
        )
        to_execute = [a for a in actions if not a.requires_approval or a.id in approved]
        if not to_execute:
            return self._finish(state, "No actions executed: none of the proposed actions were approved.")
        state["to_execute"] = to_execute
        return state

    async def _node_execute(self, state: _TurnState) -> _TurnState:
        """Run cleared actions sequentially in plan order."""
        root = self._deps.workspace_root()
        if root is None:
            self._audit(AuditEventType.fail_closed, {"stage": "execute", "reason": "workspace root missing or invalid"})
            return self._finish(state, "No actions were run: the workspace folder is not set or no longer exists.")

        ctx = CapabilityContext(policy=state["policy"], workspace_root=root, executor=self._deps.executor)
        results: List[ToolResult] = []
        state["results"] = results
        for action in state["to_execute"]:
            name = action.tool_call.name
            if not self._deps.capabilities.has(name):
                self._audit(
                    AuditEventType.fail_closed,
                    {"stage": "execute", "reason": "unknown tool", "name": name, "actionId": action.id},
                )
                return self._finish(state, f"Stopped: there is no handler for tool '{name}'.")

            cap = self._deps.capabilities.get(name)
            try:
                result = await cap.execute(ctx, tool_call=action.tool_call)
            except Exception as e:
                logger.exception("Capability %s raised", name)
                self._audit(
                    AuditEventType.fail_closed,
                    {"stage": "execute", "name": name, "actionId": action.id, "error": type(e).__name__},
                )
                return self._finish(state, f"Stopped: the {name} action failed unexpectedly.")

            self._audit(
                AuditEventType.action_executed,
                {"toolCallId": result.tool_call_id, "name": result.name, "isError": result.is_error},
            )
            results.append(result)
        return state

    async def _node_summarize(self, state: _TurnState) -> _TurnState:
        results = state.get("results") or []
        state["reply"] = summarize_results(results)
        return state

    async def _node_finish(self, state: _TurnState) -> _TurnState:
        return state


def _detail_line(result: ToolResult) -> str:
    out = result.output if isinstance(result.output, dict) else {}
    if result.name == "file_search":
        return f"- file_search: {out.get('count', 0)} result(s)"
    if result.name == "file_read":
        suffix = " (truncated)" if out.get("truncated") else ""
        return f"- file_read {out.get('path', '')}: {out.get('bytesRead', 0)} bytes read{suffix}"
    if result.name == "command_exec":
        suffix = " (output truncated)" if out.get("stdoutTruncated") or out.get("stderrTruncated") else ""
        return f"- command_exec: exit code {out.get('exitCode')}{suffix}"
    return f"- {result.name}: done"


def summarize_results(results: Sequence[ToolResult]) -> str:
    """Build the reply for executed results: first error, or one line per success."""
    errors = [r for r in results if r.is_error]
    if errors:
        first = errors[0].error_message or "unknown error"
        return f"Completed with errors ({len(errors)}/{len(results)}). First error: {first}"
    lines = [f"Completed {len(results)} action(s) successfully."]
    lines.extend(_detail_line(r) for r in results)
    return "\n".join(lines)
