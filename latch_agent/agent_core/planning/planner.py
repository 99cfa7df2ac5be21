from __future__ import annotations

"""Model-backed planning.

``ModelPlanner`` asks a language model (through Pydantic AI) for a structured
``PlanDraft`` and converts it into an ``AgentPlan``.

The planner is constrained on purpose:

- It does not execute tools or capabilities.
- It does not decide risk or approvals; every converted action starts at
  ``high`` / ``requires_approval=True`` and the orchestrator re-annotates it
  from the policy engine.
- It only emits proposals.

Model or validation errors propagate to the orchestrator, which fails the turn
closed.
"""

import logging
from typing import Any, Dict, List, Sequence

from pydantic import Field
from pydantic_ai import Agent

from ..schemas.base import BaseSchema
from ..schemas.domain import AgentPlan, ChatMessage, ProposedAction, ToolCall

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You plan actions for a local assistant that can only use three tools:\n"
    "- file_search: arguments {query?, modifiedAfter?, modifiedBefore?, limit?} (metadata only)\n"
    "- file_read: arguments {path, maxBytes?} (path relative to the workspace root)\n"
    "- command_exec: arguments {executablePath, args, timeoutSeconds?} "
    "(absolute executable path, args as a list of strings, no shell)\n"
    "Propose the fewest actions that satisfy the request. "
    "If the request is ambiguous, return a clarifying question and no actions."
)


class ActionDraft(BaseSchema):
    title: str = Field(..., description="Short human-readable title")
    tool: str = Field(..., description="One of file_search, file_read, command_exec")
    arguments: Dict[str, Any] = Field(default_factory=dict)
    justification: str = ""


class PlanDraft(BaseSchema):
    summary: str = ""
    questions: List[str] = Field(default_factory=list)
    actions: List[ActionDraft] = Field(default_factory=list)


def _render_history(history: Sequence[ChatMessage]) -> str:
    return "\n".join(f"{m.role.value}: {m.content}" for m in history)


def draft_to_plan(draft: PlanDraft) -> AgentPlan:
    """Convert a model draft into an ``AgentPlan`` with fail-closed defaults."""
    actions = [
        ProposedAction(
            title=a.title,
            tool_call=ToolCall(name=a.tool, arguments=a.arguments),
            justification=a.justification,
        )
        for a in draft.actions
    ]
    return AgentPlan(summary=draft.summary, questions=list(draft.questions), actions=actions)


class ModelPlanner:
    """Planner that delegates proposal generation to a Pydantic AI agent."""

    def __init__(self, *, model: Any, system_prompt: str = SYSTEM_PROMPT) -> None:
        """
        Initialize the planner.

        Args:
            model: A Pydantic AI model instance or model string
                (e.g. ``"openai:gpt-4o"``).
            system_prompt: Instructions describing the tool contract.
        """
        self._model = model
        self._system_prompt = system_prompt

    async def plan(self, history: Sequence[ChatMessage]) -> AgentPlan:
        agent: Agent = Agent(
            self._model,
            output_type=PlanDraft,
            system_prompt=self._system_prompt,
        )
        result = await agent.run(
            "Conversation so far:\n"
            f"{_render_history(history)}\n\n"
            "Return a plan for the latest user message."
        )
        plan = draft_to_plan(result.output)
        logger.debug("Model planner proposed %d actions, %d questions", len(plan.actions), len(plan.questions))
        return plan
