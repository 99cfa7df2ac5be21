from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..schemas.domain import AgentPlan, ChatMessage, MessageRole


class Planner(Protocol):
    """Proposal source for a turn.

    Implementations see the full ordered history and return an ``AgentPlan``.
    Nothing they return is trusted: every action is re-evaluated by the
    policy engine before it can run.
    """

    async def plan(self, history: Sequence[ChatMessage]) -> AgentPlan: ...


def last_user_message(history: Sequence[ChatMessage]) -> Optional[ChatMessage]:
    for msg in reversed(history):
        if msg.role == MessageRole.user:
            return msg
    return None
