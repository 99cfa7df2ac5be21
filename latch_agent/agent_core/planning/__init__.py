"""Planning components.

The planning subsystem turns the conversation history into an ``AgentPlan``:
a summary, optional clarifying questions and a list of ``ProposedAction``.

Planners are proposal sources only. They never execute tools, never decide
approvals, and nothing they return is trusted by the orchestrator.

Implementations
---------------

- ``RuleBasedPlanner``: deterministic keyword matching over the last user
  message. No network.
- ``ModelPlanner``: structured output from a language model via Pydantic AI.
"""

from .base import Planner
from .planner import ModelPlanner
from .rule_based import RuleBasedPlanner

__all__ = [
    "ModelPlanner",
    "Planner",
    "RuleBasedPlanner",
]
