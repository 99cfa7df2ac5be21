"""Policy subsystem: the deterministic gate in front of every capability.

The policy layer provides *runtime* decisions for tool calls. It is separate
from planning so that the planner can only ever propose; it never decides.

Components
----------

- ``PolicyConfig``: the frozen configuration (tool and executable allowlists,
  blocked tokens, per-turn action cap, timeouts and output caps).
- ``PolicyEngine``: evaluates a ``ToolCall`` against the configuration and the
  workspace root, and builds sanitized previews for approval prompts.
- ``load_policy_config``: reads the JSON policy document and falls back to
  ``PolicyConfig.deny_by_default()`` when it is missing or malformed.
"""

from .engine import PolicyEngine
from .models import PolicyConfig, PolicyDecision
from .provider import load_policy_config

__all__ = [
    "PolicyConfig",
    "PolicyDecision",
    "PolicyEngine",
    "load_policy_config",
]
