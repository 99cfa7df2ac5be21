from __future__ import annotations

"""Capability registry.

The registry maps a tool name to an executable capability implementation.

The orchestrator uses it to resolve ``ToolCall.name`` into a handler. A name
with no registered handler is a system fault for the turn, never a silent
skip.
"""

from typing import Dict, List

from .base import Capability


class CapabilityRegistry:
    """
    In-memory mapping of tool names to implementations.

    Notes:
        - ``register`` overwrites any existing mapping for the tool name.
        - ``get`` will raise ``KeyError`` if the tool is missing.
    """

    def __init__(self) -> None:
        """Initialize an empty capability registry."""
        self._caps: Dict[str, Capability] = {}

    def register(self, cap: Capability) -> None:
        """
        Register a capability implementation.

        Args:
            cap: The capability instance to register. It must expose a ``name`` attribute.
        """
        self._caps[str(getattr(cap.name, "value", cap.name))] = cap

    def get(self, name: str) -> Capability:
        """
        Retrieve a registered capability by tool name.

        Raises:
            KeyError: If no capability is registered with the given name.
        """
        return self._caps[name]

    def has(self, name: str) -> bool:
        return name in self._caps

    def names(self) -> List[str]:
        return sorted(self._caps)
