"""Capability handlers and the registry that resolves tool names to them.

A *capability* is the execution unit behind a ``ToolCall``.

- The planner proposes ``ProposedAction`` items naming a tool.
- The orchestrator validates each call with the ``PolicyEngine`` and resolves
  the name through ``CapabilityRegistry``.
- The handler re-evaluates policy itself, then acts inside the workspace root.

This package exports:

- ``Capability``: protocol for async capability execution.
- ``CapabilityContext``: policy engine, workspace root and executor for a call.
- ``CapabilityRegistry``: name to implementation mapping.
- ``FileSearchCapability``, ``FileReadCapability``, ``CommandExecCapability``.
"""

from .base import Capability, CapabilityContext
from .command_exec import CommandExecCapability
from .file_read import FileReadCapability
from .file_search import FileSearchCapability
from .registry import CapabilityRegistry

__all__ = [
    "Capability",
    "CapabilityContext",
    "CapabilityRegistry",
    "CommandExecCapability",
    "FileReadCapability",
    "FileSearchCapability",
]
