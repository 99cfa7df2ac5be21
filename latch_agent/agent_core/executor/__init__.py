"""Sandboxed process execution for ``command_exec``."""

from .local import ExecutionResult, LocalExecutor

__all__ = ["ExecutionResult", "LocalExecutor"]
