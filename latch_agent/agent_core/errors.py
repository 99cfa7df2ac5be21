"""Exception types for system faults.

Policy denials and malformed tool arguments are *values* (``PolicyDecision``
and error ``ToolResult`` objects), never exceptions. The classes below cover
the faults that must fail a turn closed: an unwritable audit log or an
unusable workspace state file. Planner and approval failures are caught at the
orchestrator boundary and audited as ``fail_closed``.
"""


class LatchError(Exception):
    """Base class for agent core faults."""


class AuditLogError(LatchError):
    """The audit log could not be written or read."""


class WorkspaceError(LatchError):
    """The workspace root store could not be persisted."""
