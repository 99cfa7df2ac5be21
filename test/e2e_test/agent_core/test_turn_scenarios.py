"""End-to-end turns through the real planner, policy engine, handlers and audit log."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pytest

from latch_agent.agent_core.approval import StaticApprovalHandler
from latch_agent.agent_core.audit import AuditLog
from latch_agent.agent_core.factory import build_default_registry, build_planner
from latch_agent.agent_core.policy import PolicyConfig, PolicyEngine
from latch_agent.agent_core.runtime import AgentOrchestrator, OrchestratorDeps
from latch_agent.agent_core.schemas.domain import AgentPlan, ChatMessage, ProposedAction, ToolCall
from latch_agent.core.config import Settings


class _SpawnGuardExecutor:
    """Executor that fails the test if anything tries to start a process."""

    async def run(self, *args, **kwargs):
        raise AssertionError("no process should be spawned")


def _orchestrator(
    workspace: Path,
    audit: AuditLog,
    config: PolicyConfig,
    *,
    planner=None,
    approvals=None,
) -> AgentOrchestrator:
    deps = OrchestratorDeps(
        planner=planner or build_planner(Settings(), policy_config=config),
        approvals=approvals or StaticApprovalHandler(),
        capabilities=build_default_registry(),
        audit=audit,
        workspace_root=lambda: workspace,
        executor=_SpawnGuardExecutor(),
    )
    return AgentOrchestrator(policy=PolicyEngine(config), deps=deps)


@pytest.mark.asyncio
async def test_read_readme(workspace: Path, audit: AuditLog, audit_entries, default_policy_config) -> None:
    orch = _orchestrator(workspace, audit, default_policy_config)

    reply = await orch.handle_user_message("read path README.md")

    assert reply.content == f"Completed 1 action(s) successfully.\n- file_read {workspace / 'README.md'}: 23 bytes read"
    events = [e["eventType"] for e in audit_entries(audit)]
    assert events == ["user_message", "plan_received", "action_executed"]


@pytest.mark.asyncio
async def test_destructive_command_is_denied_without_spawning(
    workspace: Path, audit: AuditLog, audit_entries, default_policy_config
) -> None:
    approvals = StaticApprovalHandler(approve_all=True)
    orch = _orchestrator(workspace, audit, default_policy_config, approvals=approvals)

    reply = await orch.handle_user_message("run rm -rf .")

    assert reply.content.startswith("Denied:")
    assert "/bin/rm" in reply.content
    assert approvals.requests == []
    entries = audit_entries(audit)
    assert entries[-1]["eventType"] == "action_denied"
    assert entries[-1]["payload"]["name"] == "command_exec"
    assert (workspace / "README.md").exists()


@pytest.mark.asyncio
async def test_blocked_token_in_allowlisted_command_is_denied(
    workspace: Path, audit: AuditLog, default_policy_config
) -> None:
    orch = _orchestrator(workspace, audit, default_policy_config, approvals=StaticApprovalHandler(approve_all=True))
    reply = await orch.handle_user_message("run echo hi ; rm -rf .")
    assert reply.content == "Denied: Argument contains blocked token 'rm'."


@pytest.mark.asyncio
async def test_find_recent_files(workspace: Path, audit: AuditLog, default_policy_config) -> None:
    orch = _orchestrator(workspace, audit, default_policy_config)

    reply = await orch.handle_user_message("find files modified after 2025-05-01")

    assert reply.content == "Completed 1 action(s) successfully.\n- file_search: 4 result(s)"


class _BulkPlanner:
    def __init__(self, count: int) -> None:
        self.count = count

    async def plan(self, history: Sequence[ChatMessage]) -> AgentPlan:
        actions = [
            ProposedAction(title=f"Search {i}", tool_call=ToolCall(name="file_search", arguments={}))
            for i in range(self.count)
        ]
        return AgentPlan(summary="bulk", actions=actions)


@pytest.mark.asyncio
async def test_plan_over_action_limit_is_denied(
    workspace: Path, audit: AuditLog, audit_entries, default_policy_config
) -> None:
    orch = _orchestrator(workspace, audit, default_policy_config, planner=_BulkPlanner(6))

    reply = await orch.handle_user_message("search everything six times")

    assert reply.content == "Denied: The plan has 6 actions but at most 5 are allowed per turn."
    events = [e["eventType"] for e in audit_entries(audit)]
    assert "action_executed" not in events
    assert events[-1] == "action_denied"


@pytest.mark.asyncio
async def test_plan_at_action_limit_runs(workspace: Path, audit: AuditLog, default_policy_config) -> None:
    orch = _orchestrator(workspace, audit, default_policy_config, planner=_BulkPlanner(5))
    reply = await orch.handle_user_message("search five times")
    assert reply.content.startswith("Completed 5 action(s) successfully.")


@pytest.mark.asyncio
async def test_unapproved_command_never_runs(
    workspace: Path, audit: AuditLog, audit_entries, default_policy_config
) -> None:
    approvals = StaticApprovalHandler(approve_all=False)
    orch = _orchestrator(workspace, audit, default_policy_config, approvals=approvals)

    reply = await orch.handle_user_message("run ls")

    assert reply.content == "No actions executed: none of the proposed actions were approved."
    assert len(approvals.requests) == 1
    assert approvals.requests[0].actions[0].tool_call.arguments == {"executablePath": "/bin/ls", "args": []}
    entries = audit_entries(audit)
    assert [e["eventType"] for e in entries] == [
        "user_message",
        "plan_received",
        "approval_requested",
        "approval_replied",
    ]
    assert entries[-1]["payload"]["approvedIds"] == []


@pytest.mark.asyncio
async def test_clarifying_question_for_unknown_request(workspace: Path, audit: AuditLog, default_policy_config) -> None:
    orch = _orchestrator(workspace, audit, default_policy_config)
    reply = await orch.handle_user_message("make me a sandwich")
    assert reply.content.startswith("Clarification needed:")


@pytest.mark.asyncio
async def test_read_outside_workspace_is_denied(
    workspace: Path, outside_dir: Path, audit: AuditLog, default_policy_config
) -> None:
    orch = _orchestrator(workspace, audit, default_policy_config)
    reply = await orch.handle_user_message(f"read path {outside_dir / 'secret.txt'}")
    assert reply.content == "Denied: Path is outside workspace root."
    assert "top secret" not in audit.path.read_text(encoding="utf-8")
