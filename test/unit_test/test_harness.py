from __future__ import annotations

import json
from pathlib import Path
from typing import List

import pytest

from latch_agent.agent_core.approval import StaticApprovalHandler
from latch_agent.agent_core.audit import AuditLog
from latch_agent.agent_core.errors import LatchError
from latch_agent.agent_core.factory import build_orchestrator
from latch_agent.core.config import Settings
from latch_agent.harness import DEMO_PROMPTS, DENIAL_PROMPT, main, run_demo


def _events(path: Path) -> List[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


@pytest.mark.asyncio
async def test_run_demo_records_start_and_expected_denial(tmp_path: Path, workspace: Path, audit: AuditLog) -> None:
    orch = build_orchestrator(
        settings=Settings(audit_dir=tmp_path / "a", state_dir=tmp_path / "s"),
        approvals=StaticApprovalHandler(),
        workspace_root=lambda: workspace,
        audit=audit,
    )
    replies = await run_demo(orch, audit, workspace_root=workspace, approve_all=False)

    assert len(replies) == len(DEMO_PROMPTS)
    assert replies[1].content.startswith("Completed 1 action(s) successfully.")
    assert replies[2].content == "No actions executed: none of the proposed actions were approved."
    assert replies[3].content == "Denied: Executable '/bin/rm' is not in allowedExecutables."

    entries = _events(audit.path)
    assert entries[0]["eventType"] == "harness_started"
    assert entries[0]["payload"] == {"workspaceRoot": str(workspace), "approvalAll": False}
    kinds = [e["eventType"] for e in entries]
    assert kinds[-2:] == ["action_denied", "harness_denial_expected"]
    assert entries[-1]["payload"] == {"prompt": DENIAL_PROMPT, "reason": "Policy must deny dangerous command."}


def test_main_runs_demo_and_prints_replies(
    tmp_path: Path, workspace: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LATCH_AUDIT_DIR", str(tmp_path / "audit"))
    monkeypatch.setenv("LATCH_STATE_DIR", str(tmp_path / "state"))

    assert main(["--workspace", str(workspace), "--log-level", "WARNING"]) == 0

    out = capsys.readouterr().out
    for prompt in DEMO_PROMPTS:
        assert f"> {prompt}" in out
    assert "Denied:" in out
    assert f"Audit log: {tmp_path / 'audit' / 'audit.jsonl'}" in out
    assert (tmp_path / "state" / "workspace.json").exists()
    kinds = [e["eventType"] for e in _events(tmp_path / "audit" / "audit.jsonl")]
    assert "harness_denial_expected" in kinds


def test_main_rejects_missing_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LATCH_AUDIT_DIR", str(tmp_path / "audit"))
    monkeypatch.setenv("LATCH_STATE_DIR", str(tmp_path / "state"))
    assert main(["--workspace", str(tmp_path / "missing")]) == 2
    assert not (tmp_path / "audit" / "audit.jsonl").exists()


def test_main_requires_workspace_argument() -> None:
    with pytest.raises(SystemExit):
        main([])


class _ClosingAuditLog(AuditLog):
    instances: List["_ClosingAuditLog"] = []

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.closed = False
        _ClosingAuditLog.instances.append(self)

    def close(self) -> None:
        self.closed = True
        super().close()


def test_main_closes_audit_log(tmp_path: Path, workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LATCH_AUDIT_DIR", str(tmp_path / "audit"))
    monkeypatch.setenv("LATCH_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setattr(_ClosingAuditLog, "instances", [])
    monkeypatch.setattr("latch_agent.harness.AuditLog", _ClosingAuditLog)

    assert main(["--workspace", str(workspace), "--log-level", "WARNING"]) == 0

    assert len(_ClosingAuditLog.instances) == 1
    assert _ClosingAuditLog.instances[0].closed is True


def test_main_closes_audit_log_when_demo_fails(
    tmp_path: Path, workspace: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LATCH_AUDIT_DIR", str(tmp_path / "audit"))
    monkeypatch.setenv("LATCH_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setattr(_ClosingAuditLog, "instances", [])
    monkeypatch.setattr("latch_agent.harness.AuditLog", _ClosingAuditLog)

    async def _boom(*args, **kwargs):
        raise LatchError("demo broke")

    monkeypatch.setattr("latch_agent.harness.run_demo", _boom)

    assert main(["--workspace", str(workspace), "--log-level", "WARNING"]) == 1
    assert _ClosingAuditLog.instances[0].closed is True
