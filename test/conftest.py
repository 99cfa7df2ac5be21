from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List

import pydantic_ai.models
import pytest

from latch_agent.agent_core.audit import AuditLog
from latch_agent.agent_core.policy import PolicyConfig, PolicyEngine, load_policy_config

_LATCH_ENV_VARS = (
    "LATCH_POLICY_FILE",
    "LATCH_AUDIT_DIR",
    "LATCH_STATE_DIR",
    "LATCH_LOG_LEVEL",
    "LATCH_LOG_FORMAT",
    "LATCH_LOG_DIR",
    "LATCH_ENABLE_FILE_LOGGING",
    "LATCH_PLANNER",
    "LATCH_PLANNER_MODEL",
)


@pytest.fixture(autouse=True)
def _global_offline_model_guard(monkeypatch: pytest.MonkeyPatch):
    # Any test that reaches a real model provider fails instead of calling out.
    monkeypatch.setattr(pydantic_ai.models, "ALLOW_MODEL_REQUESTS", False)
    for name in _LATCH_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    """A small workspace tree with text, binary, nested and hidden files."""
    root = tmp_path / "workspace"
    (root / "docs").mkdir(parents=True)
    (root / ".git").mkdir()
    (root / "README.md").write_text("# Demo project\n\nHello.\n", encoding="utf-8")
    (root / "docs" / "project_plan.txt").write_text("plan\n", encoding="utf-8")
    (root / "docs" / "notes.md").write_text("notes\n", encoding="utf-8")
    (root / "image.bin").write_bytes(b"\x89PNG\x00\x01\x02")
    (root / ".env").write_text("SECRET=1\n", encoding="utf-8")
    (root / ".git" / "config").write_text("[core]\n", encoding="utf-8")
    return root.resolve()


@pytest.fixture()
def outside_dir(tmp_path: Path) -> Path:
    d = tmp_path / "outside"
    d.mkdir()
    (d / "secret.txt").write_text("top secret\n", encoding="utf-8")
    return d.resolve()


@pytest.fixture()
def default_policy_config() -> PolicyConfig:
    return load_policy_config(None)


@pytest.fixture()
def policy(default_policy_config: PolicyConfig) -> PolicyEngine:
    return PolicyEngine(default_policy_config)


@pytest.fixture()
def audit(tmp_path: Path) -> AuditLog:
    log = AuditLog(tmp_path / "audit" / "audit.jsonl")
    yield log
    log.close()


def _read_audit_entries(log: AuditLog) -> List[Dict[str, Any]]:
    if not os.path.exists(log.path):
        return []
    with open(log.path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


@pytest.fixture()
def audit_entries():
    """Return a reader that parses every line of an ``AuditLog`` file."""
    return _read_audit_entries
