from __future__ import annotations

"""Convenience factories for wiring the agent core.

This module contains small helpers to build the default capability registry,
pick a planner from settings, and assemble an ``AgentOrchestrator``.

The intent is to keep application wiring and tests concise, while still
allowing callers to provide their own registry, planner, approval handler or
policy.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from ..core.config import Settings
from .approval import ApprovalHandler
from .audit.log import AuditLog
from .capabilities import (
    CapabilityRegistry,
    CommandExecCapability,
    FileReadCapability,
    FileSearchCapability,
)
from .planning import ModelPlanner, Planner, RuleBasedPlanner
from .policy import PolicyConfig, PolicyEngine, load_policy_config
from .runtime import AgentOrchestrator, OrchestratorDeps

logger = logging.getLogger(__name__)


def build_default_registry() -> CapabilityRegistry:
    """Build the default ``CapabilityRegistry`` with the three shipped handlers."""
    reg = CapabilityRegistry()
    reg.register(FileSearchCapability())
    reg.register(FileReadCapability())
    reg.register(CommandExecCapability())
    return reg


def build_planner(settings: Settings, *, policy_config: Optional[PolicyConfig] = None) -> Planner:
    """Return the planner named by ``settings.planner``.

    The rule-based planner is given the basenames of the allowlisted
    executables so ``run head README.md`` resolves to ``/usr/bin/head``.
    """
    if settings.planner == "model":
        logger.info("Using model planner (%s)", settings.planner_model)
        return ModelPlanner(model=settings.planner_model)
    executables = {}
    if policy_config is not None:
        executables = {os.path.basename(p): p for p in policy_config.allowed_executables}
    return RuleBasedPlanner(executables=executables)


def build_orchestrator(
    *,
    settings: Settings,
    approvals: ApprovalHandler,
    workspace_root: Callable[[], Optional[Path]],
    audit: Optional[AuditLog] = None,
    planner: Optional[Planner] = None,
    policy_config: Optional[PolicyConfig] = None,
    registry: Optional[CapabilityRegistry] = None,
) -> AgentOrchestrator:
    """Construct an ``AgentOrchestrator`` from settings and collaborators.

    Anything not passed explicitly is built from ``settings``: the policy is
    loaded from ``settings.policy_file`` (bundled default when unset), the
    audit log lives in ``settings.audit_dir``.
    """
    cfg = policy_config if policy_config is not None else load_policy_config(settings.policy_file)
    deps = OrchestratorDeps(
        planner=planner if planner is not None else build_planner(settings, policy_config=cfg),
        approvals=approvals,
        capabilities=registry if registry is not None else build_default_registry(),
        audit=audit if audit is not None else AuditLog(settings.audit_file),
        workspace_root=workspace_root,
    )
    return AgentOrchestrator(policy=PolicyEngine(cfg), deps=deps)
