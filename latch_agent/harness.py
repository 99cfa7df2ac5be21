"""Demo harness.

Runs a fixed sequence of prompts against a fully wired orchestrator and
prints each assistant reply. The last prompt is a destructive command that the
policy must deny; the harness records that expectation in the audit log so a
reviewer can line it up with the ``action_denied`` entry.

Usage::

    python -m latch_agent --workspace ~/projects/demo [--approve-all]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from latch_agent.agent_core.approval import StaticApprovalHandler
from latch_agent.agent_core.audit import AuditLog
from latch_agent.agent_core.errors import LatchError
from latch_agent.agent_core.factory import build_orchestrator
from latch_agent.agent_core.runtime import AgentOrchestrator
from latch_agent.agent_core.schemas import AuditEventType, ChatMessage
from latch_agent.agent_core.workspace import WorkspaceManager
from latch_agent.core.config import Settings
from latch_agent.core.logging_config import setup_logging

logger = logging.getLogger(__name__)

DENIAL_PROMPT = "run rm -rf ."
DEMO_PROMPTS = (
    "find files modified after 2025-05-01 modified before 2025-06-15 query project",
    "read path README.md",
    "run ls",
    DENIAL_PROMPT,
)


async def run_demo(
    orchestrator: AgentOrchestrator,
    audit: AuditLog,
    *,
    workspace_root: Path,
    approve_all: bool,
    prompts: Sequence[str] = DEMO_PROMPTS,
) -> List[ChatMessage]:
    """Send each prompt in order and collect the assistant replies."""
    audit.log(
        AuditEventType.harness_started,
        {"workspaceRoot": str(workspace_root), "approvalAll": approve_all},
    )
    replies: List[ChatMessage] = []
    for prompt in prompts:
        reply = await orchestrator.handle_user_message(prompt)
        logger.info("Prompt %r -> %s", prompt, reply.content.splitlines()[0] if reply.content else "")
        replies.append(reply)
        if prompt == DENIAL_PROMPT:
            audit.log(
                AuditEventType.harness_denial_expected,
                {"prompt": prompt, "reason": "Policy must deny dangerous command."},
            )
    return replies


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="latch-agent", description="Run the latch-agent demo prompts.")
    parser.add_argument("--workspace", required=True, type=Path, help="Directory to use as the workspace root")
    parser.add_argument(
        "--approve-all",
        action="store_true",
        help="Approve every medium-risk action (default: approve none)",
    )
    parser.add_argument("--log-level", default=None, help="Console log level (overrides LATCH_LOG_LEVEL)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    settings = Settings()
    setup_logging(log_level=args.log_level or settings.log_level, log_format=settings.log_format)

    workspace = WorkspaceManager(settings.workspace_state_file)
    try:
        if not workspace.set_root(args.workspace):
            print(f"Workspace {args.workspace} is not an existing directory.", file=sys.stderr)
            return 2
        root = workspace.get_root()
        if root is None:
            print(f"Workspace {args.workspace} could not be validated.", file=sys.stderr)
            return 2

        audit = AuditLog(settings.audit_file)
        try:
            orchestrator = build_orchestrator(
                settings=settings,
                approvals=StaticApprovalHandler(approve_all=args.approve_all),
                workspace_root=workspace.get_root,
                audit=audit,
            )
            replies = asyncio.run(run_demo(orchestrator, audit, workspace_root=root, approve_all=args.approve_all))
        finally:
            audit.close()
    except LatchError as e:
        logger.error("Demo aborted: %s", e)
        return 1

    for prompt, reply in zip(DEMO_PROMPTS, replies):
        print(f"> {prompt}")
        print(reply.content)
        print()
    print(f"Audit log: {audit.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
