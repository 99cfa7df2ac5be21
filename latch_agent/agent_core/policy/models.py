from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from pydantic import ConfigDict, Field

from ..schemas.base import BaseSchema
from ..schemas.domain import RiskLevel, risk_rank

DENY_BY_DEFAULT_BLOCKED_TOKENS: Tuple[str, ...] = (
    "rm",
    "sudo",
    "chmod",
    "chown",
    "launchctl",
    "cron",
    "osascript",
    "curl",
    "wget",
    "ssh",
    "scp",
    "rsync",
    "nc",
    "telnet",
    "|",
    "&&",
    ";",
    ">",
    ">>",
    "`",
    "$(",
    "mkfs",
    "dd",
)


class PolicyConfig(BaseSchema):
    """
    Policy configuration loaded once at startup.

    The on-disk document uses camelCase keys (``allowedTools`` ...); attributes
    are snake_case. Instances are frozen: reloading policy means building a new
    ``PolicyConfig`` and a new ``PolicyEngine``, never mutating one in place.
    """
    model_config = ConfigDict(frozen=True)

    allowed_tools: Tuple[str, ...] = Field(
        default=(),
        alias="allowedTools",
        description="Tool names the planner may propose.",
    )
    allowed_executables: Tuple[str, ...] = Field(
        default=(),
        alias="allowedExecutables",
        description="Absolute executable paths command_exec may run.",
    )
    blocked_tokens: Tuple[str, ...] = Field(
        default=DENY_BY_DEFAULT_BLOCKED_TOKENS,
        alias="blockedTokens",
        description="Substrings that deny a command when found in the executable path or any argument.",
    )
    max_actions_per_turn: int = Field(default=0, ge=0, alias="maxActionsPerTurn")
    default_timeout_seconds: float = Field(default=10, gt=0, le=3600, alias="defaultTimeoutSeconds")
    max_stdout_bytes: int = Field(default=200_000, ge=0, alias="maxStdoutBytes")
    max_stderr_bytes: int = Field(default=200_000, ge=0, alias="maxStderrBytes")

    @classmethod
    def deny_by_default(cls) -> "PolicyConfig":
        """Configuration used when no valid policy document is available.

        Nothing is allowed, the blocklist is populated and zero actions fit in
        a turn.
        """
        return cls(
            allowed_tools=(),
            allowed_executables=(),
            blocked_tokens=DENY_BY_DEFAULT_BLOCKED_TOKENS,
            max_actions_per_turn=0,
            default_timeout_seconds=10,
            max_stdout_bytes=200_000,
            max_stderr_bytes=200_000,
        )


@dataclass(frozen=True)
class PolicyDecision:
    """
    Result of a policy evaluation for a specific tool call.

    Attributes:
        allowed: Whether the call may proceed at all.
        risk: The assessed risk level. Denials are always ``high``.
        reason: Human-readable reason; empty when allowed.
    """
    allowed: bool
    risk: RiskLevel
    reason: str

    @classmethod
    def deny(cls, reason: str) -> "PolicyDecision":
        return cls(allowed=False, risk=RiskLevel.high, reason=reason)

    @property
    def requires_approval(self) -> bool:
        return self.allowed and self.risk == RiskLevel.medium

    @property
    def blocking(self) -> bool:
        """High risk is always blocking in this release, even when allowed."""
        return not self.allowed or risk_rank(self.risk) >= risk_rank(RiskLevel.high)
