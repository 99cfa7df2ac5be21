"""
Configuration Settings.

This module defines the runtime configuration using Pydantic's BaseSettings.
All values are loaded from ``LATCH_*`` environment variables and an optional
.env file without explicit dotenv loading.

Policy rules (allowlists, blocked tokens, caps) are *not* settings: they live
in the JSON policy document named by ``LATCH_POLICY_FILE`` and are validated by
``PolicyConfig``.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Policy and state
    # =====================================================================
    policy_file: Optional[Path] = Field(
        default=None,
        description="Path to the JSON policy document; unset uses the bundled default policy",
        alias="LATCH_POLICY_FILE",
    )
    audit_dir: Path = Field(
        default=Path("~/.latch"),
        description="Directory holding audit.jsonl and its rotated backups",
        alias="LATCH_AUDIT_DIR",
    )
    state_dir: Path = Field(
        default=Path("~/.latch"),
        description="Directory holding the persisted workspace root",
        alias="LATCH_STATE_DIR",
    )

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="LATCH_LOG_LEVEL",
    )
    log_format: Literal["simple", "detailed", "json"] = Field(
        default="detailed",
        description="Operational log format",
        alias="LATCH_LOG_FORMAT",
    )
    log_dir: Path = Field(
        default=Path("logs"),
        description="Directory for the operational log file",
        alias="LATCH_LOG_DIR",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Also write operational logs to <log_dir>/latch_agent.log",
        alias="LATCH_ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Planner
    # =====================================================================
    planner: Literal["rule", "model"] = Field(
        default="rule",
        description="Which planner proposes actions: deterministic rules or a language model",
        alias="LATCH_PLANNER",
    )
    planner_model: str = Field(
        default="openai:gpt-4o",
        description="Pydantic AI model string used when LATCH_PLANNER=model",
        alias="LATCH_PLANNER_MODEL",
    )

    @property
    def audit_file(self) -> Path:
        return self.audit_dir.expanduser() / "audit.jsonl"

    @property
    def workspace_state_file(self) -> Path:
        return self.state_dir.expanduser() / "workspace.json"


settings = Settings()
