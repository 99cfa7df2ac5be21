from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .models import PolicyConfig

logger = logging.getLogger(__name__)

DEFAULT_POLICY_RESOURCE = "default_policy.json"


def _read_bundled_policy() -> str:
    return resources.files(__package__).joinpath(DEFAULT_POLICY_RESOURCE).read_text(encoding="utf-8")


def load_policy_config(path: Optional[str | Path] = None) -> PolicyConfig:
    """Load the policy document, falling back to deny-by-default.

    Lookup order:

    1) ``path`` when given
    2) the ``default_policy.json`` bundled with this package

    A missing or unreadable file, invalid JSON, or a document that does not
    match ``PolicyConfig`` never raises: the deny-by-default configuration is
    returned and a warning is logged.
    """
    source = str(path) if path is not None else f"<bundled {DEFAULT_POLICY_RESOURCE}>"
    try:
        raw = Path(path).read_text(encoding="utf-8") if path is not None else _read_bundled_policy()
    except OSError as e:
        logger.warning("Policy file %s unavailable (%s); using deny-by-default policy", source, e)
        return PolicyConfig.deny_by_default()

    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.warning("Policy file %s is not valid JSON (%s); using deny-by-default policy", source, e)
        return PolicyConfig.deny_by_default()

    try:
        cfg = PolicyConfig.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "Policy file %s failed validation (%d errors); using deny-by-default policy",
            source,
            e.error_count(),
        )
        return PolicyConfig.deny_by_default()

    logger.info(
        "Loaded policy from %s: %d tools, %d executables, max %d actions per turn",
        source,
        len(cfg.allowed_tools),
        len(cfg.allowed_executables),
        cfg.max_actions_per_turn,
    )
    return cfg
