from __future__ import annotations

"""Workspace root store and the canonical containment check.

Every filesystem boundary in the agent core (policy evaluation, the read
handler, the search handler) proves containment through
``is_path_under_root``. Keep it the only implementation: a second, slightly
different copy is how symlink escapes slip in.

``WorkspaceManager`` persists the user-selected root to a small JSON state
file and re-validates it on every read. A root that no longer exists, is not
a directory, or cannot be read back is reported as ``None``; callers never
fall back to a previous or default directory.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .errors import WorkspaceError
from .schemas.base import BaseSchema

logger = logging.getLogger(__name__)


def _normalize(path: str | os.PathLike[str]) -> str:
    return os.path.normpath(os.path.realpath(os.fspath(path)))


def resolve_candidate(path: str | os.PathLike[str], root: str | os.PathLike[str]) -> Path:
    """Absolute paths are used as-is; relative paths are joined onto ``root``."""
    p = Path(path)
    if p.is_absolute():
        return p
    return Path(root) / p


def is_path_under_root(candidate: str | os.PathLike[str], root: str | os.PathLike[str]) -> bool:
    """Return True when ``candidate`` lies inside ``root`` after symlink resolution.

    Both sides are resolved with ``os.path.realpath`` and normalized. The
    candidate is contained if it equals the root or starts with the root plus
    a trailing separator (so ``/work`` does not contain ``/workspace``).
    """
    normalized_root = _normalize(root)
    normalized_candidate = _normalize(candidate)
    if normalized_candidate == normalized_root:
        return True
    prefix = normalized_root if normalized_root.endswith(os.sep) else normalized_root + os.sep
    return normalized_candidate.startswith(prefix)


class WorkspaceState(BaseSchema):
    root: str


class WorkspaceManager:
    """Persist and re-validate the single workspace root."""

    def __init__(self, state_file: Path) -> None:
        self._state_file = Path(state_file)

    @property
    def state_file(self) -> Path:
        return self._state_file

    def set_root(self, path: str | os.PathLike[str]) -> bool:
        """
        Store ``path`` as the workspace root.

        Only an existing directory is accepted; it is stored as its resolved
        absolute path.

        Returns:
            True when the root was persisted, False when ``path`` is not an
            existing directory.

        Raises:
            WorkspaceError: If the state file cannot be written.
        """
        p = Path(path).expanduser()
        if not p.is_dir():
            logger.info("Refusing workspace root %s: not an existing directory", p)
            return False
        state = WorkspaceState(root=_normalize(p))
        try:
            self._state_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._state_file.parent, prefix=".workspace-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(state.model_dump_json())
            os.replace(tmp, self._state_file)
        except OSError as e:
            raise WorkspaceError(f"could not persist workspace root: {e}") from e
        logger.debug("Workspace root set to %s", state.root)
        return True

    def get_root(self) -> Optional[Path]:
        """Return the stored root if it is still an existing directory, else None."""
        try:
            raw = self._state_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read workspace state %s: %s", self._state_file, e)
            return None
        try:
            state = WorkspaceState.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning("Ignoring corrupt workspace state %s: %s", self._state_file, e)
            return None

        root = Path(state.root)
        if not root.is_absolute() or not root.is_dir():
            return None
        return root

    def clear_root(self) -> None:
        try:
            self._state_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise WorkspaceError(f"could not clear workspace root: {e}") from e

    def is_under_workspace(self, path: str | os.PathLike[str]) -> bool:
        root = self.get_root()
        if root is None:
            return False
        return is_path_under_root(resolve_candidate(path, root), root)
