from __future__ import annotations

"""Append-only, redacted JSONL audit log.

Each call to ``AuditLog.log`` writes exactly one line::

    {"timestamp": "2025-05-01T09:30:00Z", "eventType": "action_executed", "payload": {...}}

The payload is normalized to plain JSON values and redacted *before* it is
serialized, so nothing sensitive ever reaches disk and ``export`` can hand out
a straight copy of the file.

All writes, tail reads and exports go through one ``threading.Lock``. The file
itself is managed by a ``RotatingFileHandler``: once the next line would push
the file past ``max_bytes`` it is rotated to ``.1``, ``.2``, ``.3`` and the
oldest backup is dropped.

A write that fails raises ``AuditLogError``. Callers must treat that as a
system fault; an action is never reported as done if its audit line is
missing.
"""

import json
import logging
import logging.handlers
import shutil
import sys
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import AuditLogError
from ..schemas.domain import AuditEntry, AuditEventType

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 50 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 3
TAIL_READ_BYTES = 2 * 1024 * 1024
REDACT_STRING_OVER = 80
SECRET_PREFIXES = ("sk-", "ghp_", "xoxb-")
REDACTED = "[REDACTED]"
AUDIT_FILE_NAME = "audit.jsonl"


class _StrictRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Rotating handler that raises on write failure instead of printing to stderr."""

    def handleError(self, record: logging.LogRecord) -> None:
        exc = sys.exc_info()[1]
        raise AuditLogError(f"audit write failed: {exc}") from exc


def redact_value(value: Any) -> Any:
    """Recursively replace long strings and secret-looking strings with ``[REDACTED]``."""
    if isinstance(value, str):
        if len(value) > REDACT_STRING_OVER or value.startswith(SECRET_PREFIXES):
            return REDACTED
        return value
    if isinstance(value, dict):
        return {k: redact_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact_value(v) for v in value]
    return value


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class AuditLog:
    """Single-writer audit trail backed by a rotating JSONL file."""

    def __init__(
        self,
        path: str | Path,
        *,
        max_bytes: int = DEFAULT_MAX_BYTES,
        backup_count: int = DEFAULT_BACKUP_COUNT,
    ) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._handler = _StrictRotatingFileHandler(
            self._path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
            delay=True,
        )
        self._handler.setFormatter(logging.Formatter("%(message)s"))

    @property
    def path(self) -> Path:
        return self._path

    def log(self, event_type: AuditEventType | str, payload: Optional[Dict[str, Any]] = None) -> None:
        """
        Append one redacted entry.

        Args:
            event_type: One of ``AuditEventType`` (free strings are accepted
                for forward compatibility).
            payload: A JSON-like mapping. Values that are not JSON-native are
                stringified before redaction.

        Raises:
            AuditLogError: If the entry could not be serialized or written.
        """
        kind = event_type.value if isinstance(event_type, AuditEventType) else str(event_type)
        try:
            normalized = json.loads(json.dumps(payload or {}, default=str))
        except (TypeError, ValueError) as e:
            raise AuditLogError(f"audit payload for {kind} is not serializable: {e}") from e

        if not isinstance(normalized, dict):
            raise AuditLogError(f"audit payload for {kind} must be a mapping")
        entry = AuditEntry(timestamp=_timestamp(), event_type=kind, payload=redact_value(normalized))
        line = entry.model_dump_json(by_alias=True)
        record = logging.makeLogRecord({"msg": line, "levelno": logging.INFO, "levelname": "INFO"})

        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise AuditLogError(f"audit directory {self._path.parent} is not writable: {e}") from e
            self._handler.emit(record)

    def read_recent(self, limit: int) -> List[str]:
        """Return up to ``limit`` most recent lines, oldest first.

        Only the last 2 MiB of the current file are scanned; a line cut by
        that window is dropped rather than returned torn.
        """
        if limit <= 0:
            return []
        with self._lock:
            try:
                size = self._path.stat().st_size
            except FileNotFoundError:
                return []
            except OSError as e:
                raise AuditLogError(f"could not stat audit log: {e}") from e
            if size == 0:
                return []
            tail = min(size, TAIL_READ_BYTES)
            try:
                with self._path.open("rb") as f:
                    f.seek(size - tail)
                    data = f.read(tail)
            except OSError as e:
                raise AuditLogError(f"could not read audit log: {e}") from e

        lines = [ln for ln in data.decode("utf-8", errors="replace").split("\n") if ln]
        if size > tail and lines:
            lines = lines[1:]
        return lines[-limit:]

    def export(self, destination_dir: Optional[str | Path] = None) -> Path:
        """Copy the current log file and return the path of the copy.

        The copy lands in ``destination_dir`` (or a fresh temp directory). An
        empty file is produced when nothing has been logged yet.
        """
        with self._lock:
            try:
                dest_dir = Path(destination_dir) if destination_dir is not None else Path(
                    tempfile.mkdtemp(prefix="latch-audit-")
                )
                dest_dir.mkdir(parents=True, exist_ok=True)
                dest = dest_dir / AUDIT_FILE_NAME
                self._handler.flush()
                if self._path.exists():
                    shutil.copyfile(self._path, dest)
                else:
                    dest.write_bytes(b"")
            except OSError as e:
                raise AuditLogError(f"could not export audit log: {e}") from e
        logger.info("Exported audit log to %s", dest)
        return dest

    def close(self) -> None:
        with self._lock:
            self._handler.close()

