from __future__ import annotations

"""Run one allowlisted executable with no shell and hard resource bounds.

``LocalExecutor.run`` is the only place a process is spawned. It enforces:

- an absolute executable path (anything else never spawns);
- ``cwd`` = the workspace root handed in by the capability;
- an environment that contains ``PATH`` and nothing else;
- stdin bound to ``/dev/null``;
- per-stream byte caps, with overflow drained and discarded so a chatty child
  can never block on a full pipe;
- a wall-clock timeout after which the child's whole process group is killed.

Spawn failures are returned as results (exit code ``-1``, message in stderr),
never raised.
"""

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

logger = logging.getLogger(__name__)

SANDBOX_PATH = "/usr/bin:/bin:/usr/sbin:/sbin"
SPAWN_FAILED_EXIT_CODE = -1
TIMEOUT_EXIT_CODE = -2
READ_CHUNK_BYTES = 8192
# How long readers may keep draining after the child is gone (grandchildren can hold the pipes).
DRAIN_GRACE_SECONDS = 1.0


@dataclass(frozen=True)
class ExecutionResult:
    exit_code: int
    stdout: str
    stderr: str
    stdout_truncated: bool = False
    stderr_truncated: bool = False
    did_timeout: bool = False

    def to_output(self) -> Dict[str, Any]:
        """Render as the camelCase JSON object carried by ``ToolResult.output``."""
        return {
            "exitCode": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "stdoutTruncated": self.stdout_truncated,
            "stderrTruncated": self.stderr_truncated,
            "didTimeout": self.did_timeout,
        }


class _CappedBuffer:
    """Keep the first ``cap`` bytes of a stream and count the rest."""

    def __init__(self, cap: int) -> None:
        self.cap = max(0, cap)
        self.data = bytearray()
        self.truncated = False

    def feed(self, chunk: bytes) -> None:
        room = self.cap - len(self.data)
        if room > 0:
            self.data.extend(chunk[:room])
        if len(chunk) > room:
            self.truncated = True

    def text(self) -> str:
        return bytes(self.data).decode("utf-8", errors="replace")


async def _drain(stream: Optional[asyncio.StreamReader], buf: _CappedBuffer) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(READ_CHUNK_BYTES)
        if not chunk:
            return
        buf.feed(chunk)


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        try:
            proc.kill()
        except ProcessLookupError:
            pass


class LocalExecutor:
    """Spawn a single process via ``asyncio.create_subprocess_exec``."""

    def __init__(self, *, drain_grace_seconds: float = DRAIN_GRACE_SECONDS) -> None:
        self._drain_grace = drain_grace_seconds

    async def run(
        self,
        executable_path: str,
        args: Sequence[str],
        *,
        working_directory: str | os.PathLike[str],
        timeout_seconds: float,
        max_stdout_bytes: int,
        max_stderr_bytes: int,
    ) -> ExecutionResult:
        """
        Run ``executable_path`` with ``args`` and collect bounded output.

        The result is assembled exactly once, after the race between process
        exit and the timeout has been decided.

        Args:
            executable_path: Absolute path of the binary. Not looked up on PATH.
            args: Argument vector, passed verbatim (no shell, no globbing).
            working_directory: Directory the child starts in.
            timeout_seconds: Wall-clock budget for the child.
            max_stdout_bytes: Bytes of stdout kept; the rest is discarded.
            max_stderr_bytes: Bytes of stderr kept; the rest is discarded.

        Returns:
            An ExecutionResult. On timeout ``did_timeout`` is set and the exit
            code is never 0.
        """
        if not executable_path.startswith("/"):
            return ExecutionResult(exit_code=SPAWN_FAILED_EXIT_CODE, stdout="", stderr="executablePath must be absolute")

        try:
            proc = await asyncio.create_subprocess_exec(
                executable_path,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=os.fspath(working_directory),
                env={"PATH": SANDBOX_PATH},
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            logger.info("Spawn failed for %s: %s", executable_path, e)
            return ExecutionResult(exit_code=SPAWN_FAILED_EXIT_CODE, stdout="", stderr=str(e))

        out_buf = _CappedBuffer(max_stdout_bytes)
        err_buf = _CappedBuffer(max_stderr_bytes)
        readers = {
            asyncio.create_task(_drain(proc.stdout, out_buf)),
            asyncio.create_task(_drain(proc.stderr, err_buf)),
        }

        did_timeout = False
        try:
            try:
                await asyncio.wait_for(proc.wait(), timeout=timeout_seconds)
            except asyncio.TimeoutError:
                did_timeout = True
                logger.info("Process %s (pid %s) timed out after %ss; killing group", executable_path, proc.pid, timeout_seconds)
                _kill_group(proc)
                await proc.wait()

            _, pending = await asyncio.wait(readers, timeout=self._drain_grace)
            if pending:
                # Something outside the child still holds the pipes open.
                _kill_group(proc)
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        finally:
            if proc.returncode is None:
                _kill_group(proc)
                for task in readers:
                    task.cancel()

        exit_code = proc.returncode if proc.returncode is not None else TIMEOUT_EXIT_CODE
        if did_timeout and exit_code == 0:
            exit_code = TIMEOUT_EXIT_CODE

        return ExecutionResult(
            exit_code=exit_code,
            stdout=out_buf.text(),
            stderr=err_buf.text(),
            stdout_truncated=out_buf.truncated,
            stderr_truncated=err_buf.truncated,
            did_timeout=did_timeout,
        )
