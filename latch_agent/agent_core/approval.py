from __future__ import annotations

"""Approval collaborators.

The orchestrator hands every medium-risk action of a turn to an
``ApprovalHandler`` in a single ``ApprovalRequest`` and suspends until the
handler answers with the set of approved action ids. An empty set means
nothing was approved; cancellation is reported the same way.

Two implementations ship here:

- ``StaticApprovalHandler`` answers immediately (harness and tests).
- ``PendingApprovals`` parks each request on an ``asyncio.Future`` until a UI
  calls ``resolve`` or ``cancel``. It has no timeout of its own.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Protocol, Set

from .schemas.domain import ApprovalRequest

logger = logging.getLogger(__name__)


class ApprovalHandler(Protocol):
    async def request_approval(self, request: ApprovalRequest) -> Set[str]: ...


class StaticApprovalHandler:
    """Approve everything, or nothing, without asking."""

    def __init__(self, *, approve_all: bool = False) -> None:
        self.approve_all = approve_all
        self.requests: List[ApprovalRequest] = []

    async def request_approval(self, request: ApprovalRequest) -> Set[str]:
        self.requests.append(request)
        return set(request.action_ids) if self.approve_all else set()


class PendingApprovals:
    """Future-based approval hand-off between the orchestrator and a UI."""

    def __init__(self) -> None:
        self._pending: Dict[str, asyncio.Future[Set[str]]] = {}
        self._requests: Dict[str, ApprovalRequest] = {}

    async def request_approval(self, request: ApprovalRequest) -> Set[str]:
        loop = asyncio.get_running_loop()
        fut: asyncio.Future[Set[str]] = loop.create_future()
        self._pending[request.id] = fut
        self._requests[request.id] = request
        logger.debug("Awaiting approval for request %s (%d actions)", request.id, len(request.actions))
        try:
            return await fut
        finally:
            self._pending.pop(request.id, None)
            self._requests.pop(request.id, None)

    def pending(self) -> List[ApprovalRequest]:
        return list(self._requests.values())

    def resolve(self, request_id: str, approved_ids: Iterable[str]) -> bool:
        """Deliver the user's answer. Returns False if the request is unknown or already answered."""
        fut = self._pending.get(request_id)
        if fut is None or fut.done():
            return False
        fut.set_result(set(approved_ids))
        return True

    def cancel(self, request_id: str) -> bool:
        return self.resolve(request_id, ())
