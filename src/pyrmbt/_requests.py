"""Registry of in-flight control server requests.

Every exchange is scheduled as an asyncio task wrapped in a
:class:`PendingRequest` handle. Handles stay registered until they reach a
terminal state so that :meth:`RequestRegistry.cancel_all` can abort every
outstanding exchange when the consuming session is torn down.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any

from pyrmbt._transport import RequestSpec, Transport
from pyrmbt.exceptions import RmbtCancelledError

_logger = logging.getLogger(__name__)


class RequestState(enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PendingRequest:
    """Handle for one in-flight exchange.

    Resolves exactly once: with the decoded payload, with one categorized
    :class:`~pyrmbt.exceptions.RmbtError`, or with
    :class:`~pyrmbt.exceptions.RmbtCancelledError`.
    """

    def __init__(self, spec: RequestSpec, task: asyncio.Task[Any]) -> None:
        self.spec = spec
        self._task = task
        self._state = RequestState.PENDING

    def __repr__(self) -> str:
        return f"<PendingRequest {self.spec.method} {self.spec.endpoint} {self._state.value}>"

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state is not RequestState.PENDING

    def _finish(self, task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            self._state = RequestState.CANCELLED
        elif task.exception() is not None:
            self._state = RequestState.FAILED
        else:
            self._state = RequestState.SUCCEEDED
        _logger.debug("%s %s finished: %s", self.spec.method, self.spec.endpoint, self._state.value)

    def cancel(self) -> bool:
        """Request cancellation; returns ``False`` if already finished."""
        if self._task.done():
            return False
        return self._task.cancel()

    async def wait(self, *, shield: bool = False) -> Any:
        """Wait for the outcome.

        With ``shield=True`` cancelling the awaiting task leaves the
        underlying exchange running for other waiters.
        """
        try:
            if shield:
                return await asyncio.shield(self._task)
            return await self._task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            raise RmbtCancelledError(
                f"Request to {self.spec.endpoint} was cancelled",
                endpoint=self.spec.endpoint,
            ) from None


class RequestRegistry:
    """Schedules exchanges on a transport and tracks them until completion."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._pending: set[PendingRequest] = set()
        self._generation = 0

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def generation(self) -> int:
        """Incremented by every :meth:`cancel_all` call."""
        return self._generation

    def perform(self, spec: RequestSpec, base_url: str) -> PendingRequest:
        """Start *spec* against *base_url* and return its registered handle.

        Must be called from within a running event loop.
        """
        task = asyncio.get_running_loop().create_task(self._transport.send(spec, base_url))
        handle = PendingRequest(spec, task)
        self._pending.add(handle)

        def _on_done(done: asyncio.Task[Any]) -> None:
            self._pending.discard(handle)
            handle._finish(done)

        task.add_done_callback(_on_done)
        return handle

    def cancel(self, handle: PendingRequest) -> bool:
        return handle.cancel()

    def cancel_all(self) -> int:
        """Cancel every registered handle and return how many were cancelled."""
        self._generation += 1
        cancelled = 0
        for handle in list(self._pending):
            if handle.cancel():
                cancelled += 1
        if cancelled:
            _logger.debug("Cancelled %d outstanding request(s)", cancelled)
        return cancelled
