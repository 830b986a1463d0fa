"""State machine driving one client operation.

``IDLE -> (BOOTSTRAPPING) -> DISPATCHED -> SUCCEEDED | FAILED | CANCELLED``

``BOOTSTRAPPING`` is entered only when the operation needs a client UUID
and none is held. Terminal states are final.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from pyrmbt._requests import RequestRegistry
from pyrmbt._transport import RequestSpec
from pyrmbt.exceptions import RmbtCancelledError, RmbtError
from pyrmbt.store import SettingsStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class InvocationState(enum.Enum):
    IDLE = "idle"
    BOOTSTRAPPING = "bootstrapping"
    DISPATCHED = "dispatched"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES: frozenset[InvocationState] = frozenset(
    {InvocationState.SUCCEEDED, InvocationState.FAILED, InvocationState.CANCELLED}
)

_ALLOWED: dict[InvocationState, frozenset[InvocationState]] = {
    InvocationState.IDLE: frozenset(
        {InvocationState.BOOTSTRAPPING, InvocationState.DISPATCHED, InvocationState.FAILED, InvocationState.CANCELLED}
    ),
    InvocationState.BOOTSTRAPPING: frozenset(
        {InvocationState.DISPATCHED, InvocationState.FAILED, InvocationState.CANCELLED}
    ),
    InvocationState.DISPATCHED: TERMINAL_STATES,
}

StateListener = Callable[[str, InvocationState], None]


class Invocation(Generic[T]):
    """One run of a named operation.

    ``build`` receives the current client UUID and returns the request to
    dispatch; ``parse`` turns the decoded payload into the caller's result.
    """

    def __init__(
        self,
        name: str,
        *,
        store: SettingsStore,
        registry: RequestRegistry,
        ensure_identity: Callable[[], Awaitable[None]] | None,
        on_state_change: StateListener | None = None,
    ) -> None:
        self.name = name
        self.state = InvocationState.IDLE
        self._store = store
        self._registry = registry
        self._ensure_identity = ensure_identity
        self._on_state_change = on_state_change

    def _transition(self, state: InvocationState) -> None:
        if state not in _ALLOWED.get(self.state, frozenset()):
            raise RuntimeError(f"{self.name}: illegal transition {self.state.value} -> {state.value}")
        _logger.debug("%s: %s -> %s", self.name, self.state.value, state.value)
        self.state = state
        if self._on_state_change is not None:
            try:
                self._on_state_change(self.name, state)
            except Exception:
                _logger.debug("on_state_change callback failed", exc_info=True)

    async def run(self, build: Callable[[str | None], RequestSpec], parse: Callable[[Any], T]) -> T:
        generation = self._registry.generation
        try:
            if self._ensure_identity is not None and self._store.uuid is None:
                self._transition(InvocationState.BOOTSTRAPPING)
                await self._ensure_identity()
                if self._registry.generation != generation:
                    raise RmbtCancelledError(f"{self.name} cancelled before dispatch")

            spec = build(self._store.uuid)
            self._transition(InvocationState.DISPATCHED)
            handle = self._registry.perform(spec, self._store.base_url)
            payload = await handle.wait()
            result = parse(payload)
        except RmbtCancelledError:
            self._transition(InvocationState.CANCELLED)
            raise
        except asyncio.CancelledError:
            self._transition(InvocationState.CANCELLED)
            raise
        except RmbtError:
            self._transition(InvocationState.FAILED)
            raise
        except Exception:
            _logger.debug("%s failed with an uncategorized error", self.name, exc_info=True)
            self._transition(InvocationState.FAILED)
            raise
        self._transition(InvocationState.SUCCEEDED)
        return result
