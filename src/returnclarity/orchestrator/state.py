"""Per-context state store with latest-wins writes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from returnclarity.orchestrator.schemas import ContextState
from returnclarity.resilience.supersede import LatestWinsGuard

logger = logging.getLogger(__name__)


class ContextStore:
    """Owns every ContextState; writes are tagged with a generation.

    ``begin()`` starts a run for a context and returns its generation.
    ``update()`` from any other generation is dropped, so a slow, stale
    run can never overwrite the outcome of a newer one.
    """

    def __init__(self, guard: LatestWinsGuard | None = None) -> None:
        self._guard = guard or LatestWinsGuard()
        self._states: dict[str, ContextState] = {}
        self._detected: dict[str, asyncio.Event] = {}

    def begin(self, context_id: str) -> int:
        return self._guard.begin(context_id)

    def is_current(self, context_id: str, generation: int) -> bool:
        return self._guard.is_current(context_id, generation)

    def check(self, context_id: str, generation: int) -> None:
        """Raise SupersededError if *generation* is stale."""
        self._guard.check(context_id, generation)

    def submit(
        self,
        context_id: str,
        factory: Callable[[], Coroutine[Any, Any, Any]],
    ) -> asyncio.Task[Any]:
        """Run a pipeline task for the context, cancelling the previous one."""
        return self._guard.submit(context_id, factory)

    def update(
        self,
        context_id: str,
        generation: int,
        **changes: Any,
    ) -> ContextState | None:
        """Apply *changes* if *generation* is current; else drop them."""
        if not self._guard.is_current(context_id, generation):
            logger.debug(
                "event=stale_write_dropped context=%s generation=%d",
                context_id,
                generation,
            )
            return None
        current = self._states.get(context_id) or ContextState()
        updated = current.model_copy(update=changes)
        self._states[context_id] = updated
        if updated.detection is not None:
            self._detection_event(context_id).set()
        return updated

    def get(self, context_id: str) -> ContextState | None:
        return self._states.get(context_id)

    def discard(self, context_id: str) -> None:
        """Forget the context and stop any run still working on it."""
        self._guard.forget(context_id)
        self._states.pop(context_id, None)
        event = self._detected.pop(context_id, None)
        if event is not None:
            # Wake waiters; they will read an empty state
            event.set()

    async def wait_for_detection(
        self, context_id: str, timeout: float
    ) -> bool:
        """Wait until the context has a detection result, bounded."""
        event = self._detection_event(context_id)
        try:
            async with asyncio.timeout(timeout):
                await event.wait()
        except TimeoutError:
            return False
        return True

    def _detection_event(self, context_id: str) -> asyncio.Event:
        event = self._detected.get(context_id)
        if event is None:
            event = asyncio.Event()
            self._detected[context_id] = event
        return event

    @property
    def context_ids(self) -> list[str]:
        return list(self._states)
