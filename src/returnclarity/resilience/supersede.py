"""Latest-wins tracking for per-key async work.

LatestWinsGuard is the inverse of request deduplication: when work for
key "tab:7" is running and a newer request for the same key arrives, the
newer one takes over. Each ``begin()`` hands out a generation; writes
guarded by an older generation are dropped and the older run stops at
its next ``check()``.

Generations come from one process-wide counter, so forgetting a key and
starting again never revives a stale generation.

Runs on a single event loop; nothing awaits between read and
write of the generation map.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from returnclarity.resilience.errors import SupersededError

logger = logging.getLogger(__name__)


class LatestWinsGuard:
    """Generation bookkeeping plus optional task ownership per key.

    Usage::

        guard = LatestWinsGuard()
        gen = guard.begin("tab:7")
        ...
        await fetch()
        guard.check("tab:7", gen)  # raises SupersededError if stale
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._generations: dict[str, int] = {}
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def begin(self, key: str) -> int:
        """Start a new generation for *key*, superseding older ones."""
        generation = next(self._counter)
        self._generations[key] = generation
        return generation

    def is_current(self, key: str, generation: int) -> bool:
        return self._generations.get(key) == generation

    def check(self, key: str, generation: int) -> None:
        """Raise SupersededError when *generation* is no longer current."""
        if not self.is_current(key, generation):
            raise SupersededError(
                f"generation {generation} for {key} superseded"
            )

    def forget(self, key: str) -> None:
        """Drop *key*; any in-flight generation becomes stale."""
        self._generations.pop(key, None)
        task = self._tasks.pop(key, None)
        if task is not None and not task.done():
            task.cancel()

    def submit(
        self,
        key: str,
        factory: Callable[[], Coroutine[Any, Any, Any]],
    ) -> asyncio.Task[Any]:
        """Run ``factory()`` as the owning task for *key*.

        A still-running previous task for the same key is cancelled.
        """
        previous = self._tasks.get(key)
        if previous is not None and not previous.done():
            logger.debug("event=task_superseded key=%s", key)
            previous.cancel()

        task = asyncio.create_task(factory())
        self._tasks[key] = task

        def _release(done: asyncio.Task[Any]) -> None:
            if self._tasks.get(key) is done:
                self._tasks.pop(key, None)

        task.add_done_callback(_release)
        return task

    @property
    def active_keys(self) -> list[str]:
        """Keys with a task still running."""
        return [k for k, t in self._tasks.items() if not t.done()]
