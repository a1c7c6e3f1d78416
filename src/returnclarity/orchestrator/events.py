"""Status-transition feed per browsing context.

Every state write the orchestrator makes becomes a StatusEvent. A
follower that joins late (a popup opened mid-extraction, ``extract
--follow``) first gets the buffered transitions of the context, then live
ones, so it sees the same sequence as one listening from the start.

Single event loop only; nothing here awaits while touching a channel.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field

from returnclarity.constants import EVENT_REPLAY_LIMIT, ContextStatus


@dataclass(frozen=True)
class StatusEvent:
    """One status transition of one context."""

    context_id: str
    status: ContextStatus
    domain: str = ""
    from_cache: bool = False
    error_message: str | None = None

    def describe(self) -> str:
        line = f"[{self.status.value}] {self.domain or self.context_id}"
        if self.from_cache:
            line += " (cache)"
        if self.error_message:
            line += f": {self.error_message}"
        return line


@dataclass
class _Channel:
    history: deque[StatusEvent]
    followers: list[asyncio.Queue[StatusEvent | None]] = field(
        default_factory=lambda: list[asyncio.Queue[StatusEvent | None]](),
    )


class ContextEventBus:
    """Fans status transitions out to followers, with bounded history."""

    def __init__(self, max_replay: int = EVENT_REPLAY_LIMIT) -> None:
        self._channels: dict[str, _Channel] = {}
        self._max_replay = max_replay

    def _channel(self, context_id: str) -> _Channel:
        ch = self._channels.get(context_id)
        if ch is None:
            ch = _Channel(history=deque(maxlen=self._max_replay))
            self._channels[context_id] = ch
        return ch

    def publish(self, event: StatusEvent) -> None:
        ch = self._channel(event.context_id)
        ch.history.append(event)
        for q in ch.followers:
            q.put_nowait(event)

    def subscribe(
        self, context_id: str
    ) -> asyncio.Queue[StatusEvent | None]:
        """Queue pre-filled with the history; ``None`` marks the end."""
        ch = self._channel(context_id)
        q: asyncio.Queue[StatusEvent | None] = asyncio.Queue()
        for event in ch.history:
            q.put_nowait(event)
        ch.followers.append(q)
        return q

    def complete(self, context_id: str) -> None:
        """End every follower's stream and drop the channel; idempotent."""
        ch = self._channels.pop(context_id, None)
        if ch is None:
            return
        for q in ch.followers:
            q.put_nowait(None)
