"""Host bridge: how the orchestrator signals the browser UI."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class HostBridge(Protocol):
    async def set_badge(
        self, context_id: str, text: str, color: str
    ) -> None: ...
    async def clear_badge(self, context_id: str) -> None: ...


class LoggingHostBridge:
    """Bridge for headless runs (CLI): badge changes only go to the log."""

    async def set_badge(
        self, context_id: str, text: str, color: str
    ) -> None:
        logger.debug(
            "event=badge_set context=%s text=%s color=%s",
            context_id,
            text,
            color,
        )

    async def clear_badge(self, context_id: str) -> None:
        logger.debug("event=badge_cleared context=%s", context_id)
