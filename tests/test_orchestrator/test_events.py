"""Tests for ContextEventBus and StatusEvent."""

from __future__ import annotations

import asyncio

import pytest

from returnclarity.constants import ContextStatus
from returnclarity.orchestrator.events import ContextEventBus, StatusEvent

DETECTING = StatusEvent("tab:1", ContextStatus.DETECTING, "shop.example.com")
FETCHING = StatusEvent("tab:1", ContextStatus.FETCHING, "shop.example.com")
EXTRACTING = StatusEvent("tab:1", ContextStatus.EXTRACTING, "shop.example.com")
DONE = StatusEvent("tab:1", ContextStatus.DONE, "shop.example.com")


def _drain(queue: asyncio.Queue[StatusEvent | None]) -> list[StatusEvent]:
    events: list[StatusEvent] = []
    while (event := queue.get_nowait()) is not None:
        events.append(event)
    return events


@pytest.mark.asyncio
async def test_publish_subscribe() -> None:
    bus = ContextEventBus()

    queue = bus.subscribe("tab:1")
    bus.publish(DETECTING)
    bus.complete("tab:1")

    assert _drain(queue) == [DETECTING]


@pytest.mark.asyncio
async def test_late_follower_gets_history_first() -> None:
    """A popup opened mid-run sees earlier transitions first."""
    bus = ContextEventBus()
    bus.publish(DETECTING)
    bus.publish(FETCHING)

    queue = bus.subscribe("tab:1")
    bus.publish(EXTRACTING)
    bus.complete("tab:1")

    assert _drain(queue) == [DETECTING, FETCHING, EXTRACTING]


@pytest.mark.asyncio
async def test_history_is_bounded() -> None:
    bus = ContextEventBus(max_replay=2)
    for event in (DETECTING, FETCHING, EXTRACTING, DONE):
        bus.publish(event)

    queue = bus.subscribe("tab:1")
    bus.complete("tab:1")
    assert _drain(queue) == [EXTRACTING, DONE]


@pytest.mark.asyncio
async def test_channels_are_per_context() -> None:
    bus = ContextEventBus()
    queue = bus.subscribe("tab:1")
    other = StatusEvent("tab:2", ContextStatus.DONE)
    bus.publish(other)
    bus.complete("tab:1")

    assert _drain(queue) == []
    late = bus.subscribe("tab:2")
    bus.complete("tab:2")
    assert _drain(late) == [other]


@pytest.mark.asyncio
async def test_complete_drops_history_and_is_idempotent() -> None:
    bus = ContextEventBus()
    bus.publish(DONE)

    bus.complete("tab:1")
    bus.complete("tab:1")

    queue = bus.subscribe("tab:1")
    bus.complete("tab:1")
    assert _drain(queue) == []


@pytest.mark.parametrize(
    ("event", "line"),
    [
        (DONE, "[done] shop.example.com"),
        (
            StatusEvent("tab:1", ContextStatus.DONE, "a.example", True),
            "[done] a.example (cache)",
        ),
        (
            StatusEvent(
                "tab:1", ContextStatus.ERROR, error_message="boom"
            ),
            "[error] tab:1: boom",
        ),
    ],
)
def test_describe(event: StatusEvent, line: str) -> None:
    assert event.describe() == line
