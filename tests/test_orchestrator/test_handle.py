"""Tests for host message dispatch and snapshot saving."""

from __future__ import annotations

import asyncio
import time

import pytest

from returnclarity.constants import TERMINAL_STATUSES, ContextStatus
from returnclarity.extraction.schemas import PolicySummary
from returnclarity.orchestrator import (
    ContextClosed,
    ContextEventBus,
    ContextNavigated,
    ContextState,
    GetContextState,
    SaveSnapshot,
    StorefrontDetected,
)
from returnclarity.resilience.errors import SnapshotError
from returnclarity.snapshots import SnapshotReceipt
from tests.conftest import (
    EXCELLENT_POLICY_TEXT,
    STORE_ORIGIN,
    FakeFetcher,
    FakeHost,
    make_detection,
    make_page,
    policy_html,
)

CTX = "tab:3"
CANONICAL = f"{STORE_ORIGIN}/policies/refund-policy"


class FakeSnapshots:
    def __init__(self) -> None:
        self.saved: list[tuple[PolicySummary, str | None]] = []

    async def save(
        self, summary: PolicySummary, *, page_url: str | None = None
    ) -> SnapshotReceipt:
        self.saved.append((summary, page_url))
        return SnapshotReceipt(id=41, store_domain=summary.domain)


def _fetcher() -> FakeFetcher:
    return FakeFetcher({CANONICAL: policy_html(EXCELLENT_POLICY_TEXT)})


@pytest.mark.asyncio
async def test_get_state_waits_for_detection(make_orchestrator) -> None:
    orchestrator = make_orchestrator(_fetcher())

    await orchestrator.handle(
        StorefrontDetected(
            context_id=CTX, detection=make_detection(), page=make_page()
        )
    )
    state = await orchestrator.handle(GetContextState(context_id=CTX))

    assert isinstance(state, ContextState)
    assert state.detection is not None
    assert state.detection.domain == "shop.example.com"

    # Let the background run settle before the loop closes
    for _ in range(100):
        current = orchestrator.store.get(CTX)
        if current is not None and current.status in TERMINAL_STATUSES:
            break
        await asyncio.sleep(0)
    assert orchestrator.store.get(CTX).status == ContextStatus.DONE  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_get_state_times_out_to_empty_state(make_orchestrator) -> None:
    """Unknown context: bounded wait, then an empty idle state."""
    orchestrator = make_orchestrator(_fetcher())

    started = time.perf_counter()
    state = await orchestrator.get_state("tab:unknown")

    assert time.perf_counter() - started < 2
    assert state.status == ContextStatus.IDLE
    assert state.detection is None
    assert state.summary is None


@pytest.mark.asyncio
async def test_get_state_without_wait(make_orchestrator) -> None:
    orchestrator = make_orchestrator(_fetcher())
    state = await orchestrator.get_state("tab:unknown", wait=False)
    assert state.detection is None


@pytest.mark.asyncio
async def test_navigation_discards_state(
    make_orchestrator, host: FakeHost
) -> None:
    orchestrator = make_orchestrator(_fetcher())
    await orchestrator.on_storefront_detected(
        CTX, make_detection(), make_page()
    )

    await orchestrator.handle(ContextNavigated(context_id=CTX))

    assert orchestrator.store.get(CTX) is None
    assert CTX not in host.badges
    assert host.cleared == [CTX]


@pytest.mark.asyncio
async def test_navigation_cancels_run_in_flight(make_orchestrator) -> None:
    gate = asyncio.Event()
    fetcher = _fetcher()
    fetcher.gates[CANONICAL] = gate
    orchestrator = make_orchestrator(fetcher)

    task = orchestrator.submit(CTX, make_detection(), make_page())
    while CANONICAL not in fetcher.calls:
        await asyncio.sleep(0)
    await orchestrator.handle(ContextNavigated(context_id=CTX))

    with pytest.raises(asyncio.CancelledError):
        await task
    assert orchestrator.store.get(CTX) is None


@pytest.mark.asyncio
async def test_state_read_after_redetection_sees_new_run(
    make_orchestrator,
) -> None:
    """A re-entrant detection replaces the finished state immediately."""
    orchestrator = make_orchestrator(_fetcher())
    await orchestrator.on_storefront_detected(
        CTX, make_detection(), make_page()
    )

    await orchestrator.handle(
        StorefrontDetected(
            context_id=CTX, detection=make_detection(), page=make_page()
        )
    )
    state = await orchestrator.handle(GetContextState(context_id=CTX))

    assert isinstance(state, ContextState)
    assert state.status == ContextStatus.DETECTING
    assert state.summary is None
    while orchestrator.store.get(CTX).status not in TERMINAL_STATUSES:
        await asyncio.sleep(0)
    assert orchestrator.store.get(CTX).status == ContextStatus.DONE


@pytest.mark.asyncio
async def test_close_ends_event_stream(make_orchestrator) -> None:
    events = ContextEventBus()
    orchestrator = make_orchestrator(_fetcher(), events=events)
    await orchestrator.on_storefront_detected(
        CTX, make_detection(), make_page()
    )
    queue = events.subscribe(CTX)

    await orchestrator.handle(ContextClosed(context_id=CTX))

    received = []
    while (event := queue.get_nowait()) is not None:
        received.append(event.status)
    assert received[-1] == ContextStatus.DONE
    late = events.subscribe(CTX)
    events.complete(CTX)
    assert late.get_nowait() is None
    assert orchestrator.store.get(CTX) is None


class TestSaveSnapshot:
    @pytest.mark.asyncio
    async def test_saves_current_summary(self, make_orchestrator) -> None:
        snapshots = FakeSnapshots()
        orchestrator = make_orchestrator(_fetcher(), snapshots=snapshots)
        state = await orchestrator.on_storefront_detected(
            CTX, make_detection(), make_page()
        )

        receipt = await orchestrator.handle(SaveSnapshot(context_id=CTX))

        assert isinstance(receipt, SnapshotReceipt)
        assert receipt.id == 41
        assert state is not None
        assert snapshots.saved == [(state.summary, make_page().url)]

    @pytest.mark.asyncio
    async def test_no_summary(self, make_orchestrator) -> None:
        orchestrator = make_orchestrator(
            FakeFetcher(), snapshots=FakeSnapshots()
        )
        await orchestrator.on_storefront_detected(
            CTX, make_detection(), make_page()
        )

        with pytest.raises(SnapshotError) as exc_info:
            await orchestrator.save_snapshot(CTX)
        assert exc_info.value.code == "NO_SUMMARY"

    @pytest.mark.asyncio
    async def test_not_configured(self, make_orchestrator) -> None:
        orchestrator = make_orchestrator(_fetcher())
        with pytest.raises(SnapshotError, match="not configured"):
            await orchestrator.save_snapshot(CTX)
