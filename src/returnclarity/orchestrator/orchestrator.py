"""Per-context policy pipeline: detect → resolve → probe → extract.

State machine per browsing context::

    idle → detecting → fetching → extracting → done
                    ↘ extracting (already on a policy page)
                    ↘ done (cache hit)
    any step → error (unexpected failure)

Every state write carries the run's generation; a newer detection for
the same context makes older runs drop their writes and stop at their
next checkpoint.
"""

from __future__ import annotations

import asyncio
import logging
import time

from circuitbreaker import CircuitBreakerError  # pyright: ignore[reportUnknownVariableType]

from returnclarity.cache.policy_cache import PolicyCache
from returnclarity.config import Settings
from returnclarity.constants import (
    BADGE_COLOR_FOUND,
    BADGE_COLOR_NOT_FOUND,
    BADGE_TEXT,
    ContextStatus,
    ExtractionSource,
)
from returnclarity.extraction.local import extract_fields
from returnclarity.extraction.remote import RemoteExtractor
from returnclarity.extraction.schemas import ExtractionResult, PolicySummary
from returnclarity.ingestion.document import SoupDocument
from returnclarity.ingestion.fetcher import PageFetcher
from returnclarity.ingestion.normalizer import extract_policy_text
from returnclarity.logger import RunLogger
from returnclarity.orchestrator.events import ContextEventBus, StatusEvent
from returnclarity.orchestrator.host import HostBridge
from returnclarity.orchestrator.schemas import (
    ContextClosed,
    ContextNavigated,
    ContextState,
    DetectionResult,
    GetContextState,
    HostMessage,
    PageSnapshot,
    ProbeResult,
    SaveSnapshot,
    StorefrontDetected,
)
from returnclarity.orchestrator.state import ContextStore
from returnclarity.quality.gate_config import QualityGateConfig
from returnclarity.quality.scorer import score_policy_text
from returnclarity.render.renderer import HiddenRenderer
from returnclarity.resilience.errors import (
    FetchError,
    RemoteExtractionError,
    RenderError,
    SnapshotError,
    SupersededError,
    classify_error,
)
from returnclarity.resolution.resolver import (
    is_low_yield_candidate,
    is_policy_page,
    resolve_policy_urls,
)
from returnclarity.resolution.schemas import PolicyUrlCandidates
from returnclarity.snapshots import SnapshotClient, SnapshotReceipt

logger = logging.getLogger(__name__)


class PolicyOrchestrator:
    """Drives the policy pipeline for every browsing context."""

    def __init__(
        self,
        *,
        settings: Settings,
        fetcher: PageFetcher,
        cache: PolicyCache,
        host: HostBridge,
        remote: RemoteExtractor | None = None,
        renderer: HiddenRenderer | None = None,
        snapshots: SnapshotClient | None = None,
        events: ContextEventBus | None = None,
        run_logger: RunLogger | None = None,
        store: ContextStore | None = None,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._cache = cache
        self._host = host
        self._remote = remote
        self._renderer = renderer
        self._snapshots = snapshots
        self._events = events or ContextEventBus()
        self._run_logger = run_logger
        self._store = store or ContextStore()
        self._gate = QualityGateConfig.from_settings(settings)

    @property
    def store(self) -> ContextStore:
        return self._store

    @property
    def events(self) -> ContextEventBus:
        return self._events

    # ── Host entry points ────────────────────────────────

    async def handle(
        self, message: HostMessage
    ) -> ContextState | SnapshotReceipt | None:
        """Dispatch one host message and return its response, if any."""
        match message:
            case StorefrontDetected():
                self.submit(
                    message.context_id, message.detection, message.page
                )
                return None
            case GetContextState():
                return await self.get_state(message.context_id)
            case SaveSnapshot():
                return await self.save_snapshot(message.context_id)
            case ContextNavigated():
                await self._host.clear_badge(message.context_id)
                self._store.discard(message.context_id)
                return None
            case ContextClosed():
                self._store.discard(message.context_id)
                self._events.complete(message.context_id)
                return None

    def submit(
        self,
        context_id: str,
        detection: DetectionResult,
        page: PageSnapshot,
    ) -> asyncio.Task[ContextState | None]:
        """Start a run for the context, cancelling any run in flight.

        The new run is registered and marked ``detecting`` before this
        returns, so a state read right after never sees the previous run.
        """
        generation = self._start(context_id, detection)
        return self._store.submit(
            context_id,
            lambda: self._execute(context_id, generation, detection, page),
        )

    async def get_state(
        self, context_id: str, *, wait: bool = True
    ) -> ContextState:
        """Current state; optionally wait (bounded) for detection first."""
        state = self._store.get(context_id)
        if wait and (state is None or state.detection is None):
            await self._store.wait_for_detection(
                context_id, self._settings.detection_wait_seconds
            )
            state = self._store.get(context_id)
        return state or ContextState()

    async def save_snapshot(self, context_id: str) -> SnapshotReceipt:
        """Persist the context's summary; SnapshotError surfaces as-is."""
        if self._snapshots is None:
            raise SnapshotError("Snapshot saving is not configured")
        state = self._store.get(context_id)
        if state is None or state.summary is None:
            raise SnapshotError(
                "No policy summary available for this page",
                code="NO_SUMMARY",
            )
        return await self._snapshots.save(
            state.summary, page_url=state.summary.page_url
        )

    # ── Pipeline ─────────────────────────────────────────

    async def on_storefront_detected(
        self,
        context_id: str,
        detection: DetectionResult,
        page: PageSnapshot,
    ) -> ContextState | None:
        """Run the whole pipeline for one detection.

        Returns the final state, or None when a newer run took over.
        """
        generation = self._start(context_id, detection)
        return await self._execute(context_id, generation, detection, page)

    def _start(self, context_id: str, detection: DetectionResult) -> int:
        generation = self._store.begin(context_id)
        self._transition(
            context_id,
            generation,
            ContextStatus.DETECTING,
            detection=detection,
            summary=None,
            from_cache=False,
            error_message=None,
        )
        return generation

    async def _execute(
        self,
        context_id: str,
        generation: int,
        detection: DetectionResult,
        page: PageSnapshot,
    ) -> ContextState | None:
        try:
            return await self._run(context_id, generation, detection, page)
        except SupersededError:
            logger.debug(
                "event=run_superseded context=%s generation=%d",
                context_id,
                generation,
            )
            return None
        except Exception as exc:
            logger.exception(
                "event=pipeline_failed context=%s error_class=%s",
                context_id,
                classify_error(exc).value,
            )
            if self._run_logger is not None:
                self._run_logger.log_error(context_id, "pipeline", str(exc))
            return self._transition(
                context_id,
                generation,
                ContextStatus.ERROR,
                error_message=str(exc) or type(exc).__name__,
            )

    async def _run(
        self,
        context_id: str,
        generation: int,
        detection: DetectionResult,
        page: PageSnapshot,
    ) -> ContextState | None:
        if (
            not detection.is_shopify
            or detection.confidence < self._settings.min_detection_confidence
        ):
            await self._host.clear_badge(context_id)
            self._store.check(context_id, generation)
            return self._transition(
                context_id, generation, ContextStatus.IDLE
            )

        domain = detection.domain
        document = SoupDocument(page.html)

        if is_policy_page(page.url):
            text = extract_policy_text(
                document, max_chars=self._settings.max_text_chars
            )
            score = score_policy_text(text, min_chars=self._gate.min_chars)
            if self._gate.passes_accept(score):
                logger.info(
                    "event=current_page_policy context=%s url=%s",
                    context_id,
                    page.url,
                )
                return await self._extract_and_finish(
                    context_id,
                    generation,
                    domain,
                    ProbeResult(url=page.url, text=text, score=score),
                    page.url,
                )

        cached = await self._cache.get(domain)
        self._store.check(context_id, generation)
        if cached is not None:
            await self._host.set_badge(
                context_id, BADGE_TEXT, BADGE_COLOR_FOUND
            )
            self._store.check(context_id, generation)
            return self._transition(
                context_id,
                generation,
                ContextStatus.DONE,
                summary=cached,
                from_cache=True,
            )

        self._transition(context_id, generation, ContextStatus.FETCHING)
        candidates = resolve_policy_urls(
            page.url,
            document,
            platform_routes=self._settings.platform_routes_enabled,
        )
        best = await self._probe(context_id, generation, candidates)

        if best is None or len(best.text) < self._gate.min_chars:
            logger.info(
                "event=no_viable_candidate context=%s domain=%s",
                context_id,
                domain,
            )
            await self._host.set_badge(
                context_id, BADGE_TEXT, BADGE_COLOR_NOT_FOUND
            )
            self._store.check(context_id, generation)
            return self._transition(
                context_id, generation, ContextStatus.DONE, summary=None
            )

        return await self._extract_and_finish(
            context_id, generation, domain, best, page.url
        )

    async def _extract_and_finish(
        self,
        context_id: str,
        generation: int,
        domain: str,
        best: ProbeResult,
        page_url: str,
    ) -> ContextState | None:
        self._transition(context_id, generation, ContextStatus.EXTRACTING)
        summary = await self._summarize(
            context_id, generation, domain, best, page_url
        )
        await self._cache.set(domain, summary)
        self._store.check(context_id, generation)
        await self._host.set_badge(context_id, BADGE_TEXT, BADGE_COLOR_FOUND)
        self._store.check(context_id, generation)
        return self._transition(
            context_id, generation, ContextStatus.DONE, summary=summary
        )

    async def _probe(
        self,
        context_id: str,
        generation: int,
        candidates: PolicyUrlCandidates,
    ) -> ProbeResult | None:
        """Fetch candidates in order; stop at the first excellent page."""
        urls = list(candidates.refund_candidates)
        if not urls and candidates.shipping_policy is not None:
            urls = [candidates.shipping_policy]

        best: ProbeResult | None = None
        low_yield: list[str] = []
        for url in urls:
            if is_low_yield_candidate(url):
                low_yield.append(url)
            started = time.perf_counter()
            try:
                fetched = await self._fetcher.fetch(url)
            except FetchError as exc:
                self._store.check(context_id, generation)
                logger.debug(
                    "event=candidate_skipped url=%s reason=%s",
                    url,
                    exc.reason,
                )
                self._log_probe(context_id, url, None, started, str(exc))
                continue
            self._store.check(context_id, generation)

            text = extract_policy_text(
                SoupDocument(fetched.html),
                max_chars=self._settings.max_text_chars,
            )
            score = score_policy_text(text, min_chars=self._gate.min_chars)
            self._log_probe(context_id, url, score, started)
            if best is None or score > best.score:
                best = ProbeResult(url=url, text=text, score=score)
            if self._gate.passes_early_stop(score):
                logger.info(
                    "event=early_stop context=%s url=%s score=%d",
                    context_id,
                    url,
                    score,
                )
                return best

        if low_yield:
            rendered = await self._render(context_id, generation, low_yield[0])
            if (
                rendered is not None
                and self._gate.passes_accept(rendered.score)
                and (best is None or rendered.score > best.score)
            ):
                best = rendered
        return best

    async def _render(
        self, context_id: str, generation: int, url: str
    ) -> ProbeResult | None:
        if self._renderer is None or not self._settings.render_fallback_enabled:
            return None
        started = time.perf_counter()
        try:
            async with asyncio.timeout(self._settings.render_timeout_seconds):
                text = await self._renderer.render_text(
                    url,
                    timeout=self._settings.render_timeout_seconds,
                    mutation_timeout=self._settings.mutation_wait_seconds,
                )
        except (RenderError, TimeoutError) as exc:
            self._store.check(context_id, generation)
            logger.warning(
                "event=render_abandoned context=%s url=%s error=%s",
                context_id,
                url,
                exc,
            )
            self._log_probe(context_id, url, None, started, str(exc))
            return None
        self._store.check(context_id, generation)
        if not text:
            return None
        score = score_policy_text(text, min_chars=self._gate.min_chars)
        self._log_probe(context_id, url, score, started)
        return ProbeResult(url=url, text=text, score=score)

    async def _summarize(
        self,
        context_id: str,
        generation: int,
        domain: str,
        best: ProbeResult,
        page_url: str,
    ) -> PolicySummary:
        """Remote extractor first, local heuristics when it has nothing."""
        result: ExtractionResult | None = None
        source = ExtractionSource.LOCAL

        if self._remote is not None and self._settings.remote_extractor_enabled:
            try:
                result = await asyncio.wait_for(
                    self._remote.extract(best.text, domain),
                    timeout=self._settings.remote_timeout_seconds,
                )
            except (
                RemoteExtractionError,
                CircuitBreakerError,
                TimeoutError,
            ) as exc:
                logger.warning(
                    "event=remote_extraction_failed context=%s"
                    " error_class=%s action=local_fallback error=%s",
                    context_id,
                    classify_error(exc).value,
                    exc,
                )
                result = None
            self._store.check(context_id, generation)
            if result is not None and result.has_any_value:
                source = ExtractionSource.REMOTE
            else:
                result = None

        if result is None:
            result = extract_fields(best.text)

        return PolicySummary(
            domain=domain,
            policy_url=best.url,
            page_url=page_url,
            fields=result.fields,
            confidence=result.confidence,
            raw_text_snippet=best.text,
            source=source,
        )

    # ── Helpers ──────────────────────────────────────────

    def _transition(
        self,
        context_id: str,
        generation: int,
        status: ContextStatus,
        **changes: object,
    ) -> ContextState | None:
        state = self._store.update(
            context_id, generation, status=status, **changes
        )
        if state is None:
            return None
        domain = state.detection.domain if state.detection else ""
        self._events.publish(
            StatusEvent(
                context_id=context_id,
                status=status,
                domain=domain,
                from_cache=state.from_cache,
                error_message=state.error_message,
            )
        )
        if self._run_logger is not None:
            self._run_logger.log_transition(
                context_id, status.value, domain or None, state.from_cache
            )
        logger.debug(
            "event=transition context=%s status=%s", context_id, status
        )
        return state

    def _log_probe(
        self,
        context_id: str,
        url: str,
        score: int | None,
        started: float,
        error: str | None = None,
    ) -> None:
        if self._run_logger is None:
            return
        self._run_logger.log_probe(
            context_id,
            url,
            score,
            round((time.perf_counter() - started) * 1000, 1),
            error,
        )
