"""CLI entry point: ``returnclarity extract`` and ``returnclarity cache``."""

from __future__ import annotations

# Phase 1: Singleton logging before any transitive httpx/playwright imports
from returnclarity.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import json  # noqa: E402
import sys  # noqa: E402
from typing import TYPE_CHECKING  # noqa: E402
from urllib.parse import urlsplit  # noqa: E402

from returnclarity import __version__  # noqa: E402
from returnclarity.config import Settings  # noqa: E402
from returnclarity.constants import FIELD_NAMES, ContextStatus  # noqa: E402
from returnclarity.extraction.schemas import (  # noqa: E402
    FIELD_ATTRS,
    PolicySummary,
)

if TYPE_CHECKING:
    from returnclarity.orchestrator.events import StatusEvent

CLI_CONTEXT_ID = "cli"


def main() -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args()

    if args.version:
        print(f"returnclarity {__version__}")
        return

    if args.command == "extract":
        _run_extract(args)
    elif args.command == "cache":
        _run_cache(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="returnclarity",
        description=(
            "Return policy summaries: "
            "five fields with confidence, straight from the store's pages."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    extract = sub.add_parser(
        "extract",
        help="Summarize the return policy of a storefront page",
    )
    extract.add_argument(
        "url",
        type=str,
        help="Any page URL on the storefront",
    )
    extract.add_argument(
        "--no-remote",
        action="store_true",
        help="Skip the remote extractor (local heuristics only)",
    )
    extract.add_argument(
        "--no-render",
        action="store_true",
        help="Disable the hidden-render fallback",
    )
    extract.add_argument(
        "--save",
        action="store_true",
        help="Save the summary as a snapshot (needs AUTH_TOKEN)",
    )
    extract.add_argument(
        "--json",
        action="store_true",
        help="Print the summary as JSON",
    )
    extract.add_argument(
        "--follow",
        action="store_true",
        help="Print each status transition to stderr as it happens",
    )

    cache = sub.add_parser(
        "cache",
        help="Inspect or clear the local policy cache",
    )
    cache.add_argument(
        "action",
        choices=["stats", "clear"],
        help="stats: entry count and size; clear: drop entries",
    )
    cache.add_argument(
        "--domain",
        "-d",
        default=None,
        help="Only clear this store domain",
    )

    return parser


def _run_extract(args: argparse.Namespace) -> None:
    """Execute the extract command."""
    if urlsplit(args.url).scheme not in ("http", "https"):
        print(f"Error: not an http(s) URL: {args.url}", file=sys.stderr)
        sys.exit(1)

    overrides: dict[str, bool] = {}
    if args.no_remote:
        overrides["remote_extractor_enabled"] = False
    if args.no_render:
        overrides["render_fallback_enabled"] = False
    settings = Settings(**overrides)  # pyright: ignore[reportArgumentType]

    exit_code = asyncio.run(
        _extract(
            args.url,
            settings,
            save=args.save,
            as_json=args.json,
            follow=args.follow,
        )
    )
    if exit_code:
        sys.exit(exit_code)


async def _extract(
    url: str,
    settings: Settings,
    *,
    save: bool,
    as_json: bool,
    follow: bool = False,
) -> int:
    import httpx

    from returnclarity.cache import JsonFileKeyValueStore, PolicyCache
    from returnclarity.extraction.remote import RemoteExtractor
    from returnclarity.ingestion.fetcher import PolicyFetcher
    from returnclarity.logger import RunLogger
    from returnclarity.orchestrator import (
        DetectionResult,
        LoggingHostBridge,
        PageSnapshot,
        PolicyOrchestrator,
    )
    from returnclarity.render.renderer import PlaywrightRenderer
    from returnclarity.resilience.errors import FetchError, SnapshotError
    from returnclarity.snapshots import SnapshotClient

    domain = (urlsplit(url).hostname or "").lower()
    renderer = (
        PlaywrightRenderer(settings)
        if settings.render_fallback_enabled
        else None
    )

    async with httpx.AsyncClient() as client:
        fetcher = PolicyFetcher(client, settings)
        orchestrator = PolicyOrchestrator(
            settings=settings,
            fetcher=fetcher,
            cache=PolicyCache(
                JsonFileKeyValueStore(settings.cache_path),
                ttl=settings.cache_ttl_seconds,
                prune_threshold_bytes=settings.cache_prune_threshold_bytes,
            ),
            host=LoggingHostBridge(),
            remote=RemoteExtractor(client, settings),
            renderer=renderer,
            snapshots=SnapshotClient(client, settings),
            run_logger=RunLogger(settings.log_dir, settings.log_level),
        )

        # The page itself feeds footer-link resolution
        try:
            html = (await fetcher.fetch(url)).html
        except FetchError as exc:
            print(f"Warning: {exc}; using canonical routes only", file=sys.stderr)
            html = ""

        # Treat the target as a detected storefront
        detection = DetectionResult(
            is_shopify=True, confidence=100, domain=domain
        )
        follower = (
            asyncio.create_task(
                _follow(orchestrator.events.subscribe(CLI_CONTEXT_ID))
            )
            if follow
            else None
        )
        receipt = None
        try:
            state = await orchestrator.on_storefront_detected(
                CLI_CONTEXT_ID, detection, PageSnapshot(url=url, html=html)
            )
            if (
                save
                and state is not None
                and state.summary is not None
            ):
                try:
                    receipt = await orchestrator.save_snapshot(CLI_CONTEXT_ID)
                except SnapshotError as exc:
                    print(f"Snapshot not saved: {exc}", file=sys.stderr)
        finally:
            orchestrator.events.complete(CLI_CONTEXT_ID)
            if follower is not None:
                await follower
            if renderer is not None:
                await renderer.aclose()

    if state is None or state.status == ContextStatus.ERROR:
        message = state.error_message if state else "run superseded"
        print(f"Error: {message}", file=sys.stderr)
        return 1

    if as_json:
        print(
            json.dumps(
                {
                    "status": state.status.value,
                    "fromCache": state.from_cache,
                    "summary": (
                        state.summary.to_wire() if state.summary else None
                    ),
                    "snapshotId": receipt.id if receipt else None,
                },
                indent=2,
            )
        )
    else:
        _print_summary(domain, state.summary, from_cache=state.from_cache)
        if receipt is not None:
            print(f"\nSnapshot saved (id {receipt.id})")
    return 0 if state.summary is not None else 2


async def _follow(queue: asyncio.Queue[StatusEvent | None]) -> None:
    """Print transitions until the context completes."""
    while (event := await queue.get()) is not None:
        print(event.describe(), file=sys.stderr)


def _print_summary(
    domain: str, summary: PolicySummary | None, *, from_cache: bool
) -> None:
    if summary is None:
        print(f"No return policy found for {domain}")
        return
    origin = "cache" if from_cache else summary.source.value
    print(f"Return policy for {summary.domain} ({origin})")
    print(f"Source: {summary.policy_url}\n")
    width = max(len(name) for name in FIELD_NAMES)
    for name, attr in zip(FIELD_NAMES, FIELD_ATTRS, strict=True):
        value = getattr(summary.fields, attr) or "—"
        level = getattr(summary.confidence, attr).value
        print(f"  {name:<{width}}  [{level:<6}] {value}")


def _run_cache(args: argparse.Namespace) -> None:
    """Execute the cache command."""
    settings = Settings()
    asyncio.run(_cache(args.action, args.domain, settings))


async def _cache(
    action: str, domain: str | None, settings: Settings
) -> None:
    from returnclarity.cache import JsonFileKeyValueStore, PolicyCache

    cache = PolicyCache(
        JsonFileKeyValueStore(settings.cache_path),
        ttl=settings.cache_ttl_seconds,
        prune_threshold_bytes=settings.cache_prune_threshold_bytes,
    )
    if action == "clear":
        removed = await cache.clear(domain)
        target = domain or "all domains"
        print(f"Cleared {removed} cache entr{'y' if removed == 1 else 'ies'} ({target})")
        return

    stats = await cache.stats()
    print(f"Entries: {stats.entries}")
    print(f"Bytes:   {stats.bytes_used}")
    if stats.oldest_entry_age_seconds is not None:
        hours = stats.oldest_entry_age_seconds / 3600
        print(f"Oldest:  {hours:.1f}h ago")
