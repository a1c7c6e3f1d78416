"""Shared constants: single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so downstream code (JSON payloads,
badge text, log lines) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class ContextStatus(StrEnum):
    """Per-context lifecycle status."""

    IDLE = "idle"
    DETECTING = "detecting"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    DONE = "done"
    ERROR = "error"


TERMINAL_STATUSES = frozenset({ContextStatus.DONE, ContextStatus.ERROR})


class ConfidenceLevel(StrEnum):
    """Qualitative per-field confidence labels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PolicyType(StrEnum):
    """Policy page kinds a storefront exposes."""

    REFUND = "refund"
    SHIPPING = "shipping"
    PRIVACY = "privacy"
    TERMS = "terms"
    SUBSCRIPTION = "subscription"
    UNKNOWN = "unknown"


class ShippingPayer(StrEnum):
    """Display labels for who pays return shipping."""

    FREE = "Free returns"
    SELLER = "Seller pays"
    CUSTOMER = "Customer pays"
    VARIES = "Varies by item/reason"


class ExtractionSource(StrEnum):
    """Which extractor produced a summary."""

    REMOTE = "remote"
    LOCAL = "local"


# Field names in wire (camelCase) form, in display order
FIELD_NAMES: tuple[str, ...] = (
    "returnWindow",
    "conditionRequirements",
    "fees",
    "returnShipping",
    "exclusions",
)

# ── Text Limits ──────────────────────────────────────────

MAX_TEXT_CHARS = 8000
RAW_SNIPPET_CHARS = 500
REMOTE_FIELD_MAX_CHARS = 120
DISPLAY_MAX_CHARS = 200
MIN_CONTAINER_TEXT_CHARS = 200
API_CONTEXT_LEAD_CHARS = 200

# ── Quality Gate ─────────────────────────────────────────

QUALITY_MIN_CHARS = 50
QUALITY_ACCEPT_THRESHOLD = 6
QUALITY_EARLY_STOP_THRESHOLD = 8

# ── Return-window Scoring ────────────────────────────────

WINDOW_HIGH_SCORE = 5
WINDOW_MEDIUM_SCORE = 3
WINDOW_ANCHOR_RADIUS = 120

# ── Timeouts (seconds) ───────────────────────────────────

FETCH_TIMEOUT = 8.0
REMOTE_EXTRACT_TIMEOUT = 15.0
RENDER_TIMEOUT = 15.0
MUTATION_WAIT_TIMEOUT = 5.0
DETECTION_WAIT_TIMEOUT = 4.0

# ── Cache ────────────────────────────────────────────────

CACHE_PREFIX = "cache:"
CACHE_DEFAULT_TTL_SECONDS = 24 * 60 * 60
CACHE_PRUNE_THRESHOLD_BYTES = 8 * 1024 * 1024

# ── Detection ────────────────────────────────────────────

MIN_DETECTION_CONFIDENCE = 25

# ── Badge ────────────────────────────────────────────────

BADGE_TEXT = "RC"
BADGE_COLOR_FOUND = "#10B981"
BADGE_COLOR_NOT_FOUND = "#F59E0B"

# ── Circuit Breaker Configuration ────────────────────────

CB_REMOTE_FAILURE_THRESHOLD = 5
CB_REMOTE_RECOVERY_TIMEOUT = 30

# ── Retry Strategy ───────────────────────────────────────

RETRY_MAX_ATTEMPTS = 2
RETRY_INITIAL_WAIT = 1
RETRY_MAX_WAIT = 4

# ── Misc ─────────────────────────────────────────────────

ERROR_TRUNCATION_CHARS = 200
EVENT_REPLAY_LIMIT = 100
