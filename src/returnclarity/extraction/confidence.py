"""Per-field confidence estimation and invariant enforcement."""

from __future__ import annotations

from returnclarity.constants import (
    WINDOW_HIGH_SCORE,
    WINDOW_MEDIUM_SCORE,
    ConfidenceLevel,
)
from returnclarity.extraction.schemas import (
    FIELD_ATTRS,
    PolicyConfidence,
    PolicyFields,
)

_ORDER = (ConfidenceLevel.LOW, ConfidenceLevel.MEDIUM, ConfidenceLevel.HIGH)


def level_from_score(
    score: int,
    high: int = WINDOW_HIGH_SCORE,
    medium: int = WINDOW_MEDIUM_SCORE,
) -> ConfidenceLevel:
    """Map an accumulated heuristic score to a confidence level."""
    if score >= high:
        return ConfidenceLevel.HIGH
    if score >= medium:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def downgrade(level: ConfidenceLevel) -> ConfidenceLevel:
    """One step down, floored at low."""
    idx = _ORDER.index(level)
    return _ORDER[max(idx - 1, 0)]


def coerce_level(value: object) -> ConfidenceLevel:
    """Parse an untrusted confidence label; unknown values become low."""
    if isinstance(value, str):
        try:
            return ConfidenceLevel(value.strip().lower())
        except ValueError:
            return ConfidenceLevel.LOW
    return ConfidenceLevel.LOW


def enforce_invariants(
    fields: PolicyFields,
    confidence: PolicyConfidence,
) -> PolicyConfidence:
    """Pair every undetermined field with low confidence."""
    updates = {
        attr: ConfidenceLevel.LOW
        for attr in FIELD_ATTRS
        if getattr(fields, attr) is None
    }
    if not updates:
        return confidence
    return confidence.model_copy(update=updates)
