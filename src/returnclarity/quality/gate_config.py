"""Quality gate thresholds for fetched policy text.

The orchestrator consumes these directly: ``accept`` gates the
current-page shortcut and rendered text, ``early_stop`` ends probing on
the spot and ``min_chars`` is the floor for any usable text.
"""

from __future__ import annotations

from dataclasses import dataclass

from returnclarity.config import Settings
from returnclarity.constants import (
    QUALITY_ACCEPT_THRESHOLD,
    QUALITY_EARLY_STOP_THRESHOLD,
    QUALITY_MIN_CHARS,
)


@dataclass(frozen=True)
class QualityGateConfig:
    """Score thresholds for policy text."""

    min_chars: int = QUALITY_MIN_CHARS
    accept: int = QUALITY_ACCEPT_THRESHOLD
    early_stop: int = QUALITY_EARLY_STOP_THRESHOLD

    def passes_accept(self, score: int) -> bool:
        return score >= self.accept

    def passes_early_stop(self, score: int) -> bool:
        return score >= self.early_stop

    @classmethod
    def from_settings(cls, settings: Settings) -> QualityGateConfig:
        return cls(
            accept=settings.quality_accept_threshold,
            early_stop=settings.quality_early_stop_threshold,
        )
