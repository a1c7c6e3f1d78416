"""Tests for the policy-text quality scorer and gate thresholds."""

from __future__ import annotations

import pytest

from returnclarity.config import Settings
from returnclarity.quality.gate_config import QualityGateConfig
from returnclarity.quality.scorer import score_policy_text
from tests.conftest import (
    EXCELLENT_POLICY_TEXT,
    FILLER_TEXT,
    SCENARIO_TEXT,
    SHELL_TEXT,
)


def test_short_text_scores_zero() -> None:
    """Under the floor nothing else counts, however policy-like."""
    assert score_policy_text("Return policy: refunds within 30 days.") == 0


def test_full_policy_clears_early_stop() -> None:
    assert score_policy_text(EXCELLENT_POLICY_TEXT) == 12


def test_scenario_text_is_acceptable() -> None:
    score = score_policy_text(SCENARIO_TEXT)
    assert score == 7
    assert QualityGateConfig().passes_accept(score)
    assert not QualityGateConfig().passes_early_stop(score)


def test_unrelated_text_scores_zero() -> None:
    assert score_policy_text(FILLER_TEXT) == 0


def test_shell_cues_cost_three() -> None:
    baseline = score_policy_text(EXCELLENT_POLICY_TEXT)
    shell = score_policy_text(EXCELLENT_POLICY_TEXT + " Page not found.")
    assert shell == baseline - 3


def test_street_number_is_not_a_shell_cue() -> None:
    suffix = " Mail returns to {} Main Street."
    assert score_policy_text(
        EXCELLENT_POLICY_TEXT + suffix.format(404)
    ) == score_policy_text(EXCELLENT_POLICY_TEXT + suffix.format(405))


@pytest.mark.parametrize(
    "cue",
    [" Error 404.", " 404: the page you requested was not found."],
)
def test_404_phrases_are_shell_cues(cue: str) -> None:
    baseline = score_policy_text(EXCELLENT_POLICY_TEXT)
    assert score_policy_text(EXCELLENT_POLICY_TEXT + cue) == baseline - 3


def test_score_never_negative() -> None:
    assert score_policy_text(SHELL_TEXT) == 0


def test_vocabulary_points_are_capped() -> None:
    """Twelve vocabulary terms still only add six points."""
    text = (
        "return refund exchange restocking store credit eligible "
        "original condition unworn final sale return shipping receipt "
        "policy"
    )
    # 6 vocabulary + 1 density; no tiers, heading, duration or process
    assert score_policy_text(text) == 7


def test_min_chars_is_configurable() -> None:
    assert score_policy_text(SCENARIO_TEXT, min_chars=500) == 0


class TestQualityGateConfig:
    def test_defaults(self) -> None:
        gate = QualityGateConfig()
        assert (gate.min_chars, gate.accept, gate.early_stop) == (50, 6, 8)

    @pytest.mark.parametrize(
        ("score", "accept", "early_stop"),
        [(5, False, False), (6, True, False), (8, True, True)],
    )
    def test_thresholds(
        self, score: int, accept: bool, early_stop: bool
    ) -> None:
        gate = QualityGateConfig()
        assert gate.passes_accept(score) is accept
        assert gate.passes_early_stop(score) is early_stop

    def test_from_settings(self, settings: Settings) -> None:
        tuned = settings.model_copy(
            update={
                "quality_accept_threshold": 4,
                "quality_early_stop_threshold": 10,
            }
        )
        gate = QualityGateConfig.from_settings(tuned)
        assert (gate.accept, gate.early_stop) == (4, 10)
