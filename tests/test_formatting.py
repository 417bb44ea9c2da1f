"""
Tests for display formatting helpers.
"""

from datetime import date

import pytest

from gscore.composite import compute_score
from gscore.formatting import (
    delta_direction,
    format_delta,
    format_delta_display,
    format_delta_provenance,
    format_score,
    format_score_summary,
)
from gscore.types import DeltaBasis, FactorDelta, WeightConfig


def make_delta(basis, previous_date=date(2025, 3, 9), delta=1.0):
    return FactorDelta(
        factor_key="stablecoins",
        delta=None if basis == DeltaBasis.INSUFFICIENT_HISTORY else delta,
        current_score=50.0,
        previous_score=49.0,
        current_date=date(2025, 3, 10),
        previous_date=previous_date,
        basis=basis,
    )


class TestFormatScore:

    @pytest.mark.parametrize("score,kwargs,expected", [
        (None, {}, "N/A"),
        (52.44, {}, "52.4"),
        (52.0, {"decimals": 0}, "52"),
        (3.25, {"show_sign": True}, "+3.2"),
        (-3.0, {"show_sign": True}, "-3.0"),
    ])
    def test_format_score(self, score, kwargs, expected):
        assert format_score(score, **kwargs) == expected


class TestFormatDelta:

    @pytest.mark.parametrize("delta,expected", [
        (None, "—"),
        (0.0, "—"),
        (0.4, "—"),
        (-0.4, "—"),
        (3.0, "+3"),
        (-2.0, "-2"),
        (2.6, "+3"),
    ])
    def test_format_delta(self, delta, expected):
        """Moves below half a point display as a dash."""
        assert format_delta(delta) == expected

    def test_one_decimal(self):
        assert format_delta(0.5, decimals=1) == "+0.5"
        assert format_delta(0.2, decimals=1) == "—"

    def test_format_delta_display(self):
        assert format_delta_display(None) == "—"
        assert format_delta_display(0.0) == "0"
        assert format_delta_display(1.5) == "+1.5"
        assert format_delta_display(-2.0) == "-2"

    @pytest.mark.parametrize("delta,expected", [
        (None, "unknown"),
        (0.0, "flat"),
        (1.0, "rising"),
        (-1.0, "falling"),
    ])
    def test_delta_direction(self, delta, expected):
        assert delta_direction(delta) == expected


class TestFormatProvenance:

    def test_previous_day(self):
        assert format_delta_provenance(make_delta(DeltaBasis.PREVIOUS_DAY)) == "Δ vs prior day (2025-03-09)"

    def test_previous_day_without_date(self):
        delta = make_delta(DeltaBasis.PREVIOUS_DAY, previous_date=None)

        assert format_delta_provenance(delta) == "Δ vs prior day"

    def test_previous_available_row(self):
        delta = make_delta(DeltaBasis.PREVIOUS_AVAILABLE_ROW, previous_date=date(2025, 3, 6))

        assert format_delta_provenance(delta) == "Δ vs prior available row (2025-03-06)"

    def test_insufficient_history(self):
        delta = make_delta(DeltaBasis.INSUFFICIENT_HISTORY, previous_date=None)

        assert format_delta_provenance(delta) == "Δ unavailable (insufficient history)"


class TestScoreSummary:

    def test_summary_mentions_band_and_weights(self, make_factor, config):
        factors = [make_factor("a", score=80), make_factor("b", score=20)]
        result = compute_score(factors, WeightConfig({"a": 0.5, "b": 0.5}, preset_key="test"), config=config)

        summary = format_score_summary(result)

        assert "Hold & Wait" in summary
        assert "50/100" in summary
        assert "Confidence:  LOW" in summary
        assert "a" in summary and "50.0%" in summary
