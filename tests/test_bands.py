"""
Tests for the Band Classifier.
"""

import math
from dataclasses import replace

import pytest

from gscore.bands import classify, get_band, round_half_up, validate_bands
from gscore.config import DEFAULT_BANDS
from gscore.types import ConfigNotFoundError, ConfigValidationError, OutOfRangeError


class TestClassify:
    """Tests for classify."""

    @pytest.mark.parametrize("score,expected", [
        (0, "aggressive_buy"),
        (14, "aggressive_buy"),
        (15, "dca_buy"),
        (34, "dca_buy"),
        (35, "moderate_buy"),
        (49, "moderate_buy"),
        (50, "hold_wait"),
        (64, "hold_wait"),
        (65, "reduce_risk"),
        (79, "reduce_risk"),
        (80, "high_risk"),
        (100, "high_risk"),
    ])
    def test_band_boundaries(self, score, expected):
        """Both ends of every band classify into that band."""
        assert classify(score).key == expected

    def test_hold_and_wait_example(self):
        band = classify(50)

        assert band.label == "Hold & Wait"
        assert band.range == (50, 64)

    def test_fractional_scores_round_half_up(self):
        """64.5 rounds to 65 before lookup; 64.4 stays in Hold & Wait."""
        assert classify(64.4).key == "hold_wait"
        assert classify(64.5).key == "reduce_risk"
        assert classify(14.5).key == "dca_buy"

    def test_every_integer_has_exactly_one_band(self):
        """Bands partition [0, 100]."""
        for score in range(0, 101):
            matches = [b for b in DEFAULT_BANDS if b.contains(score)]
            assert len(matches) == 1, score

    @pytest.mark.parametrize("score", [-0.1, 100.5, 101, math.nan, math.inf, None])
    def test_out_of_range(self, score):
        with pytest.raises(OutOfRangeError):
            classify(score)


class TestRoundHalfUp:
    """Tests for round_half_up."""

    @pytest.mark.parametrize("value,expected", [
        (0.5, 1),
        (1.5, 2),
        (2.5, 3),
        (49.49, 49),
        (49.5, 50),
        (100.0, 100),
    ])
    def test_halves_round_up(self, value, expected):
        """Unlike round(), 2.5 goes to 3."""
        assert round_half_up(value) == expected


class TestValidateBands:
    """Tests for validate_bands."""

    def test_default_table_is_valid(self):
        validate_bands(DEFAULT_BANDS)

    def test_gap_rejected(self):
        bands = list(DEFAULT_BANDS)
        bands[1] = replace(bands[1], min_score=16)

        with pytest.raises(ConfigValidationError):
            validate_bands(bands)

    def test_overlap_rejected(self):
        bands = list(DEFAULT_BANDS)
        bands[2] = replace(bands[2], min_score=30)

        with pytest.raises(ConfigValidationError):
            validate_bands(bands)

    def test_must_span_full_scale(self):
        with pytest.raises(ConfigValidationError):
            validate_bands(DEFAULT_BANDS[:-1])

    def test_empty_rejected(self):
        with pytest.raises(ConfigValidationError):
            validate_bands([])


class TestGetBand:

    def test_lookup(self):
        assert get_band("reduce_risk").label == "Reduce Risk"

    def test_unknown(self):
        with pytest.raises(ConfigNotFoundError):
            get_band("panic")
