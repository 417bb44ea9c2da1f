"""
G-Score Engine - Band Classifier.

============================================================
PURPOSE
============================================================
Maps a composite score onto one of the six ordered risk bands.

============================================================
BOUNDARY POLICY
============================================================
Bands are closed integer intervals. A fractional score is
rounded half-up to the nearest integer BEFORE lookup, so
49.5 lands in Hold & Wait [50, 64] and 49.4 in Moderate
Buying [35, 49].

Scores outside [0, 100] raise OutOfRangeError even though the
composite calculator clamps first.

============================================================
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from .config import DEFAULT_BANDS
from .types import ConfigNotFoundError, ConfigValidationError, OutOfRangeError, RiskBand


SCORE_MIN = 0
SCORE_MAX = 100


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(float(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_bands(bands: Sequence[RiskBand]) -> None:
    """
    Check that a band table partitions [0, 100].

    Raises:
        ConfigValidationError: On gaps, overlaps, inverted ranges,
            or a table that does not span 0..100
    """
    if not bands:
        raise ConfigValidationError("Band table is empty")

    ordered = sorted(bands, key=lambda b: b.min_score)

    for band in ordered:
        if band.min_score > band.max_score:
            raise ConfigValidationError(f"Band {band.key} has an inverted range {band.range}")

    if ordered[0].min_score != SCORE_MIN or ordered[-1].max_score != SCORE_MAX:
        raise ConfigValidationError(
            f"Bands must span [{SCORE_MIN}, {SCORE_MAX}], "
            f"got [{ordered[0].min_score}, {ordered[-1].max_score}]"
        )

    for current, following in zip(ordered, ordered[1:]):
        if current.max_score + 1 != following.min_score:
            raise ConfigValidationError(
                f"Band gap or overlap between {current.key} {current.range} "
                f"and {following.key} {following.range}"
            )


def classify(score: float, bands: Optional[Sequence[RiskBand]] = None) -> RiskBand:
    """
    Return the unique band containing a score.

    Args:
        score: Score in [0, 100]; fractional values are rounded half-up
        bands: Band table (defaults to the static table)

    Returns:
        The matching RiskBand

    Raises:
        OutOfRangeError: If score is outside [0, 100] or not a number
    """
    if score is None or not math.isfinite(score) or score < SCORE_MIN or score > SCORE_MAX:
        raise OutOfRangeError(
            f"Score {score!r} is outside [{SCORE_MIN}, {SCORE_MAX}]",
            context={"score": score},
        )

    table = bands if bands is not None else DEFAULT_BANDS
    rounded = round_half_up(score)

    for band in table:
        if band.contains(rounded):
            return band

    # Only reachable with a table that failed validate_bands()
    raise OutOfRangeError(f"No band covers score {rounded}", context={"score": score})


def get_band(key: str, bands: Optional[Sequence[RiskBand]] = None) -> RiskBand:
    """Look up a band by key."""
    table = bands if bands is not None else DEFAULT_BANDS
    for band in table:
        if band.key == key:
            return band
    raise ConfigNotFoundError(f"Unknown band key: {key}", context={"key": key})
