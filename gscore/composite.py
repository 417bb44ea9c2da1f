"""
G-Score Engine - Composite Score Calculator.

============================================================
PURPOSE
============================================================
Recomputes a preview / what-if composite score from factor
scores and a weight map.

============================================================
ALGORITHM
============================================================
1. Keep factors that are not excluded and carry a score
2. Renormalize weights over the kept factors
3. Weighted sum of scores
4. Add cycle and spike adjustments
5. Clamp to [0, 100]
6. Round half-up and classify into a band

If nothing usable remains: InsufficientFactorsError.
If fewer than min_factors_required factors carry weight the
result is flagged low_confidence instead of rejected.

============================================================
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from .bands import SCORE_MAX, SCORE_MIN, classify, round_half_up
from .config import GScoreConfig, get_config
from .presets import resolve_preset
from .types import CompositeScore, Factor, InsufficientFactorsError, WeightConfig


logger = logging.getLogger(__name__)


def clamp_score(value: float) -> float:
    return max(float(SCORE_MIN), min(float(SCORE_MAX), value))


def compute_score(
    factors: Sequence[Factor],
    weights: WeightConfig,
    cycle_adj: float = 0.0,
    spike_adj: float = 0.0,
    config: Optional[GScoreConfig] = None,
) -> CompositeScore:
    """
    Compute the weighted composite score.

    Args:
        factors: Factor snapshot
        weights: Resolved weight map
        cycle_adj: Signed cycle adjustment in points
        spike_adj: Signed spike adjustment in points
        config: Engine configuration (process config if omitted)

    Returns:
        CompositeScore clamped to [0, 100]

    Raises:
        InsufficientFactorsError: If no factor with positive weight is usable
        ValueError: If an adjustment is NaN or the two cancel to NaN
    """
    # Infinite adjustments are left to the clamp; NaN has no place on the scale
    if math.isnan(cycle_adj) or math.isnan(spike_adj) or math.isnan(cycle_adj + spike_adj):
        raise ValueError(f"Adjustments must be numbers (cycle={cycle_adj}, spike={spike_adj})")

    config = config or get_config()

    included = [f for f in factors if f.is_usable]
    excluded = tuple(f.key for f in factors if not f.is_usable)

    weight_sum = sum(weights.weight_for(f.key) for f in included)
    if not included or weight_sum <= 0:
        raise InsufficientFactorsError(
            "No usable factors with positive weight",
            context={"excluded": list(excluded), "preset_key": weights.preset_key},
        )

    effective = {f.key: weights.weight_for(f.key) / weight_sum for f in included}
    raw = sum(effective[f.key] * f.score for f in included)

    weighted_count = sum(1 for w in effective.values() if w > 0)
    low_confidence = weighted_count < config.composite.min_factors_required
    if low_confidence:
        logger.warning(
            f"Low-confidence composite: {weighted_count} weighted factors "
            f"(minimum {config.composite.min_factors_required})"
        )

    score = clamp_score(raw + cycle_adj + spike_adj)
    display = round_half_up(score)

    return CompositeScore(
        score=score,
        display_score=display,
        band=classify(display, config.bands),
        raw_score=raw,
        cycle_adjustment=cycle_adj,
        spike_adjustment=spike_adj,
        effective_weights=effective,
        included_factors=tuple(f.key for f in included),
        excluded_factors=excluded,
        low_confidence=low_confidence,
        preset_key=weights.preset_key,
    )


class CompositeScoreCalculator:
    """
    Configured entry point for what-if scoring.

    Stateless per call; holds only read-only configuration.
    """

    def __init__(self, config: Optional[GScoreConfig] = None):
        self.config = config or get_config()

    def compute(
        self,
        factors: Sequence[Factor],
        weights: WeightConfig,
        cycle_adj: float = 0.0,
        spike_adj: float = 0.0,
    ) -> CompositeScore:
        return compute_score(factors, weights, cycle_adj, spike_adj, config=self.config)

    def compute_preview(
        self,
        factors: Sequence[Factor],
        preset_key: str,
        cycle_adj: float = 0.0,
        spike_adj: float = 0.0,
    ) -> CompositeScore:
        """Resolve a preset and compute the composite under it."""
        weights = resolve_preset(preset_key, self.config)
        result = self.compute(factors, weights, cycle_adj, spike_adj)
        logger.info(
            f"Preview score under {preset_key}: {result.display_score} ({result.band.label})"
        )
        return result


# ============================================================
# CONTRIBUTION HELPERS
# ============================================================


def factor_contribution(score: Optional[float], weight_pct: Optional[float]) -> Optional[float]:
    """Points a factor adds to the composite: score x weight / 100, 1 decimal."""
    if score is None or weight_pct is None:
        return None
    return round(score * weight_pct / 100, 1)


def sort_by_contribution(factors: Sequence[Factor]) -> List[Factor]:
    """Contribution desc, then weight desc, then label asc."""
    def sort_key(factor: Factor) -> Any:
        contribution = factor_contribution(factor.score, factor.weight_pct) or 0.0
        return (-contribution, -factor.weight_pct, factor.label)

    return sorted(factors, key=sort_key)


def contribution_table(factors: Sequence[Factor]) -> Dict[str, Optional[float]]:
    return {f.key: factor_contribution(f.score, f.weight_pct) for f in factors}
