"""
G-Score Engine - Weight Configuration Resolver.

============================================================
PURPOSE
============================================================
Turns a named preset into a concrete factor weight map.

============================================================
RESOLUTION
============================================================
Presets carry pillar weights. Each pillar weight is spread
over the enabled factors of that pillar in proportion to
their static factor weights:

    w[f] = pillar_w[pillar(f)] * factor_w[f] / sum(factor_w in pillar)

Factors whose pillar the preset omits, and disabled factors,
get 0. The map is then renormalized so it sums to 1.0.

============================================================
"""

import logging
import re
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence

from .config import OFFICIAL_PRESET_KEY, GScoreConfig, WeightPreset, get_config
from .types import ConfigNotFoundError, ConfigValidationError, Factor, WeightConfig


logger = logging.getLogger(__name__)


def _normalize(weights: Mapping[str, float]) -> Dict[str, float]:
    total = sum(weights.values())
    if total <= 0:
        return {key: 0.0 for key in weights}
    return {key: value / total for key, value in weights.items()}


def resolve_preset(preset_key: str, config: Optional[GScoreConfig] = None) -> WeightConfig:
    """
    Resolve a preset key into a normalized factor weight map.

    Args:
        preset_key: One of the configured preset keys
        config: Engine configuration (process config if omitted)

    Returns:
        WeightConfig covering every known factor key

    Raises:
        ConfigNotFoundError: If the preset key is unknown
    """
    config = config or get_config()
    preset = config.get_preset(preset_key)

    pillar_factor_totals: Dict[str, float] = defaultdict(float)
    for factor in config.factors:
        if factor.enabled and factor.weight > 0:
            pillar_factor_totals[factor.pillar] += factor.weight

    weights: Dict[str, float] = {}
    for factor in config.factors:
        pillar_weight = preset.pillar_weights.get(factor.pillar, 0.0)
        pillar_total = pillar_factor_totals.get(factor.pillar, 0.0)
        if not factor.enabled or factor.weight <= 0 or pillar_total <= 0:
            weights[factor.key] = 0.0
            continue
        weights[factor.key] = pillar_weight * factor.weight / pillar_total

    resolved = WeightConfig(_normalize(weights), preset_key=preset.key)
    logger.debug(f"Resolved preset {preset.key}: {resolved.to_dict()}")
    return resolved


def resolve_custom_weights(
    weights: Mapping[str, float],
    config: Optional[GScoreConfig] = None,
) -> WeightConfig:
    """
    Normalize a user-adjusted factor weight map (what-if sandbox).

    Keys not supplied default to 0.

    Raises:
        ConfigNotFoundError: For a key that is not a known factor
        ConfigValidationError: For a negative weight
    """
    config = config or get_config()
    known = set(config.factor_keys)

    unknown = sorted(set(weights) - known)
    if unknown:
        raise ConfigNotFoundError(f"Unknown factor keys: {unknown}", context={"keys": unknown})

    raw: Dict[str, float] = {}
    for key in config.factor_keys:
        value = float(weights.get(key, 0.0))
        if value < 0:
            raise ConfigValidationError(f"Weight for {key} must be non-negative, got {value}")
        raw[key] = value

    return WeightConfig(_normalize(raw), preset_key="custom")


def official_factor_weights(config: Optional[GScoreConfig] = None) -> WeightConfig:
    """Static dashboard factor weights, normalized."""
    config = config or get_config()
    raw = {f.key: (f.weight if f.enabled else 0.0) for f in config.factors}
    return WeightConfig(_normalize(raw), preset_key="static")


def weights_from_factors(factors: Sequence[Factor]) -> WeightConfig:
    """Weight map taken from the snapshot's own weight_pct values."""
    return WeightConfig(_normalize({f.key: f.weight_pct for f in factors}), preset_key="snapshot")


def list_presets(config: Optional[GScoreConfig] = None) -> List[WeightPreset]:
    config = config or get_config()
    return list(config.presets)


def get_preset_label(preset_key: str, config: Optional[GScoreConfig] = None) -> str:
    """Display label, falling back to the official preset's label."""
    config = config or get_config()
    try:
        return config.get_preset(preset_key).label
    except ConfigNotFoundError:
        return config.get_preset(OFFICIAL_PRESET_KEY).label


def get_preset_short_label(preset_key: str, config: Optional[GScoreConfig] = None) -> str:
    """Liquidity/momentum pair such as "35/25"; "30/30" when unknown."""
    config = config or get_config()
    try:
        preset = config.get_preset(preset_key)
    except ConfigNotFoundError:
        return "30/30"
    match = re.search(r"Liquidity (\d+)%.*Momentum (\d+)%", preset.description)
    return f"{match.group(1)}/{match.group(2)}" if match else "30/30"
