"""
G-Score Engine - Configuration.

============================================================
PURPOSE
============================================================
Single source of truth for pillars, factors, risk bands,
weight presets, freshness TTLs, and composite settings.

Static tables are built once at import and never mutated.
Overrides may be supplied at process start through:
- GSCORE_CONFIG_JSON: inline JSON object
- GSCORE_CONFIG_PATH: path to a JSON file

Invalid overrides are logged and ignored (defaults win).

============================================================
DESIGN PRINCIPLES
============================================================
- Immutable configurations (frozen dataclasses, tuples)
- Every section has defaults and to_dict()
- A stable digest identifies the effective configuration

============================================================
"""

import hashlib
import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .types import ConfigNotFoundError, ConfigValidationError, Pillar, RiskBand


logger = logging.getLogger(__name__)


CONFIG_JSON_ENV = "GSCORE_CONFIG_JSON"
CONFIG_PATH_ENV = "GSCORE_CONFIG_PATH"


# ============================================================
# PILLARS & FACTORS
# ============================================================


@dataclass(frozen=True)
class PillarConfig:
    """A pillar with its official weight (percent)."""

    key: Pillar
    label: str
    weight: float

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key.value, "label": self.label, "weight": self.weight}


@dataclass(frozen=True)
class FactorConfig:
    """
    A canonical factor definition.

    weight is the factor's official share of the composite in
    percent; within a pillar it also sets the factor's share of
    that pillar when a preset re-weights pillars.
    """

    key: str
    label: str
    pillar: Pillar
    weight: float
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "pillar": self.pillar.value,
            "weight": self.weight,
            "enabled": self.enabled,
        }


DEFAULT_PILLARS: Tuple[PillarConfig, ...] = (
    PillarConfig(Pillar.LIQUIDITY, "Liquidity / Flows", 35.0),
    PillarConfig(Pillar.MOMENTUM, "Momentum / Valuation", 25.0),
    PillarConfig(Pillar.LEVERAGE, "Term Structure / Leverage", 20.0),
    PillarConfig(Pillar.MACRO, "Macro Overlay", 10.0),
    PillarConfig(Pillar.SOCIAL, "Social / Attention", 10.0),
)

DEFAULT_FACTORS: Tuple[FactorConfig, ...] = (
    FactorConfig("trend_valuation", "Trend & Valuation", Pillar.MOMENTUM, 20.0),
    FactorConfig("onchain", "On-chain Activity", Pillar.MOMENTUM, 5.0),
    FactorConfig("stablecoins", "Stablecoins", Pillar.LIQUIDITY, 15.0),
    FactorConfig("net_liquidity", "Net Liquidity (FRED)", Pillar.LIQUIDITY, 15.0),
    FactorConfig("etf_flows", "ETF Flows", Pillar.LIQUIDITY, 5.0),
    FactorConfig("term_leverage", "Term Structure & Leverage", Pillar.LEVERAGE, 20.0),
    FactorConfig("macro_overlay", "Macro Overlay", Pillar.MACRO, 10.0),
    FactorConfig("social_interest", "Social Interest", Pillar.SOCIAL, 10.0),
)


# ============================================================
# RISK BANDS
# ============================================================

# Closed integer intervals; contiguous and exhaustive over [0, 100].
DEFAULT_BANDS: Tuple[RiskBand, ...] = (
    RiskBand("aggressive_buy", "Aggressive Buying", 0, 14, "green", "Max allocation"),
    RiskBand("dca_buy", "Regular DCA Buying", 15, 34, "green", "Continue regular purchases"),
    RiskBand("moderate_buy", "Moderate Buying", 35, 49, "yellow", "Reduce position size"),
    RiskBand("hold_wait", "Hold & Wait", 50, 64, "orange", "Hold existing positions"),
    RiskBand("reduce_risk", "Reduce Risk", 65, 79, "red", "Consider taking profits"),
    RiskBand("high_risk", "High Risk", 80, 100, "red", "Significant risk of correction"),
)


# ============================================================
# WEIGHT PRESETS
# ============================================================


@dataclass(frozen=True)
class WeightPreset:
    """
    A named alternative pillar weighting.

    pillar_weights are fractions; pillars left out get no weight.
    """

    key: str
    label: str
    description: str
    pillar_weights: Mapping[Pillar, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "pillar_weights", MappingProxyType(dict(self.pillar_weights)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "description": self.description,
            "weights": {p.value: w for p, w in self.pillar_weights.items()},
        }


OFFICIAL_PRESET_KEY = "official_30_30"

DEFAULT_PRESETS: Tuple[WeightPreset, ...] = (
    WeightPreset(
        key=OFFICIAL_PRESET_KEY,
        label="Official (30/30)",
        description="Liquidity 30%, Momentum 30%, Term 20%, Macro 10%, Social 10%",
        pillar_weights={
            Pillar.LIQUIDITY: 0.30,
            Pillar.MOMENTUM: 0.30,
            Pillar.LEVERAGE: 0.20,
            Pillar.MACRO: 0.10,
            Pillar.SOCIAL: 0.10,
        },
    ),
    WeightPreset(
        key="liq_35_25",
        label="Liquidity-Heavy (35/25)",
        description="Liquidity 35%, Momentum 25%, Leverage 20%, Macro 10%, Social 10%",
        pillar_weights={
            Pillar.LIQUIDITY: 0.35,
            Pillar.MOMENTUM: 0.25,
            Pillar.LEVERAGE: 0.20,
            Pillar.MACRO: 0.10,
            Pillar.SOCIAL: 0.10,
        },
    ),
    WeightPreset(
        key="mom_25_35",
        label="Momentum-Tilted (25/35)",
        description="Liquidity 25%, Momentum 35%, Leverage 20%, Macro 10%, Social 10%",
        pillar_weights={
            Pillar.LIQUIDITY: 0.25,
            Pillar.MOMENTUM: 0.35,
            Pillar.LEVERAGE: 0.20,
            Pillar.MACRO: 0.10,
            Pillar.SOCIAL: 0.10,
        },
    ),
)


# ============================================================
# FRESHNESS / COMPOSITE / DELTA SETTINGS
# ============================================================


@dataclass(frozen=True)
class FreshnessConfig:
    """
    Per-factor TTLs for the staleness evaluator.

    ============================================================
    THRESHOLDS
    ============================================================
    elapsed <= ttl                      -> fresh
    ttl < elapsed <= multiplier * ttl   -> stale
    elapsed > multiplier * ttl          -> excluded

    ============================================================
    """

    default_hours: float = 24.0
    per_factor_hours: Mapping[str, float] = field(default_factory=lambda: {
        "trend_valuation": 6.0,
        "onchain": 48.0,
        "stablecoins": 24.0,
        "etf_flows": 24.0,
        "net_liquidity": 168.0,  # weekly FRED release
        "term_leverage": 24.0,
        "macro_overlay": 24.0,
        "social_interest": 24.0,
    })
    stale_multiplier: float = 3.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "per_factor_hours", MappingProxyType(dict(self.per_factor_hours)))
        if self.default_hours <= 0:
            raise ConfigValidationError("freshness.default_hours must be positive")
        if self.stale_multiplier < 1:
            raise ConfigValidationError("freshness.stale_multiplier must be >= 1")
        for key, hours in self.per_factor_hours.items():
            if hours <= 0:
                raise ConfigValidationError(f"freshness TTL for {key} must be positive")

    def ttl_for(self, factor_key: str) -> float:
        return self.per_factor_hours.get(factor_key, self.default_hours)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default_hours": self.default_hours,
            "per_factor_hours": dict(self.per_factor_hours),
            "stale_multiplier": self.stale_multiplier,
        }


@dataclass(frozen=True)
class CompositeConfig:
    """Composite calculator settings."""

    # Below this many weighted factors the result is low-confidence
    min_factors_required: int = 3

    def to_dict(self) -> Dict[str, Any]:
        return {"min_factors_required": self.min_factors_required}


@dataclass(frozen=True)
class DeltaConfig:
    """Delta calculator settings."""

    lookback_days: int = 14
    # factor_history.csv rows considered by the deltas endpoint
    recent_rows: int = 30

    def to_dict(self) -> Dict[str, Any]:
        return {"lookback_days": self.lookback_days, "recent_rows": self.recent_rows}


# ============================================================
# AGGREGATE CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class GScoreConfig:
    """Complete engine configuration."""

    pillars: Tuple[PillarConfig, ...] = DEFAULT_PILLARS
    factors: Tuple[FactorConfig, ...] = DEFAULT_FACTORS
    bands: Tuple[RiskBand, ...] = DEFAULT_BANDS
    presets: Tuple[WeightPreset, ...] = DEFAULT_PRESETS
    freshness: FreshnessConfig = field(default_factory=FreshnessConfig)
    composite: CompositeConfig = field(default_factory=CompositeConfig)
    delta: DeltaConfig = field(default_factory=DeltaConfig)
    version: str = "v3.3.0"

    @property
    def factor_keys(self) -> Tuple[str, ...]:
        return tuple(f.key for f in self.factors)

    def get_factor(self, key: str) -> FactorConfig:
        for factor in self.factors:
            if factor.key == key:
                return factor
        raise ConfigNotFoundError(f"Unknown factor key: {key}", context={"key": key})

    def get_preset(self, key: str) -> WeightPreset:
        for preset in self.presets:
            if preset.key == key:
                return preset
        raise ConfigNotFoundError(
            f"Unknown preset key: {key}",
            context={"key": key, "available": [p.key for p in self.presets]},
        )

    def get_pillar(self, key: Pillar) -> PillarConfig:
        for pillar in self.pillars:
            if pillar.key == key:
                return pillar
        raise ConfigNotFoundError(f"Unknown pillar: {key}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pillars": [p.to_dict() for p in self.pillars],
            "factors": [f.to_dict() for f in self.factors],
            "bands": [b.to_dict() for b in self.bands],
            "presets": [p.to_dict() for p in self.presets],
            "freshness": self.freshness.to_dict(),
            "composite": self.composite.to_dict(),
            "delta": self.delta.to_dict(),
            "version": self.version,
        }

    @property
    def digest(self) -> str:
        """Stable 16-hex-char digest of the effective configuration."""
        payload = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


# ============================================================
# OVERRIDES
# ============================================================


def _parse_factors(raw: Any) -> Tuple[FactorConfig, ...]:
    return tuple(
        FactorConfig(
            key=str(item["key"]),
            label=str(item.get("label", item["key"])),
            pillar=Pillar(item["pillar"]),
            weight=float(item["weight"]),
            enabled=bool(item.get("enabled", True)),
        )
        for item in raw
    )


def _parse_bands(raw: Any) -> Tuple[RiskBand, ...]:
    return tuple(
        RiskBand(
            key=str(item["key"]),
            label=str(item["label"]),
            min_score=int(item["range"][0]),
            max_score=int(item["range"][1]),
            color=str(item.get("color", "")),
            recommendation=str(item.get("recommendation", "")),
        )
        for item in raw
    )


def _parse_presets(raw: Any) -> Tuple[WeightPreset, ...]:
    return tuple(
        WeightPreset(
            key=str(item["key"]),
            label=str(item.get("label", item["key"])),
            description=str(item.get("description", "")),
            pillar_weights={Pillar(p): float(w) for p, w in item["weights"].items()},
        )
        for item in raw
    )


def apply_overrides(base: GScoreConfig, overrides: Mapping[str, Any]) -> GScoreConfig:
    """
    Merge an override mapping onto a configuration.

    Raises:
        ConfigValidationError: If any section is malformed
    """
    # Imported here: bands.py depends on this module for defaults.
    from .bands import validate_bands

    changes: Dict[str, Any] = {}
    try:
        if "factors" in overrides:
            changes["factors"] = _parse_factors(overrides["factors"])
        if "bands" in overrides:
            changes["bands"] = _parse_bands(overrides["bands"])
        if "presets" in overrides:
            changes["presets"] = _parse_presets(overrides["presets"])
        if "freshness" in overrides:
            section = overrides["freshness"]
            changes["freshness"] = FreshnessConfig(
                default_hours=float(section.get("default_hours", base.freshness.default_hours)),
                per_factor_hours={
                    **base.freshness.per_factor_hours,
                    **{k: float(v) for k, v in section.get("per_factor_hours", {}).items()},
                },
                stale_multiplier=float(section.get("stale_multiplier", base.freshness.stale_multiplier)),
            )
        if "composite" in overrides:
            changes["composite"] = CompositeConfig(
                min_factors_required=int(overrides["composite"]["min_factors_required"]),
            )
        if "delta" in overrides:
            section = overrides["delta"]
            changes["delta"] = DeltaConfig(
                lookback_days=int(section.get("lookback_days", base.delta.lookback_days)),
                recent_rows=int(section.get("recent_rows", base.delta.recent_rows)),
            )
        if "version" in overrides:
            changes["version"] = str(overrides["version"])
    except ConfigValidationError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ConfigValidationError(f"Invalid configuration override: {e}") from e

    merged = replace(base, **changes)

    validate_bands(merged.bands)
    if not any(f.enabled and f.weight > 0 for f in merged.factors):
        raise ConfigValidationError("No enabled factors with positive weight")

    return merged


def _read_overrides() -> Dict[str, Any]:
    """Collect overrides from the environment, later sources win."""
    overrides: Dict[str, Any] = {}

    inline = os.getenv(CONFIG_JSON_ENV)
    if inline:
        try:
            overrides.update(json.loads(inline))
            logger.info(f"Loaded config overrides from {CONFIG_JSON_ENV}")
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse {CONFIG_JSON_ENV}, using defaults: {e}")

    path = os.getenv(CONFIG_PATH_ENV)
    if path:
        try:
            overrides.update(json.loads(Path(path).read_text(encoding="utf-8")))
            logger.info(f"Loaded config overrides from {path}")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load {path}, using defaults: {e}")

    return overrides


def load_config() -> GScoreConfig:
    """
    Build the effective configuration from defaults and overrides.

    Returns:
        GScoreConfig (defaults if overrides are absent or invalid)
    """
    load_dotenv()

    base = GScoreConfig()
    overrides = _read_overrides()
    if not overrides:
        return base

    try:
        config = apply_overrides(base, overrides)
    except ConfigValidationError as e:
        logger.warning(f"Config overrides rejected, using defaults: {e}")
        return base

    logger.info(f"Effective config digest: {config.digest}")
    return config


_cached_config: Optional[GScoreConfig] = None


def get_config() -> GScoreConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def invalidate_config_cache() -> None:
    """Drop the cached configuration so the next get_config() reloads."""
    global _cached_config
    _cached_config = None
