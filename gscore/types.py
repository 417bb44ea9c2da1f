"""
G-Score Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the G-Score Engine.

This module defines all types, enums, and dataclasses used
by the scoring layer. Everything the calculators consume or
produce is declared here so the pure functions can assume
well-typed, invariant-respecting inputs.

============================================================
DESIGN PRINCIPLES
============================================================
- All types are immutable
- Enums for discrete state values
- Invariants checked once, at construction
- Plain data only: no I/O, no hidden state

============================================================
PILLARS
============================================================
Every factor rolls up into exactly one of five pillars:

1. LIQUIDITY - Liquidity / Flows
2. MOMENTUM - Momentum / Valuation
3. LEVERAGE - Term Structure / Leverage
4. MACRO - Macro Overlay
5. SOCIAL - Social / Attention

============================================================
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple


# ============================================================
# ENUMS
# ============================================================


class Pillar(str, Enum):
    """
    The five top-level risk categories.

    Pillar weights are what the named presets adjust.
    """

    LIQUIDITY = "liquidity"
    MOMENTUM = "momentum"
    LEVERAGE = "leverage"
    MACRO = "macro"
    SOCIAL = "social"

    @classmethod
    def all_pillars(cls) -> List["Pillar"]:
        """Return all pillars in display order."""
        return [cls.LIQUIDITY, cls.MOMENTUM, cls.LEVERAGE, cls.MACRO, cls.SOCIAL]


class FactorStatus(str, Enum):
    """
    Freshness status of a factor.

    - FRESH: updated within its TTL
    - STALE: older than TTL but still usable
    - EXCLUDED: too old or missing, carries no score
    """

    FRESH = "fresh"
    STALE = "stale"
    EXCLUDED = "excluded"


class StalenessReason(str, Enum):
    """Machine-readable reason codes attached to stale/excluded factors."""

    STALE_BEYOND_TTL = "stale_beyond_ttl"
    EXCLUDED_BEYOND_GRACE = "excluded_beyond_grace"
    MISSING_TIMESTAMP = "missing_timestamp"
    INVALID_TIMESTAMP = "invalid_timestamp"


class DeltaBasis(str, Enum):
    """
    Which historical row a factor delta was measured against.

    Always travels with the delta so that "no change" (0) and
    "no data" (None) stay distinguishable downstream.
    """

    PREVIOUS_DAY = "previous_day"
    PREVIOUS_AVAILABLE_ROW = "previous_available_row"
    INSUFFICIENT_HISTORY = "insufficient_history"


# ============================================================
# INPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class Factor:
    """
    A single scored risk input, as produced by one ETL cycle.

    Invariant: score is None if and only if status is EXCLUDED.
    A corrected value is a new Factor, never an in-place edit.
    """

    key: str
    label: str
    pillar: Pillar
    score: Optional[float]
    weight_pct: float = 0.0
    status: FactorStatus = FactorStatus.FRESH
    reason: Optional[str] = None
    last_utc: Optional[datetime] = None
    source: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.score is None) != (self.status == FactorStatus.EXCLUDED):
            raise ValueError(
                f"Factor {self.key}: score must be None exactly when status is excluded "
                f"(score={self.score}, status={self.status.value})"
            )
        if self.weight_pct < 0:
            raise ValueError(f"Factor {self.key}: weight_pct must be non-negative")

    @property
    def is_usable(self) -> bool:
        """True when the factor can contribute to a composite."""
        return (
            self.status != FactorStatus.EXCLUDED
            and self.score is not None
            and math.isfinite(self.score)
        )


@dataclass(frozen=True)
class HistoryRow:
    """One calendar day of the historical series."""

    date: date
    composite: Optional[float] = None
    scores: Mapping[str, Optional[float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "scores", MappingProxyType(dict(self.scores)))

    def score_for(self, factor_key: str) -> Optional[float]:
        """Return the factor's score on this row, None when absent or NaN."""
        value = self.scores.get(factor_key)
        if value is None or not math.isfinite(value):
            return None
        return value


# ============================================================
# CONFIGURATION CONTRACTS
# ============================================================


class WeightConfig(Mapping[str, float]):
    """
    Resolved, immutable factor weight map.

    Covers every known factor key. Weights are non-negative and
    sum to 1.0 (or are all zero when nothing is enabled).
    """

    def __init__(self, weights: Mapping[str, float], preset_key: Optional[str] = None):
        for key, value in weights.items():
            if value < 0 or not math.isfinite(value):
                raise ValueError(f"Weight for {key} must be a finite non-negative number")
        self._weights = MappingProxyType(dict(weights))
        self.preset_key = preset_key

    def __getitem__(self, key: str) -> float:
        return self._weights[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __repr__(self) -> str:
        return f"WeightConfig(preset_key={self.preset_key!r}, weights={dict(self._weights)!r})"

    @property
    def total(self) -> float:
        return sum(self._weights.values())

    def weight_for(self, key: str) -> float:
        """Weight for a factor, 0.0 when the key is not mapped."""
        return self._weights.get(key, 0.0)

    def to_dict(self) -> Dict[str, float]:
        return dict(self._weights)


# ============================================================
# OUTPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class RiskBand:
    """
    A labeled closed integer sub-range of the 0-100 scale.

    The six bands partition [0, 100] without gaps or overlaps.
    """

    key: str
    label: str
    min_score: int
    max_score: int
    color: str
    recommendation: str

    def contains(self, score: float) -> bool:
        return self.min_score <= score <= self.max_score

    @property
    def range(self) -> Tuple[int, int]:
        return (self.min_score, self.max_score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "range": [self.min_score, self.max_score],
            "color": self.color,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class CompositeScore:
    """
    A recomputed (preview / what-if) composite score.

    ============================================================
    OUTPUT GUARANTEES
    ============================================================
    - score: always clamped to [0, 100]
    - display_score: round-half-up of score
    - band: classified from display_score
    - effective_weights: renormalized over included factors

    The externally computed official snapshot remains the
    system of record; this value is never persisted as such.

    ============================================================
    """

    score: float
    display_score: int
    band: RiskBand
    raw_score: float
    cycle_adjustment: float = 0.0
    spike_adjustment: float = 0.0
    effective_weights: Mapping[str, float] = field(default_factory=dict)
    included_factors: Tuple[str, ...] = ()
    excluded_factors: Tuple[str, ...] = ()
    low_confidence: bool = False
    preset_key: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "effective_weights", MappingProxyType(dict(self.effective_weights)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "display_score": self.display_score,
            "band": self.band.to_dict(),
            "raw_score": self.raw_score,
            "cycle_adjustment": self.cycle_adjustment,
            "spike_adjustment": self.spike_adjustment,
            "effective_weights": dict(self.effective_weights),
            "included_factors": list(self.included_factors),
            "excluded_factors": list(self.excluded_factors),
            "low_confidence": self.low_confidence,
            "preset_key": self.preset_key,
        }


@dataclass(frozen=True)
class StalenessResult:
    """Freshness classification of one factor."""

    level: FactorStatus
    reason: Optional[StalenessReason]
    ttl_hours: float
    age_hours: Optional[float] = None

    @property
    def is_fresh(self) -> bool:
        return self.level == FactorStatus.FRESH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "reason": self.reason.value if self.reason else None,
            "ttl_hours": self.ttl_hours,
            "age_hours": self.age_hours,
        }


@dataclass(frozen=True)
class FactorDelta:
    """
    Day-over-day change of a factor score with provenance.

    Invariant: basis INSUFFICIENT_HISTORY implies delta is None.
    """

    factor_key: str
    delta: Optional[float]
    current_score: Optional[float]
    previous_score: Optional[float]
    current_date: date
    previous_date: Optional[date]
    basis: DeltaBasis

    def __post_init__(self) -> None:
        if self.basis == DeltaBasis.INSUFFICIENT_HISTORY and self.delta is not None:
            raise ValueError("Delta must be None when basis is insufficient_history")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delta": self.delta,
            "currentScore": self.current_score,
            "previousScore": self.previous_score,
            "currentDate": self.current_date.isoformat(),
            "previousDate": self.previous_date.isoformat() if self.previous_date else None,
            "basis": self.basis.value,
        }


# ============================================================
# ERROR TYPES
# ============================================================


class GScoreError(Exception):
    """Base exception for G-Score engine errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigNotFoundError(GScoreError):
    """Raised for an unknown preset or factor key."""
    pass


class ConfigValidationError(GScoreError):
    """Raised when static or override configuration is invalid."""
    pass


class InsufficientFactorsError(GScoreError):
    """
    Raised when no usable factor remains after exclusions.

    NOTE: Callers preparing a dashboard absorb this into the
    view instead of failing the whole render.
    """
    pass


class OutOfRangeError(GScoreError):
    """Raised when a score outside [0, 100] reaches the band classifier."""
    pass


class MalformedHistoryRowError(GScoreError):
    """Raised for a history row that cannot be parsed."""

    def __init__(self, message: str, line_number: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.line_number = line_number


class SnapshotValidationError(GScoreError):
    """Raised when a factor snapshot payload fails validation."""
    pass


class ArtifactFetchError(GScoreError):
    """Raised when a remote artifact cannot be fetched in time."""
    pass
