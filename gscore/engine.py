"""
G-Score Engine - Dashboard Preparation.

============================================================
PURPOSE
============================================================
GScoreEngine is the main entry point for one dashboard load.

It orchestrates:
1. Staleness re-evaluation of every factor
2. What-if composite under the selected preset
3. Band classification of the official score
4. Factor deltas against history
5. Historical percentile of the official score

============================================================
DESIGN PRINCIPLES
============================================================
- Orchestration only; delegates to the calculators
- Deterministic per call (time comes from the context or clock)
- Data-quality problems degrade the view, they never raise
- Configuration errors (unknown preset) propagate

============================================================
USAGE
============================================================
    from gscore import GScoreEngine, DashboardContext

    engine = GScoreEngine()
    view = engine.prepare(snapshot, history, DashboardContext(preset_key="liq_35_25"))

    print(f"Official: {view.official_score} ({view.official_band.label})")
    if view.preview:
        print(f"Preview:  {view.preview.display_score}")

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .bands import classify, round_half_up
from .clock import ClockProtocol, SystemClock, ensure_utc
from .composite import CompositeScoreCalculator
from .config import OFFICIAL_PRESET_KEY, GScoreConfig, get_config
from .deltas import compute_factor_deltas
from .history import TimeSeries, percentile_rank
from .schemas import Snapshot
from .staleness import apply_staleness, evaluate
from .types import (
    CompositeScore,
    Factor,
    FactorDelta,
    FactorStatus,
    InsufficientFactorsError,
    RiskBand,
    StalenessResult,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardContext:
    """
    Caller-owned inputs for one preparation.

    now_utc defaults to the engine clock when omitted.
    """

    preset_key: str = OFFICIAL_PRESET_KEY
    apply_cycle_adjustment: bool = True
    apply_spike_adjustment: bool = True
    ttl_overrides: Mapping[str, float] = field(default_factory=dict)
    now_utc: Optional[datetime] = None


@dataclass(frozen=True)
class DashboardView:
    """Everything a dashboard render needs, computed once."""

    as_of_utc: datetime
    evaluated_at: datetime
    official_score: float
    official_display_score: int
    official_band: RiskBand
    factors: List[Factor]
    staleness: Dict[str, StalenessResult]
    preset_key: str
    preview: Optional[CompositeScore]
    deltas: Dict[str, FactorDelta]
    percentile: Optional[float]
    warnings: List[str] = field(default_factory=list)
    config_digest: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "as_of_utc": self.as_of_utc.isoformat(),
            "evaluated_at": self.evaluated_at.isoformat(),
            "official_score": self.official_score,
            "official_display_score": self.official_display_score,
            "official_band": self.official_band.to_dict(),
            "factors": [
                {
                    "key": f.key,
                    "label": f.label,
                    "pillar": f.pillar.value,
                    "score": f.score,
                    "weight_pct": f.weight_pct,
                    "status": f.status.value,
                    "reason": f.reason,
                }
                for f in self.factors
            ],
            "staleness": {key: result.to_dict() for key, result in self.staleness.items()},
            "preset_key": self.preset_key,
            "preview": self.preview.to_dict() if self.preview else None,
            "deltas": {key: delta.to_dict() for key, delta in self.deltas.items()},
            "percentile": self.percentile,
            "warnings": list(self.warnings),
            "config_digest": self.config_digest,
        }


class GScoreEngine:
    """
    Main orchestrator for the G-Score Engine.

    Holds read-only configuration and a clock; keeps no state
    between calls.
    """

    def __init__(
        self,
        config: Optional[GScoreConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (process config if omitted)
            clock: Time source used when the context carries no now_utc
        """
        self.config = config or get_config()
        self.clock = clock or SystemClock()
        self._calculator = CompositeScoreCalculator(self.config)

    def prepare(
        self,
        snapshot: Snapshot,
        history: Optional[TimeSeries] = None,
        context: Optional[DashboardContext] = None,
    ) -> DashboardView:
        """
        Prepare a dashboard view.

        Args:
            snapshot: Validated latest snapshot
            history: Historical series (empty when omitted)
            context: Preset, adjustment toggles, TTL overrides, time

        Returns:
            DashboardView

        Raises:
            ConfigNotFoundError: If the context names an unknown preset
        """
        context = context or DashboardContext()
        history = history if history is not None else TimeSeries()
        now_utc = ensure_utc(context.now_utc or self.clock.now())
        warnings: List[str] = []

        # --------------------------------------------------
        # Staleness
        # --------------------------------------------------
        staleness = {
            f.key: evaluate(f, now_utc, context.ttl_overrides, self.config)
            for f in snapshot.factors
        }
        factors = [
            apply_staleness(f, now_utc, context.ttl_overrides, self.config)
            for f in snapshot.factors
        ]

        for factor in factors:
            if factor.status == FactorStatus.EXCLUDED:
                warnings.append(f"Factor {factor.key} excluded ({factor.reason or 'no data'})")
            elif factor.status == FactorStatus.STALE:
                warnings.append(f"Factor {factor.key} is stale")

        # --------------------------------------------------
        # What-if preview
        # --------------------------------------------------
        preview: Optional[CompositeScore] = None
        try:
            preview = self._calculator.compute_preview(
                factors,
                context.preset_key,
                cycle_adj=snapshot.cycle_adjustment if context.apply_cycle_adjustment else 0.0,
                spike_adj=snapshot.spike_adjustment if context.apply_spike_adjustment else 0.0,
            )
        except InsufficientFactorsError as e:
            logger.warning(f"Preview unavailable: {e.message}")
            warnings.append("Preview unavailable: no usable factors")

        if preview is not None and preview.low_confidence:
            warnings.append(
                f"Low confidence: fewer than {self.config.composite.min_factors_required} weighted factors"
            )

        # --------------------------------------------------
        # Official score
        # --------------------------------------------------
        official_band = classify(snapshot.composite_score, self.config.bands)
        if snapshot.band_key and snapshot.band_key != official_band.key:
            logger.warning(
                f"Snapshot band {snapshot.band_key} disagrees with classified band {official_band.key}"
            )
            warnings.append(f"Snapshot band {snapshot.band_key} differs from {official_band.key}")

        # --------------------------------------------------
        # History
        # --------------------------------------------------
        deltas = compute_factor_deltas(
            history,
            factor_keys=[f.key for f in snapshot.factors],
            config=self.config,
        )
        if not history:
            warnings.append("No history available for deltas")

        percentile = percentile_rank(history, snapshot.composite_score)

        logger.info(
            f"Prepared view as of {snapshot.as_of_utc.isoformat()}: "
            f"official={snapshot.composite_score} preset={context.preset_key} "
            f"warnings={len(warnings)}"
        )

        return DashboardView(
            as_of_utc=snapshot.as_of_utc,
            evaluated_at=now_utc,
            official_score=snapshot.composite_score,
            official_display_score=round_half_up(snapshot.composite_score),
            official_band=official_band,
            factors=factors,
            staleness=staleness,
            preset_key=context.preset_key,
            preview=preview,
            deltas=deltas,
            percentile=percentile,
            warnings=warnings,
            config_digest=self.config.digest,
        )
