"""
G-Score Engine - Package.

============================================================
PURPOSE
============================================================
Scoring core of the GhostGauge Bitcoin G-Score dashboard.

The official composite is computed upstream and is the system
of record. This package recomputes preview / what-if composites
under alternative weight presets and derives the annotations a
dashboard shows next to the score.

============================================================
COMPONENTS
============================================================
1. Weight Configuration Resolver (presets)
2. Composite Score Calculator (composite)
3. Band Classifier (bands)
4. Factor Staleness Evaluator (staleness)
5. Factor Delta Calculator (deltas)

Supporting: config, schemas, sources, history, persistence,
formatting, engine, cli.

============================================================
RISK BANDS
============================================================
- 0-14:   Aggressive Buying
- 15-34:  Regular DCA Buying
- 35-49:  Moderate Buying
- 50-64:  Hold & Wait
- 65-79:  Reduce Risk
- 80-100: High Risk

Higher scores mean higher risk.

============================================================
USAGE
============================================================
    from gscore import GScoreEngine, DashboardContext, load_snapshot

    snapshot = load_snapshot("latest.json")
    view = GScoreEngine().prepare(snapshot, context=DashboardContext(preset_key="mom_25_35"))

    print(f"Official: {view.official_display_score} ({view.official_band.label})")

============================================================
"""

from .types import (
    # Enums
    Pillar,
    FactorStatus,
    StalenessReason,
    DeltaBasis,
    # Data contracts
    Factor,
    HistoryRow,
    WeightConfig,
    RiskBand,
    CompositeScore,
    StalenessResult,
    FactorDelta,
    # Errors
    GScoreError,
    ConfigNotFoundError,
    ConfigValidationError,
    InsufficientFactorsError,
    OutOfRangeError,
    MalformedHistoryRowError,
    SnapshotValidationError,
    ArtifactFetchError,
)

from .config import (
    GScoreConfig,
    FactorConfig,
    PillarConfig,
    WeightPreset,
    FreshnessConfig,
    OFFICIAL_PRESET_KEY,
    get_config,
    load_config,
    invalidate_config_cache,
)

from .presets import (
    resolve_preset,
    resolve_custom_weights,
    official_factor_weights,
    list_presets,
    get_preset_label,
    get_preset_short_label,
)

from .composite import (
    CompositeScoreCalculator,
    compute_score,
    factor_contribution,
    sort_by_contribution,
)

from .bands import classify, get_band, round_half_up, validate_bands

from .staleness import evaluate, evaluate_timestamp, apply_staleness, get_ttl_hours

from .history import TimeSeries, percentile_rank, should_append

from .deltas import compute_delta, compute_factor_deltas

from .schemas import Snapshot, parse_snapshot

from .sources import (
    load_snapshot,
    load_history_csv,
    load_history_jsonl,
    fetch_snapshot,
    fetch_history_csv,
)

from .engine import GScoreEngine, DashboardContext, DashboardView


__all__ = [
    # Enums
    "Pillar",
    "FactorStatus",
    "StalenessReason",
    "DeltaBasis",
    # Data contracts
    "Factor",
    "HistoryRow",
    "WeightConfig",
    "RiskBand",
    "CompositeScore",
    "StalenessResult",
    "FactorDelta",
    # Errors
    "GScoreError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "InsufficientFactorsError",
    "OutOfRangeError",
    "MalformedHistoryRowError",
    "SnapshotValidationError",
    "ArtifactFetchError",
    # Config
    "GScoreConfig",
    "FactorConfig",
    "PillarConfig",
    "WeightPreset",
    "FreshnessConfig",
    "OFFICIAL_PRESET_KEY",
    "get_config",
    "load_config",
    "invalidate_config_cache",
    # Presets
    "resolve_preset",
    "resolve_custom_weights",
    "official_factor_weights",
    "list_presets",
    "get_preset_label",
    "get_preset_short_label",
    # Composite
    "CompositeScoreCalculator",
    "compute_score",
    "factor_contribution",
    "sort_by_contribution",
    # Bands
    "classify",
    "get_band",
    "round_half_up",
    "validate_bands",
    # Staleness
    "evaluate",
    "evaluate_timestamp",
    "apply_staleness",
    "get_ttl_hours",
    # History / deltas
    "TimeSeries",
    "percentile_rank",
    "should_append",
    "compute_delta",
    "compute_factor_deltas",
    # Sources
    "Snapshot",
    "parse_snapshot",
    "load_snapshot",
    "load_history_csv",
    "load_history_jsonl",
    "fetch_snapshot",
    "fetch_history_csv",
    # Engine
    "GScoreEngine",
    "DashboardContext",
    "DashboardView",
]

__version__ = "3.3.0"
