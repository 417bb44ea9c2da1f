"""
G-Score Engine - Factor Delta Calculator.

============================================================
PURPOSE
============================================================
Computes a factor's day-over-day change together with the
provenance of the baseline it was measured against.

============================================================
BASELINE FALLBACK (ordered, deterministic)
============================================================
1. Row dated current_date - 1 day with a value  -> previous_day
2. Nearest earlier row with a value, within the
   lookback window                              -> previous_available_row
3. Nothing usable                               -> insufficient_history

A missing current score also yields insufficient_history.
The delta is the exact difference; suppressing tiny moves is
a display decision (see formatting.format_delta).

============================================================
"""

import logging
import math
from datetime import date, timedelta
from typing import Dict, Iterable, Optional, Tuple

from .config import GScoreConfig, get_config
from .history import TimeSeries
from .types import DeltaBasis, FactorDelta, HistoryRow


logger = logging.getLogger(__name__)


def _find_baseline(
    factor_key: str,
    current_date: date,
    history: TimeSeries,
    lookback_days: int,
) -> Tuple[Optional[HistoryRow], DeltaBasis]:
    previous_day = current_date - timedelta(days=1)

    row = history.get(previous_day)
    if row is not None and row.score_for(factor_key) is not None:
        return row, DeltaBasis.PREVIOUS_DAY

    earliest = current_date - timedelta(days=lookback_days)
    for candidate in history.rows_before(current_date):
        if candidate.date < earliest:
            break
        if candidate.score_for(factor_key) is not None:
            return candidate, DeltaBasis.PREVIOUS_AVAILABLE_ROW

    return None, DeltaBasis.INSUFFICIENT_HISTORY


def compute_delta(
    factor_key: str,
    current_score: Optional[float],
    current_date: date,
    history: TimeSeries,
    lookback_days: Optional[int] = None,
    config: Optional[GScoreConfig] = None,
) -> FactorDelta:
    """
    Compute a factor delta with provenance.

    Args:
        factor_key: Factor identifier
        current_score: Today's score (None when unavailable)
        current_date: UTC calendar date of current_score
        history: Historical series (may include the current row)
        lookback_days: Bound on the backward scan

    Returns:
        FactorDelta; delta is None whenever basis is insufficient_history
    """
    if lookback_days is None:
        lookback_days = (config or get_config()).delta.lookback_days

    baseline, basis = _find_baseline(factor_key, current_date, history, lookback_days)

    previous_score = baseline.score_for(factor_key) if baseline else None
    previous_date = baseline.date if baseline else None

    if current_score is None or not math.isfinite(current_score):
        return FactorDelta(
            factor_key=factor_key,
            delta=None,
            current_score=None,
            previous_score=previous_score,
            current_date=current_date,
            previous_date=previous_date,
            basis=DeltaBasis.INSUFFICIENT_HISTORY,
        )

    delta = current_score - previous_score if baseline is not None else None

    return FactorDelta(
        factor_key=factor_key,
        delta=delta,
        current_score=current_score,
        previous_score=previous_score,
        current_date=current_date,
        previous_date=previous_date,
        basis=basis,
    )


def compute_factor_deltas(
    history: TimeSeries,
    factor_keys: Optional[Iterable[str]] = None,
    lookback_days: Optional[int] = None,
    config: Optional[GScoreConfig] = None,
) -> Dict[str, FactorDelta]:
    """
    Deltas for every factor, using the latest history row as "current".

    A failure on one factor is logged and reported as
    insufficient_history; it never blocks the other factors.

    Returns:
        Mapping factor key -> FactorDelta (empty for empty history)
    """
    config = config or get_config()
    current = history.latest()
    if current is None:
        return {}

    keys = list(factor_keys) if factor_keys is not None else list(config.factor_keys)
    deltas: Dict[str, FactorDelta] = {}

    for key in keys:
        try:
            deltas[key] = compute_delta(
                key,
                current.score_for(key),
                current.date,
                history,
                lookback_days=lookback_days,
                config=config,
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"Delta computation failed for {key}: {e}")
            deltas[key] = FactorDelta(
                factor_key=key,
                delta=None,
                current_score=None,
                previous_score=None,
                current_date=current.date,
                previous_date=None,
                basis=DeltaBasis.INSUFFICIENT_HISTORY,
            )

    return deltas
