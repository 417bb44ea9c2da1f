"""
G-Score Engine - Factor Staleness Evaluator.

============================================================
PURPOSE
============================================================
Classifies each factor as fresh / stale / excluded from the
age of its last update and a per-factor TTL.

============================================================
THRESHOLDS
============================================================
elapsed <= ttl                -> FRESH
ttl < elapsed <= 3 * ttl      -> STALE     (stale_beyond_ttl)
elapsed > 3 * ttl             -> EXCLUDED  (excluded_beyond_grace)
no timestamp                  -> EXCLUDED  (missing_timestamp)
unparseable timestamp         -> EXCLUDED  (invalid_timestamp)

The multiplier is one config value applied to every factor;
only the TTL differs per factor.

Reason values are codes, not messages. Wording belongs to
the presentation layer.

============================================================
"""

import logging
import math
from dataclasses import replace
from datetime import datetime
from typing import Dict, Mapping, Optional, Sequence, Union

from .clock import ensure_utc, parse_iso
from .config import GScoreConfig, get_config
from .types import ConfigValidationError, Factor, FactorStatus, StalenessReason, StalenessResult


logger = logging.getLogger(__name__)

Timestamp = Union[datetime, str, None]


def get_ttl_hours(
    factor_key: str,
    ttl_overrides: Optional[Mapping[str, float]] = None,
    config: Optional[GScoreConfig] = None,
) -> float:
    """
    TTL for a factor: override, then configured table, then default.

    Raises:
        ConfigValidationError: If the override is not a positive number
    """
    if ttl_overrides and factor_key in ttl_overrides:
        hours = float(ttl_overrides[factor_key])
        if not hours > 0 or math.isinf(hours):
            raise ConfigValidationError(
                f"TTL override for {factor_key} must be positive",
                context={"factor_key": factor_key, "ttl_hours": hours},
            )
        return hours
    config = config or get_config()
    return config.freshness.ttl_for(factor_key)


def evaluate_timestamp(
    factor_key: str,
    last_utc: Timestamp,
    now_utc: datetime,
    ttl_overrides: Optional[Mapping[str, float]] = None,
    config: Optional[GScoreConfig] = None,
) -> StalenessResult:
    """Classify a bare timestamp for the given factor key."""
    config = config or get_config()
    ttl = get_ttl_hours(factor_key, ttl_overrides, config)

    if last_utc is None or (isinstance(last_utc, str) and not last_utc.strip()):
        return StalenessResult(FactorStatus.EXCLUDED, StalenessReason.MISSING_TIMESTAMP, ttl)

    if isinstance(last_utc, str):
        try:
            last_utc = parse_iso(last_utc)
        except ValueError:
            logger.warning(f"Unparseable last_utc for {factor_key}: {last_utc!r}")
            return StalenessResult(FactorStatus.EXCLUDED, StalenessReason.INVALID_TIMESTAMP, ttl)

    age_hours = (ensure_utc(now_utc) - ensure_utc(last_utc)).total_seconds() / 3600

    if age_hours <= ttl:
        return StalenessResult(FactorStatus.FRESH, None, ttl, age_hours)
    if age_hours <= ttl * config.freshness.stale_multiplier:
        return StalenessResult(FactorStatus.STALE, StalenessReason.STALE_BEYOND_TTL, ttl, age_hours)
    return StalenessResult(FactorStatus.EXCLUDED, StalenessReason.EXCLUDED_BEYOND_GRACE, ttl, age_hours)


def evaluate(
    factor: Factor,
    now_utc: datetime,
    ttl_overrides: Optional[Mapping[str, float]] = None,
    config: Optional[GScoreConfig] = None,
) -> StalenessResult:
    """
    Classify a factor's freshness.

    Args:
        factor: Factor with last_utc
        now_utc: Evaluation time
        ttl_overrides: Optional per-factor TTL hours

    Returns:
        StalenessResult with level and reason code
    """
    return evaluate_timestamp(factor.key, factor.last_utc, now_utc, ttl_overrides, config)


def apply_staleness(
    factor: Factor,
    now_utc: datetime,
    ttl_overrides: Optional[Mapping[str, float]] = None,
    config: Optional[GScoreConfig] = None,
) -> Factor:
    """
    Return a new factor snapshot carrying the evaluated status.

    An excluded factor loses its score. A factor that arrived
    already excluded stays excluded (there is no score to revive).
    """
    if factor.status == FactorStatus.EXCLUDED:
        return factor

    result = evaluate(factor, now_utc, ttl_overrides, config)
    if result.level == factor.status and result.level == FactorStatus.FRESH:
        return factor

    if result.level == FactorStatus.EXCLUDED:
        logger.info(f"Excluding factor {factor.key}: {result.reason.value}")
        return replace(factor, status=FactorStatus.EXCLUDED, score=None, reason=result.reason.value)

    return replace(
        factor,
        status=result.level,
        reason=result.reason.value if result.reason else None,
    )


def evaluate_all(
    factors: Sequence[Factor],
    now_utc: datetime,
    ttl_overrides: Optional[Mapping[str, float]] = None,
    config: Optional[GScoreConfig] = None,
) -> Dict[str, StalenessResult]:
    return {f.key: evaluate(f, now_utc, ttl_overrides, config) for f in factors}
