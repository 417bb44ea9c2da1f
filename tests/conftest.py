"""
Shared fixtures for the G-Score engine tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gscore.config import CONFIG_JSON_ENV, CONFIG_PATH_ENV, GScoreConfig, invalidate_config_cache
from gscore.types import Factor, FactorStatus, Pillar


NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Every test starts from the built-in configuration."""
    monkeypatch.delenv(CONFIG_JSON_ENV, raising=False)
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    invalidate_config_cache()
    yield
    invalidate_config_cache()


@pytest.fixture
def config():
    return GScoreConfig()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_factor():
    """Factory for Factor snapshots."""
    def _make(
        key="trend_valuation",
        score=50.0,
        weight_pct=20.0,
        status=FactorStatus.FRESH,
        pillar=Pillar.MOMENTUM,
        age_hours=1.0,
        **kwargs,
    ):
        if status == FactorStatus.EXCLUDED:
            score = None
        return Factor(
            key=key,
            label=kwargs.pop("label", key.replace("_", " ").title()),
            pillar=pillar,
            score=score,
            weight_pct=weight_pct,
            status=status,
            last_utc=kwargs.pop("last_utc", NOW - timedelta(hours=age_hours)),
            **kwargs,
        )
    return _make


@pytest.fixture
def snapshot_payload():
    """Snapshot JSON as published by the ETL (every factor fresh at NOW)."""
    last = (NOW - timedelta(hours=1)).isoformat().replace("+00:00", "Z")
    return {
        "as_of_utc": "2025-03-10T11:00:00Z",
        "composite_score": 52.4,
        "band": {"key": "hold_wait", "label": "Hold & Wait", "range": [50, 64]},
        "cycle_adjustment": 2.0,
        "spike_adjustment": None,
        "model_version": "v3.3.0",
        "provenance": [],
        "factors": [
            {"key": "trend_valuation", "score": 60, "weight_pct": 20, "last_utc": last},
            {"key": "onchain", "score": 40, "weight_pct": 5, "last_utc": last},
            {"key": "stablecoins", "score": 55, "weight_pct": 15, "last_utc": last},
            {"key": "net_liquidity", "score": 45, "weight_pct": 15, "last_utc": last},
            {"key": "etf_flows", "score": 50, "weight_pct": 5, "last_utc": last},
            {"key": "term_leverage", "score": 65, "weight_pct": 20, "last_utc": last},
            {"key": "macro_overlay", "score": 35, "weight_pct": 10, "last_utc": last},
            {"key": "social_interest", "score": 50, "weight_pct": 10, "last_utc": last},
        ],
    }
