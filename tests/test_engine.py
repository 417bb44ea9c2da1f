"""
Tests for GScoreEngine dashboard preparation.

============================================================
PURPOSE
============================================================
End-to-end checks of one dashboard load:
1. Preview under presets and adjustment toggles
2. Staleness re-evaluation against the clock
3. Degradation when no factor is usable
4. Deltas and percentile from history
5. Warnings

============================================================
"""

import json
from datetime import date, timedelta

import pytest

from gscore.clock import MockClock
from gscore.engine import DashboardContext, GScoreEngine
from gscore.history import TimeSeries
from gscore.schemas import parse_snapshot
from gscore.types import ConfigNotFoundError, DeltaBasis, FactorStatus, HistoryRow


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock(now):
    return MockClock(now)


@pytest.fixture
def engine(config, clock):
    return GScoreEngine(config=config, clock=clock)


@pytest.fixture
def snapshot(snapshot_payload, config):
    return parse_snapshot(snapshot_payload, config)


@pytest.fixture
def history():
    return TimeSeries([
        HistoryRow(date(2025, 3, 8), composite=40.0, scores={"stablecoins": 50.0}),
        HistoryRow(date(2025, 3, 9), composite=48.0, scores={"stablecoins": 55.0, "onchain": 38.0}),
        HistoryRow(date(2025, 3, 10), composite=52.4, scores={"stablecoins": 55.0, "onchain": 40.0}),
    ])


# ============================================================
# PREVIEW
# ============================================================

class TestPreview:
    """Tests for the what-if preview."""

    def test_official_preset_with_cycle(self, engine, snapshot, history):
        """Weighted sum 53.3 plus a 2 point cycle adjustment."""
        view = engine.prepare(snapshot, history, DashboardContext())

        assert view.preview is not None
        assert view.preview.raw_score == pytest.approx(53.3)
        assert view.preview.score == pytest.approx(55.3)
        assert view.preview.display_score == 55
        assert view.preview.band.key == "hold_wait"
        assert view.preset_key == "official_30_30"

    def test_adjustments_toggled_off(self, engine, snapshot, history):
        context = DashboardContext(apply_cycle_adjustment=False, apply_spike_adjustment=False)

        view = engine.prepare(snapshot, history, context)

        assert view.preview.score == pytest.approx(53.3)
        assert view.preview.cycle_adjustment == 0.0

    def test_other_preset(self, engine, snapshot, history):
        view = engine.prepare(snapshot, history, DashboardContext(preset_key="liq_35_25"))

        assert view.preview.preset_key == "liq_35_25"

    def test_unknown_preset_propagates(self, engine, snapshot, history):
        with pytest.raises(ConfigNotFoundError):
            engine.prepare(snapshot, history, DashboardContext(preset_key="nope"))

    def test_official_score_untouched(self, engine, snapshot, history):
        """The published composite is reported as-is."""
        view = engine.prepare(snapshot, history, DashboardContext(preset_key="mom_25_35"))

        assert view.official_score == 52.4
        assert view.official_display_score == 52
        assert view.official_band.key == "hold_wait"


# ============================================================
# STALENESS
# ============================================================

class TestStaleness:
    """Tests for staleness re-evaluation."""

    def test_all_fresh(self, engine, snapshot, history):
        view = engine.prepare(snapshot, history)

        assert all(f.status == FactorStatus.FRESH for f in view.factors)
        assert all(r.is_fresh for r in view.staleness.values())
        assert view.warnings == []

    def test_aging_excludes_short_ttl_factor(self, engine, clock, snapshot, history):
        """31h after the last update: trend (6h TTL) is out, daily factors are stale."""
        clock.advance(hours=30)

        view = engine.prepare(snapshot, history)
        by_key = {f.key: f for f in view.factors}

        assert by_key["trend_valuation"].status == FactorStatus.EXCLUDED
        assert by_key["trend_valuation"].score is None
        assert by_key["stablecoins"].status == FactorStatus.STALE
        assert by_key["net_liquidity"].status == FactorStatus.FRESH
        assert "trend_valuation" in view.preview.excluded_factors
        assert any("trend_valuation excluded" in w for w in view.warnings)

    def test_context_time_wins_over_clock(self, engine, now, snapshot, history):
        context = DashboardContext(now_utc=now + timedelta(hours=30))

        view = engine.prepare(snapshot, history, context)

        assert view.evaluated_at == now + timedelta(hours=30)
        assert view.staleness["trend_valuation"].level == FactorStatus.EXCLUDED

    def test_ttl_overrides(self, engine, snapshot, history):
        view = engine.prepare(snapshot, history, DashboardContext(ttl_overrides={"stablecoins": 0.5}))

        assert view.staleness["stablecoins"].level == FactorStatus.STALE

    def test_nothing_usable_degrades(self, engine, clock, snapshot, history):
        """With every factor excluded the view still renders, without a preview."""
        clock.advance(days=365)

        view = engine.prepare(snapshot, history)

        assert view.preview is None
        assert any("Preview unavailable" in w for w in view.warnings)
        assert view.official_band.key == "hold_wait"


# ============================================================
# HISTORY
# ============================================================

class TestHistory:
    """Tests for deltas and percentile."""

    def test_deltas(self, engine, snapshot, history):
        view = engine.prepare(snapshot, history)

        assert view.deltas["stablecoins"].delta == 0
        assert view.deltas["stablecoins"].basis == DeltaBasis.PREVIOUS_DAY
        assert view.deltas["onchain"].delta == pytest.approx(2.0)
        assert view.deltas["macro_overlay"].basis == DeltaBasis.INSUFFICIENT_HISTORY

    def test_percentile(self, engine, snapshot, history):
        view = engine.prepare(snapshot, history)

        assert view.percentile == 100.0

    def test_without_history(self, engine, snapshot):
        view = engine.prepare(snapshot)

        assert view.deltas == {}
        assert view.percentile is None
        assert "No history available for deltas" in view.warnings


# ============================================================
# OUTPUT
# ============================================================

class TestView:
    """Tests for DashboardView output."""

    def test_band_mismatch_warning(self, engine, snapshot_payload, config, history):
        snapshot_payload["band"] = {"key": "high_risk", "label": "High Risk", "range": [80, 100]}
        snapshot = parse_snapshot(snapshot_payload, config)

        view = engine.prepare(snapshot, history)

        assert view.official_band.key == "hold_wait"
        assert any("high_risk" in w for w in view.warnings)

    def test_to_dict_is_json_serializable(self, engine, snapshot, history, config):
        data = engine.prepare(snapshot, history).to_dict()

        encoded = json.dumps(data)

        assert data["config_digest"] == config.digest
        assert data["deltas"]["stablecoins"]["basis"] == "previous_day"
        assert "official_band" in encoded
