"""
Tests for the command-line interface.
"""

import json
import logging

import pytest

from gscore.cli import create_parser, main, setup_logging


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture(autouse=True)
def restore_root_logger():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def snapshot_file(tmp_path, snapshot_payload):
    path = tmp_path / "latest.json"
    path.write_text(json.dumps(snapshot_payload), encoding="utf-8")
    return path


@pytest.fixture
def history_file(tmp_path):
    path = tmp_path / "factor_history.csv"
    path.write_text(
        "date,stablecoins_score,onchain_score\n"
        "2025-03-08,50,30\n"
        "2025-03-09,52,\n"
        "2025-03-10,52,35\n",
        encoding="utf-8",
    )
    return path


# ============================================================
# PARSER
# ============================================================

class TestParser:
    """Tests for create_parser."""

    def test_preview_defaults(self):
        args = create_parser().parse_args(["preview", "--snapshot", "x.json"])

        assert args.preset == "official_30_30"
        assert args.no_cycle is False
        assert args.log_format == "text"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_setup_logging_json(self):
        setup_logging(level="DEBUG", log_format="json")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert '"level": "%(levelname)s"' in root.handlers[0].formatter._fmt


# ============================================================
# COMMANDS
# ============================================================

class TestCommands:
    """Tests for main()."""

    def test_presets(self, capsys):
        assert main(["presets"]) == 0

        out = capsys.readouterr().out
        assert "official_30_30" in out
        assert "Liquidity-Heavy (35/25)" in out

    def test_preview_summary(self, capsys, snapshot_file):
        assert main(["preview", "--snapshot", str(snapshot_file)]) == 0

        out = capsys.readouterr().out
        assert "G-SCORE PREVIEW" in out
        assert "Hold & Wait" in out
        assert "Official:    52.4" in out

    def test_preview_json(self, capsys, snapshot_file):
        assert main(["preview", "--snapshot", str(snapshot_file), "--json", "--no-cycle"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["score"] == pytest.approx(53.3)
        assert data["cycle_adjustment"] == 0.0

    def test_unknown_preset(self, capsys, snapshot_file):
        assert main(["preview", "--snapshot", str(snapshot_file), "--preset", "nope"]) == 1

        assert "Unknown preset key" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert main(["preview", "--snapshot", str(tmp_path / "missing.json")]) == 2

    def test_deltas(self, capsys, history_file):
        assert main(["deltas", "--history", str(history_file)]) == 0

        out = capsys.readouterr().out
        assert "Δ vs prior day (2025-03-09)" in out
        assert "Δ vs prior available row (2025-03-08)" in out
        assert "Δ unavailable (insufficient history)" in out

    def test_staleness(self, capsys, snapshot_file):
        assert main(["staleness", "--snapshot", str(snapshot_file)]) == 0

        out = capsys.readouterr().out
        assert "trend_valuation" in out
        assert "ttl=6h" in out
