"""
G-Score Engine - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface over local artifacts.

- preview: what-if composite of a snapshot under a preset
- deltas: factor deltas of a history file
- staleness: freshness of every factor in a snapshot
- presets: list the weight presets

============================================================
USAGE
============================================================
python -m gscore preview --snapshot latest.json --preset liq_35_25
python -m gscore deltas --history factor_history.csv
python -m gscore staleness --snapshot latest.json
python -m gscore presets

============================================================
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .clock import SystemClock
from .composite import CompositeScoreCalculator
from .config import OFFICIAL_PRESET_KEY, GScoreConfig, get_config
from .deltas import compute_factor_deltas
from .formatting import format_delta, format_delta_provenance, format_score, format_score_summary
from .history import TimeSeries
from .presets import list_presets
from .sources import load_history_csv, load_history_jsonl, load_snapshot
from .staleness import evaluate
from .types import GScoreError


logger = logging.getLogger(__name__)


# ============================================================
# LOGGING
# ============================================================


def setup_logging(level: str = "INFO", log_format: str = "text") -> logging.Logger:
    """
    Set up logging on the root logger.

    Args:
        level: Log level
        log_format: Output format (json or text)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")

    # Results go to stdout; logs stay on stderr
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("gscore")


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="gscore",
        description="Bitcoin G-Score scoring core",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  preview    - Recompute the composite under a weight preset
  deltas     - Factor deltas with provenance from a history file
  staleness  - Freshness of every factor in a snapshot
  presets    - List available weight presets

Examples:
  %(prog)s preview --snapshot latest.json --preset mom_25_35
  %(prog)s preview --snapshot latest.json --no-cycle --no-spike
  %(prog)s deltas --history factor_history.csv
  %(prog)s --log-format json staleness --snapshot latest.json
        """
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        default="text",
        help="Log format (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # --------------------------------------------------------
    # preview
    # --------------------------------------------------------
    preview = subparsers.add_parser("preview", help="What-if composite under a preset")
    preview.add_argument("--snapshot", type=Path, required=True, help="Snapshot JSON file")
    preview.add_argument(
        "--preset",
        type=str,
        default=OFFICIAL_PRESET_KEY,
        help=f"Weight preset key (default: {OFFICIAL_PRESET_KEY})",
    )
    preview.add_argument("--no-cycle", action="store_true", help="Ignore the cycle adjustment")
    preview.add_argument("--no-spike", action="store_true", help="Ignore the spike adjustment")
    preview.add_argument("--json", action="store_true", help="Print JSON instead of a summary")

    # --------------------------------------------------------
    # deltas
    # --------------------------------------------------------
    deltas = subparsers.add_parser("deltas", help="Factor deltas from history")
    deltas.add_argument(
        "--history",
        type=Path,
        required=True,
        help="factor_history.csv or history.jsonl",
    )
    deltas.add_argument("--lookback-days", type=int, default=None, help="Backward scan bound")

    # --------------------------------------------------------
    # staleness
    # --------------------------------------------------------
    staleness = subparsers.add_parser("staleness", help="Factor freshness")
    staleness.add_argument("--snapshot", type=Path, required=True, help="Snapshot JSON file")

    subparsers.add_parser("presets", help="List weight presets")

    return parser


# ============================================================
# COMMANDS
# ============================================================


def _load_history(path: Path, config: GScoreConfig) -> TimeSeries:
    if path.suffix == ".jsonl":
        return load_history_jsonl(path)
    return load_history_csv(path, config)


def cmd_preview(args: argparse.Namespace, config: GScoreConfig) -> int:
    snapshot = load_snapshot(args.snapshot, config)
    calculator = CompositeScoreCalculator(config)
    result = calculator.compute_preview(
        snapshot.factors,
        args.preset,
        cycle_adj=0.0 if args.no_cycle else snapshot.cycle_adjustment,
        spike_adj=0.0 if args.no_spike else snapshot.spike_adjustment,
    )

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_score_summary(result))
        print(f"Official:    {format_score(snapshot.composite_score)}")
    return 0


def cmd_deltas(args: argparse.Namespace, config: GScoreConfig) -> int:
    history = _load_history(args.history, config).tail(config.delta.recent_rows)
    deltas = compute_factor_deltas(history, lookback_days=args.lookback_days, config=config)

    if not deltas:
        print("No history rows")
        return 0

    for key, delta in deltas.items():
        print(f"{key:<18} {format_delta(delta.delta):>4}  {format_delta_provenance(delta)}")
    return 0


def cmd_staleness(args: argparse.Namespace, config: GScoreConfig) -> int:
    snapshot = load_snapshot(args.snapshot, config)
    now_utc = SystemClock().now()

    for factor in snapshot.factors:
        result = evaluate(factor, now_utc, config=config)
        age = f"{result.age_hours:.1f}h" if result.age_hours is not None else "n/a"
        reason = result.reason.value if result.reason else ""
        print(f"{factor.key:<18} {result.level.value:<9} age={age:<8} ttl={result.ttl_hours:g}h {reason}")
    return 0


def cmd_presets(args: argparse.Namespace, config: GScoreConfig) -> int:
    for preset in list_presets(config):
        weights = ", ".join(f"{pillar.value}={weight:.2f}" for pillar, weight in preset.pillar_weights.items())
        print(f"{preset.key:<16} {preset.label:<24} {weights}")
    return 0


COMMANDS = {
    "preview": cmd_preview,
    "deltas": cmd_deltas,
    "staleness": cmd_staleness,
    "presets": cmd_presets,
}


# ============================================================
# MAIN
# ============================================================


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 ok, 1 domain error, 2 unreadable input)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_format=args.log_format)
    config = get_config()

    try:
        return COMMANDS[args.command](args, config)
    except GScoreError as e:
        logger.error(f"{type(e).__name__}: {e.message}")
        print(f"error: {e.message}", file=sys.stderr)
        return 1
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read input: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
