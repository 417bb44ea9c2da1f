"""
G-Score Engine - Display Formatting.

Score, delta and provenance strings shared by the CLI and any
presentation layer. Formatting never feeds back into scoring.
"""

from typing import Optional

from .types import CompositeScore, DeltaBasis, FactorDelta


NO_VALUE = "—"


def _round(value: float, decimals: int) -> float:
    return round(value, 1) if decimals == 1 else float(round(value))


def format_score(score: Optional[float], decimals: int = 1, show_sign: bool = False) -> str:
    """Score with one decimal by default; "N/A" when missing."""
    if score is None:
        return "N/A"
    rounded = _round(score, decimals)
    formatted = f"{rounded:.1f}" if decimals == 1 else f"{int(rounded)}"
    if show_sign and rounded > 0:
        return f"+{formatted}"
    return formatted


def format_delta(delta: Optional[float], decimals: int = 0) -> str:
    """
    Signed delta for display.

    Moves that round to less than 0.5 in magnitude are shown
    as "—", the same as a missing delta.
    """
    if delta is None:
        return NO_VALUE
    rounded = _round(delta, decimals)
    if abs(rounded) < 0.5:
        return NO_VALUE
    formatted = f"{rounded:.1f}" if decimals == 1 else f"{int(rounded)}"
    return f"+{formatted}" if rounded > 0 else formatted


def format_delta_display(delta: Optional[float]) -> str:
    """Raw delta with an explicit plus sign; "—" when missing."""
    if delta is None:
        return NO_VALUE
    text = f"{delta:g}"
    return f"+{text}" if delta > 0 else text


def delta_direction(delta: Optional[float]) -> str:
    """Risk semantics: positive delta means risk rising."""
    if delta is None:
        return "unknown"
    if delta > 0:
        return "rising"
    if delta < 0:
        return "falling"
    return "flat"


def format_delta_provenance(delta: FactorDelta) -> str:
    previous = delta.previous_date.isoformat() if delta.previous_date else None

    if delta.basis == DeltaBasis.PREVIOUS_DAY:
        return f"Δ vs prior day ({previous})" if previous else "Δ vs prior day"
    if delta.basis == DeltaBasis.PREVIOUS_AVAILABLE_ROW:
        return f"Δ vs prior available row ({previous})" if previous else "Δ vs prior available row"
    return "Δ unavailable (insufficient history)"


def format_score_summary(composite: CompositeScore) -> str:
    """Multi-line summary for logs and the CLI."""
    lines = [
        "=" * 50,
        "G-SCORE PREVIEW",
        "=" * 50,
        f"Preset:      {composite.preset_key or 'n/a'}",
        f"Score:       {composite.display_score}/100 ({format_score(composite.score)})",
        f"Band:        {composite.band.label} {list(composite.band.range)}",
        f"Action:      {composite.band.recommendation}",
        f"Raw:         {format_score(composite.raw_score)}",
        f"Cycle adj:   {format_score(composite.cycle_adjustment, show_sign=True)}",
        f"Spike adj:   {format_score(composite.spike_adjustment, show_sign=True)}",
        f"Confidence:  {'LOW' if composite.low_confidence else 'normal'}",
        "",
        "Effective weights:",
    ]
    for key, weight in sorted(composite.effective_weights.items(), key=lambda kv: -kv[1]):
        lines.append(f"  {key:<18} {weight * 100:5.1f}%")
    if composite.excluded_factors:
        lines.append("")
        lines.append(f"Excluded: {', '.join(composite.excluded_factors)}")
    lines.append("=" * 50)
    return "\n".join(lines)
