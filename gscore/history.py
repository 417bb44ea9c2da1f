"""
G-Score Engine - Historical Series.

============================================================
PURPOSE
============================================================
An immutable, date-ordered view over daily history rows.

Used by:
- Factor Delta Calculator (baseline lookup)
- Historical percentile of the composite
- History persistence (once-per-day append rule)

============================================================
"""

from bisect import bisect_left
from datetime import date, datetime
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .clock import ensure_utc
from .types import HistoryRow


class TimeSeries:
    """
    Date-sorted history rows, one per calendar day.

    When two rows share a date the later one in the input wins.
    """

    def __init__(self, rows: Iterable[HistoryRow] = ()):
        by_date: Dict[date, HistoryRow] = {}
        for row in rows:
            by_date[row.date] = row
        self._dates: Tuple[date, ...] = tuple(sorted(by_date))
        self._rows: Tuple[HistoryRow, ...] = tuple(by_date[d] for d in self._dates)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[HistoryRow]:
        return iter(self._rows)

    def __bool__(self) -> bool:
        return bool(self._rows)

    @property
    def rows(self) -> Tuple[HistoryRow, ...]:
        return self._rows

    def get(self, day: date) -> Optional[HistoryRow]:
        index = bisect_left(self._dates, day)
        if index < len(self._dates) and self._dates[index] == day:
            return self._rows[index]
        return None

    def latest(self) -> Optional[HistoryRow]:
        return self._rows[-1] if self._rows else None

    def rows_before(self, day: date) -> List[HistoryRow]:
        """Rows strictly earlier than day, newest first."""
        index = bisect_left(self._dates, day)
        return list(reversed(self._rows[:index]))

    def tail(self, count: int) -> "TimeSeries":
        return TimeSeries(self._rows[-count:] if count > 0 else ())

    def values(self, factor_key: str) -> List[Tuple[date, Optional[float]]]:
        return [(row.date, row.score_for(factor_key)) for row in self._rows]

    def composites(self) -> List[float]:
        return [row.composite for row in self._rows if row.composite is not None]


def percentile_rank(series: TimeSeries, score: float) -> Optional[float]:
    """
    Share of historical composites at or below a score (0-100).

    Returns None when the series holds no composite values.
    """
    values = series.composites()
    if not values:
        return None
    at_or_below = sum(1 for value in values if value <= score)
    return round(100.0 * at_or_below / len(values), 1)


def should_append(last_as_of: Optional[datetime], next_as_of: datetime) -> bool:
    """History keeps one point per UTC day."""
    if last_as_of is None:
        return True
    return ensure_utc(last_as_of).date() != ensure_utc(next_as_of).date()
