"""
G-Score Engine - History Repository.

============================================================
PURPOSE
============================================================
Repository pattern implementation for composite history.

Provides clean interface for:
- Appending one point per UTC day
- Retrieving the latest point
- Reading the stored series back as a TimeSeries

============================================================
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from .clock import ensure_utc
from .history import TimeSeries, should_append
from .models import CompositeHistoryPoint
from .schemas import Snapshot
from .types import HistoryRow


logger = logging.getLogger(__name__)


class HistoryRepository:
    """
    Repository for composite history persistence.

    ============================================================
    METHODS
    ============================================================
    - append_snapshot: Store today's point if not stored yet
    - get_latest: Most recent point
    - get_by_date: Point for one UTC day
    - get_series: Stored points as a TimeSeries

    ============================================================
    """

    def __init__(self, session: Session):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session (caller owns the transaction)
        """
        self._session = session

    # --------------------------------------------------------
    # WRITE OPERATIONS
    # --------------------------------------------------------

    def append_snapshot(self, snapshot: Snapshot) -> Optional[CompositeHistoryPoint]:
        """
        Append the snapshot's composite as the point for its UTC day.

        Returns:
            The new point, or None when that day is already recorded
        """
        latest = self.get_latest()
        as_of = ensure_utc(snapshot.as_of_utc)

        if latest is not None and not should_append(latest.as_of_utc, as_of):
            logger.debug(f"History already has a point for {as_of.date()}, skipping")
            return None

        if self.get_by_date(as_of.date()) is not None:
            logger.debug(f"Backfill for {as_of.date()} already recorded, skipping")
            return None

        point = CompositeHistoryPoint(
            as_of_date=as_of.date(),
            as_of_utc=as_of,
            composite=snapshot.composite_score,
            band_key=snapshot.band_key,
            factor_scores={f.key: f.score for f in snapshot.factors},
            model_version=snapshot.model_version,
        )
        self._session.add(point)
        self._session.flush()

        logger.info(f"Appended history point for {point.as_of_date}: {point.composite}")
        return point

    # --------------------------------------------------------
    # READ OPERATIONS
    # --------------------------------------------------------

    def get_latest(self) -> Optional[CompositeHistoryPoint]:
        stmt = select(CompositeHistoryPoint).order_by(desc(CompositeHistoryPoint.as_of_date)).limit(1)
        return self._session.execute(stmt).scalars().first()

    def get_by_date(self, as_of_date: date) -> Optional[CompositeHistoryPoint]:
        stmt = select(CompositeHistoryPoint).where(CompositeHistoryPoint.as_of_date == as_of_date)
        return self._session.execute(stmt).scalars().first()

    def get_series(self, since: Optional[date] = None) -> TimeSeries:
        """
        Stored history as a TimeSeries.

        Args:
            since: Earliest date to include (all history when omitted)
        """
        stmt = select(CompositeHistoryPoint).order_by(CompositeHistoryPoint.as_of_date)
        if since is not None:
            stmt = stmt.where(CompositeHistoryPoint.as_of_date >= since)

        points = self._session.execute(stmt).scalars().all()
        return TimeSeries(
            HistoryRow(
                date=point.as_of_date,
                composite=point.composite,
                scores=dict(point.factor_scores or {}),
            )
            for point in points
        )

    def count(self) -> int:
        stmt = select(func.count()).select_from(CompositeHistoryPoint)
        return self._session.execute(stmt).scalar_one()
