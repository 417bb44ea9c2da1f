"""
G-Score Engine - Persistence Models.

============================================================
PURPOSE
============================================================
ORM model for the daily composite history.

One row per UTC calendar day: the official composite, its
band, and the per-factor scores of that day. This is the
series the delta calculator and the historical percentile
read back.

============================================================
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Date, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompositeHistoryPoint(Base):
    """One day of composite history."""

    __tablename__ = "gscore_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    as_of_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        unique=True,
        comment="UTC calendar day of the point",
    )

    as_of_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Snapshot timestamp the point was taken from",
    )

    composite: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Official composite score (0-100)",
    )

    band_key: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    factor_scores: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Factor key -> score (null when excluded)",
    )

    model_version: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("ix_gscore_history_as_of_utc", "as_of_utc"),
    )

    def __repr__(self) -> str:
        return (
            f"CompositeHistoryPoint("
            f"date={self.as_of_date}, "
            f"composite={self.composite}, "
            f"band={self.band_key})"
        )
