"""
Pydantic schemas for the artifacts the scoring layer consumes.

Loosely-typed ETL payloads are validated here, at the boundary,
and converted into the immutable dataclasses in types.py.
"""

import math
from dataclasses import dataclass, field
from datetime import date as Date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .clock import ensure_utc
from .config import GScoreConfig, get_config
from .types import (
    ConfigNotFoundError,
    Factor,
    FactorStatus,
    HistoryRow,
    Pillar,
    SnapshotValidationError,
)


# =======================
# FACTOR SNAPSHOT
# =======================

class FactorSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str = Field(min_length=1)
    label: Optional[str] = None
    pillar: Optional[Pillar] = None
    score: Optional[float] = Field(default=None, ge=0, le=100)
    weight_pct: float = Field(default=0.0, ge=0, le=100)
    status: FactorStatus = FactorStatus.FRESH
    reason: Optional[str] = None
    last_utc: Optional[datetime] = None
    source: Optional[str] = None

    @field_validator("score")
    @classmethod
    def score_must_be_finite(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not math.isfinite(value):
            raise ValueError("score must be finite")
        return value

    @model_validator(mode="after")
    def score_matches_status(self) -> "FactorSchema":
        if (self.score is None) != (self.status == FactorStatus.EXCLUDED):
            raise ValueError("score must be null exactly when status is 'excluded'")
        return self

    def to_factor(self, config: Optional[GScoreConfig] = None) -> Factor:
        pillar = self.pillar
        label = self.label
        if pillar is None or label is None:
            definition = (config or get_config()).get_factor(self.key)
            pillar = pillar or definition.pillar
            label = label or definition.label
        return Factor(
            key=self.key,
            label=label,
            pillar=pillar,
            score=self.score,
            weight_pct=self.weight_pct,
            status=self.status,
            reason=self.reason,
            last_utc=ensure_utc(self.last_utc) if self.last_utc else None,
            source=self.source,
        )


class BandSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    label: str
    range: List[int] = Field(min_length=2, max_length=2)
    color: Optional[str] = None
    recommendation: Optional[str] = None


class SnapshotSchema(BaseModel):
    """Latest factor snapshot written by the ETL."""
    model_config = ConfigDict(extra="ignore")

    as_of_utc: datetime
    composite_score: float = Field(ge=0, le=100)
    band: Optional[BandSchema] = None
    cycle_adjustment: float = 0.0
    spike_adjustment: float = 0.0
    factors: List[FactorSchema]
    provenance: List[Any] = Field(default_factory=list)
    model_version: Optional[str] = None

    @field_validator("cycle_adjustment", "spike_adjustment", mode="before")
    @classmethod
    def null_adjustment_is_zero(cls, value: Any) -> Any:
        # Adjustments are published as null when the detector is off
        return 0.0 if value is None else value

    @model_validator(mode="after")
    def factor_keys_unique(self) -> "SnapshotSchema":
        keys = [f.key for f in self.factors]
        if len(keys) != len(set(keys)):
            raise ValueError("duplicate factor keys in snapshot")
        return self


# =======================
# HISTORY
# =======================

class HistoryRowSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: Date
    composite: Optional[float] = Field(default=None, ge=0, le=100)
    scores: Dict[str, Optional[float]] = Field(default_factory=dict)

    @field_validator("scores")
    @classmethod
    def scores_in_range(cls, value: Dict[str, Optional[float]]) -> Dict[str, Optional[float]]:
        for key, score in value.items():
            if score is not None and (not math.isfinite(score) or not 0 <= score <= 100):
                raise ValueError(f"score for {key} out of range: {score}")
        return value

    def to_row(self) -> HistoryRow:
        return HistoryRow(date=self.date, composite=self.composite, scores=self.scores)


# =======================
# CONVERSION
# =======================

@dataclass(frozen=True)
class Snapshot:
    """Validated snapshot with factors converted to domain dataclasses."""

    as_of_utc: datetime
    composite_score: float
    factors: List[Factor]
    band_key: Optional[str] = None
    cycle_adjustment: float = 0.0
    spike_adjustment: float = 0.0
    provenance: List[Any] = field(default_factory=list)
    model_version: Optional[str] = None


def parse_snapshot(payload: Any, config: Optional[GScoreConfig] = None) -> Snapshot:
    """
    Validate a raw snapshot payload.

    Raises:
        SnapshotValidationError: If the payload does not match the schema
    """
    try:
        schema = SnapshotSchema.model_validate(payload)
        factors = [f.to_factor(config) for f in schema.factors]
    except ValidationError as e:
        raise SnapshotValidationError(
            f"Invalid snapshot: {e.error_count()} validation error(s)",
            context={"errors": e.errors(include_url=False)},
        ) from e
    except ConfigNotFoundError as e:
        raise SnapshotValidationError(f"Invalid snapshot: {e.message}", context=e.context) from e

    return Snapshot(
        as_of_utc=ensure_utc(schema.as_of_utc),
        composite_score=schema.composite_score,
        band_key=schema.band.key if schema.band else None,
        cycle_adjustment=schema.cycle_adjustment,
        spike_adjustment=schema.spike_adjustment,
        factors=factors,
        provenance=schema.provenance,
        model_version=schema.model_version,
    )
