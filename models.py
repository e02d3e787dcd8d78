from __future__ import annotations

import math
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Status(str, Enum):
    FINALIZED = "finalized"
    PROVISIONAL = "provisional"


class Observation(BaseModel):
    """One day of the series.

    ``Finalized`` values come straight from the remote source. ``Provisional``
    values are carried forward from an earlier day and may be replaced later.
    """

    model_config = ConfigDict(frozen=True)

    day: date
    magnitude: float = Field(..., ge=0)
    status: Status

    @field_validator("magnitude")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("magnitude must be finite")
        return value

    @classmethod
    def finalized(cls, day: date, magnitude: float) -> "Observation":
        return cls(day=day, magnitude=magnitude, status=Status.FINALIZED)

    @classmethod
    def provisional(cls, day: date, magnitude: float) -> "Observation":
        return cls(day=day, magnitude=magnitude, status=Status.PROVISIONAL)

    @property
    def is_finalized(self) -> bool:
        return self.status is Status.FINALIZED

    def carry_to(self, day: date) -> "Observation":
        return Observation.provisional(day, self.magnitude)


class CoverageSummary(BaseModel):
    series_id: str
    method_version: str
    start: date
    end: date
    grid_days: int
    covered_days: int
    finalized_days: int
    provisional_days: int
    missing_days: int
    coverage_ratio: float
    first_gap: Optional[date] = None
    latest: Optional[Observation] = None
    latest_finalized: Optional[Observation] = None
    generated_at: str
