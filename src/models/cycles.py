"""Pydantic models for period observations, cycle stats and predictions."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from enum import Enum

from pydantic import Field, field_validator

from src.cycles.aggregator import CycleStatsSummary, InsufficientData
from src.models.base import LunaxBase, TimestampMixin


# ---------- Enums ----------

class FlowLevel(str, Enum):
    light = "light"
    medium = "medium"
    heavy = "heavy"


class DataSufficiency(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class ConfidenceTier(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class PredictionAlgorithm(str, Enum):
    default = "default"
    basic = "basic"


# ---------- Observations ----------

def _unique_symptoms(value: list[str] | None) -> list[str] | None:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    if value is None:
        return None
    seen: dict[str, None] = {}
    for symptom in value:
        symptom = symptom.strip()
        if symptom:
            seen.setdefault(symptom, None)
    return list(seen)


class ObservationBase(LunaxBase):
    is_period_day: bool = True
    flow_level: FlowLevel = FlowLevel.medium
    symptoms: list[str] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("symptoms")
    @classmethod
    def unique_symptoms(cls, value: list[str] | None) -> list[str] | None:
        return _unique_symptoms(value)


class ObservationCreate(ObservationBase):
    observation_date: date


class ObservationUpdate(LunaxBase):
    is_period_day: bool | None = None
    flow_level: FlowLevel | None = None
    symptoms: list[str] | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("symptoms")
    @classmethod
    def unique_symptoms(cls, value: list[str] | None) -> list[str] | None:
        return _unique_symptoms(value)


class ObservationRead(ObservationBase, TimestampMixin):
    observation_id: uuid.UUID
    user_id: uuid.UUID
    observation_date: date


# ---------- Cycle stats ----------

class CycleStatsRead(LunaxBase):
    total_cycles: int
    avg_cycle_length: float
    cycle_length_std: float
    avg_period_length: float
    period_length_std: float
    data_sufficiency: DataSufficiency
    last_episode_start: date
    last_episode_end: date
    updated_at: datetime


class CycleStatsResponse(LunaxBase):
    """Stats lookup / recomputation outcome.

    ``status`` is ``insufficient_data`` with ``summary = None`` when fewer
    than two period episodes are logged.
    """

    status: str
    summary: CycleStatsRead | None = None
    message: str | None = None

    @classmethod
    def from_outcome(
        cls, outcome: CycleStatsSummary | InsufficientData | None
    ) -> CycleStatsResponse:
        if outcome is None:
            return cls(status="insufficient_data", message="No cycle statistics recorded yet")
        if isinstance(outcome, InsufficientData):
            return cls(status="insufficient_data", message=outcome.message)
        return cls(status="ok", summary=CycleStatsRead.model_validate(outcome))


# ---------- Predictions ----------

class PredictionRead(LunaxBase):
    predicted_window_start: date
    predicted_window_end: date
    accuracy: int = Field(ge=0, le=100)
    confidence_tier: ConfidenceTier
    algorithm: PredictionAlgorithm
    last_episode_start: date | None = None
    avg_cycle_length: float | None = None
    cycle_length_std: float | None = None
    message: str | None = None


class PredictionRecordRead(LunaxBase):
    prediction_id: uuid.UUID
    prediction_date: date
    predicted_window_start: date
    predicted_window_end: date
    confidence_score: float = Field(ge=0, le=1)
    algorithm: PredictionAlgorithm
    created_at: datetime


# ---------- Dashboard ----------

class DashboardRead(LunaxBase):
    """At-a-glance overview: stored stats plus logging activity."""

    stats: CycleStatsResponse
    recent_observations: int = Field(ge=0, description="Observations in the last 30 days")
    total_observations: int = Field(ge=0, description="Distinct observation dates")
    days_since_last_observation: int | None = None

    @classmethod
    def from_parts(
        cls,
        summary: CycleStatsSummary | None,
        recent_observations: int,
        total_observations: int,
        last_observation_date: date | None,
        today: date,
    ) -> DashboardRead:
        days_since = (
            (today - last_observation_date).days if last_observation_date else None
        )
        return cls(
            stats=CycleStatsResponse.from_outcome(summary),
            recent_observations=recent_observations,
            total_observations=total_observations,
            days_since_last_observation=days_since,
        )
