"""Collaborator interfaces the cycle engine depends on.

The engine never talks to a database directly.  It receives one instance of
each interface below; production wiring uses the asyncpg implementations in
``src.cycles.stores``.  Implementations must raise ``RetrievalError`` for
failed reads and ``PersistenceError`` for failed writes, chaining the
underlying driver exception.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import UUID

from src.cycles.aggregator import CycleStatsSummary, utc_now


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class CycleEngineError(Exception):
    """Base class for collaborator failures surfaced by the cycle engine."""


class RetrievalError(CycleEngineError):
    """Observations or the stats summary could not be read."""


class PersistenceError(CycleEngineError):
    """The stats summary or a prediction record could not be written."""


# ---------------------------------------------------------------------------
# Prediction audit record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PredictionRecord:
    """One served forecast, appended to the prediction log.

    Attributes:
        prediction_date:        Calendar day the forecast was served.
        predicted_window_start: Forecast window start.
        predicted_window_end:   Forecast window end.
        confidence_score:       Accuracy as a fraction in [0, 1].
        algorithm:              'default' or 'basic'.
        created_at:             UTC timestamp of the append.
    """

    prediction_date: date
    predicted_window_start: date
    predicted_window_end: date
    confidence_score: float
    algorithm: str
    created_at: datetime = field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class ObservationStore(ABC):
    """Read-only access to a user's daily observations."""

    @abstractmethod
    async def list_period_days(self, user_id: UUID) -> list[date]:
        """Return the user's period-day dates, ascending and unique."""


class StatsRepository(ABC):
    """Storage for the per-user cycle statistics row."""

    @abstractmethod
    async def get(self, user_id: UUID) -> CycleStatsSummary | None:
        """Return the persisted summary, or None if never computed."""

    @abstractmethod
    async def upsert(self, user_id: UUID, summary: CycleStatsSummary) -> None:
        """Replace the user's summary row in full."""

    @abstractmethod
    async def delete(self, user_id: UUID) -> None:
        """Remove the user's summary row, if any."""


class PredictionLog(ABC):
    """Append-only audit log of served forecasts."""

    @abstractmethod
    async def append(self, user_id: UUID, record: PredictionRecord) -> None:
        """Record a served forecast."""
