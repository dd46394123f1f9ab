"""Shared fixtures and in-memory collaborators for cycle engine tests."""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from uuid import UUID

import pytest

from src.cycles.aggregator import CycleStatsSummary
from src.cycles.config_loader import PredictionConfig, load_prediction_config
from src.cycles.engine import CycleEngine
from src.cycles.ports import (
    ObservationStore,
    PersistenceError,
    PredictionLog,
    PredictionRecord,
    RetrievalError,
    StatsRepository,
)

# Canonical test user IDs
TEST_USER_ID = UUID("12345678-1234-5678-1234-567812345678")
OTHER_USER_ID = UUID("87654321-4321-8765-4321-876543218765")
TEST_DATE = date(2024, 3, 15)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def period_run(start: date, days: int) -> list[date]:
    """Consecutive period days starting at ``start``."""
    return [start + timedelta(days=i) for i in range(days)]


def regular_history(
    n_episodes: int, cycle_length: int = 28, period_days: int = 5, first: date = date(2023, 1, 2)
) -> list[date]:
    """Period days for ``n_episodes`` evenly spaced episodes."""
    out: list[date] = []
    for i in range(n_episodes):
        out.extend(period_run(first + timedelta(days=i * cycle_length), period_days))
    return out


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class InMemoryObservationStore(ObservationStore):
    """Period days per user; optionally slow or failing."""

    def __init__(self, delay: float = 0.0) -> None:
        self.period_days: dict[UUID, set[date]] = {}
        self.fail = False
        self.delay = delay
        self.active = 0
        self.max_active = 0

    def add(self, user_id: UUID, days: list[date]) -> None:
        self.period_days.setdefault(user_id, set()).update(days)

    def remove(self, user_id: UUID, day: date) -> None:
        self.period_days.get(user_id, set()).discard(day)

    async def list_period_days(self, user_id: UUID) -> list[date]:
        if self.fail:
            raise RetrievalError("observation store unavailable")
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return sorted(self.period_days.get(user_id, set()))
        finally:
            self.active -= 1


class InMemoryStatsRepository(StatsRepository):
    def __init__(self) -> None:
        self.rows: dict[UUID, CycleStatsSummary] = {}
        self.upserts = 0
        self.deletes = 0
        self.fail_reads = False

    async def get(self, user_id: UUID) -> CycleStatsSummary | None:
        if self.fail_reads:
            raise RetrievalError("stats repository unavailable")
        return self.rows.get(user_id)

    async def upsert(self, user_id: UUID, summary: CycleStatsSummary) -> None:
        self.upserts += 1
        self.rows[user_id] = summary

    async def delete(self, user_id: UUID) -> None:
        self.deletes += 1
        self.rows.pop(user_id, None)


class InMemoryPredictionLog(PredictionLog):
    def __init__(self) -> None:
        self.records: list[tuple[UUID, PredictionRecord]] = []
        self.fail = False

    async def append(self, user_id: UUID, record: PredictionRecord) -> None:
        if self.fail:
            raise PersistenceError("prediction log unavailable")
        self.records.append((user_id, record))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def prediction_config() -> PredictionConfig:
    """Load the bundled prediction policy."""
    return load_prediction_config()


@pytest.fixture
def observation_store() -> InMemoryObservationStore:
    return InMemoryObservationStore()


@pytest.fixture
def stats_repository() -> InMemoryStatsRepository:
    return InMemoryStatsRepository()


@pytest.fixture
def prediction_log() -> InMemoryPredictionLog:
    return InMemoryPredictionLog()


@pytest.fixture
def engine(
    observation_store: InMemoryObservationStore,
    stats_repository: InMemoryStatsRepository,
    prediction_log: InMemoryPredictionLog,
    prediction_config: PredictionConfig,
) -> CycleEngine:
    return CycleEngine(
        observations=observation_store,
        stats=stats_repository,
        prediction_log=prediction_log,
        config=prediction_config,
    )
