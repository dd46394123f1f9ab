"""asyncpg-backed implementations of the cycle engine collaborators.

Tables::

    period_observations (observation_id, user_id, observation_date, is_period_day,
                         flow_level, symptoms, notes, created_at, updated_at)
                         UNIQUE (user_id, observation_date)
    cycle_stats         (user_id PRIMARY KEY, total_cycles, avg_cycle_length,
                         cycle_length_std, avg_period_length, period_length_std,
                         data_sufficiency, last_episode_start, last_episode_end,
                         updated_at)
    predictions         (prediction_id, user_id, prediction_date,
                         predicted_window_start, predicted_window_end,
                         confidence_score, algorithm, created_at)

Driver and connection errors are wrapped in ``RetrievalError`` (reads) or
``PersistenceError`` (writes).
"""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

import asyncpg

from src.cycles.aggregator import CycleStatsSummary
from src.cycles.ports import (
    ObservationStore,
    PersistenceError,
    PredictionLog,
    PredictionRecord,
    RetrievalError,
    StatsRepository,
)
from src.services.database import fetch, fetchrow, execute

logger = logging.getLogger("lunax.cycles.stores")

# Errors raised by asyncpg for query failures and by the socket layer for
# lost connections; RuntimeError covers an uninitialized pool.
_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, RuntimeError)


class PgObservationStore(ObservationStore):
    async def list_period_days(self, user_id: UUID) -> list[date]:
        try:
            rows = await fetch(
                """
                SELECT DISTINCT observation_date FROM period_observations
                WHERE user_id = $1 AND is_period_day = TRUE
                ORDER BY observation_date ASC
                """,
                user_id,
                user_id=user_id,
            )
        except _DB_ERRORS as exc:
            logger.error("Failed to read period days for user %s: %s", user_id, exc)
            raise RetrievalError(f"Could not read observations for user {user_id}") from exc
        return [r["observation_date"] for r in rows]


class PgStatsRepository(StatsRepository):
    async def get(self, user_id: UUID) -> CycleStatsSummary | None:
        try:
            row = await fetchrow(
                "SELECT * FROM cycle_stats WHERE user_id = $1",
                user_id,
                user_id=user_id,
            )
        except _DB_ERRORS as exc:
            logger.error("Failed to read cycle stats for user %s: %s", user_id, exc)
            raise RetrievalError(f"Could not read cycle stats for user {user_id}") from exc
        if row is None:
            return None
        return CycleStatsSummary(
            total_cycles=row["total_cycles"],
            avg_cycle_length=float(row["avg_cycle_length"]),
            cycle_length_std=float(row["cycle_length_std"]),
            avg_period_length=float(row["avg_period_length"]),
            period_length_std=float(row["period_length_std"]),
            data_sufficiency=row["data_sufficiency"],
            last_episode_start=row["last_episode_start"],
            last_episode_end=row["last_episode_end"],
            updated_at=row["updated_at"],
        )

    async def upsert(self, user_id: UUID, summary: CycleStatsSummary) -> None:
        try:
            await execute(
                """
                INSERT INTO cycle_stats (
                    user_id, total_cycles, avg_cycle_length, cycle_length_std,
                    avg_period_length, period_length_std, data_sufficiency,
                    last_episode_start, last_episode_end, updated_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                ON CONFLICT (user_id) DO UPDATE SET
                    total_cycles = EXCLUDED.total_cycles,
                    avg_cycle_length = EXCLUDED.avg_cycle_length,
                    cycle_length_std = EXCLUDED.cycle_length_std,
                    avg_period_length = EXCLUDED.avg_period_length,
                    period_length_std = EXCLUDED.period_length_std,
                    data_sufficiency = EXCLUDED.data_sufficiency,
                    last_episode_start = EXCLUDED.last_episode_start,
                    last_episode_end = EXCLUDED.last_episode_end,
                    updated_at = EXCLUDED.updated_at
                """,
                user_id,
                summary.total_cycles,
                summary.avg_cycle_length,
                summary.cycle_length_std,
                summary.avg_period_length,
                summary.period_length_std,
                summary.data_sufficiency,
                summary.last_episode_start,
                summary.last_episode_end,
                summary.updated_at,
                user_id=user_id,
            )
        except _DB_ERRORS as exc:
            logger.error("Failed to upsert cycle stats for user %s: %s", user_id, exc)
            raise PersistenceError(f"Could not write cycle stats for user {user_id}") from exc

    async def delete(self, user_id: UUID) -> None:
        try:
            await execute(
                "DELETE FROM cycle_stats WHERE user_id = $1",
                user_id,
                user_id=user_id,
            )
        except _DB_ERRORS as exc:
            logger.error("Failed to clear cycle stats for user %s: %s", user_id, exc)
            raise PersistenceError(f"Could not clear cycle stats for user {user_id}") from exc


class PgPredictionLog(PredictionLog):
    async def append(self, user_id: UUID, record: PredictionRecord) -> None:
        try:
            await execute(
                """
                INSERT INTO predictions (
                    prediction_id, user_id, prediction_date, predicted_window_start,
                    predicted_window_end, confidence_score, algorithm, created_at
                ) VALUES (gen_random_uuid(), $1, $2, $3, $4, $5, $6, $7)
                """,
                user_id,
                record.prediction_date,
                record.predicted_window_start,
                record.predicted_window_end,
                record.confidence_score,
                record.algorithm,
                record.created_at,
                user_id=user_id,
            )
        except _DB_ERRORS as exc:
            raise PersistenceError(f"Could not record prediction for user {user_id}") from exc
