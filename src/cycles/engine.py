"""Cycle engine: recompute a user's stats, and forecast their next period.

The engine holds references to its three collaborators and nothing else
persistent.  One instance is created per process at app startup; it keeps a
per-user lock so that concurrent observation edits for the same user
recompute and upsert one at a time.

Usage::

    engine = CycleEngine(
        observations=PgObservationStore(),
        stats=PgStatsRepository(),
        prediction_log=PgPredictionLog(),
    )
    outcome = await engine.recompute_stats(user_id)
    forecast = await engine.predict(user_id)
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import date
from uuid import UUID

from src.cycles.aggregator import CycleStatsSummary, InsufficientData, summarize
from src.cycles.config_loader import PredictionConfig, get_prediction_config
from src.cycles.ports import (
    ObservationStore,
    PredictionLog,
    PredictionRecord,
    StatsRepository,
)
from src.cycles.predictor import PredictionResult, Predictor
from src.cycles.segmenter import segment_episodes

logger = logging.getLogger("lunax.cycles.engine")


class CycleEngine:
    """Stats recomputation and next-period prediction for one user at a time."""

    def __init__(
        self,
        observations: ObservationStore,
        stats: StatsRepository,
        prediction_log: PredictionLog,
        config: PredictionConfig | None = None,
    ) -> None:
        self._observations = observations
        self._stats = stats
        self._prediction_log = prediction_log
        self._config = config or get_prediction_config()
        self._predictor = Predictor(self._config)
        # user_id -> lock; entries vanish once no coroutine holds the lock
        self._user_locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, user_id: UUID) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    async def recompute_stats(
        self, user_id: UUID
    ) -> CycleStatsSummary | InsufficientData:
        """Rebuild the user's summary from their period days and persist it.

        The previous summary is overwritten in full.  With fewer than two
        episodes no summary is written, any previously persisted summary is
        cleared, and ``InsufficientData`` is returned.

        Raises:
            RetrievalError:   If the observations cannot be read.
            PersistenceError: If the summary cannot be written.
        """
        lock = self._lock_for(user_id)
        async with lock:
            period_days = await self._observations.list_period_days(user_id)
            episodes = segment_episodes(period_days)
            outcome = summarize(episodes, self._config)

            if isinstance(outcome, InsufficientData):
                await self._stats.delete(user_id)
                logger.info(
                    "Stats not recomputed for user %s: %d episode(s)",
                    user_id,
                    outcome.episode_count,
                )
                return outcome

            await self._stats.upsert(user_id, outcome)
            logger.info(
                "Recomputed stats for user %s: %d episodes, %d cycles, avg %.2f days",
                user_id,
                len(episodes),
                outcome.total_cycles,
                outcome.avg_cycle_length,
            )
            return outcome

    async def current_stats(self, user_id: UUID) -> CycleStatsSummary | None:
        """Return the persisted summary without recomputing it."""
        return await self._stats.get(user_id)

    async def predict(self, user_id: UUID, as_of: date | None = None) -> PredictionResult:
        """Forecast the user's next period from their persisted summary.

        Does not recompute stats.  With fewer than two episodes on record the
        default forecast is served whatever summary is persisted.  The served
        forecast is appended to the prediction log; a failed append is logged
        and does not affect the returned result.

        Args:
            user_id: Internal Lunax user UUID.
            as_of:   Reference date (defaults to today).

        Raises:
            RetrievalError: If the summary or the observations cannot be read.
        """
        today = as_of or date.today()

        # Same lock as recompute_stats, so summary and episodes match
        async with self._lock_for(user_id):
            summary = await self._stats.get(user_id)
            period_days = await self._observations.list_period_days(user_id)

        episodes = segment_episodes(period_days)
        latest = episodes[-1] if episodes else None
        if len(episodes) < 2:
            summary = None

        result = self._predictor.predict(summary, latest, as_of=today)
        logger.debug("Prediction for user %s via %s algorithm", user_id, result.algorithm)

        await self._record(user_id, result, today)
        return result

    async def _record(self, user_id: UUID, result: PredictionResult, today: date) -> None:
        record = PredictionRecord(
            prediction_date=today,
            predicted_window_start=result.predicted_window_start,
            predicted_window_end=result.predicted_window_end,
            confidence_score=result.confidence_score,
            algorithm=result.algorithm,
        )
        try:
            await self._prediction_log.append(user_id, record)
        except Exception as exc:
            logger.warning("Failed to record prediction for user %s: %s", user_id, exc)
