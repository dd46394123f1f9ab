"""Derive a user's cycle statistics from their episodes.

Recomputation is always a full rebuild from the current episode list, never
an incremental merge, so edits and deletes of historical observations are
reflected exactly.  With fewer than two episodes there is no cycle to measure
and ``InsufficientData`` is returned instead of a zero-filled summary.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Sequence

from src.cycles.config_loader import PredictionConfig, get_prediction_config
from src.cycles.segmenter import Episode

logger = logging.getLogger("lunax.cycles.aggregator")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CycleStatsSummary:
    """Per-user cycle statistics, replaced wholesale on every recomputation.

    Attributes:
        total_cycles:         Number of measured cycles (episode count - 1).
        avg_cycle_length:     Mean days between consecutive episode starts.
        cycle_length_std:     Population standard deviation of cycle lengths.
        avg_period_length:    Mean episode duration in days.
        period_length_std:    Population standard deviation of episode durations.
        data_sufficiency:     'low', 'medium' or 'high'.
        last_episode_start:   Start date of the most recent episode.
        last_episode_end:     End date of the most recent episode.
        updated_at:           UTC timestamp of the recomputation.
    """

    total_cycles: int
    avg_cycle_length: float
    cycle_length_std: float
    avg_period_length: float
    period_length_std: float
    data_sufficiency: str
    last_episode_start: date
    last_episode_end: date
    updated_at: datetime = field(default_factory=utc_now, compare=False)


@dataclass(frozen=True)
class InsufficientData:
    """Recomputation outcome when fewer than two episodes exist."""

    episode_count: int
    required_episodes: int = 2

    @property
    def message(self) -> str:
        return (
            f"Insufficient data: {self.episode_count} period episode(s) logged, "
            f"at least {self.required_episodes} needed"
        )


def cycle_lengths(episodes: Sequence[Episode]) -> list[int]:
    """Days between each pair of consecutive episode starts."""
    return [
        (later.start_date - earlier.start_date).days
        for earlier, later in zip(episodes, episodes[1:])
    ]


def summarize(
    episodes: Sequence[Episode],
    config: PredictionConfig | None = None,
    now: datetime | None = None,
) -> CycleStatsSummary | InsufficientData:
    """Compute the full statistics summary for an ordered episode list.

    Args:
        episodes: Episodes ordered by start date.
        config:   Prediction policy (sufficiency thresholds, period fallback).
        now:      Timestamp for ``updated_at`` (defaults to current UTC time).

    Returns:
        CycleStatsSummary, or InsufficientData when ``len(episodes) < 2``.
    """
    cfg = config or get_prediction_config()

    if len(episodes) < 2:
        return InsufficientData(episode_count=len(episodes))

    lengths = cycle_lengths(episodes)
    durations = [e.duration_days for e in episodes]

    avg_period = statistics.fmean(durations) if durations else cfg.fallback_period_length_days
    period_std = statistics.pstdev(durations) if len(durations) >= 2 else 0.0

    total_cycles = len(lengths)
    last = episodes[-1]

    return CycleStatsSummary(
        total_cycles=total_cycles,
        avg_cycle_length=statistics.fmean(lengths),
        cycle_length_std=statistics.pstdev(lengths),
        avg_period_length=avg_period,
        period_length_std=period_std,
        data_sufficiency=cfg.sufficiency_tier(total_cycles),
        last_episode_start=last.start_date,
        last_episode_end=last.end_date,
        updated_at=now or utc_now(),
    )
