"""Group period-day dates into contiguous bleeding episodes.

An episode is a maximal run of consecutive calendar days logged as period
days.  Boundaries come purely from date contiguity: a gap of two or more days
always starts a new episode, and a lone date is a one-day episode.  Spotting
logged on non-consecutive days is therefore split into several episodes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class Episode:
    """A single derived bleeding episode.

    Attributes:
        start_date:    First period day of the run.
        duration_days: Number of consecutive period days (>= 1).
    """

    start_date: date
    duration_days: int

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=self.duration_days - 1)


def segment_episodes(period_days: Iterable[date]) -> list[Episode]:
    """Split a user's period-day dates into ordered episodes.

    Args:
        period_days: Dates with ``is_period_day = true``.  Expected ascending
                     and unique; duplicates and disorder are tolerated.

    Returns:
        Episodes ordered by start date.
    """
    episodes: list[Episode] = []
    run_start: date | None = None
    last_date: date | None = None
    run_length = 0

    for current in sorted(set(period_days)):
        if last_date is not None and current == last_date + ONE_DAY:
            run_length += 1
        else:
            if run_length > 0:
                episodes.append(Episode(start_date=run_start, duration_days=run_length))
            run_start = current
            run_length = 1
        last_date = current

    if run_length > 0:
        episodes.append(Episode(start_date=run_start, duration_days=run_length))

    return episodes


def latest_episode(period_days: Iterable[date]) -> Episode | None:
    """Return the most recent episode, or None when no period day is logged."""
    episodes = segment_episodes(period_days)
    return episodes[-1] if episodes else None
