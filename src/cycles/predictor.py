"""Next-period forecast from a persisted stats summary and the latest episode.

Two algorithms:

- ``default``: fixed 28-day cycle, 5-day window, 60% accuracy.  Used when
  there is no summary, fewer than ``basic.min_cycles`` cycles, or no episode.
- ``basic``: last episode start + mean cycle length, with a window sized by
  the cycle-length standard deviation and an accuracy score that drops with
  variability and rises with history.

The predictor only reads; it never recomputes or writes the summary.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta

from src.cycles.aggregator import CycleStatsSummary
from src.cycles.config_loader import PredictionConfig, get_prediction_config
from src.cycles.segmenter import Episode

logger = logging.getLogger("lunax.cycles.predictor")

ALGORITHM_DEFAULT = "default"
ALGORITHM_BASIC = "basic"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounding up (2.5 -> 3)."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class PredictionResult:
    """A served forecast.

    Attributes:
        predicted_window_start: Earliest expected start of the next period.
        predicted_window_end:   Latest expected start (basic) or expected end (default).
        accuracy:               Estimated accuracy percentage, 0–100.
        confidence_tier:        'low', 'medium' or 'high'.
        algorithm:              'default' or 'basic'.
        last_episode_start:     Anchor episode start (basic path only).
        avg_cycle_length:       Mean cycle length used (basic path only).
        cycle_length_std:       Cycle-length std used (basic path only).
        message:                Human-readable note (default path only).
    """

    predicted_window_start: date
    predicted_window_end: date
    accuracy: int
    confidence_tier: str
    algorithm: str
    last_episode_start: date | None = None
    avg_cycle_length: float | None = None
    cycle_length_std: float | None = None
    message: str | None = None

    @property
    def confidence_score(self) -> float:
        """Accuracy as a 0.0–1.0 fraction, as stored in the prediction log."""
        return self.accuracy / 100


class Predictor:
    """Choose between the default and basic forecast and compute it.

    Usage::

        predictor = Predictor()
        result = predictor.predict(summary, latest, as_of=date(2026, 3, 1))
        print(result.predicted_window_start, result.accuracy)
    """

    def __init__(self, config: PredictionConfig | None = None) -> None:
        self._config = config or get_prediction_config()

    def predict(
        self,
        summary: CycleStatsSummary | None,
        latest: Episode | None,
        as_of: date | None = None,
    ) -> PredictionResult:
        """Forecast the next period window.

        Args:
            summary: Persisted stats for the user, or None if never computed.
            latest:  Most recent episode, or None if no period day is logged.
            as_of:   Reference "today" for the no-episode fallback.
        """
        if (
            summary is None
            or latest is None
            or summary.total_cycles < self._config.basic.min_cycles
        ):
            return self.default_prediction(latest, as_of)
        return self.basic_prediction(summary, latest)

    def default_prediction(
        self, latest: Episode | None, as_of: date | None = None
    ) -> PredictionResult:
        df = self._config.default
        anchor = latest.start_date if latest else (as_of or date.today())
        start = anchor + timedelta(days=df.cycle_length_days)
        end = start + timedelta(days=df.period_length_days)

        logger.debug("Default forecast anchored at %s", anchor)
        return PredictionResult(
            predicted_window_start=start,
            predicted_window_end=end,
            accuracy=df.accuracy,
            confidence_tier="low",
            algorithm=ALGORITHM_DEFAULT,
            message=f"Default forecast based on a {df.cycle_length_days}-day average cycle",
        )

    def basic_prediction(
        self, summary: CycleStatsSummary, latest: Episode
    ) -> PredictionResult:
        std = summary.cycle_length_std

        predicted_start = latest.start_date + timedelta(
            days=round_half_up(summary.avg_cycle_length)
        )

        range_days = self.window_days(std)
        window_start = predicted_start - timedelta(days=range_days // 2)
        window_end = predicted_start + timedelta(days=math.ceil(range_days / 2))

        accuracy = self.accuracy(summary.total_cycles, std)

        logger.debug(
            "Basic forecast: start=%s range=%d accuracy=%d", predicted_start, range_days, accuracy
        )
        return PredictionResult(
            predicted_window_start=window_start,
            predicted_window_end=window_end,
            accuracy=accuracy,
            confidence_tier=self._config.confidence_tier(accuracy),
            algorithm=ALGORITHM_BASIC,
            last_episode_start=latest.start_date,
            avg_cycle_length=summary.avg_cycle_length,
            cycle_length_std=std,
        )

    def window_days(self, cycle_length_std: float) -> int:
        """Width of the forecast window: ``max(ceil(std * 2), 3)``."""
        bf = self._config.basic
        return max(math.ceil(cycle_length_std * bf.std_window_multiplier), bf.min_window_days)

    def accuracy(self, total_cycles: int, cycle_length_std: float) -> int:
        """Accuracy percentage, clamped to the configured floor and ceiling."""
        acc = self._config.basic.accuracy
        score = acc.base
        score -= min(cycle_length_std * acc.std_penalty_per_day, acc.max_std_penalty)
        score += min(total_cycles * acc.bonus_per_cycle, acc.max_cycle_bonus)
        return max(min(round_half_up(score), acc.ceiling), acc.floor)
