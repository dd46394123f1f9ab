"""Tests for the default and basic next-period forecasts."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from src.cycles.aggregator import CycleStatsSummary
from src.cycles.config_loader import PredictionConfig
from src.cycles.predictor import Predictor, round_half_up
from src.cycles.segmenter import Episode
from src.cycles.tests.conftest import TEST_DATE


def make_summary(
    avg: float = 28.0, std: float = 0.0, total: int = 12, last_start: date = date(2024, 3, 1)
) -> CycleStatsSummary:
    return CycleStatsSummary(
        total_cycles=total,
        avg_cycle_length=avg,
        cycle_length_std=std,
        avg_period_length=5.0,
        period_length_std=0.0,
        data_sufficiency="medium",
        last_episode_start=last_start,
        last_episode_end=last_start + timedelta(days=4),
        updated_at=datetime(2024, 3, 5, tzinfo=timezone.utc),
    )


LAST = Episode(start_date=date(2024, 3, 1), duration_days=5)


class TestDefaultPath:
    def test_no_summary_no_episode_anchors_on_today(
        self, prediction_config: PredictionConfig
    ) -> None:
        result = Predictor(prediction_config).predict(None, None, as_of=TEST_DATE)
        assert result.algorithm == "default"
        assert result.accuracy == 60
        assert result.confidence_tier == "low"
        assert result.predicted_window_start == TEST_DATE + timedelta(days=28)
        assert result.predicted_window_end == TEST_DATE + timedelta(days=33)
        assert result.message

    def test_no_summary_anchors_on_last_episode(
        self, prediction_config: PredictionConfig
    ) -> None:
        result = Predictor(prediction_config).predict(None, LAST, as_of=TEST_DATE)
        assert result.algorithm == "default"
        assert result.predicted_window_start == date(2024, 3, 29)
        assert result.predicted_window_end == date(2024, 4, 3)

    def test_fewer_than_three_cycles_uses_default(
        self, prediction_config: PredictionConfig
    ) -> None:
        summary = make_summary(avg=35.0, std=0.5, total=2)
        result = Predictor(prediction_config).predict(summary, LAST, as_of=TEST_DATE)
        assert result.algorithm == "default"
        assert result.predicted_window_start == LAST.start_date + timedelta(days=28)
        assert result.last_episode_start is None
        assert result.avg_cycle_length is None

    def test_summary_without_episode_uses_default(
        self, prediction_config: PredictionConfig
    ) -> None:
        result = Predictor(prediction_config).predict(make_summary(), None, as_of=TEST_DATE)
        assert result.algorithm == "default"
        assert result.predicted_window_start == TEST_DATE + timedelta(days=28)


class TestBasicPath:
    def test_worked_example(self, prediction_config: PredictionConfig) -> None:
        summary = make_summary(avg=30.0, std=1.0, total=12)
        result = Predictor(prediction_config).predict(summary, LAST)
        assert result.algorithm == "basic"
        # predicted start 2024-03-31, range 3: one day before, two after
        assert result.predicted_window_start == date(2024, 3, 30)
        assert result.predicted_window_end == date(2024, 4, 2)
        assert result.accuracy == 86
        assert result.confidence_tier == "medium"
        assert result.last_episode_start == date(2024, 3, 1)
        assert result.avg_cycle_length == pytest.approx(30.0)
        assert result.cycle_length_std == pytest.approx(1.0)
        assert result.confidence_score == pytest.approx(0.86)

    def test_three_cycles_is_enough(self, prediction_config: PredictionConfig) -> None:
        result = Predictor(prediction_config).predict(make_summary(total=3), LAST)
        assert result.algorithm == "basic"

    def test_fractional_mean_rounds_half_up(self, prediction_config: PredictionConfig) -> None:
        predictor = Predictor(prediction_config)
        # zero std -> 3-day window, predicted start sits one day after window start
        half = predictor.predict(make_summary(avg=28.5), LAST)
        assert half.predicted_window_start + timedelta(days=1) == LAST.start_date + timedelta(days=29)
        below = predictor.predict(make_summary(avg=28.49), LAST)
        assert below.predicted_window_start + timedelta(days=1) == LAST.start_date + timedelta(days=28)

    @pytest.mark.parametrize(
        "std, expected_range",
        [
            (0.0, 3),
            (1.0, 3),
            (1.6, 4),
            (2.5, 5),
            (4.2, 9),
        ],
    )
    def test_window_width(
        self, prediction_config: PredictionConfig, std: float, expected_range: int
    ) -> None:
        result = Predictor(prediction_config).predict(make_summary(std=std), LAST)
        width = (result.predicted_window_end - result.predicted_window_start).days
        assert width == expected_range
        assert width >= 3

    def test_window_splits_floor_before_ceil_after(
        self, prediction_config: PredictionConfig
    ) -> None:
        # range 5: two days before the predicted start, three after
        result = Predictor(prediction_config).predict(make_summary(avg=28.0, std=2.5), LAST)
        predicted = LAST.start_date + timedelta(days=28)
        assert (predicted - result.predicted_window_start).days == 2
        assert (result.predicted_window_end - predicted).days == 3

    def test_high_confidence_for_regular_long_history(
        self, prediction_config: PredictionConfig
    ) -> None:
        result = Predictor(prediction_config).predict(make_summary(std=0.0, total=40), LAST)
        assert result.accuracy == 95
        assert result.confidence_tier == "high"

    def test_low_confidence_for_erratic_cycles(
        self, prediction_config: PredictionConfig
    ) -> None:
        result = Predictor(prediction_config).predict(make_summary(std=9.0, total=3), LAST)
        # 85 - 20 + 1.5 = 66.5 -> 67
        assert result.accuracy == 67
        assert result.confidence_tier == "low"


class TestAccuracy:
    @pytest.mark.parametrize("total", [3, 5, 12, 25, 100])
    @pytest.mark.parametrize("std", [0.0, 0.4, 1.0, 3.3, 7.5, 20.0])
    def test_accuracy_clamped(
        self, prediction_config: PredictionConfig, total: int, std: float
    ) -> None:
        accuracy = Predictor(prediction_config).accuracy(total, std)
        assert 60 <= accuracy <= 95

    def test_half_point_rounds_up(self, prediction_config: PredictionConfig) -> None:
        # 85 - 0 + 0.5 = 85.5
        assert Predictor(prediction_config).accuracy(1, 0.0) == 86

    def test_variability_penalty_is_capped(self, prediction_config: PredictionConfig) -> None:
        predictor = Predictor(prediction_config)
        assert predictor.accuracy(10, 4.0) == predictor.accuracy(10, 15.0) == 70


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value, expected",
        [(2.5, 3), (3.5, 4), (2.49, 2), (28.0, 28), (85.5, 86)],
    )
    def test_values(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected
