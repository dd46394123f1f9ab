"""Lunax cycle statistics and next-period prediction engine.

Modules:
    segmenter     — Group period-day dates into contiguous episodes
    aggregator    — Cycle/period length statistics from episodes
    predictor     — Default and basic next-period forecasts
    engine        — Recompute-and-persist and predict-and-record orchestration
    ports         — Collaborator interfaces and engine errors
    stores        — asyncpg implementations of the collaborators
    config_loader — Load/validate/hot-reload prediction_config.yaml
"""

from src.cycles.aggregator import CycleStatsSummary, InsufficientData
from src.cycles.config_loader import PredictionConfig, get_prediction_config
from src.cycles.engine import CycleEngine
from src.cycles.predictor import PredictionResult, Predictor
from src.cycles.segmenter import Episode, segment_episodes

__all__ = [
    "CycleEngine",
    "CycleStatsSummary",
    "Episode",
    "InsufficientData",
    "PredictionConfig",
    "PredictionResult",
    "Predictor",
    "get_prediction_config",
    "segment_episodes",
]
