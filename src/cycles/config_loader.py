"""Load, validate, and hot-reload the Lunax prediction policy.

The policy lives in ``prediction_config.yaml`` alongside this module.  It is
loaded once and cached.  Call ``reload_prediction_config()`` to re-read it
from disk after an admin edit.

Usage::

    from src.cycles.config_loader import get_prediction_config

    config = get_prediction_config()
    config.default.cycle_length_days      # 28
    config.sufficiency_tier(12)           # "medium"
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("lunax.cycles.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "prediction_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class DefaultForecastConfig:
    """Fixed-length fallback forecast."""

    cycle_length_days: int = 28
    period_length_days: int = 5
    accuracy: int = 60


@dataclass
class AccuracyConfig:
    """Accuracy formula for the basic forecast.

    accuracy = clamp(base - min(std * std_penalty_per_day, max_std_penalty)
                          + min(cycles * bonus_per_cycle, max_cycle_bonus),
                     floor, ceiling)
    """

    base: float = 85
    std_penalty_per_day: float = 5.0
    max_std_penalty: float = 20
    bonus_per_cycle: float = 0.5
    max_cycle_bonus: float = 10
    floor: int = 60
    ceiling: int = 95


@dataclass
class BasicForecastConfig:
    """Mean-cycle-length forecast settings."""

    min_cycles: int = 3
    min_window_days: int = 3
    std_window_multiplier: float = 2.0
    accuracy: AccuracyConfig = field(default_factory=AccuracyConfig)


@dataclass
class PredictionConfig:
    """Complete, validated prediction policy.

    Attributes:
        version:                      Config schema version string.
        default:                      Fallback forecast constants.
        basic:                        Basic forecast constants.
        high_confidence_accuracy:     Accuracy at or above which a forecast is "high".
        medium_confidence_accuracy:   Accuracy at or above which a forecast is "medium".
        medium_sufficiency_cycles:    Cycle count at which data becomes "medium".
        high_sufficiency_cycles:      Cycle count at which data becomes "high".
        fallback_period_length_days:  avgPeriodLength when no durations exist.
    """

    version: str = "1.0"
    default: DefaultForecastConfig = field(default_factory=DefaultForecastConfig)
    basic: BasicForecastConfig = field(default_factory=BasicForecastConfig)
    high_confidence_accuracy: int = 90
    medium_confidence_accuracy: int = 80
    medium_sufficiency_cycles: int = 10
    high_sufficiency_cycles: int = 50
    fallback_period_length_days: float = 5.0

    def confidence_tier(self, accuracy: int) -> str:
        """Map an accuracy percentage to 'high', 'medium' or 'low'."""
        if accuracy >= self.high_confidence_accuracy:
            return "high"
        if accuracy >= self.medium_confidence_accuracy:
            return "medium"
        return "low"

    def sufficiency_tier(self, total_cycles: int) -> str:
        """Map an observed cycle count to 'low', 'medium' or 'high'."""
        if total_cycles < self.medium_sufficiency_cycles:
            return "low"
        if total_cycles < self.high_sufficiency_cycles:
            return "medium"
        return "high"


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when prediction_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError:     If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Prediction config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> PredictionConfig:
    """Validate the raw YAML dict and construct a PredictionConfig.

    Missing keys fall back to the dataclass defaults.  Every problem found is
    collected and reported together.

    Raises:
        ConfigValidationError: If any value is of the wrong type or out of range.
    """
    errors: list[str] = []

    def _number(section: dict, key: str, path: str, default: Any, cast: type = float) -> Any:
        value = section.get(key, default)
        try:
            return cast(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be a number, got {value!r}")
            return default

    def _section(key: str, parent: dict, path: str = "") -> dict:
        value = parent.get(key) or {}
        if not isinstance(value, dict):
            errors.append(f"{path}{key} must be a mapping")
            return {}
        return value

    version = str(raw.get("version", "1.0"))

    # ── Default forecast ──
    df_raw = _section("default_forecast", raw)
    default = DefaultForecastConfig(
        cycle_length_days=_number(df_raw, "cycle_length_days", "default_forecast", 28, int),
        period_length_days=_number(df_raw, "period_length_days", "default_forecast", 5, int),
        accuracy=_number(df_raw, "accuracy", "default_forecast", 60, int),
    )
    if default.cycle_length_days <= 0:
        errors.append("default_forecast.cycle_length_days must be positive")
    if default.period_length_days <= 0:
        errors.append("default_forecast.period_length_days must be positive")

    # ── Basic forecast ──
    bf_raw = _section("basic_forecast", raw)
    acc_raw = _section("accuracy", bf_raw, "basic_forecast.")
    accuracy = AccuracyConfig(
        base=_number(acc_raw, "base", "basic_forecast.accuracy", 85),
        std_penalty_per_day=_number(acc_raw, "std_penalty_per_day", "basic_forecast.accuracy", 5.0),
        max_std_penalty=_number(acc_raw, "max_std_penalty", "basic_forecast.accuracy", 20),
        bonus_per_cycle=_number(acc_raw, "bonus_per_cycle", "basic_forecast.accuracy", 0.5),
        max_cycle_bonus=_number(acc_raw, "max_cycle_bonus", "basic_forecast.accuracy", 10),
        floor=_number(acc_raw, "floor", "basic_forecast.accuracy", 60, int),
        ceiling=_number(acc_raw, "ceiling", "basic_forecast.accuracy", 95, int),
    )
    if not (0 <= accuracy.floor <= accuracy.ceiling <= 100):
        errors.append(
            f"basic_forecast.accuracy floor/ceiling must satisfy 0 <= floor <= ceiling <= 100, "
            f"got {accuracy.floor}/{accuracy.ceiling}"
        )
    basic = BasicForecastConfig(
        min_cycles=_number(bf_raw, "min_cycles", "basic_forecast", 3, int),
        min_window_days=_number(bf_raw, "min_window_days", "basic_forecast", 3, int),
        std_window_multiplier=_number(bf_raw, "std_window_multiplier", "basic_forecast", 2.0),
        accuracy=accuracy,
    )
    if basic.min_cycles < 1:
        errors.append("basic_forecast.min_cycles must be at least 1")
    if basic.min_window_days < 1:
        errors.append("basic_forecast.min_window_days must be at least 1")

    # ── Tiers ──
    ct_raw = _section("confidence_tiers", raw)
    high_conf = _number(ct_raw, "high", "confidence_tiers", 90, int)
    medium_conf = _number(ct_raw, "medium", "confidence_tiers", 80, int)
    if medium_conf > high_conf:
        errors.append("confidence_tiers.medium must not exceed confidence_tiers.high")

    ds_raw = _section("data_sufficiency", raw)
    medium_cycles = _number(ds_raw, "medium_cycles", "data_sufficiency", 10, int)
    high_cycles = _number(ds_raw, "high_cycles", "data_sufficiency", 50, int)
    if medium_cycles >= high_cycles:
        errors.append("data_sufficiency.medium_cycles must be below data_sufficiency.high_cycles")

    fallback_period = _number(raw, "fallback_period_length_days", "root", 5.0)

    if errors:
        raise ConfigValidationError(
            f"prediction_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return PredictionConfig(
        version=version,
        default=default,
        basic=basic,
        high_confidence_accuracy=high_conf,
        medium_confidence_accuracy=medium_conf,
        medium_sufficiency_cycles=medium_cycles,
        high_sufficiency_cycles=high_cycles,
        fallback_period_length_days=fallback_period,
    )


def load_prediction_config(path: Path | None = None) -> PredictionConfig:
    """Load and validate the prediction policy from disk.

    Args:
        path: Override path to YAML. Uses the bundled prediction_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded prediction config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: PredictionConfig | None = None
_config_lock = threading.Lock()


def get_prediction_config() -> PredictionConfig:
    """Return the global PredictionConfig, loading it on first call.  Thread-safe."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_prediction_config()
    return _config


def reload_prediction_config(path: Path | None = None) -> PredictionConfig:
    """Reload the policy from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_prediction_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded prediction config: %s → %s", old_version, new_config.version)
    return new_config
