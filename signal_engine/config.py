"""Runtime configuration.

Every setting has a code default so the engine works without any environment.
`from_env()` reads overrides from `os.environ` (prefix SIGNAL_ENGINE_).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

ENV_PREFIX = "SIGNAL_ENGINE_"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(ENV_PREFIX + name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(ENV_PREFIX + name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class ScoringConfig:
    base_threshold: float = 25.0
    bias_threshold_pct: float = 0.05  # fraction of the theoretical maximum
    regime_bias_scale: float = 0.02
    agreement_floor: float = 0.3

    @classmethod
    def from_env(cls) -> ScoringConfig:
        return cls(
            base_threshold=_env_float("BASE_THRESHOLD", cls.base_threshold),
            bias_threshold_pct=_env_float("BIAS_THRESHOLD_PCT", cls.bias_threshold_pct),
        )


@dataclass(frozen=True)
class RiskConfig:
    atr_period: int = 14
    stop_atr_multiplier: float = 1.5
    target_atr_multiplier: float = 3.0
    min_distance_pct: float = 2.0
    max_level_distance_pct: float = 20.0
    min_risk_reward: float = 1.5
    max_risk_percent: float = 10.0
    min_risk_percent: float = 0.5

    @classmethod
    def from_env(cls) -> RiskConfig:
        return cls(
            stop_atr_multiplier=_env_float("STOP_ATR_MULTIPLIER", cls.stop_atr_multiplier),
            target_atr_multiplier=_env_float("TARGET_ATR_MULTIPLIER", cls.target_atr_multiplier),
            min_distance_pct=_env_float("MIN_DISTANCE_PCT", cls.min_distance_pct),
            min_risk_reward=_env_float("MIN_RISK_REWARD", cls.min_risk_reward),
        )


@dataclass(frozen=True)
class TrackerConfig:
    early_exit_pct: float = 3.0
    stale_entry_minutes: float = 30.0
    stale_profit_pct: float = 10.0
    timeout_hours: Optional[float] = None

    @classmethod
    def from_env(cls) -> TrackerConfig:
        timeout = _env_float("TIMEOUT_HOURS", 0.0)
        return cls(
            early_exit_pct=_env_float("EARLY_EXIT_PCT", cls.early_exit_pct),
            stale_entry_minutes=_env_float("STALE_ENTRY_MINUTES", cls.stale_entry_minutes),
            timeout_hours=timeout if timeout > 0 else None,
        )


@dataclass(frozen=True)
class LearningConfig:
    min_weight: float = 1.0
    max_weight: float = 20.0
    weight_total: float = 100.0
    streak_length: int = 3
    analysis_window: int = 20
    loss_ratio_threshold: float = 0.5
    max_weight_reduction_pct: float = 15.0
    win_ratio_threshold: float = 0.6
    max_weight_boost_pct: float = 10.0
    min_weight_change: float = 0.01
    recovery_trade_threshold: int = 20
    recovery_rate: float = 0.05
    trailing_window: int = 10
    trailing_min_trades: int = 5
    trailing_win_rate_threshold: float = 50.0
    max_iterations: int = 10
    max_commit_retries: int = 3

    def __post_init__(self) -> None:
        for field_name, env_name in (
            ("streak_length", "STREAK_LENGTH"),
            ("analysis_window", "ANALYSIS_WINDOW"),
            ("max_iterations", "MAX_ITERATIONS"),
            ("max_commit_retries", "MAX_COMMIT_RETRIES"),
        ):
            value = getattr(self, field_name)
            if value < 1:
                raise ValueError(f"{ENV_PREFIX}{env_name} ({field_name}) must be >= 1, got {value}")

    @classmethod
    def from_env(cls) -> LearningConfig:
        return cls(
            streak_length=_env_int("STREAK_LENGTH", cls.streak_length),
            analysis_window=_env_int("ANALYSIS_WINDOW", cls.analysis_window),
            recovery_trade_threshold=_env_int("RECOVERY_TRADES", cls.recovery_trade_threshold),
            recovery_rate=_env_float("RECOVERY_RATE", cls.recovery_rate),
            max_iterations=_env_int("MAX_ITERATIONS", cls.max_iterations),
            max_commit_retries=_env_int("MAX_COMMIT_RETRIES", cls.max_commit_retries),
        )


@dataclass(frozen=True)
class StoreConfig:
    """Connection configuration.

    `database_url` should come from environment (DATABASE_URL).
    Do not log it.
    """

    database_url: str

    @classmethod
    def from_env(cls, default: str = "sqlite:///signal_engine.db") -> StoreConfig:
        return cls(database_url=os.environ.get("DATABASE_URL", default))
