from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Mapping, Optional

from signal_engine.errors import InvalidInputError

Direction = Literal["LONG", "SHORT", "HOLD"]
TradeDirection = Literal["LONG", "SHORT"]
SignalBias = Literal["bullish", "bearish", "neutral"]
Category = Literal["momentum", "trend", "volume", "sentiment", "positioning"]
Outcome = Literal["PENDING", "WON", "LOST"]
ExitReason = Literal["STOP_LOSS", "TAKE_PROFIT", "TARGET_PCT", "MANUAL", "TIMEOUT"]
LearningTrigger = Literal["consecutive_losses", "consecutive_wins", "manual", "recovery"]
VolatilityLevel = Literal["LOW", "NORMAL", "HIGH", "EXTREME"]
TrendDirection = Literal["UP", "DOWN", "SIDEWAYS"]
MarketBias = Literal["BULLISH", "BEARISH", "NEUTRAL"]

CATEGORIES: tuple[Category, ...] = ("momentum", "trend", "volume", "sentiment", "positioning")


class IndicatorKind(str, Enum):
    """Closed set of weighted indicators. Values double as snapshot keys."""

    RSI = "rsi"
    STOCH_RSI = "stoch_rsi"
    MACD = "macd"
    WILLIAMS_R = "williams_r"
    CCI = "cci"
    Z_SCORE = "z_score"
    EMA_ALIGNMENT = "ema_alignment"
    ICHIMOKU = "ichimoku"
    ADX = "adx"
    BOLLINGER = "bollinger"
    OBV_TREND = "obv_trend"
    VOLUME_RATIO = "volume_ratio"
    FEAR_GREED = "fear_greed"
    FUNDING_RATE = "funding_rate"
    OI_CHANGE = "oi_change"
    BASIS_PREMIUM = "basis_premium"
    HL_VOLUME = "hl_volume"


class MarketRegime(str, Enum):
    BULL_TREND = "BULL_TREND"
    BEAR_TREND = "BEAR_TREND"
    HIGH_VOL_CHOP = "HIGH_VOL_CHOP"
    RECOVERY_PUMP = "RECOVERY_PUMP"
    DISTRIBUTION = "DISTRIBUTION"
    ACCUMULATION = "ACCUMULATION"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Bar:
    open: float
    high: float
    low: float
    close: float
    volume: float
    timestamp: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name in ("open", "high", "low", "close", "volume"):
            value = getattr(self, name)
            if value < 0:
                raise InvalidInputError(f"bar {name} must be >= 0, got {value}")


@dataclass(frozen=True)
class IndicatorResult:
    value: float
    signal: SignalBias
    strength: float  # 0-1

    def __post_init__(self) -> None:
        object.__setattr__(self, "strength", max(0.0, min(1.0, float(self.strength))))

    @classmethod
    def neutral(cls, value: float = 0.0) -> IndicatorResult:
        return cls(value=float(value), signal="neutral", strength=0.0)

    @property
    def sign(self) -> int:
        if self.signal == "bullish":
            return 1
        if self.signal == "bearish":
            return -1
        return 0


@dataclass(frozen=True)
class PositioningContext:
    """Derivatives positioning for one coin.

    `funding_rate` is annualized (0.10 = 10%/yr), `premium` is the perp basis
    as a fraction of index price, `price_change_pct` the 24h change in percent.
    """

    funding_rate: float
    open_interest: float
    volume_24h: float
    premium: float
    previous_open_interest: Optional[float] = None
    average_volume: Optional[float] = None
    previous_funding_rate: Optional[float] = None
    price_change_pct: float = 0.0


@dataclass(frozen=True)
class CategoryScore:
    direction: float  # signed sum of contributions
    score: float  # min(|direction|, max)
    max: float

    def to_dict(self) -> dict[str, float]:
        return {"direction": self.direction, "score": self.score, "max": self.max}


@dataclass(frozen=True)
class RegimeAdjustments:
    score_threshold_multiplier: float = 1.0
    trend_weight_multiplier: float = 1.0
    momentum_weight_multiplier: float = 1.0
    positioning_weight_multiplier: float = 1.0
    direction_bias: float = 0.0


@dataclass(frozen=True)
class RegimeAnalysis:
    regime: MarketRegime
    confidence: float
    adjustments: RegimeAdjustments
    trend: TrendDirection = "SIDEWAYS"
    trend_strength: float = 0.0
    volatility: VolatilityLevel = "NORMAL"
    market_bias: MarketBias = "NEUTRAL"
    avg_peer_change: float = 0.0
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class SignalOutput:
    coin: str
    direction: Direction
    score: int  # 0-100
    bias: float
    entry_price: float
    stop_loss: float
    take_profit: float
    risk_reward_ratio: float
    breakdown: Mapping[Category, CategoryScore]
    snapshot: Mapping[str, float]
    timestamp: datetime
    regime: MarketRegime = MarketRegime.UNKNOWN
    agreement: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "coin": self.coin,
            "direction": self.direction,
            "score": self.score,
            "bias": self.bias,
            "entry_price": self.entry_price,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "risk_reward_ratio": self.risk_reward_ratio,
            "breakdown": {k: v.to_dict() for k, v in self.breakdown.items()},
            "snapshot": dict(self.snapshot),
            "timestamp": self.timestamp.isoformat(),
            "regime": self.regime.value,
            "agreement": self.agreement,
        }


@dataclass(frozen=True)
class SignalRecord:
    id: str
    signal: SignalOutput
    outcome: Outcome = "PENDING"
    exit_price: Optional[float] = None
    exit_reason: Optional[ExitReason] = None
    profit_pct: Optional[float] = None
    closed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        # Streak cursors are close times; a terminal record must carry one.
        if self.outcome != "PENDING" and self.closed_at is None:
            raise InvalidInputError(f"signal {self.id} is {self.outcome} but has no closed_at")

    @property
    def coin(self) -> str:
        return self.signal.coin

    @property
    def direction(self) -> Direction:
        return self.signal.direction

    @property
    def is_terminal(self) -> bool:
        return self.outcome != "PENDING"

    def close(
        self,
        *,
        outcome: Outcome,
        exit_price: float,
        exit_reason: ExitReason,
        profit_pct: float,
        closed_at: datetime,
    ) -> SignalRecord:
        if self.is_terminal:
            return self
        return replace(
            self,
            outcome=outcome,
            exit_price=exit_price,
            exit_reason=exit_reason,
            profit_pct=profit_pct,
            closed_at=closed_at,
        )


@dataclass(frozen=True)
class OutcomeTransition:
    signal_id: str
    coin: str
    outcome: Outcome
    exit_price: float
    exit_reason: ExitReason
    profit_pct: float
    closed_at: datetime


@dataclass(frozen=True)
class WeightAdjustment:
    indicator: str
    old_weight: float
    new_weight: float
    change_percent: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "indicator": self.indicator,
            "old_weight": self.old_weight,
            "new_weight": self.new_weight,
            "change_percent": self.change_percent,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class LearningCycle:
    timestamp: datetime
    triggered_by: LearningTrigger
    signals_analyzed: int
    adjustments: tuple[WeightAdjustment, ...]
    weights_snapshot: Mapping[str, float]
    streak_length: int = 0


@dataclass(frozen=True)
class WeightState:
    """Persisted learner state. `version` is the optimistic-concurrency token."""

    weights: Mapping[str, float]
    version: int = 0
    loss_cursor: Optional[datetime] = None
    win_cursor: Optional[datetime] = None
