"""Market regime classification.

Classifies the whole market from a reference asset's trend (usually BTC),
volatility, breadth across peer assets and aggregate positioning. Each regime
carries scoring multipliers; UNKNOWN is the neutral fallback.

Usage:
    from signal_engine.regime import MarketContext, classify_regime

    analysis = classify_regime(MarketContext(reference_bars=btc_bars, peer_changes=[2.1, -0.4, 3.3]))
    analysis.regime, analysis.adjustments.score_threshold_multiplier
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from signal_engine.indicators.adx import compute_adx
from signal_engine.indicators.atr import compute_atr_percent
from signal_engine.indicators.common import closes, ema
from signal_engine.indicators.rsi import compute_rsi
from signal_engine.types import (
    Bar,
    MarketBias,
    MarketRegime,
    PositioningContext,
    RegimeAdjustments,
    RegimeAnalysis,
    TrendDirection,
    VolatilityLevel,
)

logger = logging.getLogger(__name__)

MIN_REFERENCE_BARS = 20
STRONG_TREND_ADX = 25.0
VERY_STRONG_TREND_ADX = 40.0
CONFIRMATION_BONUS = 0.1

REGIME_ADJUSTMENTS: dict[MarketRegime, RegimeAdjustments] = {
    MarketRegime.BULL_TREND: RegimeAdjustments(0.9, 1.2, 1.0, 0.8, 0.5),
    MarketRegime.BEAR_TREND: RegimeAdjustments(0.9, 1.2, 1.0, 0.8, -0.5),
    MarketRegime.HIGH_VOL_CHOP: RegimeAdjustments(1.3, 0.7, 1.2, 1.3, 0.0),
    MarketRegime.RECOVERY_PUMP: RegimeAdjustments(1.1, 0.8, 1.3, 0.9, 0.7),
    MarketRegime.DISTRIBUTION: RegimeAdjustments(1.2, 0.8, 0.9, 1.2, 0.0),
    MarketRegime.ACCUMULATION: RegimeAdjustments(1.2, 0.8, 0.9, 1.2, 0.0),
    MarketRegime.UNKNOWN: RegimeAdjustments(),
}

_BULLISH_REGIMES = (MarketRegime.BULL_TREND, MarketRegime.RECOVERY_PUMP)
_BEARISH_REGIMES = (MarketRegime.BEAR_TREND,)


@dataclass(frozen=True)
class MarketContext:
    """Inputs for regime detection.

    `peer_changes` are 24h % changes of tracked assets, `avg_funding` the
    market-wide annualized funding rate and `avg_oi_change` the market-wide
    open-interest change in percent.
    """

    reference_bars: Sequence[Bar]
    peer_changes: Sequence[float] = field(default_factory=tuple)
    avg_funding: Optional[float] = None
    avg_oi_change: Optional[float] = None


@dataclass(frozen=True)
class TrendReading:
    direction: TrendDirection
    strength: float  # ADX
    momentum: float  # (RSI - 50) / 50


def analyze_reference_trend(bars: Sequence[Bar]) -> TrendReading:
    """Direction from price vs EMA20 confirmed by the dominant DI."""
    if len(bars) < MIN_REFERENCE_BARS:
        return TrendReading(direction="SIDEWAYS", strength=0.0, momentum=0.0)

    adx = compute_adx(bars)
    price = bars[-1].close
    ema20 = ema(closes(bars), 20)

    direction: TrendDirection = "SIDEWAYS"
    if price > ema20 * 1.02 and adx.plus_di > adx.minus_di:
        direction = "UP"
    elif price < ema20 * 0.98 and adx.minus_di > adx.plus_di:
        direction = "DOWN"

    return TrendReading(direction=direction, strength=adx.adx, momentum=(compute_rsi(bars) - 50.0) / 50.0)


def classify_volatility(bars: Sequence[Bar]) -> VolatilityLevel:
    if len(bars) < 15:
        return "NORMAL"

    atr_percent = compute_atr_percent(bars)
    if atr_percent < 2:
        return "LOW"
    if atr_percent < 4:
        return "NORMAL"
    if atr_percent < 7:
        return "HIGH"
    return "EXTREME"


def calculate_market_bias(peer_changes: Sequence[float]) -> tuple[MarketBias, float]:
    """Breadth across peers. Returns (bias, average change)."""
    if not peer_changes:
        return "NEUTRAL", 0.0

    avg_change = sum(peer_changes) / len(peer_changes)
    positive_ratio = sum(1 for c in peer_changes if c > 0) / len(peer_changes)

    if avg_change > 2 and positive_ratio > 0.6:
        return "BULLISH", avg_change
    if avg_change < -2 and positive_ratio < 0.4:
        return "BEARISH", avg_change
    return "NEUTRAL", avg_change


def aggregate_positioning(contexts: Iterable[PositioningContext]) -> tuple[Optional[float], Optional[float]]:
    """Market-wide (average funding rate, average OI change in percent).

    OI change only counts contexts that know their previous open interest.
    Either value is None when no context contributes to it.
    """
    contexts = list(contexts)
    fundings = [c.funding_rate for c in contexts]
    oi_changes = [
        (c.open_interest - c.previous_open_interest) / c.previous_open_interest * 100.0
        for c in contexts
        if c.previous_open_interest
    ]
    avg_funding = sum(fundings) / len(fundings) if fundings else None
    avg_oi_change = sum(oi_changes) / len(oi_changes) if oi_changes else None
    return avg_funding, avg_oi_change


def get_regime_adjustments(regime: MarketRegime) -> RegimeAdjustments:
    return REGIME_ADJUSTMENTS.get(regime, RegimeAdjustments())


def classify_regime(context: MarketContext) -> RegimeAnalysis:
    """
    Classify the market regime.

    Decision order:
        1. Too little reference history: UNKNOWN
        2. Strong uptrend (ADX > 25): DISTRIBUTION if OI is unwinding into
           positive breadth, otherwise BULL_TREND
        3. Strong downtrend: ACCUMULATION if funding is deeply negative while
           breadth is negative, otherwise BEAR_TREND
        4. Weak trend, high volatility: RECOVERY_PUMP on strong momentum with
           shrinking OI, otherwise HIGH_VOL_CHOP
        5. Weak trend, calm market: HIGH_VOL_CHOP (low confidence)
        6. Strong but directionless: follow breadth, else UNKNOWN

    A directional regime contradicted by breadth collapses to UNKNOWN.
    Confidence gains 0.1 for every independent confirming input, capped at 1.
    """
    bars = context.reference_bars
    avg_funding = context.avg_funding or 0.0
    avg_oi_change = context.avg_oi_change or 0.0

    trend = analyze_reference_trend(bars)
    volatility = classify_volatility(bars)
    market_bias, avg_change = calculate_market_bias(context.peer_changes)
    reasons: list[str] = []

    if len(bars) < MIN_REFERENCE_BARS:
        reasons.append(f"only {len(bars)} reference bars (need {MIN_REFERENCE_BARS})")
        return _analysis(MarketRegime.UNKNOWN, 0.0, trend, volatility, market_bias, avg_change, reasons)

    regime = MarketRegime.UNKNOWN
    confidence = 0.0
    strong = trend.strength > STRONG_TREND_ADX
    base_trend_confidence = 0.9 if trend.strength > VERY_STRONG_TREND_ADX else 0.7

    if strong and trend.direction == "UP":
        if avg_oi_change < -5 and avg_change > 0:
            regime, confidence = MarketRegime.DISTRIBUTION, 0.6
            reasons.append(f"uptrend with OI unwinding ({avg_oi_change:.1f}%)")
        else:
            regime, confidence = MarketRegime.BULL_TREND, base_trend_confidence
            reasons.append(f"uptrend ADX={trend.strength:.1f}")
    elif strong and trend.direction == "DOWN":
        if avg_funding < -0.10 and avg_change < 0:
            regime, confidence = MarketRegime.ACCUMULATION, 0.6
            reasons.append(f"downtrend with negative funding ({avg_funding:.2f})")
        else:
            regime, confidence = MarketRegime.BEAR_TREND, base_trend_confidence
            reasons.append(f"downtrend ADX={trend.strength:.1f}")
    elif not strong and volatility in ("HIGH", "EXTREME"):
        if trend.momentum > 0.3 and avg_oi_change < -3:
            regime, confidence = MarketRegime.RECOVERY_PUMP, 0.65
            reasons.append(f"momentum {trend.momentum:.2f} with shorts covering")
        else:
            regime, confidence = MarketRegime.HIGH_VOL_CHOP, 0.5
            reasons.append(f"weak trend in {volatility.lower()} volatility")
    elif not strong:
        regime, confidence = MarketRegime.HIGH_VOL_CHOP, 0.4
        reasons.append("weak trend, calm volatility")
    elif market_bias == "BULLISH":
        regime, confidence = MarketRegime.BULL_TREND, 0.4
        reasons.append("directionless reference, bullish breadth")
    elif market_bias == "BEARISH":
        regime, confidence = MarketRegime.BEAR_TREND, 0.4
        reasons.append("directionless reference, bearish breadth")
    else:
        reasons.append("strong but directionless reference, neutral breadth")

    if (regime in _BULLISH_REGIMES and market_bias == "BEARISH") or (
        regime in _BEARISH_REGIMES and market_bias == "BULLISH"
    ):
        reasons.append(f"{regime.value} contradicted by {market_bias.lower()} breadth")
        logger.debug(f"Regime signals disagree: {'; '.join(reasons)}")
        return _analysis(MarketRegime.UNKNOWN, 0.0, trend, volatility, market_bias, avg_change, reasons)

    if regime is not MarketRegime.UNKNOWN:
        confirmations = _count_confirmations(regime, market_bias, context)
        confidence = min(1.0, confidence + CONFIRMATION_BONUS * confirmations)

    return _analysis(regime, confidence, trend, volatility, market_bias, avg_change, reasons)


def _count_confirmations(regime: MarketRegime, market_bias: MarketBias, context: MarketContext) -> int:
    """Independent inputs (breadth, positioning) that agree with the regime."""
    count = 0
    if regime in _BULLISH_REGIMES and market_bias == "BULLISH":
        count += 1
    elif regime in _BEARISH_REGIMES and market_bias == "BEARISH":
        count += 1
    elif regime is MarketRegime.HIGH_VOL_CHOP and market_bias == "NEUTRAL" and context.peer_changes:
        count += 1

    funding = context.avg_funding
    oi_change = context.avg_oi_change
    if regime is MarketRegime.BULL_TREND and oi_change is not None and oi_change > 0:
        count += 1
    elif regime is MarketRegime.BEAR_TREND and funding is not None and funding > 0:
        count += 1
    elif regime is MarketRegime.DISTRIBUTION and funding is not None and funding > 0.15:
        count += 1
    elif regime is MarketRegime.ACCUMULATION and oi_change is not None and oi_change > 0:
        count += 1
    return count


def _analysis(
    regime: MarketRegime,
    confidence: float,
    trend: TrendReading,
    volatility: VolatilityLevel,
    market_bias: MarketBias,
    avg_change: float,
    reasons: list[str],
) -> RegimeAnalysis:
    logger.debug(f"Regime {regime.value} (confidence={confidence:.2f})")
    return RegimeAnalysis(
        regime=regime,
        confidence=confidence,
        adjustments=get_regime_adjustments(regime),
        trend=trend.direction,
        trend_strength=trend.strength,
        volatility=volatility,
        market_bias=market_bias,
        avg_peer_change=avg_change,
        reasons=tuple(reasons),
    )
