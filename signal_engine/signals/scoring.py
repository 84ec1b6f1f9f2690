from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Sequence

from signal_engine.config import RiskConfig, ScoringConfig
from signal_engine.errors import InvalidInputError
from signal_engine.indicators.analysis import IndicatorSnapshot, analyze_bars
from signal_engine.risk.levels import calculate_risk_levels
from signal_engine.signals.weights import INDICATOR_CATEGORIES, default_weights, normalize_weights
from signal_engine.types import (
    CATEGORIES,
    Bar,
    Category,
    CategoryScore,
    Direction,
    MarketRegime,
    PositioningContext,
    RegimeAdjustments,
    RegimeAnalysis,
    SignalOutput,
)

logger = logging.getLogger(__name__)


def category_multipliers(adjustments: RegimeAdjustments) -> dict[Category, float]:
    """Regime weight multipliers per category (volume and sentiment are never scaled)."""
    return {
        "momentum": adjustments.momentum_weight_multiplier,
        "trend": adjustments.trend_weight_multiplier,
        "volume": 1.0,
        "sentiment": 1.0,
        "positioning": adjustments.positioning_weight_multiplier,
    }


def score_categories(
    snapshot: IndicatorSnapshot,
    weights: Mapping[str, float],
    adjustments: RegimeAdjustments,
) -> dict[Category, CategoryScore]:
    """Sum weight * strength * sign per category.

    A category's max is the summed (regime-scaled) weight of the indicators
    actually present, so absent sentiment or positioning contributes 0 / 0.
    """
    multipliers = category_multipliers(adjustments)
    directions: dict[Category, float] = {c: 0.0 for c in CATEGORIES}
    maxima: dict[Category, float] = {c: 0.0 for c in CATEGORIES}

    for kind, result in snapshot.results.items():
        category = INDICATOR_CATEGORIES[kind]
        weight = weights[kind.value] * multipliers[category]
        maxima[category] += weight
        directions[category] += weight * result.strength * result.sign

    return {
        c: CategoryScore(direction=directions[c], score=min(abs(directions[c]), maxima[c]), max=maxima[c])
        for c in CATEGORIES
    }


def agreement_factor(breakdown: Mapping[Category, CategoryScore], bias: float, floor: float = 0.3) -> float:
    """Share of non-neutral categories pointing the same way as the overall bias (diagnostic only)."""
    active = [c.direction for c in breakdown.values() if abs(c.direction) > 1e-9]
    if not active:
        return 1.0
    matching = sum(1 for d in active if (d > 0) == (bias > 0) and bias != 0)
    return max(floor, matching / len(active))


def score(
    bars: Sequence[Bar],
    coin: str,
    sentiment: Optional[float] = None,
    weights: Optional[Mapping[str, float]] = None,
    regime: Optional[RegimeAnalysis] = None,
    positioning: Optional[PositioningContext] = None,
    *,
    timestamp: Optional[datetime] = None,
    config: ScoringConfig | None = None,
    risk_config: RiskConfig | None = None,
) -> SignalOutput:
    """Score one coin and decide LONG/SHORT/HOLD.

    Args:
        bars: OHLCV history, oldest first; the last close is the entry price
        coin: Asset symbol
        sentiment: Fear & Greed index (0-100), None when unavailable
        weights: Indicator weights (defaults when None); renormalized before use
        regime: Market regime analysis (neutral multipliers when None)
        positioning: Derivatives positioning, None when unavailable
        timestamp: Signal time (defaults to the last bar's timestamp, then now)

    Returns:
        SignalOutput with per-category breakdown, raw indicator snapshot and
        risk levels

    Raises:
        InvalidInputError: If bars is empty or weights miss a mandatory indicator

    Decision:
        HOLD unless |bias| > bias_threshold_pct of the theoretical maximum AND
        score >= base_threshold * regime threshold multiplier.
    """
    cfg = config or ScoringConfig()
    if not bars:
        raise InvalidInputError(f"no bars provided for {coin}")

    weight_map = normalize_weights(weights) if weights is not None else default_weights()
    adjustments = regime.adjustments if regime is not None else RegimeAdjustments()

    snapshot = analyze_bars(bars, sentiment=sentiment, positioning=positioning)
    breakdown = score_categories(snapshot, weight_map, adjustments)

    total_max = sum(c.max for c in breakdown.values())
    total_score = sum(c.score for c in breakdown.values())
    final_score = int(round(100.0 * total_score / total_max)) if total_max > 0 else 0

    bias = sum(c.direction for c in breakdown.values())
    bias += adjustments.direction_bias * total_max * cfg.regime_bias_scale

    threshold = cfg.base_threshold * adjustments.score_threshold_multiplier
    direction: Direction = "HOLD"
    if abs(bias) > cfg.bias_threshold_pct * total_max and final_score >= threshold:
        direction = "LONG" if bias > 0 else "SHORT"

    agreement = agreement_factor(breakdown, bias, cfg.agreement_floor)
    entry_price = bars[-1].close
    levels = calculate_risk_levels(bars, entry_price, direction, risk_config)

    values = snapshot.values()
    values["agreement"] = agreement

    when = timestamp or bars[-1].timestamp or datetime.now(timezone.utc)
    logger.debug(
        f"{coin}: {direction} score={final_score} bias={bias:.2f} threshold={threshold:.1f} agreement={agreement:.2f}"
    )
    return SignalOutput(
        coin=coin,
        direction=direction,
        score=final_score,
        bias=bias,
        entry_price=entry_price,
        stop_loss=levels.stop_loss,
        take_profit=levels.take_profit,
        risk_reward_ratio=levels.risk_reward_ratio,
        breakdown=breakdown,
        snapshot=values,
        timestamp=when,
        regime=regime.regime if regime is not None else MarketRegime.UNKNOWN,
        agreement=agreement,
    )


def generate_signals(
    bars_by_coin: Mapping[str, Sequence[Bar]],
    *,
    sentiment: Optional[float] = None,
    weights: Optional[Mapping[str, float]] = None,
    regime: Optional[RegimeAnalysis] = None,
    positioning: Optional[Mapping[str, PositioningContext]] = None,
    timestamp: Optional[datetime] = None,
) -> list[SignalOutput]:
    """Score every coin with shared sentiment, weights and regime. Coins without bars are skipped."""
    weight_map = normalize_weights(weights) if weights is not None else default_weights()
    positioning = positioning or {}

    signals = []
    for coin, bars in bars_by_coin.items():
        if not bars:
            logger.debug(f"Skipping {coin}: no bars")
            continue
        signals.append(
            score(
                bars,
                coin,
                sentiment=sentiment,
                weights=weight_map,
                regime=regime,
                positioning=positioning.get(coin),
                timestamp=timestamp,
            )
        )
    return signals


def filter_signals(
    signals: Iterable[SignalOutput],
    *,
    min_score: int = 0,
    directions: Sequence[Direction] = ("LONG", "SHORT"),
) -> list[SignalOutput]:
    return [s for s in signals if s.score >= min_score and s.direction in directions]


def sort_signals_by_score(signals: Iterable[SignalOutput]) -> list[SignalOutput]:
    """Highest score first; ties broken by bias magnitude, then coin."""
    return sorted(signals, key=lambda s: (-s.score, -abs(s.bias), s.coin))


def explain_signal(signal: SignalOutput) -> str:
    """Human-readable summary of a signal and its category breakdown."""
    lines = [f"{signal.coin}: {signal.direction} (score {signal.score}/100, regime {signal.regime.value})"]
    if signal.direction != "HOLD":
        lines.append(
            f"  entry={signal.entry_price:.6g} stop={signal.stop_loss:.6g} "
            f"target={signal.take_profit:.6g} R:R={signal.risk_reward_ratio:.2f}"
        )
    lines.append("\nPer-category contributions:")

    # Sort by magnitude (descending) for readability
    ordered = sorted(signal.breakdown.items(), key=lambda item: abs(item[1].direction), reverse=True)
    for name, category in ordered:
        if category.max == 0:
            continue
        lines.append(f"  • {name}: {category.direction:+.1f} pts (max {category.max:.1f})")

    lines.append(f"\nAgreement: {signal.agreement:.0%}")
    return "\n".join(lines)
