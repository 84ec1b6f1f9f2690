"""Market regime classification."""

from .classifier import (
    REGIME_ADJUSTMENTS,
    MarketContext,
    TrendReading,
    aggregate_positioning,
    analyze_reference_trend,
    calculate_market_bias,
    classify_regime,
    classify_volatility,
    get_regime_adjustments,
)

__all__ = [
    "REGIME_ADJUSTMENTS",
    "MarketContext",
    "TrendReading",
    "aggregate_positioning",
    "analyze_reference_trend",
    "calculate_market_bias",
    "classify_regime",
    "classify_volatility",
    "get_regime_adjustments",
]
