"""Indicator weights: defaults, categories and renormalization.

Every IndicatorKind has exactly one category and one default weight. Weight
vectors are kept summing to 100 with every entry in [1, 20].

Usage:
    from signal_engine.signals.weights import default_weights, normalize_weights

    weights = default_weights()
    weights["rsi"] *= 0.85
    weights = normalize_weights(weights)  # back to sum 100, clamped to [1, 20]
"""

from __future__ import annotations

import logging
from typing import Mapping

from signal_engine.errors import InvalidInputError
from signal_engine.types import Category, IndicatorKind

logger = logging.getLogger(__name__)

WEIGHT_TOTAL = 100.0
MIN_WEIGHT = 1.0
MAX_WEIGHT = 20.0

# Default indicator weights (sum 100)
DEFAULT_WEIGHTS: dict[IndicatorKind, float] = {
    IndicatorKind.RSI: 6.0,
    IndicatorKind.STOCH_RSI: 5.0,
    IndicatorKind.MACD: 6.0,
    IndicatorKind.WILLIAMS_R: 4.0,
    IndicatorKind.CCI: 4.0,
    IndicatorKind.Z_SCORE: 10.0,
    IndicatorKind.EMA_ALIGNMENT: 7.0,
    IndicatorKind.ICHIMOKU: 8.0,
    IndicatorKind.ADX: 6.0,
    IndicatorKind.BOLLINGER: 4.0,
    IndicatorKind.OBV_TREND: 10.0,
    IndicatorKind.VOLUME_RATIO: 6.0,
    IndicatorKind.FEAR_GREED: 8.0,
    IndicatorKind.FUNDING_RATE: 6.0,
    IndicatorKind.OI_CHANGE: 4.0,
    IndicatorKind.BASIS_PREMIUM: 3.0,
    IndicatorKind.HL_VOLUME: 3.0,
}

INDICATOR_CATEGORIES: dict[IndicatorKind, Category] = {
    IndicatorKind.RSI: "momentum",
    IndicatorKind.STOCH_RSI: "momentum",
    IndicatorKind.MACD: "momentum",
    IndicatorKind.WILLIAMS_R: "momentum",
    IndicatorKind.CCI: "momentum",
    IndicatorKind.Z_SCORE: "momentum",
    IndicatorKind.EMA_ALIGNMENT: "trend",
    IndicatorKind.ICHIMOKU: "trend",
    IndicatorKind.ADX: "trend",
    IndicatorKind.BOLLINGER: "trend",
    IndicatorKind.OBV_TREND: "volume",
    IndicatorKind.VOLUME_RATIO: "volume",
    IndicatorKind.FEAR_GREED: "sentiment",
    IndicatorKind.FUNDING_RATE: "positioning",
    IndicatorKind.OI_CHANGE: "positioning",
    IndicatorKind.BASIS_PREMIUM: "positioning",
    IndicatorKind.HL_VOLUME: "positioning",
}


def default_weights() -> dict[str, float]:
    """Fresh copy of the default weight vector keyed by indicator name."""
    return {kind.value: weight for kind, weight in DEFAULT_WEIGHTS.items()}


def default_weight(name: str) -> float:
    return DEFAULT_WEIGHTS[IndicatorKind(name)]


def validate_weights(weights: Mapping[str, float]) -> None:
    """Raise InvalidInputError if a mandatory indicator is missing or a weight is negative."""
    missing = [kind.value for kind in IndicatorKind if kind.value not in weights]
    if missing:
        raise InvalidInputError(f"weights missing mandatory indicators: {missing}")

    negative = {kind.value: weights[kind.value] for kind in IndicatorKind if weights[kind.value] < 0}
    if negative:
        raise InvalidInputError(f"weights must be >= 0, got {negative}")


def normalize_weights(
    weights: Mapping[str, float],
    *,
    total: float = WEIGHT_TOTAL,
    min_weight: float = MIN_WEIGHT,
    max_weight: float = MAX_WEIGHT,
) -> dict[str, float]:
    """Rescale weights to `total` with every weight clamped to [min_weight, max_weight].

    Weights hitting a bound stay pinned there and the remainder is shared by
    the free weights in proportion to their size (water-filling).
    The result is deterministic for a given input.

    Args:
        weights: Indicator name -> weight. Must cover every IndicatorKind.

    Returns:
        New dict keyed in IndicatorKind order

    Raises:
        InvalidInputError: If a mandatory indicator is missing or a weight is negative
        ValueError: If total weight is <= 0
    """
    known = {kind.value for kind in IndicatorKind}
    unknown = sorted(set(weights) - known)
    if unknown:
        logger.warning(f"Ignoring unknown indicator weights: {unknown}")

    validate_weights(weights)
    values = {kind.value: float(weights[kind.value]) for kind in IndicatorKind}

    current_total = sum(values.values())
    if current_total <= 0:
        raise ValueError("weights total must be > 0")

    def clamped(scale: float) -> dict[str, float]:
        return {name: min(max_weight, max(min_weight, v * scale)) for name, v in values.items()}

    # Find the common scale at which the clamped vector sums to `total`
    # (clamped total is monotone in scale, so bisection is exact enough).
    low, high = 0.0, total / current_total
    while sum(clamped(high).values()) < total and high < 1e12:
        high *= 2.0
    for _ in range(100):
        mid = (low + high) / 2.0
        if sum(clamped(mid).values()) < total:
            low = mid
        else:
            high = mid

    result = clamped(high)
    if abs(sum(result.values()) - total) > 0.01:
        logger.warning(f"Weights cannot reach total {total} within [{min_weight}, {max_weight}]")
    return {kind.value: result[kind.value] for kind in IndicatorKind}
