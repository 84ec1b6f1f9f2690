"""EMA alignment indicator module.

Scores how well price and three EMAs are stacked in trend order. Each of the
four checks below adds 25 points (12.5 when the two sides are equal):
    price > EMA(fast), EMA(fast) > EMA(mid), EMA(mid) > EMA(slow), price > EMA(slow)

A score of 100 is a fully bullish stack, 0 a fully bearish one.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from signal_engine.indicators.common import closes, ema
from signal_engine.types import Bar, IndicatorResult

NEUTRAL_ALIGNMENT = 50.0


def compute_ema_alignment(
    bars: Sequence[Bar],
    fast_period: int = 7,
    mid_period: int = 21,
    slow_period: int = 50,
) -> float:
    """Alignment score (0-100); 50 when fewer than `slow_period` bars are available."""
    if not fast_period < mid_period < slow_period:
        raise ValueError(f"periods must be increasing, got {fast_period}/{mid_period}/{slow_period}")

    if len(bars) < slow_period:
        return NEUTRAL_ALIGNMENT

    prices = closes(bars)
    price = float(prices[-1])
    fast = ema(prices, fast_period)
    mid = ema(prices, mid_period)
    slow = ema(prices, slow_period)

    score = 0.0
    for upper, lower in ((price, fast), (fast, mid), (mid, slow), (price, slow)):
        score += _vote(upper, lower)
    return score


def _vote(upper: float, lower: float) -> float:
    """25 for a bullish ordering, 0 for bearish, 12.5 when the two are equal."""
    if np.isclose(upper, lower, rtol=1e-9, atol=0.0):
        return 12.5
    return 25.0 if upper > lower else 0.0


def ema_alignment_signal(bars: Sequence[Bar], threshold: float = 75.0) -> IndicatorResult:
    score = compute_ema_alignment(bars)
    strength = abs(score - 50.0) / 50.0

    if score >= threshold:
        return IndicatorResult(value=score, signal="bullish", strength=strength)
    if 100.0 - score >= threshold:
        return IndicatorResult(value=score, signal="bearish", strength=strength)
    return IndicatorResult.neutral(score)
