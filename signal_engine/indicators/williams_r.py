"""Williams %R indicator module.

%R = (highest high - close) / (highest high - lowest low) * -100, ranging from
-100 (at the low of the window) to 0 (at the high).
"""

from __future__ import annotations

from typing import Sequence

from signal_engine.indicators.common import closes, highs, lows
from signal_engine.types import Bar, IndicatorResult

NEUTRAL_WILLIAMS_R = -50.0


def compute_williams_r(bars: Sequence[Bar], period: int = 14) -> float:
    """Williams %R over the last `period` bars; -50 on short history or a flat window."""
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")

    if len(bars) < period:
        return NEUTRAL_WILLIAMS_R

    highest = float(highs(bars)[-period:].max())
    lowest = float(lows(bars)[-period:].min())
    price_range = highest - lowest
    if price_range == 0:
        return NEUTRAL_WILLIAMS_R

    return (highest - float(closes(bars)[-1])) / price_range * -100.0


def williams_r_signal(
    bars: Sequence[Bar],
    period: int = 14,
    oversold: float = -80.0,
    overbought: float = -20.0,
) -> IndicatorResult:
    value = compute_williams_r(bars, period=period)

    if value < oversold:
        return IndicatorResult(value=value, signal="bullish", strength=(oversold - value) / (100.0 + oversold))
    if value > overbought:
        return IndicatorResult(value=value, signal="bearish", strength=(value - overbought) / -overbought)
    return IndicatorResult.neutral(value)
