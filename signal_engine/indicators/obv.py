"""On-Balance Volume trend indicator module."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from signal_engine.indicators.common import closes, volumes
from signal_engine.types import Bar, IndicatorResult


def compute_obv(bars: Sequence[Bar]) -> np.ndarray:
    """Cumulative OBV series (first bar contributes 0)."""
    if not bars:
        return np.zeros(0)
    prices = closes(bars)
    direction = np.sign(np.diff(prices))
    return np.concatenate(([0.0], np.cumsum(direction * volumes(bars)[1:])))


def compute_obv_trend(bars: Sequence[Bar], period: int = 7) -> float:
    """
    OBV change over `period` bars normalised by the average volume of those bars.

    A value of 1.0 means OBV rose by one average bar of volume. Returns 0 when
    fewer than period + 1 bars are available or volume is zero.
    """
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")

    if len(bars) < period + 1:
        return 0.0

    obv = compute_obv(bars)
    avg_volume = float(volumes(bars)[-period:].mean())
    if avg_volume == 0:
        return 0.0
    return float(obv[-1] - obv[-1 - period]) / avg_volume


def obv_trend_signal(bars: Sequence[Bar], period: int = 7, threshold: float = 0.5) -> IndicatorResult:
    change = compute_obv_trend(bars, period=period)
    strength = min(1.0, abs(change))

    if change > threshold:
        return IndicatorResult(value=change, signal="bullish", strength=strength)
    if change < -threshold:
        return IndicatorResult(value=change, signal="bearish", strength=strength)
    return IndicatorResult.neutral(change)
