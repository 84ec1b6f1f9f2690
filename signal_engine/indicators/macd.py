"""
MACD (Moving Average Convergence Divergence) indicator module.

MACD line = EMA(fast) - EMA(slow); signal line = EMA(signal_period) of the MACD
line; histogram = MACD line - signal line.

Usage:
    from signal_engine.indicators.macd import compute_macd, macd_signal

    line, signal, histogram = compute_macd(bars)
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from signal_engine.indicators.common import closes, ema, ema_series
from signal_engine.types import Bar, IndicatorResult


def compute_macd(
    bars: Sequence[Bar],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[float, float, float]:
    """
    Calculate MACD line, signal line and histogram.

    Args:
        bars: Sequence of OHLCV bars, oldest first
        fast_period: Fast EMA period (default: 12)
        slow_period: Slow EMA period (default: 26)
        signal_period: Signal line EMA period (default: 9)

    Returns:
        Tuple of (macd_line, signal_line, histogram). All zeros when fewer than
        slow_period + signal_period bars are available.

    Raises:
        ValueError: If fast_period >= slow_period
    """
    if fast_period >= slow_period:
        raise ValueError(f"fast_period ({fast_period}) must be < slow_period ({slow_period})")

    if len(bars) < slow_period + signal_period:
        return 0.0, 0.0, 0.0

    prices = closes(bars)
    fast = ema_series(prices, fast_period)
    slow = ema_series(prices, slow_period)

    # MACD is defined once the slow EMA exists
    macd_values = (fast - slow)[slow_period - 1 :]
    macd_values = macd_values[~np.isnan(macd_values)]

    line = float(macd_values[-1])
    signal = ema(macd_values, signal_period)
    return line, signal, line - signal


def macd_signal(
    bars: Sequence[Bar],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> IndicatorResult:
    """
    Map MACD to a directional result.

    Bullish when histogram and line are both positive, bearish when both are
    negative. Strength is |histogram| / |line| capped at 1. The result value
    is the histogram.
    """
    line, _, histogram = compute_macd(
        bars, fast_period=fast_period, slow_period=slow_period, signal_period=signal_period
    )

    strength = min(1.0, abs(histogram) / abs(line)) if line != 0 else 0.0
    if histogram > 0 and line > 0:
        return IndicatorResult(value=histogram, signal="bullish", strength=strength)
    if histogram < 0 and line < 0:
        return IndicatorResult(value=histogram, signal="bearish", strength=strength)
    return IndicatorResult.neutral(histogram)
