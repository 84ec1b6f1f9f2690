"""CCI (Commodity Channel Index) indicator module."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from signal_engine.indicators.common import closes, highs, lows
from signal_engine.types import Bar, IndicatorResult

CCI_CONSTANT = 0.015


def compute_cci(bars: Sequence[Bar], period: int = 20) -> float:
    """
    Calculate CCI from typical prices.

    Formula:
        TP  = (high + low + close) / 3
        CCI = (TP - SMA(TP)) / (0.015 * mean deviation)

    Returns 0 when fewer than `period` bars are available or the mean
    deviation is zero.
    """
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")

    if len(bars) < period:
        return 0.0

    typical = ((highs(bars) + lows(bars) + closes(bars)) / 3.0)[-period:]
    mean = float(typical.mean())
    mean_deviation = float(np.abs(typical - mean).mean())
    if mean_deviation == 0:
        return 0.0

    return (float(typical[-1]) - mean) / (CCI_CONSTANT * mean_deviation)


def cci_signal(bars: Sequence[Bar], period: int = 20, threshold: float = 100.0) -> IndicatorResult:
    """Bullish below -threshold, bearish above +threshold; strength = distance / threshold."""
    value = compute_cci(bars, period=period)

    if value < -threshold:
        return IndicatorResult(value=value, signal="bullish", strength=min(1.0, (-threshold - value) / threshold))
    if value > threshold:
        return IndicatorResult(value=value, signal="bearish", strength=min(1.0, (value - threshold) / threshold))
    return IndicatorResult.neutral(value)
