"""
RSI (Relative Strength Index) indicator module.

Reference implementation of the indicator-to-result pipeline: a `compute_*`
function returning the raw value and a `*_signal` function mapping it to an
IndicatorResult. The other indicator modules follow the same pattern.

Usage:
    from signal_engine.indicators.rsi import compute_rsi, rsi_signal

    rsi_value = compute_rsi(bars, period=14)
    result = rsi_signal(bars, period=14, oversold=30, overbought=70)
"""

from __future__ import annotations

from typing import Sequence

from signal_engine.indicators.common import closes, wilder_rsi_series
from signal_engine.types import Bar, IndicatorResult

NEUTRAL_RSI = 50.0


def compute_rsi(bars: Sequence[Bar], period: int = 14) -> float:
    """
    Calculate RSI from bar closes.

    RSI is a momentum oscillator measuring the speed and magnitude of price
    changes, ranging from 0 to 100.

    Formula:
        RSI = 100 - (100 / (1 + RS))
        where RS = Average Gain / Average Loss (Wilder smoothing)

    Args:
        bars: Sequence of OHLCV bars, oldest first
        period: Lookback period (default: 14)

    Returns:
        RSI value (0-100). 50 when fewer than period+1 bars are available.

    Raises:
        ValueError: If period is invalid
    """
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")

    if len(bars) < period + 1:
        return NEUTRAL_RSI

    return float(wilder_rsi_series(closes(bars), period)[-1])


def rsi_signal(
    bars: Sequence[Bar],
    period: int = 14,
    oversold: float = 30.0,
    overbought: float = 70.0,
) -> IndicatorResult:
    """
    Map RSI to a directional result.

    Signal interpretation:
        - RSI < oversold: bullish (oversold bounce expected)
        - RSI > overbought: bearish (overbought)
        - otherwise: neutral

    Strength grows linearly with the distance past the threshold and reaches
    1.0 at RSI=0 (bullish) or RSI=100 (bearish).

    Raises:
        ValueError: If oversold >= overbought
    """
    if oversold >= overbought:
        raise ValueError(f"oversold ({oversold}) must be < overbought ({overbought})")

    rsi = compute_rsi(bars, period=period)

    if rsi < oversold:
        return IndicatorResult(value=rsi, signal="bullish", strength=(oversold - rsi) / oversold)
    if rsi > overbought:
        return IndicatorResult(value=rsi, signal="bearish", strength=(rsi - overbought) / (100.0 - overbought))
    return IndicatorResult.neutral(rsi)
