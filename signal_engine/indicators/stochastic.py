"""
Stochastic RSI indicator module.

StochRSI applies the stochastic formula to the RSI series instead of price,
making it more sensitive than plain RSI:

    StochRSI = (RSI - min(RSI, n)) / (max(RSI, n) - min(RSI, n)) * 100

Usage:
    from signal_engine.indicators.stochastic import compute_stoch_rsi, stoch_rsi_signal

    value = compute_stoch_rsi(bars, rsi_period=14, stoch_period=14)
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from signal_engine.indicators.common import closes, wilder_rsi_series
from signal_engine.types import Bar, IndicatorResult

NEUTRAL_STOCH = 50.0


def compute_stoch_rsi(bars: Sequence[Bar], rsi_period: int = 14, stoch_period: int = 14) -> float:
    """
    Calculate StochRSI (0-100) from bar closes.

    Needs rsi_period + stoch_period bars; returns 50 otherwise, and also when
    the RSI window is flat (zero range).
    """
    if rsi_period < 1 or stoch_period < 1:
        raise ValueError(f"periods must be >= 1, got rsi={rsi_period} stoch={stoch_period}")

    if len(bars) < rsi_period + stoch_period:
        return NEUTRAL_STOCH

    rsi_values = wilder_rsi_series(closes(bars), rsi_period)
    window = rsi_values[~np.isnan(rsi_values)][-stoch_period:]
    lowest = float(window.min())
    highest = float(window.max())
    if highest == lowest:
        return NEUTRAL_STOCH

    return (float(window[-1]) - lowest) / (highest - lowest) * 100.0


def stoch_rsi_signal(
    bars: Sequence[Bar],
    rsi_period: int = 14,
    stoch_period: int = 14,
    oversold: float = 20.0,
    overbought: float = 80.0,
) -> IndicatorResult:
    """Bullish below `oversold`, bearish above `overbought`, strength scaled by the band width."""
    value = compute_stoch_rsi(bars, rsi_period=rsi_period, stoch_period=stoch_period)

    if value < oversold:
        return IndicatorResult(value=value, signal="bullish", strength=(oversold - value) / oversold)
    if value > overbought:
        return IndicatorResult(value=value, signal="bearish", strength=(value - overbought) / (100.0 - overbought))
    return IndicatorResult.neutral(value)
