"""
ATR (Average True Range) indicator module.

ATR is a volatility scalar used to size stop and target distances; it has no
direction of its own.

Usage:
    from signal_engine.indicators.atr import compute_atr

    atr = compute_atr(bars, period=14)
"""

from __future__ import annotations

from typing import Sequence

from signal_engine.indicators.common import ema, true_ranges
from signal_engine.types import Bar


def compute_atr(bars: Sequence[Bar], period: int = 14) -> float:
    """
    Calculate ATR as the EMA of true ranges.

    True Range = max(high - low, |high - prev_close|, |low - prev_close|)

    Args:
        bars: Sequence of OHLCV bars, oldest first
        period: Smoothing period (default: 14)

    Returns:
        ATR in price units; 0.0 when fewer than period + 1 bars are available.

    Raises:
        ValueError: If period < 1
    """
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")

    if len(bars) < period + 1:
        return 0.0

    return ema(true_ranges(bars), period)


def compute_atr_percent(bars: Sequence[Bar], period: int = 14) -> float:
    """ATR as a percentage of the last close."""
    if not bars or bars[-1].close == 0:
        return 0.0
    return compute_atr(bars, period=period) / bars[-1].close * 100.0
