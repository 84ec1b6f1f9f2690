"""
Bollinger Bands indicator module.

Bands are SMA(period) +/- k * population standard deviation. The signal uses
the position of price inside the bands:

    position = (price - lower) / (upper - lower)

0 sits on the lower band, 1 on the upper band.

Usage:
    from signal_engine.indicators.bollinger import compute_bollinger_bands, bollinger_signal

    upper, middle, lower = compute_bollinger_bands(bars, period=20, std_dev=2.0)
"""

from __future__ import annotations

from typing import Sequence

from signal_engine.indicators.common import closes
from signal_engine.types import Bar, IndicatorResult

NEUTRAL_POSITION = 0.5


def compute_bollinger_bands(
    bars: Sequence[Bar],
    period: int = 20,
    std_dev: float = 2.0,
) -> tuple[float, float, float]:
    """
    Calculate Bollinger Bands.

    Returns:
        Tuple of (upper_band, middle_band, lower_band). With fewer than
        `period` bars all three equal the last close.

    Raises:
        ValueError: If period < 2 or std_dev <= 0
    """
    if period < 2:
        raise ValueError(f"period must be >= 2, got {period}")
    if std_dev <= 0:
        raise ValueError(f"std_dev must be > 0, got {std_dev}")

    prices = closes(bars)
    if len(prices) < period:
        last = float(prices[-1]) if len(prices) else 0.0
        return last, last, last

    window = prices[-period:]
    middle = float(window.mean())
    std = float(window.std())  # population
    return middle + std_dev * std, middle, middle - std_dev * std


def compute_band_position(bars: Sequence[Bar], period: int = 20, std_dev: float = 2.0) -> float:
    """Position of the last close inside the bands; 0.5 for collapsed bands."""
    upper, _, lower = compute_bollinger_bands(bars, period=period, std_dev=std_dev)
    band_width = upper - lower
    if band_width == 0:
        return NEUTRAL_POSITION
    return (float(closes(bars)[-1]) - lower) / band_width


def bollinger_signal(
    bars: Sequence[Bar],
    period: int = 20,
    std_dev: float = 2.0,
    lower_zone: float = 0.2,
    upper_zone: float = 0.8,
) -> IndicatorResult:
    """
    Map band position to a directional result.

    Signal interpretation:
        - position < lower_zone: bullish (near or below lower band)
        - position > upper_zone: bearish (near or above upper band)
        - otherwise: neutral

    The result value is the position itself.
    """
    position = compute_band_position(bars, period=period, std_dev=std_dev)

    if position < lower_zone:
        return IndicatorResult(value=position, signal="bullish", strength=(lower_zone - position) / lower_zone)
    if position > upper_zone:
        return IndicatorResult(value=position, signal="bearish", strength=(position - upper_zone) / (1.0 - upper_zone))
    return IndicatorResult.neutral(position)
