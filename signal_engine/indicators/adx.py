"""
ADX (Average Directional Index) indicator module.

ADX measures trend strength regardless of direction; the directional
indicators +DI and -DI tell which side is in control.

Usage:
    from signal_engine.indicators.adx import compute_adx, adx_signal

    reading = compute_adx(bars, period=14)
    reading.adx, reading.plus_di, reading.minus_di
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from signal_engine.indicators.common import ema, ema_series, highs, lows, true_ranges
from signal_engine.types import Bar, IndicatorResult


@dataclass(frozen=True)
class AdxReading:
    adx: float
    plus_di: float
    minus_di: float


def compute_adx(bars: Sequence[Bar], period: int = 14) -> AdxReading:
    """
    Calculate ADX, +DI and -DI.

    True range and directional movement are smoothed with EMA(period);
    DX = |+DI - -DI| / (+DI + -DI) * 100 and ADX = EMA(period) of DX.

    Returns:
        AdxReading with zeros when fewer than 2 * period bars are available.
    """
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")

    if len(bars) < 2 * period:
        return AdxReading(adx=0.0, plus_di=0.0, minus_di=0.0)

    high = highs(bars)
    low = lows(bars)
    up_move = high[1:] - high[:-1]
    down_move = low[:-1] - low[1:]
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

    smoothed_tr = ema_series(true_ranges(bars), period)
    smoothed_plus = ema_series(plus_dm, period)
    smoothed_minus = ema_series(minus_dm, period)

    valid = ~np.isnan(smoothed_tr) & (smoothed_tr > 0)
    if not valid.any():
        return AdxReading(adx=0.0, plus_di=0.0, minus_di=0.0)

    plus_di = smoothed_plus[valid] / smoothed_tr[valid] * 100.0
    minus_di = smoothed_minus[valid] / smoothed_tr[valid] * 100.0
    di_sum = plus_di + minus_di
    dx = np.where(di_sum > 0, np.abs(plus_di - minus_di) / np.where(di_sum > 0, di_sum, 1.0) * 100.0, 0.0)

    return AdxReading(adx=ema(dx, period), plus_di=float(plus_di[-1]), minus_di=float(minus_di[-1]))


def adx_signal(bars: Sequence[Bar], period: int = 14, trend_threshold: float = 25.0) -> IndicatorResult:
    """
    Map ADX to a directional result.

    Neutral while ADX <= trend_threshold (no trend). Above it the side follows
    the dominant directional indicator with strength (ADX - 25) / 50, capped at 1.
    """
    reading = compute_adx(bars, period=period)
    if reading.adx <= trend_threshold:
        return IndicatorResult.neutral(reading.adx)

    strength = min(1.0, (reading.adx - trend_threshold) / 50.0)
    if reading.plus_di > reading.minus_di:
        return IndicatorResult(value=reading.adx, signal="bullish", strength=strength)
    if reading.minus_di > reading.plus_di:
        return IndicatorResult(value=reading.adx, signal="bearish", strength=strength)
    return IndicatorResult.neutral(reading.adx)
