"""Shared numeric helpers for the indicator modules.

All helpers take plain float sequences or bars and return numpy arrays or
floats. None of them raise on short input; callers decide the neutral default.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from signal_engine.types import Bar


def closes(bars: Sequence[Bar]) -> np.ndarray:
    return np.fromiter((b.close for b in bars), dtype=float, count=len(bars))


def highs(bars: Sequence[Bar]) -> np.ndarray:
    return np.fromiter((b.high for b in bars), dtype=float, count=len(bars))


def lows(bars: Sequence[Bar]) -> np.ndarray:
    return np.fromiter((b.low for b in bars), dtype=float, count=len(bars))


def volumes(bars: Sequence[Bar]) -> np.ndarray:
    return np.fromiter((b.volume for b in bars), dtype=float, count=len(bars))


def sma(values: Sequence[float] | np.ndarray, period: int) -> float:
    """Simple moving average of the last `period` values (all values if fewer)."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(arr[-period:].mean())


def ema_series(values: Sequence[float] | np.ndarray, period: int) -> np.ndarray:
    """Running EMA seeded with the SMA of the first `period` values.

    Entries before index `period - 1` are NaN. The value at index i equals the
    EMA of the prefix values[: i + 1].
    """
    arr = np.asarray(values, dtype=float)
    out = np.full(arr.shape, np.nan)
    if period < 1 or arr.size < period:
        return out

    k = 2.0 / (period + 1)
    current = float(arr[:period].mean())
    out[period - 1] = current
    for i in range(period, arr.size):
        current = (arr[i] - current) * k + current
        out[i] = current
    return out


def ema(values: Sequence[float] | np.ndarray, period: int) -> float:
    """Final EMA value; falls back to the plain mean when history is shorter than `period`."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    if arr.size < period:
        return float(arr.mean())
    return float(ema_series(arr, period)[-1])


def true_ranges(bars: Sequence[Bar]) -> np.ndarray:
    """True range for every bar after the first (length n-1)."""
    if len(bars) < 2:
        return np.zeros(0)
    high = highs(bars)[1:]
    low = lows(bars)[1:]
    prev_close = closes(bars)[:-1]
    return np.maximum.reduce([high - low, np.abs(high - prev_close), np.abs(low - prev_close)])


def wilder_rsi_series(values: Sequence[float] | np.ndarray, period: int = 14) -> np.ndarray:
    """RSI at every index from `period` onwards using Wilder smoothing.

    Entry i equals the RSI of the prefix values[: i + 1]; earlier entries are NaN.
    """
    arr = np.asarray(values, dtype=float)
    out = np.full(arr.shape, np.nan)
    if arr.size < period + 1:
        return out

    changes = np.diff(arr)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())
    out[period] = _rsi_from_averages(avg_gain, avg_loss)
    for i in range(period, changes.size):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        out[i + 1] = _rsi_from_averages(avg_gain, avg_loss)
    return out


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_gain == 0 and avg_loss == 0:
        return 50.0  # flat prices
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))
