"""Volume ratio and VWAP module."""

from __future__ import annotations

from datetime import timedelta
from typing import Sequence

from signal_engine.indicators.common import closes, highs, lows, volumes
from signal_engine.types import Bar, IndicatorResult


def compute_volume_ratio(bars: Sequence[Bar], period: int = 20) -> float:
    """Last bar volume divided by the mean of the previous period-1 bars (1.0 when unknown)."""
    if period < 2:
        raise ValueError(f"period must be >= 2, got {period}")

    if len(bars) < period:
        return 1.0

    baseline = float(volumes(bars)[-period:-1].mean())
    if baseline == 0:
        return 1.0
    return float(bars[-1].volume) / baseline


def compute_price_change(bars: Sequence[Bar]) -> float:
    """Percent change of the last close versus the previous close."""
    if len(bars) < 2 or bars[-2].close == 0:
        return 0.0
    return (bars[-1].close - bars[-2].close) / bars[-2].close * 100.0


def compute_window_change(bars: Sequence[Bar], window: timedelta = timedelta(hours=24), fallback_bars: int = 24) -> float:
    """
    Percent change of the last close versus the last close at or before `window` ago.

    Uses bar timestamps when present; otherwise the bar `fallback_bars` back is the
    baseline. Shorter histories fall back to the oldest bar.
    """
    if len(bars) < 2:
        return 0.0

    last = bars[-1]
    baseline = bars[max(0, len(bars) - 1 - fallback_bars)]
    if last.timestamp is not None:
        cutoff = last.timestamp - window
        baseline = bars[0]
        for bar in reversed(bars[:-1]):
            if bar.timestamp is not None and bar.timestamp <= cutoff:
                baseline = bar
                break

    if baseline.close == 0:
        return 0.0
    return (last.close - baseline.close) / baseline.close * 100.0


def volume_ratio_signal(bars: Sequence[Bar], period: int = 20, spike_ratio: float = 1.5) -> IndicatorResult:
    """
    A volume spike confirms the direction of the last bar.

    Bullish when ratio > spike_ratio and the last close rose, bearish when it
    fell; strength (ratio - 1) / 2 capped at 1.
    """
    ratio = compute_volume_ratio(bars, period=period)
    if ratio <= spike_ratio:
        return IndicatorResult.neutral(ratio)

    strength = min(1.0, (ratio - 1.0) / 2.0)
    change = compute_price_change(bars)
    if change > 0:
        return IndicatorResult(value=ratio, signal="bullish", strength=strength)
    if change < 0:
        return IndicatorResult(value=ratio, signal="bearish", strength=strength)
    return IndicatorResult.neutral(ratio)


def compute_vwap(bars: Sequence[Bar], period: int = 20) -> float:
    """Volume-weighted typical price over the last `period` bars (last close when volume is zero)."""
    if not bars:
        return 0.0
    window = slice(-period, None)
    typical = ((highs(bars) + lows(bars) + closes(bars)) / 3.0)[window]
    weights = volumes(bars)[window]
    total = float(weights.sum())
    if total == 0:
        return float(bars[-1].close)
    return float((typical * weights).sum() / total)
