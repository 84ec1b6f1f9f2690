"""Z-score mean-reversion indicator module."""

from __future__ import annotations

from typing import Sequence

from signal_engine.indicators.common import closes
from signal_engine.types import Bar, IndicatorResult


def compute_zscore(bars: Sequence[Bar], period: int = 20) -> float:
    """Distance of the last close from the `period` mean in population standard deviations."""
    if period < 2:
        raise ValueError(f"period must be >= 2, got {period}")

    if len(bars) < period:
        return 0.0

    window = closes(bars)[-period:]
    std = float(window.std())
    if std == 0:
        return 0.0
    return (float(window[-1]) - float(window.mean())) / std


def zscore_signal(bars: Sequence[Bar], period: int = 20, threshold: float = 2.0) -> IndicatorResult:
    """Stretched below the mean is bullish, above is bearish (mean reversion)."""
    z = compute_zscore(bars, period=period)
    strength = min(1.0, abs(z) / 3.0)

    if z < -threshold:
        return IndicatorResult(value=z, signal="bullish", strength=strength)
    if z > threshold:
        return IndicatorResult(value=z, signal="bearish", strength=strength)
    return IndicatorResult.neutral(z)
