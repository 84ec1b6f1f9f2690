"""Momentum re-confirmation for early exits.

Before a position is closed early on the gain threshold, RSI and MACD are
re-read on two independent timeframes. The exit is taken only when both
readings show the move reversing; a single-timeframe reversal is noise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from signal_engine.indicators.macd import compute_macd
from signal_engine.indicators.rsi import compute_rsi
from signal_engine.types import Bar, Direction


@dataclass(frozen=True)
class MomentumReading:
    rsi: float
    macd_line: float
    histogram: float


@dataclass(frozen=True)
class DualTimeframeMomentum:
    """Readings from two timeframes (e.g. 1h and 4h); either may be missing."""

    primary: Optional[MomentumReading]
    secondary: Optional[MomentumReading]


def momentum_reading(bars: Sequence[Bar]) -> MomentumReading:
    line, _, histogram = compute_macd(bars)
    return MomentumReading(rsi=compute_rsi(bars), macd_line=line, histogram=histogram)


def shows_reversal(reading: MomentumReading, direction: Direction) -> bool:
    """True when momentum turned against the position.

    LONG: RSI below 45 with a negative MACD histogram.
    SHORT: RSI above 55 with a positive MACD histogram.
    """
    if direction == "LONG":
        return reading.rsi < 45 and reading.histogram < 0
    if direction == "SHORT":
        return reading.rsi > 55 and reading.histogram > 0
    return False


def confirm_early_exit(
    direction: Direction,
    primary: Optional[MomentumReading],
    secondary: Optional[MomentumReading],
) -> bool:
    """Exit early only if both timeframes reverse. Missing data keeps the position open."""
    if primary is None or secondary is None:
        return False
    return shows_reversal(primary, direction) and shows_reversal(secondary, direction)
