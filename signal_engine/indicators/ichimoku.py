"""Ichimoku cloud indicator module.

Condenses the cloud into one composite score in [-100, 100]:

    +/-30  price above / below the cloud
    +/-25  tenkan-sen above / below kijun-sen
    +/-20  senkou span A above / below span B
    +/-25  close above / below the close `kijun_period` bars ago (chikou)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from signal_engine.indicators.common import closes, highs, lows
from signal_engine.types import Bar, IndicatorResult


@dataclass(frozen=True)
class IchimokuLines:
    tenkan: float
    kijun: float
    senkou_a: float
    senkou_b: float


def _midpoint(bars: Sequence[Bar], period: int) -> float:
    return (float(highs(bars)[-period:].max()) + float(lows(bars)[-period:].min())) / 2.0


def compute_ichimoku_lines(
    bars: Sequence[Bar],
    tenkan_period: int = 9,
    kijun_period: int = 26,
    senkou_b_period: int = 52,
) -> IchimokuLines | None:
    """Current Ichimoku lines, or None with fewer than `senkou_b_period` bars."""
    if len(bars) < senkou_b_period:
        return None

    tenkan = _midpoint(bars, tenkan_period)
    kijun = _midpoint(bars, kijun_period)
    return IchimokuLines(
        tenkan=tenkan,
        kijun=kijun,
        senkou_a=(tenkan + kijun) / 2.0,
        senkou_b=_midpoint(bars, senkou_b_period),
    )


def compute_ichimoku_score(bars: Sequence[Bar], kijun_period: int = 26) -> float:
    lines = compute_ichimoku_lines(bars, kijun_period=kijun_period)
    if lines is None:
        return 0.0

    prices = closes(bars)
    price = float(prices[-1])
    cloud_top = max(lines.senkou_a, lines.senkou_b)
    cloud_bottom = min(lines.senkou_a, lines.senkou_b)

    score = 0.0
    if price > cloud_top:
        score += 30
    elif price < cloud_bottom:
        score -= 30

    if lines.tenkan > lines.kijun:
        score += 25
    elif lines.tenkan < lines.kijun:
        score -= 25

    if lines.senkou_a > lines.senkou_b:
        score += 20
    elif lines.senkou_a < lines.senkou_b:
        score -= 20

    lagging = float(prices[-kijun_period])
    if price > lagging:
        score += 25
    elif price < lagging:
        score -= 25

    return score


def ichimoku_signal(bars: Sequence[Bar], threshold: float = 50.0) -> IndicatorResult:
    score = compute_ichimoku_score(bars)
    strength = min(1.0, abs(score) / 100.0)

    if score >= threshold:
        return IndicatorResult(value=score, signal="bullish", strength=strength)
    if score <= -threshold:
        return IndicatorResult(value=score, signal="bearish", strength=strength)
    return IndicatorResult.neutral(score)
