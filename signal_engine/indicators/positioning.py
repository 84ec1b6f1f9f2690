"""
Derivatives positioning indicators (contrarian).

Funding, basis premium, open-interest change and venue volume describe how
the market is positioned rather than where price is going. Crowded longs are
read as bearish and crowded shorts as bullish.

Usage:
    from signal_engine.indicators.positioning import positioning_signals

    results = positioning_signals(context)  # dict[IndicatorKind, IndicatorResult]
"""

from __future__ import annotations

import logging

from signal_engine.types import IndicatorKind, IndicatorResult, PositioningContext

logger = logging.getLogger(__name__)


def funding_rate_signal(annualized_rate: float, boost: float = 1.0) -> IndicatorResult:
    """
    Contrarian funding signal. Rates are annualized fractions (0.30 = 30%/yr).

    Signal interpretation:
        - > 30%: strongly bearish (crowded longs)
        - > 15%: mildly bearish
        - < -10%: strongly bullish (crowded shorts)
        - < -5%: mildly bullish

    `boost` (see funding_velocity_boost) scales strength; the result value is
    the rate in percent.
    """
    rate = annualized_rate
    value = rate * 100.0

    if rate > 0.30:
        signal, strength = "bearish", min(1.0, (rate - 0.30) / 0.50)
    elif rate > 0.15:
        signal, strength = "bearish", (rate - 0.15) / 0.30
    elif rate < -0.10:
        signal, strength = "bullish", min(1.0, abs(rate + 0.10) / 0.20)
    elif rate < -0.05:
        signal, strength = "bullish", abs(rate + 0.05) / 0.10
    else:
        return IndicatorResult.neutral(value)

    return IndicatorResult(value=value, signal=signal, strength=min(1.0, strength * boost))


def funding_velocity_boost(current_rate: float, previous_rate: float | None) -> float:
    """Multiplier in [0.8, 1.5] rewarding fast-moving funding and damping stale, mild funding."""
    if previous_rate is None or previous_rate == 0:
        return 1.0

    acceleration = abs(current_rate - previous_rate)  # annualized shift
    if acceleration > 0.10:
        return min(1.5, 1.0 + acceleration * 2.0)
    if acceleration < 0.02 and abs(current_rate) < 0.15:
        return 0.8
    return 1.0


def basis_premium_signal(premium: float, threshold_pct: float = 0.10) -> IndicatorResult:
    """Perp premium over index (fraction). Positive premium is bearish, discount bullish."""
    pct = premium * 100.0
    strength = min(1.0, abs(pct) / 0.5)

    if pct > threshold_pct:
        return IndicatorResult(value=pct, signal="bearish", strength=strength)
    if pct < -threshold_pct:
        return IndicatorResult(value=pct, signal="bullish", strength=strength)
    return IndicatorResult.neutral(pct)


def oi_change_signal(
    current_oi: float,
    previous_oi: float | None,
    price_change_pct: float,
    min_oi_change: float = 0.05,
    min_price_change_pct: float = 1.0,
) -> IndicatorResult:
    """
    Combine the open-interest delta with the price move into four quadrants.

        OI up,   price up   -> new longs, bullish
        OI up,   price down -> new shorts, bearish
        OI down, price up   -> short squeeze, mildly bullish (capped at 0.6)
        OI down, price down -> long liquidation, bearish

    The result value is the OI change in percent.
    """
    if not previous_oi:
        return IndicatorResult.neutral(0.0)

    oi_change = (current_oi - previous_oi) / previous_oi
    value = oi_change * 100.0
    if abs(oi_change) <= min_oi_change or abs(price_change_pct) <= min_price_change_pct:
        return IndicatorResult.neutral(value)

    if oi_change > 0:
        strength = min(1.0, oi_change * 5.0)
        if price_change_pct > 0:
            return IndicatorResult(value=value, signal="bullish", strength=strength)
        return IndicatorResult(value=value, signal="bearish", strength=strength)

    if price_change_pct > 0:
        return IndicatorResult(value=value, signal="bullish", strength=min(0.6, abs(oi_change) * 3.0))
    return IndicatorResult(value=value, signal="bearish", strength=min(1.0, abs(oi_change) * 5.0))


def hl_volume_signal(volume_24h: float, average_volume: float | None, price_change_pct: float) -> IndicatorResult:
    """
    Venue volume momentum. A volume surge confirms the 24h move; a volume
    drought fades it. The result value is the volume ratio.
    """
    if not average_volume or average_volume <= 0 or volume_24h <= 0:
        return IndicatorResult.neutral(1.0)

    ratio = volume_24h / average_volume
    if abs(price_change_pct) <= 1.0:
        return IndicatorResult.neutral(ratio)

    if ratio > 1.5:
        strength = min(1.0, (ratio - 1.0) / 2.0)
        signal = "bullish" if price_change_pct > 0 else "bearish"
        return IndicatorResult(value=ratio, signal=signal, strength=strength)
    if ratio < 0.5:
        strength = min(0.5, 1.0 - ratio)
        signal = "bearish" if price_change_pct > 0 else "bullish"
        return IndicatorResult(value=ratio, signal=signal, strength=strength)
    return IndicatorResult.neutral(ratio)


def positioning_signals(context: PositioningContext) -> dict[IndicatorKind, IndicatorResult]:
    """All positioning results for one coin.

    Funding and basis are always present; OI change and venue volume only when
    their reference values (previous OI, average volume) are known.
    """
    boost = funding_velocity_boost(context.funding_rate, context.previous_funding_rate)
    results = {
        IndicatorKind.FUNDING_RATE: funding_rate_signal(context.funding_rate, boost=boost),
        IndicatorKind.BASIS_PREMIUM: basis_premium_signal(context.premium),
    }
    if context.previous_open_interest:
        results[IndicatorKind.OI_CHANGE] = oi_change_signal(
            context.open_interest, context.previous_open_interest, context.price_change_pct
        )
    if context.average_volume:
        results[IndicatorKind.HL_VOLUME] = hl_volume_signal(
            context.volume_24h, context.average_volume, context.price_change_pct
        )
    logger.debug(f"Positioning signals: {', '.join(k.value for k in results)} (funding boost={boost:.2f})")
    return results
