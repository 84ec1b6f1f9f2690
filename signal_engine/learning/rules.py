"""Per-indicator direction rules used by the weight learner.

A rule answers one question for a recorded snapshot: did this indicator's
reading argue for the given trade direction? The loss path calls a reading
that argued for a losing trade "confidently wrong"; the win path calls one
that argued for a winning trade "correct". Rules return None when the
snapshot has no value for the indicator.

Every IndicatorKind must have a rule; the table is checked at import time.
"""

from __future__ import annotations

from typing import Callable, Mapping, Optional

from signal_engine.types import IndicatorKind, TradeDirection

Rule = Callable[[Mapping[str, float], TradeDirection], Optional[bool]]


def _long_below(key: str, long_below: float, short_above: float) -> Rule:
    """Oscillator-style: a low reading argues LONG, a high one SHORT."""

    def rule(snapshot: Mapping[str, float], direction: TradeDirection) -> Optional[bool]:
        value = snapshot.get(key)
        if value is None:
            return None
        return value < long_below if direction == "LONG" else value > short_above

    return rule


def _long_above(key: str, long_above: float, short_below: float) -> Rule:
    """Trend-style: a high reading argues LONG, a low one SHORT."""

    def rule(snapshot: Mapping[str, float], direction: TradeDirection) -> Optional[bool]:
        value = snapshot.get(key)
        if value is None:
            return None
        return value > long_above if direction == "LONG" else value < short_below

    return rule


def _adx_rule(snapshot: Mapping[str, float], direction: TradeDirection) -> Optional[bool]:
    adx = snapshot.get(IndicatorKind.ADX.value)
    if adx is None:
        return None
    if adx <= 25:
        return False
    plus_di = snapshot.get("plus_di", 0.0)
    minus_di = snapshot.get("minus_di", 0.0)
    implied = "LONG" if plus_di > minus_di else "SHORT" if minus_di > plus_di else None
    return implied == direction


def _volume_ratio_rule(snapshot: Mapping[str, float], direction: TradeDirection) -> Optional[bool]:
    ratio = snapshot.get(IndicatorKind.VOLUME_RATIO.value)
    if ratio is None:
        return None
    change = snapshot.get("price_change", 0.0)
    if ratio <= 1.5 or change == 0:
        return False
    return (change > 0) == (direction == "LONG")


def _hl_volume_rule(snapshot: Mapping[str, float], direction: TradeDirection) -> Optional[bool]:
    ratio = snapshot.get(IndicatorKind.HL_VOLUME.value)
    if ratio is None:
        return None
    return ratio > 1.5


INDICATOR_RULES: dict[IndicatorKind, Rule] = {
    IndicatorKind.RSI: _long_below(IndicatorKind.RSI.value, 40.0, 60.0),
    IndicatorKind.STOCH_RSI: _long_below(IndicatorKind.STOCH_RSI.value, 30.0, 70.0),
    IndicatorKind.WILLIAMS_R: _long_below(IndicatorKind.WILLIAMS_R.value, -70.0, -30.0),
    IndicatorKind.CCI: _long_below(IndicatorKind.CCI.value, -50.0, 50.0),
    IndicatorKind.Z_SCORE: _long_below(IndicatorKind.Z_SCORE.value, -1.5, 1.5),
    IndicatorKind.BOLLINGER: _long_below(IndicatorKind.BOLLINGER.value, 0.3, 0.7),
    IndicatorKind.MACD: _long_above(IndicatorKind.MACD.value, 0.0, 0.0),
    IndicatorKind.ICHIMOKU: _long_above(IndicatorKind.ICHIMOKU.value, 0.0, 0.0),
    IndicatorKind.EMA_ALIGNMENT: _long_above(IndicatorKind.EMA_ALIGNMENT.value, 50.0, 50.0),
    IndicatorKind.ADX: _adx_rule,
    IndicatorKind.OBV_TREND: _long_above(IndicatorKind.OBV_TREND.value, 0.5, -0.5),
    IndicatorKind.VOLUME_RATIO: _volume_ratio_rule,
    IndicatorKind.FEAR_GREED: _long_above(IndicatorKind.FEAR_GREED.value, 60.0, 40.0),
    IndicatorKind.FUNDING_RATE: _long_above(IndicatorKind.FUNDING_RATE.value, 0.0, 0.0),
    IndicatorKind.OI_CHANGE: _long_above(IndicatorKind.OI_CHANGE.value, 0.0, 0.0),
    IndicatorKind.BASIS_PREMIUM: _long_above(IndicatorKind.BASIS_PREMIUM.value, 0.0, 0.0),
    IndicatorKind.HL_VOLUME: _hl_volume_rule,
}

_missing = [kind.value for kind in IndicatorKind if kind not in INDICATOR_RULES]
if _missing:
    raise RuntimeError(f"indicator kinds without a learning rule: {_missing}")


def supports_direction(
    kind: IndicatorKind,
    snapshot: Mapping[str, float],
    direction: TradeDirection,
) -> Optional[bool]:
    """True if the recorded reading argued for `direction`; None if the reading is absent."""
    return INDICATOR_RULES[kind](snapshot, direction)
