"""Fear & Greed sentiment indicator (contrarian)."""

from __future__ import annotations

from signal_engine.errors import InvalidInputError
from signal_engine.types import IndicatorResult


def fear_greed_signal(index: float) -> IndicatorResult:
    """
    Contrarian reading of a 0-100 Fear & Greed index.

    Fear (< 50) is bullish and greed (> 50) bearish, with strength equal to the
    distance from 50 scaled to [0, 1].

    Raises:
        InvalidInputError: If the index is outside 0-100
    """
    if not 0 <= index <= 100:
        raise InvalidInputError(f"sentiment index must be within 0-100, got {index}")

    if index < 50:
        return IndicatorResult(value=float(index), signal="bullish", strength=(50.0 - index) / 50.0)
    if index > 50:
        return IndicatorResult(value=float(index), signal="bearish", strength=(index - 50.0) / 50.0)
    return IndicatorResult.neutral(float(index))
