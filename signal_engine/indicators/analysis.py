"""Run the full indicator set over one coin's bars.

`analyze_bars` is the single entry point used by the scoring engine; it never
raises on short history (each indicator degrades to its neutral default).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import pandas as pd

from signal_engine.errors import InvalidInputError
from signal_engine.indicators.adx import adx_signal, compute_adx
from signal_engine.indicators.atr import compute_atr
from signal_engine.indicators.bollinger import bollinger_signal
from signal_engine.indicators.cci import cci_signal
from signal_engine.indicators.ema import ema_alignment_signal
from signal_engine.indicators.ichimoku import ichimoku_signal
from signal_engine.indicators.macd import macd_signal
from signal_engine.indicators.obv import obv_trend_signal
from signal_engine.indicators.positioning import positioning_signals
from signal_engine.indicators.rsi import rsi_signal
from signal_engine.indicators.sentiment import fear_greed_signal
from signal_engine.indicators.stochastic import stoch_rsi_signal
from signal_engine.indicators.volume import compute_price_change, compute_vwap, volume_ratio_signal
from signal_engine.indicators.williams_r import williams_r_signal
from signal_engine.indicators.zscore import zscore_signal
from signal_engine.types import Bar, IndicatorKind, IndicatorResult, PositioningContext

logger = logging.getLogger(__name__)

BAR_COLUMNS = ("open", "high", "low", "close", "volume")


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator results for one coin plus auxiliary values kept for learning."""

    results: Mapping[IndicatorKind, IndicatorResult]
    atr: float = 0.0
    vwap: float = 0.0
    plus_di: float = 0.0
    minus_di: float = 0.0
    price_change: float = 0.0

    def values(self) -> dict[str, float]:
        """Flat name -> raw value mapping stored on SignalOutput.snapshot."""
        flat = {kind.value: result.value for kind, result in self.results.items()}
        flat.update(
            {
                "atr": self.atr,
                "vwap": self.vwap,
                "plus_di": self.plus_di,
                "minus_di": self.minus_di,
                "price_change": self.price_change,
            }
        )
        return flat


def analyze_bars(
    bars: Sequence[Bar],
    sentiment: Optional[float] = None,
    positioning: Optional[PositioningContext] = None,
) -> IndicatorSnapshot:
    """Compute every indicator. Absent sentiment/positioning leave their kinds out."""
    if not bars:
        raise InvalidInputError("at least one bar is required")

    adx_reading = compute_adx(bars)
    results: dict[IndicatorKind, IndicatorResult] = {
        IndicatorKind.RSI: rsi_signal(bars),
        IndicatorKind.STOCH_RSI: stoch_rsi_signal(bars),
        IndicatorKind.MACD: macd_signal(bars),
        IndicatorKind.WILLIAMS_R: williams_r_signal(bars),
        IndicatorKind.CCI: cci_signal(bars),
        IndicatorKind.Z_SCORE: zscore_signal(bars),
        IndicatorKind.EMA_ALIGNMENT: ema_alignment_signal(bars),
        IndicatorKind.ICHIMOKU: ichimoku_signal(bars),
        IndicatorKind.ADX: adx_signal(bars),
        IndicatorKind.BOLLINGER: bollinger_signal(bars),
        IndicatorKind.OBV_TREND: obv_trend_signal(bars),
        IndicatorKind.VOLUME_RATIO: volume_ratio_signal(bars),
    }

    if sentiment is not None:
        results[IndicatorKind.FEAR_GREED] = fear_greed_signal(sentiment)
    if positioning is not None:
        results.update(positioning_signals(positioning))

    logger.debug(f"Analyzed {len(bars)} bars: {len(results)} indicators")
    return IndicatorSnapshot(
        results=results,
        atr=compute_atr(bars),
        vwap=compute_vwap(bars),
        plus_di=adx_reading.plus_di,
        minus_di=adx_reading.minus_di,
        price_change=compute_price_change(bars),
    )


def bars_from_frame(frame: pd.DataFrame) -> list[Bar]:
    """Convert an OHLCV DataFrame (optional `timestamp` column) into bars, oldest first."""
    missing = [col for col in BAR_COLUMNS if col not in frame.columns]
    if missing:
        raise InvalidInputError(f"OHLCV data must contain: {list(BAR_COLUMNS)} (missing {missing})")

    if "timestamp" in frame.columns:
        frame = frame.assign(timestamp=pd.to_datetime(frame["timestamp"], utc=True)).sort_values("timestamp")

    bars = []
    for row in frame.itertuples(index=False):
        timestamp = getattr(row, "timestamp", None)
        bars.append(
            Bar(
                open=float(row.open),
                high=float(row.high),
                low=float(row.low),
                close=float(row.close),
                volume=float(row.volume),
                timestamp=timestamp.to_pydatetime() if timestamp is not None else None,
            )
        )
    return bars
