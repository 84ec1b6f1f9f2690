from __future__ import annotations

from .adx import AdxReading, adx_signal, compute_adx
from .analysis import IndicatorSnapshot, analyze_bars, bars_from_frame
from .atr import compute_atr, compute_atr_percent
from .bollinger import bollinger_signal, compute_band_position, compute_bollinger_bands
from .cci import cci_signal, compute_cci
from .ema import compute_ema_alignment, ema_alignment_signal
from .ichimoku import compute_ichimoku_score, ichimoku_signal
from .macd import compute_macd, macd_signal
from .obv import compute_obv_trend, obv_trend_signal
from .positioning import (
    basis_premium_signal,
    funding_rate_signal,
    funding_velocity_boost,
    hl_volume_signal,
    oi_change_signal,
    positioning_signals,
)
from .rsi import compute_rsi, rsi_signal
from .sentiment import fear_greed_signal
from .stochastic import compute_stoch_rsi, stoch_rsi_signal
from .volume import compute_volume_ratio, compute_vwap, compute_window_change, volume_ratio_signal
from .williams_r import compute_williams_r, williams_r_signal
from .zscore import compute_zscore, zscore_signal

__all__ = [
    "AdxReading",
    "IndicatorSnapshot",
    "adx_signal",
    "analyze_bars",
    "bars_from_frame",
    "basis_premium_signal",
    "bollinger_signal",
    "cci_signal",
    "compute_adx",
    "compute_atr",
    "compute_atr_percent",
    "compute_band_position",
    "compute_bollinger_bands",
    "compute_cci",
    "compute_ema_alignment",
    "compute_ichimoku_score",
    "compute_macd",
    "compute_obv_trend",
    "compute_rsi",
    "compute_stoch_rsi",
    "compute_volume_ratio",
    "compute_window_change",
    "compute_vwap",
    "compute_williams_r",
    "compute_zscore",
    "ema_alignment_signal",
    "fear_greed_signal",
    "funding_rate_signal",
    "funding_velocity_boost",
    "hl_volume_signal",
    "ichimoku_signal",
    "macd_signal",
    "obv_trend_signal",
    "oi_change_signal",
    "positioning_signals",
    "rsi_signal",
    "stoch_rsi_signal",
    "volume_ratio_signal",
    "williams_r_signal",
    "zscore_signal",
]
