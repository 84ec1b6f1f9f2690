"""Stop-loss / take-profit levels.

ATR sets the baseline distances (1.5x for the stop, 3x for the target). Pivot
highs and lows build a support/resistance ladder; a structural level between
the baseline and entry pulls the level in. A hard floor keeps both levels at
least `min_distance_pct` away from entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from signal_engine.config import RiskConfig
from signal_engine.errors import InvalidInputError
from signal_engine.indicators.atr import compute_atr
from signal_engine.types import Bar, Direction

logger = logging.getLogger(__name__)

SUPPORT_BUFFER = 0.995
RESISTANCE_BUFFER = 1.005


@dataclass(frozen=True)
class SupportResistance:
    supports: tuple[float, ...]  # nearest first
    resistances: tuple[float, ...]  # nearest first

    @property
    def nearest_support(self) -> Optional[float]:
        return self.supports[0] if self.supports else None

    @property
    def nearest_resistance(self) -> Optional[float]:
        return self.resistances[0] if self.resistances else None


@dataclass(frozen=True)
class RiskLevels:
    entry_price: float
    stop_loss: float
    take_profit: float
    risk_reward_ratio: float
    risk_percent: float  # % distance to stop loss
    reward_percent: float  # % distance to take profit
    atr: float
    support: Optional[float] = None
    resistance: Optional[float] = None


def find_pivot_points(
    bars: Sequence[Bar],
    left_bars: int = 5,
    right_bars: int = 2,
) -> tuple[list[float], list[float]]:
    """Return (pivot_highs, pivot_lows): bars whose high/low is not exceeded by their neighbours."""
    pivot_highs: list[float] = []
    pivot_lows: list[float] = []
    if len(bars) < left_bars + right_bars + 1:
        return pivot_highs, pivot_lows

    for i in range(left_bars, len(bars) - right_bars):
        neighbours = list(bars[i - left_bars : i]) + list(bars[i + 1 : i + right_bars + 1])
        if all(b.high <= bars[i].high for b in neighbours):
            pivot_highs.append(bars[i].high)
        if all(b.low >= bars[i].low for b in neighbours):
            pivot_lows.append(bars[i].low)

    return pivot_highs, pivot_lows


def find_support_resistance(
    bars: Sequence[Bar],
    price: float,
    max_distance_pct: float = 20.0,
) -> SupportResistance:
    """Pivot levels within `max_distance_pct` of price, split into supports below and resistances above."""
    pivot_highs, pivot_lows = find_pivot_points(bars)
    tolerance = price * max_distance_pct / 100.0

    resistances = sorted({p for p in pivot_highs if price < p < price + tolerance})
    supports = sorted({p for p in pivot_lows if price - tolerance < p < price}, reverse=True)
    return SupportResistance(supports=tuple(supports), resistances=tuple(resistances))


def calculate_risk_levels(
    bars: Sequence[Bar],
    entry_price: float,
    direction: Direction,
    config: RiskConfig | None = None,
) -> RiskLevels:
    """
    Calculate stop-loss and take-profit for a trade.

    Args:
        bars: Price history used for ATR and pivot detection
        entry_price: Intended entry (usually the last close)
        direction: LONG, SHORT or HOLD
        config: Risk parameters (defaults: 1.5x/3x ATR, 2% floor)

    Returns:
        RiskLevels. For HOLD, stop and target equal entry and the ratio is 0.

    Raises:
        InvalidInputError: If entry_price <= 0 or direction is unknown
    """
    cfg = config or RiskConfig()
    if entry_price <= 0:
        raise InvalidInputError(f"entry_price must be > 0, got {entry_price}")
    if direction not in ("LONG", "SHORT", "HOLD"):
        raise InvalidInputError(f"unknown direction: {direction}")

    atr = compute_atr(bars, period=cfg.atr_period)
    levels = find_support_resistance(bars, entry_price, cfg.max_level_distance_pct)

    if direction == "HOLD":
        return RiskLevels(
            entry_price=entry_price,
            stop_loss=entry_price,
            take_profit=entry_price,
            risk_reward_ratio=0.0,
            risk_percent=0.0,
            reward_percent=0.0,
            atr=atr,
            support=levels.nearest_support,
            resistance=levels.nearest_resistance,
        )

    floor = entry_price * cfg.min_distance_pct / 100.0
    stop_distance = cfg.stop_atr_multiplier * atr
    target_distance = cfg.target_atr_multiplier * atr

    if direction == "LONG":
        stop_loss = entry_price - stop_distance
        take_profit = entry_price + target_distance

        support = levels.nearest_support
        if support is not None and stop_loss < support * SUPPORT_BUFFER < entry_price - floor:
            stop_loss = support * SUPPORT_BUFFER
        resistance = levels.nearest_resistance
        if resistance is not None and entry_price + floor < resistance * SUPPORT_BUFFER < take_profit:
            take_profit = resistance * SUPPORT_BUFFER

        # Hard floor overrides everything above
        stop_loss = min(stop_loss, entry_price - floor)
        take_profit = max(take_profit, entry_price + floor)
    else:
        stop_loss = entry_price + stop_distance
        take_profit = entry_price - target_distance

        resistance = levels.nearest_resistance
        if resistance is not None and entry_price + floor < resistance * RESISTANCE_BUFFER < stop_loss:
            stop_loss = resistance * RESISTANCE_BUFFER
        support = levels.nearest_support
        if support is not None and take_profit < support * RESISTANCE_BUFFER < entry_price - floor:
            take_profit = support * RESISTANCE_BUFFER

        stop_loss = max(stop_loss, entry_price + floor)
        take_profit = min(take_profit, entry_price - floor)

    risk = abs(entry_price - stop_loss)
    reward = abs(take_profit - entry_price)
    logger.debug(
        f"{direction} levels: entry={entry_price:.6g} sl={stop_loss:.6g} tp={take_profit:.6g} atr={atr:.6g}"
    )
    return RiskLevels(
        entry_price=entry_price,
        stop_loss=stop_loss,
        take_profit=take_profit,
        risk_reward_ratio=round(reward / risk, 2),
        risk_percent=round(risk / entry_price * 100.0, 2),
        reward_percent=round(reward / entry_price * 100.0, 2),
        atr=atr,
        support=levels.nearest_support,
        resistance=levels.nearest_resistance,
    )


def validate_risk_levels(levels: RiskLevels, config: RiskConfig | None = None) -> tuple[bool, str]:
    """Check a set of levels against risk limits. Returns (is_valid, reason)."""
    cfg = config or RiskConfig()

    if levels.risk_reward_ratio < cfg.min_risk_reward:
        return False, f"risk/reward {levels.risk_reward_ratio:.2f} below minimum {cfg.min_risk_reward:.2f}"
    if levels.risk_percent > cfg.max_risk_percent:
        return False, f"risk {levels.risk_percent:.2f}% exceeds maximum {cfg.max_risk_percent:.2f}%"
    if levels.risk_percent < cfg.min_risk_percent:
        return False, f"risk {levels.risk_percent:.2f}% below minimum {cfg.min_risk_percent:.2f}% (stop too tight)"
    return True, "ok"
