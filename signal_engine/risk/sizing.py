"""Position sizing from computed risk levels.

Fixed fractional sizing: risk `risk_percent` of the account balance between
entry and stop loss.
"""

from __future__ import annotations

from dataclasses import dataclass

from signal_engine.errors import InvalidInputError
from signal_engine.risk.levels import RiskLevels


@dataclass(frozen=True)
class PositionSize:
    """Sized position.

    Attributes:
        units: Position size in units of the asset
        notional: units * entry price
        risk_amount: Account currency lost if the stop is hit
    """

    units: float
    notional: float
    risk_amount: float


def calculate_position_size(balance: float, risk_percent: float, levels: RiskLevels) -> PositionSize:
    """Calculate position size so that a stop-out loses `risk_percent` of `balance`.

    Args:
        balance: Account balance
        risk_percent: Percent of balance to risk (1.0 = 1%)
        levels: Levels from calculate_risk_levels

    Returns:
        PositionSize

    Raises:
        InvalidInputError: If balance or risk_percent is not positive, or the
            levels carry no stop distance (HOLD)
    """
    if balance <= 0:
        raise InvalidInputError(f"balance must be > 0, got {balance}")
    if not 0 < risk_percent <= 100:
        raise InvalidInputError(f"risk_percent must be within (0, 100], got {risk_percent}")

    # Calculate risk per unit
    risk_per_unit = abs(levels.entry_price - levels.stop_loss)
    if risk_per_unit == 0:
        raise InvalidInputError("risk per unit cannot be zero (entry_price == stop_loss)")

    risk_amount = balance * risk_percent / 100.0
    units = risk_amount / risk_per_unit
    return PositionSize(units=units, notional=units * levels.entry_price, risk_amount=risk_amount)
