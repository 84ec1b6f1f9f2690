"""Risk management module.

ATR-based stop/target levels, validation, and position sizing.
"""

from .levels import (
    RiskLevels,
    SupportResistance,
    calculate_risk_levels,
    find_pivot_points,
    find_support_resistance,
    validate_risk_levels,
)
from .sizing import PositionSize, calculate_position_size

__all__ = [
    # Levels
    "RiskLevels",
    "SupportResistance",
    "calculate_risk_levels",
    "find_pivot_points",
    "find_support_resistance",
    "validate_risk_levels",
    # Sizing
    "PositionSize",
    "calculate_position_size",
]
