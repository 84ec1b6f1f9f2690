"""Signal outcome tracking: state machine, momentum re-confirmation, statistics."""

from .momentum import DualTimeframeMomentum, MomentumReading, confirm_early_exit, momentum_reading, shows_reversal
from .outcomes import apply_transition, calculate_profit_pct, check_outcome, check_outcomes, close_manually
from .stats import (
    DirectionStats,
    ScoreBucketStats,
    TrackingStats,
    compute_tracking_stats,
    records_to_frame,
    score_bucket_stats,
    trailing_win_rate,
)

__all__ = [
    # Momentum
    "DualTimeframeMomentum",
    "MomentumReading",
    "confirm_early_exit",
    "momentum_reading",
    "shows_reversal",
    # Outcomes
    "apply_transition",
    "calculate_profit_pct",
    "check_outcome",
    "check_outcomes",
    "close_manually",
    # Stats
    "DirectionStats",
    "ScoreBucketStats",
    "TrackingStats",
    "compute_tracking_stats",
    "records_to_frame",
    "score_bucket_stats",
    "trailing_win_rate",
]
