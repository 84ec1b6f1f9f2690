"""Adaptive weight learning from signal outcomes."""

from signal_engine.learning.learner import (
    LearningRunSummary,
    TrailingPerformance,
    WeightLearner,
)
from signal_engine.learning.rules import INDICATOR_RULES, supports_direction
from signal_engine.learning.streaks import Streak, find_unprocessed_streak

__all__ = [
    "INDICATOR_RULES",
    "LearningRunSummary",
    "Streak",
    "TrailingPerformance",
    "WeightLearner",
    "find_unprocessed_streak",
    "supports_direction",
]
