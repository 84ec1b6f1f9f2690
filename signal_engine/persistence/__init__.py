"""Persistence and market-data boundary.

These protocols define what the engine needs from its collaborators.
Implementations live in `signal_engine.storage` (records) or in the caller
(market data).
"""

from .interfaces import (
    LearningCycleStore,
    MarketDataProvider,
    RecordStore,
    SignalRecordStore,
    WeightStore,
)

__all__ = [
    "LearningCycleStore",
    "MarketDataProvider",
    "RecordStore",
    "SignalRecordStore",
    "WeightStore",
]
