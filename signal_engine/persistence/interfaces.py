from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Protocol, Sequence

from signal_engine.types import (
    Bar,
    ExitReason,
    LearningCycle,
    Outcome,
    PositioningContext,
    SignalRecord,
    WeightState,
)


class MarketDataProvider(Protocol):
    async def fetch_bars(self, coin: str, interval: str, count: int) -> Sequence[Bar]:
        """Fetch the most recent `count` bars, oldest first."""

    async def fetch_sentiment_index(self) -> Optional[int]:
        """Fetch the market-wide Fear & Greed index (0-100), None if unavailable."""

    async def fetch_positioning_context(self, coin: str) -> Optional[PositioningContext]:
        """Fetch funding / open interest / volume / premium for a coin, None if unavailable."""


class WeightStore(Protocol):
    def get_weights(self) -> Optional[Mapping[str, float]]:
        """Current weight vector, None when never persisted."""

    def set_weights(self, *, weights: Mapping[str, float]) -> None:
        """Overwrite the weight vector (bumps the state version)."""

    def load_weight_state(self) -> WeightState:
        """Weights plus version token and streak cursors."""

    def commit_weight_state(
        self,
        *,
        expected_version: int,
        weights: Mapping[str, float],
        loss_cursor: datetime | None,
        win_cursor: datetime | None,
        cycle: LearningCycle | None = None,
    ) -> WeightState:
        """Atomically persist weights, cursors and an optional cycle record.

        Raises ConcurrentUpdateError when the stored version differs from
        `expected_version`.
        """


class LearningCycleStore(Protocol):
    def append_learning_cycle(self, *, cycle: LearningCycle) -> None:
        """Append an immutable learning cycle audit record."""

    def list_learning_cycles(self, *, limit: int = 100) -> Sequence[LearningCycle]:
        """Most recent cycles, oldest first."""


class SignalRecordStore(Protocol):
    def add_signal(self, *, record: SignalRecord) -> None:
        """Persist a new PENDING signal record."""

    def list_pending_signals(self) -> Sequence[SignalRecord]:
        """All PENDING records."""

    def list_closed_signals_chronological(self) -> Sequence[SignalRecord]:
        """Terminal records ordered by close time, oldest first."""

    def update_signal_terminal(
        self,
        *,
        signal_id: str,
        outcome: Outcome,
        exit_price: float,
        exit_reason: ExitReason,
        profit_pct: float,
        closed_at: datetime,
    ) -> bool:
        """Move a PENDING record to a terminal state. Returns False if it was not PENDING."""


class RecordStore(WeightStore, LearningCycleStore, SignalRecordStore, Protocol):
    """Everything the engine persists."""
