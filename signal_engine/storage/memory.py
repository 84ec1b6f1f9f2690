from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Mapping, Optional, Sequence

from signal_engine.errors import ConcurrentUpdateError, InvalidInputError
from signal_engine.persistence.interfaces import RecordStore
from signal_engine.signals.weights import default_weights
from signal_engine.types import ExitReason, LearningCycle, Outcome, SignalRecord, WeightState

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """Thread-safe in-process record store.

    Useful for tests, scripts and single-process deployments. All state lives
    behind one lock, so commit_weight_state is atomic.
    """

    def __init__(
        self,
        *,
        weights: Optional[Mapping[str, float]] = None,
        records: Sequence[SignalRecord] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._state = WeightState(weights=dict(weights) if weights is not None else default_weights())
        self._has_weights = weights is not None
        self._records: dict[str, SignalRecord] = {}
        self._cycles: list[LearningCycle] = []
        for record in records:
            self._records[record.id] = record

    # -- weights --------------------------------------------------------

    def get_weights(self) -> Optional[Mapping[str, float]]:
        with self._lock:
            return dict(self._state.weights) if self._has_weights else None

    def set_weights(self, *, weights: Mapping[str, float]) -> None:
        with self._lock:
            self._state = replace(self._state, weights=dict(weights), version=self._state.version + 1)
            self._has_weights = True

    def load_weight_state(self) -> WeightState:
        with self._lock:
            return replace(self._state, weights=dict(self._state.weights))

    def commit_weight_state(
        self,
        *,
        expected_version: int,
        weights: Mapping[str, float],
        loss_cursor: datetime | None,
        win_cursor: datetime | None,
        cycle: LearningCycle | None = None,
    ) -> WeightState:
        with self._lock:
            if self._state.version != expected_version:
                raise ConcurrentUpdateError(expected_version, self._state.version)
            self._state = WeightState(
                weights=dict(weights),
                version=expected_version + 1,
                loss_cursor=loss_cursor,
                win_cursor=win_cursor,
            )
            self._has_weights = True
            if cycle is not None:
                self._cycles.append(cycle)
            return replace(self._state, weights=dict(self._state.weights))

    # -- learning cycles ------------------------------------------------

    def append_learning_cycle(self, *, cycle: LearningCycle) -> None:
        with self._lock:
            self._cycles.append(cycle)

    def list_learning_cycles(self, *, limit: int = 100) -> Sequence[LearningCycle]:
        with self._lock:
            return list(self._cycles[-limit:])

    # -- signal records -------------------------------------------------

    def add_signal(self, *, record: SignalRecord) -> None:
        with self._lock:
            if record.id in self._records:
                raise InvalidInputError(f"duplicate signal id: {record.id}")
            self._records[record.id] = record

    def list_pending_signals(self) -> Sequence[SignalRecord]:
        with self._lock:
            return [r for r in self._records.values() if r.outcome == "PENDING"]

    def list_closed_signals_chronological(self) -> Sequence[SignalRecord]:
        with self._lock:
            closed = [r for r in self._records.values() if r.is_terminal]
        return sorted(closed, key=lambda r: (r.closed_at, r.id))

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
        with self._lock:
            record = self._records.get(signal_id)
            if record is None or record.is_terminal:
                logger.debug(f"Ignoring terminal update for {signal_id}: not pending")
                return False
            self._records[signal_id] = record.close(
                outcome=outcome,
                exit_price=exit_price,
                exit_reason=exit_reason,
                profit_pct=profit_pct,
                closed_at=closed_at,
            )
            return True
