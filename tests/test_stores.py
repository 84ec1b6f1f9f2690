"""Tests for the record stores.

Every store test runs against both the in-memory store and the SQLAlchemy
store on a throwaway SQLite file.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from signal_engine.config import StoreConfig
from signal_engine.errors import ConcurrentUpdateError, InvalidInputError
from signal_engine.signals.weights import default_weights
from signal_engine.storage import InMemoryRecordStore, SqlRecordStore
from signal_engine.types import CategoryScore, LearningCycle, MarketRegime, WeightAdjustment

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryRecordStore()
    sql_store = SqlRecordStore(config=StoreConfig(database_url=f"sqlite:///{tmp_path}/signals.db"))
    sql_store.ensure_schema()
    return sql_store


def _cycle(trigger: str = "consecutive_losses") -> LearningCycle:
    weights = default_weights()
    return LearningCycle(
        timestamp=BASE_TIME + timedelta(days=1),
        triggered_by=trigger,
        signals_analyzed=3,
        adjustments=(
            WeightAdjustment(
                indicator="rsi",
                old_weight=6.0,
                new_weight=5.1,
                change_percent=-15.0,
                reason="wrong in 3/3 losses (100%)",
            ),
        ),
        weights_snapshot=weights,
        streak_length=3,
    )


# ========== Weights ==========


class TestWeightState:
    def test_weights_unset_initially(self, store) -> None:
        assert store.get_weights() is None

    def test_initial_state_uses_defaults(self, store) -> None:
        state = store.load_weight_state()
        assert state.version == 0
        assert dict(state.weights) == default_weights()
        assert state.loss_cursor is None
        assert state.win_cursor is None

    def test_set_weights_bumps_version(self, store) -> None:
        weights = default_weights()
        weights["rsi"] = 5.0
        weights["macd"] = 7.0
        store.set_weights(weights=weights)

        assert store.get_weights() == pytest.approx(weights)
        assert store.load_weight_state().version == 1

    def test_commit_with_matching_version(self, store) -> None:
        weights = default_weights()
        cursor = BASE_TIME + timedelta(hours=5)

        state = store.commit_weight_state(
            expected_version=0, weights=weights, loss_cursor=cursor, win_cursor=None, cycle=_cycle()
        )

        assert state.version == 1
        loaded = store.load_weight_state()
        assert loaded.version == 1
        assert loaded.loss_cursor == cursor
        assert loaded.win_cursor is None
        assert store.get_weights() == pytest.approx(weights)
        assert len(store.list_learning_cycles()) == 1

    def test_commit_with_stale_version_changes_nothing(self, store) -> None:
        store.set_weights(weights=default_weights())

        with pytest.raises(ConcurrentUpdateError, match="expected 0, found 1") as exc_info:
            store.commit_weight_state(
                expected_version=0,
                weights=default_weights(),
                loss_cursor=BASE_TIME,
                win_cursor=None,
                cycle=_cycle(),
            )

        assert exc_info.value.actual_version == 1
        assert store.load_weight_state().loss_cursor is None
        assert store.list_learning_cycles() == []


# ========== Learning cycles ==========


class TestLearningCycles:
    def test_cycle_round_trip(self, store) -> None:
        cycle = _cycle()
        store.append_learning_cycle(cycle=cycle)
        assert list(store.list_learning_cycles()) == [cycle]

    def test_cycles_listed_oldest_first_with_limit(self, store) -> None:
        for trigger in ("consecutive_losses", "consecutive_wins", "manual"):
            store.append_learning_cycle(cycle=_cycle(trigger))

        assert [c.triggered_by for c in store.list_learning_cycles()] == [
            "consecutive_losses",
            "consecutive_wins",
            "manual",
        ]
        assert [c.triggered_by for c in store.list_learning_cycles(limit=2)] == ["consecutive_wins", "manual"]


# ========== Signal records ==========


class TestSignalRecords:
    def test_pending_record_round_trip(self, store, make_record) -> None:
        record = make_record(0, "PENDING", snapshot={"rsi": 28.5, "macd": 0.3})
        signal = replace(
            record.signal,
            breakdown={"momentum": CategoryScore(direction=12.5, score=12.5, max=35.0)},
            regime=MarketRegime.BULL_TREND,
            agreement=0.75,
        )
        record = replace(record, signal=signal)

        store.add_signal(record=record)

        (loaded,) = store.list_pending_signals()
        assert loaded == record
        assert loaded.signal.timestamp.tzinfo is not None
        assert store.list_closed_signals_chronological() == []

    def test_terminal_update_applies_once(self, store, make_record) -> None:
        record = make_record(0, "PENDING")
        store.add_signal(record=record)
        closed_at = BASE_TIME + timedelta(hours=3)

        first = store.update_signal_terminal(
            signal_id=record.id,
            outcome="WON",
            exit_price=106.0,
            exit_reason="TAKE_PROFIT",
            profit_pct=6.0,
            closed_at=closed_at,
        )
        second = store.update_signal_terminal(
            signal_id=record.id,
            outcome="LOST",
            exit_price=97.0,
            exit_reason="STOP_LOSS",
            profit_pct=-3.0,
            closed_at=closed_at + timedelta(hours=1),
        )

        assert first is True
        assert second is False
        assert store.list_pending_signals() == []
        (closed,) = store.list_closed_signals_chronological()
        assert closed.outcome == "WON"
        assert closed.exit_reason == "TAKE_PROFIT"
        assert closed.profit_pct == pytest.approx(6.0)
        assert closed.closed_at == closed_at

    def test_unknown_signal_update(self, store) -> None:
        assert not store.update_signal_terminal(
            signal_id="missing",
            outcome="LOST",
            exit_price=1.0,
            exit_reason="MANUAL",
            profit_pct=-1.0,
            closed_at=BASE_TIME,
        )

    def test_closed_records_ordered_by_close_time(self, store, make_record) -> None:
        early = make_record(5, "LOST")
        late = replace(make_record(1, "WON"), closed_at=BASE_TIME + timedelta(hours=10))
        for record in (late, early, make_record(2, "PENDING")):
            store.add_signal(record=record)

        assert [r.id for r in store.list_closed_signals_chronological()] == [early.id, late.id]
        assert [r.id for r in store.list_pending_signals()] == ["sig-002"]


def test_memory_store_rejects_duplicate_ids(make_record) -> None:
    store = InMemoryRecordStore()
    store.add_signal(record=make_record(0, "PENDING"))
    with pytest.raises(InvalidInputError, match="duplicate"):
        store.add_signal(record=make_record(0, "PENDING"))


def test_sql_schema_is_idempotent(tmp_path) -> None:
    store = SqlRecordStore(config=StoreConfig(database_url=f"sqlite:///{tmp_path}/signals.db"))
    store.ensure_schema()
    store.set_weights(weights=default_weights())
    store.ensure_schema()
    assert store.load_weight_state().version == 1
