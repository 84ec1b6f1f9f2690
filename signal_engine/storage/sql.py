from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from signal_engine.config import StoreConfig
from signal_engine.errors import ConcurrentUpdateError
from signal_engine.persistence.interfaces import RecordStore
from signal_engine.signals.weights import default_weights
from signal_engine.types import (
    CategoryScore,
    ExitReason,
    LearningCycle,
    MarketRegime,
    Outcome,
    SignalOutput,
    SignalRecord,
    WeightAdjustment,
    WeightState,
)

logger = logging.getLogger(__name__)

STATE_ROW_ID = 1


def _iso(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def _parse_dt(value: str | None) -> datetime | None:
    return None if value is None else datetime.fromisoformat(value)


def signal_from_dict(payload: Mapping[str, Any]) -> SignalOutput:
    """Inverse of SignalOutput.to_dict()."""
    return SignalOutput(
        coin=payload["coin"],
        direction=payload["direction"],
        score=int(payload["score"]),
        bias=float(payload["bias"]),
        entry_price=float(payload["entry_price"]),
        stop_loss=float(payload["stop_loss"]),
        take_profit=float(payload["take_profit"]),
        risk_reward_ratio=float(payload["risk_reward_ratio"]),
        breakdown={name: CategoryScore(**values) for name, values in payload["breakdown"].items()},
        snapshot={k: float(v) for k, v in payload["snapshot"].items()},
        timestamp=datetime.fromisoformat(payload["timestamp"]),
        regime=MarketRegime(payload.get("regime", MarketRegime.UNKNOWN.value)),
        agreement=float(payload.get("agreement", 1.0)),
    )


class SqlRecordStore(RecordStore):
    """SQLAlchemy-backed record store (SQLite or PostgreSQL).

    Statements are plain `text()` SQL. JSON payloads are stored as text and
    datetimes as ISO-8601 strings so the schema stays dialect-neutral.
    """

    def __init__(self, *, config: StoreConfig) -> None:
        self._config = config
        self._engine: Engine | None = None

    def _get_engine(self) -> Engine:
        if self._engine is None:
            # Do not log the URL (it may contain secrets).
            self._engine = create_engine(self._config.database_url, echo=False, pool_pre_ping=True)
        return self._engine

    def ensure_schema(self) -> None:
        """Create tables and the singleton weight-state row if missing."""
        engine = self._get_engine()
        serial = "BIGSERIAL PRIMARY KEY" if engine.dialect.name == "postgresql" else "INTEGER PRIMARY KEY AUTOINCREMENT"

        with engine.begin() as conn:
            conn.execute(
                text(
                    """
                    CREATE TABLE IF NOT EXISTS signals (
                        id TEXT PRIMARY KEY,
                        coin TEXT NOT NULL,
                        direction TEXT NOT NULL,
                        score INTEGER NOT NULL,
                        payload TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        outcome TEXT NOT NULL DEFAULT 'PENDING',
                        exit_price DOUBLE PRECISION,
                        exit_reason TEXT,
                        profit_pct DOUBLE PRECISION,
                        closed_at TEXT
                    )
                    """
                )
            )
            conn.execute(
                text(
                    """
                    CREATE TABLE IF NOT EXISTS weight_state (
                        id INTEGER PRIMARY KEY,
                        weights TEXT,
                        version INTEGER NOT NULL DEFAULT 0,
                        loss_cursor TEXT,
                        win_cursor TEXT
                    )
                    """
                )
            )
            conn.execute(
                text(
                    f"""
                    CREATE TABLE IF NOT EXISTS learning_cycles (
                        id {serial},
                        created_at TEXT NOT NULL,
                        triggered_by TEXT NOT NULL,
                        signals_analyzed INTEGER NOT NULL,
                        streak_length INTEGER NOT NULL DEFAULT 0,
                        adjustments TEXT NOT NULL,
                        weights_snapshot TEXT NOT NULL
                    )
                    """
                )
            )
            row = conn.execute(
                text("SELECT id FROM weight_state WHERE id = :id"), {"id": STATE_ROW_ID}
            ).fetchone()
            if row is None:
                conn.execute(
                    text("INSERT INTO weight_state (id, weights, version) VALUES (:id, NULL, 0)"),
                    {"id": STATE_ROW_ID},
                )

    # -- weights --------------------------------------------------------

    def get_weights(self) -> Optional[Mapping[str, float]]:
        with self._get_engine().begin() as conn:
            row = conn.execute(
                text("SELECT weights FROM weight_state WHERE id = :id"), {"id": STATE_ROW_ID}
            ).fetchone()
        if row is None or row[0] is None:
            return None
        return {k: float(v) for k, v in json.loads(row[0]).items()}

    def set_weights(self, *, weights: Mapping[str, float]) -> None:
        with self._get_engine().begin() as conn:
            conn.execute(
                text("UPDATE weight_state SET weights = :weights, version = version + 1 WHERE id = :id"),
                {"weights": json.dumps(dict(weights)), "id": STATE_ROW_ID},
            )

    def load_weight_state(self) -> WeightState:
        with self._get_engine().begin() as conn:
            row = conn.execute(
                text("SELECT weights, version, loss_cursor, win_cursor FROM weight_state WHERE id = :id"),
                {"id": STATE_ROW_ID},
            ).fetchone()
        if row is None:
            return WeightState(weights=default_weights())

        weights = json.loads(row[0]) if row[0] is not None else default_weights()
        return WeightState(
            weights={k: float(v) for k, v in weights.items()},
            version=int(row[1]),
            loss_cursor=_parse_dt(row[2]),
            win_cursor=_parse_dt(row[3]),
        )

    def commit_weight_state(
        self,
        *,
        expected_version: int,
        weights: Mapping[str, float],
        loss_cursor: datetime | None,
        win_cursor: datetime | None,
        cycle: LearningCycle | None = None,
    ) -> WeightState:
        # Version check, weight update and cycle insert share one transaction.
        with self._get_engine().begin() as conn:
            result = conn.execute(
                text(
                    """
                    UPDATE weight_state
                    SET weights = :weights,
                        version = :new_version,
                        loss_cursor = :loss_cursor,
                        win_cursor = :win_cursor
                    WHERE id = :id AND version = :expected_version
                    """
                ),
                {
                    "weights": json.dumps(dict(weights)),
                    "new_version": expected_version + 1,
                    "loss_cursor": _iso(loss_cursor),
                    "win_cursor": _iso(win_cursor),
                    "id": STATE_ROW_ID,
                    "expected_version": expected_version,
                },
            )
            if result.rowcount != 1:
                row = conn.execute(
                    text("SELECT version FROM weight_state WHERE id = :id"), {"id": STATE_ROW_ID}
                ).fetchone()
                raise ConcurrentUpdateError(expected_version, None if row is None else int(row[0]))
            if cycle is not None:
                self._insert_cycle(conn, cycle)

        return WeightState(
            weights=dict(weights),
            version=expected_version + 1,
            loss_cursor=loss_cursor,
            win_cursor=win_cursor,
        )

    # -- learning cycles ------------------------------------------------

    def _insert_cycle(self, conn: Any, cycle: LearningCycle) -> None:
        conn.execute(
            text(
                """
                INSERT INTO learning_cycles (
                    created_at, triggered_by, signals_analyzed, streak_length, adjustments, weights_snapshot
                ) VALUES (
                    :created_at, :triggered_by, :signals_analyzed, :streak_length, :adjustments, :weights_snapshot
                )
                """
            ),
            {
                "created_at": _iso(cycle.timestamp),
                "triggered_by": cycle.triggered_by,
                "signals_analyzed": cycle.signals_analyzed,
                "streak_length": cycle.streak_length,
                "adjustments": json.dumps([a.to_dict() for a in cycle.adjustments]),
                "weights_snapshot": json.dumps(dict(cycle.weights_snapshot)),
            },
        )

    def append_learning_cycle(self, *, cycle: LearningCycle) -> None:
        with self._get_engine().begin() as conn:
            self._insert_cycle(conn, cycle)

    def list_learning_cycles(self, *, limit: int = 100) -> Sequence[LearningCycle]:
        with self._get_engine().begin() as conn:
            rows = conn.execute(
                text(
                    """
                    SELECT created_at, triggered_by, signals_analyzed, streak_length, adjustments, weights_snapshot
                    FROM learning_cycles
                    ORDER BY id DESC
                    LIMIT :limit
                    """
                ),
                {"limit": limit},
            ).fetchall()

        cycles = [
            LearningCycle(
                timestamp=datetime.fromisoformat(row[0]),
                triggered_by=row[1],
                signals_analyzed=int(row[2]),
                streak_length=int(row[3]),
                adjustments=tuple(WeightAdjustment(**a) for a in json.loads(row[4])),
                weights_snapshot=json.loads(row[5]),
            )
            for row in rows
        ]
        return list(reversed(cycles))

    # -- signal records -------------------------------------------------

    def add_signal(self, *, record: SignalRecord) -> None:
        signal = record.signal
        with self._get_engine().begin() as conn:
            conn.execute(
                text(
                    """
                    INSERT INTO signals (
                        id, coin, direction, score, payload, created_at,
                        outcome, exit_price, exit_reason, profit_pct, closed_at
                    ) VALUES (
                        :id, :coin, :direction, :score, :payload, :created_at,
                        :outcome, :exit_price, :exit_reason, :profit_pct, :closed_at
                    )
                    """
                ),
                {
                    "id": record.id,
                    "coin": signal.coin,
                    "direction": signal.direction,
                    "score": signal.score,
                    "payload": json.dumps(signal.to_dict()),
                    "created_at": _iso(signal.timestamp),
                    "outcome": record.outcome,
                    "exit_price": record.exit_price,
                    "exit_reason": record.exit_reason,
                    "profit_pct": record.profit_pct,
                    "closed_at": _iso(record.closed_at),
                },
            )

    def _select_records(self, where: str, order_by: str) -> list[SignalRecord]:
        with self._get_engine().begin() as conn:
            rows = conn.execute(
                text(
                    f"""
                    SELECT id, payload, outcome, exit_price, exit_reason, profit_pct, closed_at
                    FROM signals
                    WHERE {where}
                    ORDER BY {order_by}
                    """
                )
            ).fetchall()

        return [
            SignalRecord(
                id=row[0],
                signal=signal_from_dict(json.loads(row[1])),
                outcome=row[2],
                exit_price=None if row[3] is None else float(row[3]),
                exit_reason=row[4],
                profit_pct=None if row[5] is None else float(row[5]),
                closed_at=_parse_dt(row[6]),
            )
            for row in rows
        ]

    def list_pending_signals(self) -> Sequence[SignalRecord]:
        return self._select_records("outcome = 'PENDING'", "created_at ASC, id ASC")

    def list_closed_signals_chronological(self) -> Sequence[SignalRecord]:
        return self._select_records("outcome <> 'PENDING'", "closed_at ASC, id ASC")

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
        # The PENDING guard makes repeated delivery a no-op.
        with self._get_engine().begin() as conn:
            result = conn.execute(
                text(
                    """
                    UPDATE signals
                    SET outcome = :outcome,
                        exit_price = :exit_price,
                        exit_reason = :exit_reason,
                        profit_pct = :profit_pct,
                        closed_at = :closed_at
                    WHERE id = :id AND outcome = 'PENDING'
                    """
                ),
                {
                    "id": signal_id,
                    "outcome": outcome,
                    "exit_price": exit_price,
                    "exit_reason": exit_reason,
                    "profit_pct": profit_pct,
                    "closed_at": _iso(closed_at),
                },
            )
        updated = result.rowcount == 1
        if not updated:
            logger.debug(f"Ignoring terminal update for {signal_id}: not pending")
        return updated
