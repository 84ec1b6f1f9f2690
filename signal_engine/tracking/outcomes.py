"""Signal outcome state machine.

Each record moves PENDING -> WON or PENDING -> LOST exactly once. Applying a
price observation to a terminal record is a no-op, so repeated delivery of the
same observation is safe.

Usage:
    from signal_engine.tracking.outcomes import check_outcomes, apply_transition

    transitions = check_outcomes(store.list_pending_signals(), {"BTC": 64_250.0})
    for t in transitions:
        store.update_signal_terminal(signal_id=t.signal_id, ...)
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional

from signal_engine.config import TrackerConfig
from signal_engine.errors import InvalidInputError
from signal_engine.tracking.momentum import DualTimeframeMomentum, confirm_early_exit
from signal_engine.types import Direction, ExitReason, Outcome, OutcomeTransition, SignalRecord

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def calculate_profit_pct(direction: Direction, entry_price: float, price: float) -> float:
    """Signed percent move in the trade's favour."""
    if entry_price <= 0:
        raise InvalidInputError(f"entry_price must be > 0, got {entry_price}")
    change = (price - entry_price) / entry_price * 100.0
    return -change if direction == "SHORT" else change


def _transition(
    record: SignalRecord,
    outcome: Outcome,
    price: float,
    reason: ExitReason,
    profit: float,
    now: datetime,
) -> OutcomeTransition:
    logger.info(f"{record.coin} {record.direction} {record.id}: {outcome} via {reason} ({profit:+.2f}%)")
    return OutcomeTransition(
        signal_id=record.id,
        coin=record.coin,
        outcome=outcome,
        exit_price=price,
        exit_reason=reason,
        profit_pct=round(profit, 4),
        closed_at=now,
    )


def check_outcome(
    record: SignalRecord,
    price: float,
    *,
    momentum: Optional[DualTimeframeMomentum] = None,
    now: Optional[datetime] = None,
    config: TrackerConfig | None = None,
) -> Optional[OutcomeTransition]:
    """
    Evaluate one price observation against a record.

    Rules (LONG; SHORT is mirrored):
        - price <= stop loss: LOST / STOP_LOSS
        - price >= take profit: WON / TAKE_PROFIT (LOST / STOP_LOSS if the
          realized profit is negative, which only a malformed record allows)
        - gain >= early_exit_pct and both momentum timeframes reversing:
          WON / TARGET_PCT; otherwise keep running toward the full target
        - older than timeout_hours (when configured): TIMEOUT at market

    Returns:
        OutcomeTransition, or None when the record stays PENDING (including
        every observation on an already terminal record)

    Raises:
        InvalidInputError: If price is not positive
    """
    cfg = config or TrackerConfig()
    if record.is_terminal or record.direction == "HOLD":
        return None
    if price <= 0:
        raise InvalidInputError(f"price must be > 0, got {price}")

    now = _as_utc(now or datetime.now(timezone.utc))
    age = now - _as_utc(record.signal.timestamp)
    signal = record.signal
    profit = calculate_profit_pct(signal.direction, signal.entry_price, price)

    # Stale-entry guard: a huge move minutes after entry usually means a bad entry price.
    if age < timedelta(minutes=cfg.stale_entry_minutes) and abs(profit) > cfg.stale_profit_pct:
        logger.warning(f"Skipping {record.coin} {record.id}: {profit:+.2f}% after {age} looks like a stale entry")
        return None

    if signal.direction == "LONG":
        stop_hit = price <= signal.stop_loss
        target_hit = price >= signal.take_profit
    else:
        stop_hit = price >= signal.stop_loss
        target_hit = price <= signal.take_profit

    if stop_hit:
        return _transition(record, "LOST", price, "STOP_LOSS", profit, now)
    if target_hit:
        if profit < 0:
            return _transition(record, "LOST", price, "STOP_LOSS", profit, now)
        return _transition(record, "WON", price, "TAKE_PROFIT", profit, now)

    if profit >= cfg.early_exit_pct:
        primary = momentum.primary if momentum else None
        secondary = momentum.secondary if momentum else None
        if confirm_early_exit(signal.direction, primary, secondary):
            return _transition(record, "WON", price, "TARGET_PCT", profit, now)
        logger.debug(f"{record.coin} {record.id}: +{profit:.2f}% but momentum not reversing on both timeframes")

    if cfg.timeout_hours is not None and age >= timedelta(hours=cfg.timeout_hours):
        outcome: Outcome = "WON" if profit > 0 else "LOST"
        return _transition(record, outcome, price, "TIMEOUT", profit, now)

    return None


def check_outcomes(
    open_records: Iterable[SignalRecord],
    current_prices: Mapping[str, float],
    *,
    momentum: Optional[Mapping[str, DualTimeframeMomentum]] = None,
    now: Optional[datetime] = None,
    config: TrackerConfig | None = None,
) -> list[OutcomeTransition]:
    """Evaluate all open records; coins without a current price are skipped."""
    momentum = momentum or {}
    transitions = []
    for record in open_records:
        price = current_prices.get(record.coin)
        if price is None:
            logger.debug(f"No price for {record.coin}, skipping {record.id}")
            continue
        transition = check_outcome(record, price, momentum=momentum.get(record.coin), now=now, config=config)
        if transition is not None:
            transitions.append(transition)
    return transitions


def apply_transition(record: SignalRecord, transition: OutcomeTransition) -> SignalRecord:
    """Return the record after the transition. Terminal records and foreign transitions are unchanged."""
    if transition.signal_id != record.id:
        return record
    return record.close(
        outcome=transition.outcome,
        exit_price=transition.exit_price,
        exit_reason=transition.exit_reason,
        profit_pct=transition.profit_pct,
        closed_at=transition.closed_at,
    )


def close_manually(record: SignalRecord, price: float, now: Optional[datetime] = None) -> Optional[OutcomeTransition]:
    """Operator close at `price`. None for records that are already terminal."""
    if record.is_terminal or record.direction == "HOLD":
        return None
    if price <= 0:
        raise InvalidInputError(f"price must be > 0, got {price}")

    now = _as_utc(now or datetime.now(timezone.utc))
    profit = calculate_profit_pct(record.direction, record.signal.entry_price, price)
    return _transition(record, "WON" if profit > 0 else "LOST", price, "MANUAL", profit, now)
