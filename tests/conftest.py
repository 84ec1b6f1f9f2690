"""Shared test fixtures for pytest.

Provides bar series, signal record factories and record stores used across
multiple test files.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping, Optional, Sequence

import pytest

from signal_engine.storage import InMemoryRecordStore
from signal_engine.types import Bar, SignalOutput, SignalRecord

BASE_TIME = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)


def build_bars(
    closes: Sequence[float],
    *,
    volume: float = 1000.0,
    spread: float = 0.005,
    start: datetime = BASE_TIME,
) -> list[Bar]:
    """Hourly bars with high/low `spread` around the close and open at the previous close."""
    bars = []
    for i, close in enumerate(closes):
        bars.append(
            Bar(
                open=closes[i - 1] if i else close,
                high=close * (1 + spread),
                low=close * (1 - spread),
                close=close,
                volume=volume,
                timestamp=start + timedelta(hours=i),
            )
        )
    return bars


def geometric_closes(count: int, step_pct: float, start: float = 100.0) -> list[float]:
    return [start * (1 + step_pct / 100.0) ** i for i in range(count)]


def build_record(
    idx: int,
    outcome: str = "LOST",
    *,
    direction: str = "LONG",
    snapshot: Optional[Mapping[str, float]] = None,
    coin: str = "BTC",
    score: int = 60,
    entry: float = 100.0,
) -> SignalRecord:
    """A signal opened at BASE_TIME + idx hours and (unless PENDING) closed 30 minutes later."""
    opened = BASE_TIME + timedelta(hours=idx)
    long = direction == "LONG"
    signal = SignalOutput(
        coin=coin,
        direction=direction,
        score=score,
        bias=10.0 if long else -10.0,
        entry_price=entry,
        stop_loss=entry * (0.97 if long else 1.03),
        take_profit=entry * (1.06 if long else 0.94),
        risk_reward_ratio=2.0,
        breakdown={},
        snapshot=dict(snapshot or {}),
        timestamp=opened,
    )
    record_id = f"sig-{idx:03d}"
    if outcome == "PENDING":
        return SignalRecord(id=record_id, signal=signal)

    won = outcome == "WON"
    return SignalRecord(
        id=record_id,
        signal=signal,
        outcome=outcome,
        exit_price=signal.take_profit if won else signal.stop_loss,
        exit_reason="TAKE_PROFIT" if won else "STOP_LOSS",
        profit_pct=6.0 if won else -3.0,
        closed_at=opened + timedelta(minutes=30),
    )


@pytest.fixture
def make_bars() -> Callable[..., list[Bar]]:
    return build_bars


@pytest.fixture
def make_record() -> Callable[..., SignalRecord]:
    return build_record


@pytest.fixture
def rising_bars() -> list[Bar]:
    """100 hourly bars, each close 1.5% above the previous one."""
    return build_bars(geometric_closes(100, 1.5))


@pytest.fixture
def falling_bars() -> list[Bar]:
    """100 hourly bars, each close 1.5% below the previous one."""
    return build_bars(geometric_closes(100, -1.5))


@pytest.fixture
def flat_bars() -> list[Bar]:
    """100 identical bars with no range at all."""
    return build_bars([100.0] * 100, spread=0.0)


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()
