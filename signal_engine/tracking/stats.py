"""Aggregate statistics over signal records.

Built on pandas: records are flattened into a DataFrame once and every metric
is a groupby/filter over it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import pandas as pd

from signal_engine.types import SignalRecord

SCORE_BUCKETS: tuple[tuple[str, int, int], ...] = (
    ("80+", 80, 100),
    ("70-79", 70, 79),
    ("60-69", 60, 69),
    ("50-59", 50, 59),
    ("<50", 0, 49),
)


@dataclass(frozen=True)
class DirectionStats:
    wins: int
    losses: int
    win_rate: float


@dataclass(frozen=True)
class TrackingStats:
    total_signals: int
    pending: int
    wins: int
    losses: int
    win_rate: float  # percent of closed signals
    avg_profit: float  # mean profit of wins, percent
    avg_loss: float  # mean absolute loss of losses, percent
    total_profit_pct: float
    max_consecutive_losses: int
    current_streak: int  # +n wins / -n losses, most recent run
    by_direction: dict[str, DirectionStats] = field(default_factory=dict)


@dataclass(frozen=True)
class ScoreBucketStats:
    range: str
    min_score: int
    max_score: int
    total: int
    wins: int
    losses: int
    pending: int
    win_rate: float
    avg_profit: float
    avg_loss: float


def records_to_frame(records: Iterable[SignalRecord]) -> pd.DataFrame:
    """Flatten records into one row each, ordered by close time (pending last)."""
    rows = [
        {
            "id": r.id,
            "coin": r.coin,
            "direction": r.direction,
            "score": r.signal.score,
            "outcome": r.outcome,
            "profit_pct": r.profit_pct,
            "opened_at": r.signal.timestamp,
            "closed_at": r.closed_at,
        }
        for r in records
    ]
    frame = pd.DataFrame(
        rows, columns=["id", "coin", "direction", "score", "outcome", "profit_pct", "opened_at", "closed_at"]
    )
    if frame.empty:
        return frame
    frame["profit_pct"] = pd.to_numeric(frame["profit_pct"], errors="coerce").fillna(0.0)
    return frame.sort_values(["closed_at", "opened_at", "id"], na_position="last", kind="mergesort").reset_index(
        drop=True
    )


def _win_rate(wins: int, losses: int) -> float:
    closed = wins + losses
    return round(wins / closed * 100.0, 2) if closed else 0.0


def _run_lengths(outcomes: Sequence[str]) -> tuple[int, int]:
    """(longest LOST run, signed length of the final run)."""
    longest = 0
    run = 0
    current = 0
    for outcome in outcomes:
        if outcome == "LOST":
            run += 1
            longest = max(longest, run)
            current = -run
        else:
            run = 0
            current = current + 1 if current > 0 else 1
    return longest, current


def compute_tracking_stats(records: Iterable[SignalRecord]) -> TrackingStats:
    frame = records_to_frame(records)
    if frame.empty:
        return TrackingStats(0, 0, 0, 0, 0.0, 0.0, 0.0, 0.0, 0, 0)

    closed = frame[frame["outcome"] != "PENDING"]
    won = closed[closed["outcome"] == "WON"]
    lost = closed[closed["outcome"] == "LOST"]

    by_direction = {}
    for direction, group in closed.groupby("direction"):
        wins = int((group["outcome"] == "WON").sum())
        losses = int((group["outcome"] == "LOST").sum())
        by_direction[str(direction)] = DirectionStats(wins=wins, losses=losses, win_rate=_win_rate(wins, losses))

    longest_losses, current = _run_lengths(closed["outcome"].tolist())
    return TrackingStats(
        total_signals=len(frame),
        pending=int((frame["outcome"] == "PENDING").sum()),
        wins=len(won),
        losses=len(lost),
        win_rate=_win_rate(len(won), len(lost)),
        avg_profit=round(float(won["profit_pct"].mean()), 2) if len(won) else 0.0,
        avg_loss=round(float(lost["profit_pct"].abs().mean()), 2) if len(lost) else 0.0,
        total_profit_pct=round(float(closed["profit_pct"].sum()), 2),
        max_consecutive_losses=longest_losses,
        current_streak=current,
        by_direction=by_direction,
    )


def score_bucket_stats(records: Iterable[SignalRecord]) -> list[ScoreBucketStats]:
    """Performance grouped by score range (80+, 70-79, 60-69, 50-59, <50)."""
    frame = records_to_frame(records)
    buckets = []
    for label, low, high in SCORE_BUCKETS:
        group = frame[(frame["score"] >= low) & (frame["score"] <= high)] if not frame.empty else frame
        won = group[group["outcome"] == "WON"]
        lost = group[group["outcome"] == "LOST"]
        buckets.append(
            ScoreBucketStats(
                range=label,
                min_score=low,
                max_score=high,
                total=len(group),
                wins=len(won),
                losses=len(lost),
                pending=int((group["outcome"] == "PENDING").sum()) if len(group) else 0,
                win_rate=_win_rate(len(won), len(lost)),
                avg_profit=round(float(won["profit_pct"].mean()), 2) if len(won) else 0.0,
                avg_loss=round(float(lost["profit_pct"].abs().mean()), 2) if len(lost) else 0.0,
            )
        )
    return buckets


def trailing_win_rate(records: Iterable[SignalRecord], window: int = 10) -> tuple[Optional[float], int]:
    """Win rate (percent) over the last `window` closed records and the sample size used.

    Returns (None, 0) when nothing is closed.
    """
    frame = records_to_frame(records)
    if frame.empty:
        return None, 0
    closed = frame[frame["outcome"] != "PENDING"].tail(window)
    if closed.empty:
        return None, 0
    wins = int((closed["outcome"] == "WON").sum())
    return _win_rate(wins, len(closed) - wins), len(closed)
