"""Tests for outcome statistics."""

from __future__ import annotations

import pytest

from signal_engine.tracking.stats import (
    compute_tracking_stats,
    records_to_frame,
    score_bucket_stats,
    trailing_win_rate,
)


@pytest.fixture
def history(make_record):
    """W L L W L (chronological) plus one pending signal."""
    return [
        make_record(0, "WON", score=85),
        make_record(1, "LOST", score=72, direction="SHORT"),
        make_record(2, "LOST", score=65),
        make_record(3, "WON", score=55, direction="SHORT"),
        make_record(4, "LOST", score=40),
        make_record(5, "PENDING", score=90),
    ]


def test_records_to_frame_orders_by_close_time(history) -> None:
    frame = records_to_frame(list(reversed(history)))
    assert frame["id"].tolist() == [r.id for r in history]
    assert frame["outcome"].iloc[-1] == "PENDING"


def test_tracking_stats(history) -> None:
    stats = compute_tracking_stats(history)

    assert stats.total_signals == 6
    assert stats.pending == 1
    assert (stats.wins, stats.losses) == (2, 3)
    assert stats.win_rate == pytest.approx(40.0)
    assert stats.avg_profit == pytest.approx(6.0)
    assert stats.avg_loss == pytest.approx(3.0)
    assert stats.total_profit_pct == pytest.approx(3.0)
    assert stats.max_consecutive_losses == 2
    assert stats.current_streak == -1
    assert stats.by_direction["LONG"].wins == 1
    assert stats.by_direction["LONG"].losses == 2
    assert stats.by_direction["SHORT"].win_rate == pytest.approx(50.0)


def test_tracking_stats_empty() -> None:
    stats = compute_tracking_stats([])
    assert stats.total_signals == 0
    assert stats.win_rate == 0.0
    assert stats.by_direction == {}


def test_score_buckets(history) -> None:
    buckets = {b.range: b for b in score_bucket_stats(history)}

    assert list(buckets) == ["80+", "70-79", "60-69", "50-59", "<50"]
    assert buckets["80+"].total == 2
    assert buckets["80+"].wins == 1
    assert buckets["80+"].pending == 1
    assert buckets["70-79"].losses == 1
    assert buckets["50-59"].win_rate == pytest.approx(100.0)
    assert buckets["<50"].avg_loss == pytest.approx(3.0)


def test_score_buckets_empty() -> None:
    assert all(b.total == 0 for b in score_bucket_stats([]))


def test_trailing_win_rate(history, make_record) -> None:
    assert trailing_win_rate(history, window=10) == (pytest.approx(40.0), 5)
    assert trailing_win_rate(history, window=2) == (pytest.approx(50.0), 2)
    assert trailing_win_rate([make_record(0, "PENDING")]) == (None, 0)
    assert trailing_win_rate([]) == (None, 0)
