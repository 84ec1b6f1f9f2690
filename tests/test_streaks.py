"""Tests for streak detection and the per-indicator learning rules."""

from __future__ import annotations

import pytest

from signal_engine.learning import INDICATOR_RULES, find_unprocessed_streak, supports_direction
from signal_engine.types import IndicatorKind


@pytest.fixture
def mixed(make_record):
    """L L W L L L W"""
    outcomes = ["LOST", "LOST", "WON", "LOST", "LOST", "LOST", "WON"]
    return [make_record(i, outcome) for i, outcome in enumerate(outcomes)]


class TestFindUnprocessedStreak:
    def test_finds_first_qualifying_run(self, mixed) -> None:
        streak = find_unprocessed_streak(mixed, "LOST")
        assert streak is not None
        assert (streak.start_index, streak.end_index, streak.count) == (3, 5, 3)
        assert [r.id for r in streak.records] == ["sig-003", "sig-004", "sig-005"]
        assert streak.ends_at == mixed[5].closed_at

    def test_cursor_excludes_processed_run(self, mixed) -> None:
        assert find_unprocessed_streak(mixed, "LOST", cursor=mixed[5].closed_at) is None

    def test_cursor_inside_run_shortens_it(self, make_record) -> None:
        records = [make_record(i, "LOST") for i in range(4)]
        assert find_unprocessed_streak(records, "LOST", cursor=records[1].closed_at) is None
        assert find_unprocessed_streak(records, "LOST", cursor=records[0].closed_at).count == 3

    def test_run_at_end_of_history(self, make_record) -> None:
        records = [make_record(0, "LOST")] + [make_record(i, "WON") for i in range(1, 5)]
        streak = find_unprocessed_streak(records, "WON")
        assert (streak.start_index, streak.end_index) == (1, 4)

    def test_short_runs_do_not_qualify(self, mixed) -> None:
        assert find_unprocessed_streak(mixed, "WON") is None
        assert find_unprocessed_streak(mixed, "LOST", min_length=4) is None
        assert find_unprocessed_streak(mixed, "LOST", min_length=2).start_index == 0

    def test_rejects_invalid_min_length(self, mixed) -> None:
        with pytest.raises(ValueError, match="min_length"):
            find_unprocessed_streak(mixed, "LOST", min_length=0)

    def test_empty_history(self) -> None:
        assert find_unprocessed_streak([], "LOST") is None


class TestRules:
    def test_every_indicator_has_a_rule(self) -> None:
        assert set(INDICATOR_RULES) == set(IndicatorKind)

    def test_missing_reading_is_unknown(self) -> None:
        for kind in IndicatorKind:
            assert supports_direction(kind, {}, "LONG") is None

    @pytest.mark.parametrize(
        "kind,value,long,short",
        [
            (IndicatorKind.RSI, 35.0, True, False),
            (IndicatorKind.RSI, 65.0, False, True),
            (IndicatorKind.RSI, 50.0, False, False),
            (IndicatorKind.STOCH_RSI, 25.0, True, False),
            (IndicatorKind.WILLIAMS_R, -20.0, False, True),
            (IndicatorKind.CCI, -80.0, True, False),
            (IndicatorKind.Z_SCORE, 2.0, False, True),
            (IndicatorKind.MACD, 0.4, True, False),
            (IndicatorKind.ICHIMOKU, -55.0, False, True),
            (IndicatorKind.EMA_ALIGNMENT, 75.0, True, False),
            (IndicatorKind.BOLLINGER, 0.9, False, True),
            (IndicatorKind.OBV_TREND, 0.8, True, False),
            (IndicatorKind.FEAR_GREED, 70.0, True, False),
            (IndicatorKind.FEAR_GREED, 30.0, False, True),
            (IndicatorKind.FUNDING_RATE, -12.0, False, True),
            (IndicatorKind.HL_VOLUME, 2.0, True, True),
            (IndicatorKind.HL_VOLUME, 1.2, False, False),
        ],
    )
    def test_threshold_rules(self, kind, value, long, short) -> None:
        snapshot = {kind.value: value}
        assert supports_direction(kind, snapshot, "LONG") is long
        assert supports_direction(kind, snapshot, "SHORT") is short

    def test_adx_follows_directional_indicators(self) -> None:
        bullish = {"adx": 32.0, "plus_di": 30.0, "minus_di": 12.0}
        assert supports_direction(IndicatorKind.ADX, bullish, "LONG") is True
        assert supports_direction(IndicatorKind.ADX, bullish, "SHORT") is False
        weak = {"adx": 18.0, "plus_di": 30.0, "minus_di": 12.0}
        assert supports_direction(IndicatorKind.ADX, weak, "LONG") is False

    def test_volume_ratio_follows_price_change(self) -> None:
        spike_down = {"volume_ratio": 2.5, "price_change": -1.2}
        assert supports_direction(IndicatorKind.VOLUME_RATIO, spike_down, "SHORT") is True
        assert supports_direction(IndicatorKind.VOLUME_RATIO, spike_down, "LONG") is False
        quiet = {"volume_ratio": 1.1, "price_change": -1.2}
        assert supports_direction(IndicatorKind.VOLUME_RATIO, quiet, "SHORT") is False
