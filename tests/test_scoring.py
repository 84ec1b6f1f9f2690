"""Tests for the scoring engine."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from signal_engine.config import ScoringConfig
from signal_engine.errors import InvalidInputError
from signal_engine.indicators.analysis import analyze_bars
from signal_engine.regime import MarketContext, classify_regime
from signal_engine.signals import (
    agreement_factor,
    category_multipliers,
    explain_signal,
    filter_signals,
    generate_signals,
    score,
    score_categories,
    sort_signals_by_score,
)
from signal_engine.signals.weights import default_weights
from signal_engine.types import CATEGORIES, CategoryScore, MarketRegime, RegimeAdjustments


class TestScore:
    def test_uptrend_goes_long(self, rising_bars) -> None:
        signal = score(rising_bars, "BTC")

        assert signal.direction == "LONG"
        assert 0 <= signal.score <= 100
        assert signal.score >= 25
        assert signal.breakdown["trend"].direction > 0
        assert signal.breakdown["volume"].direction > 0
        assert signal.snapshot["ema_alignment"] == 100.0
        assert signal.snapshot["ichimoku"] == 100.0
        assert signal.entry_price == rising_bars[-1].close
        assert signal.stop_loss < signal.entry_price < signal.take_profit

    def test_downtrend_goes_short(self, falling_bars) -> None:
        signal = score(falling_bars, "ETH")
        assert signal.direction == "SHORT"
        assert signal.breakdown["trend"].direction < 0
        assert signal.take_profit < signal.entry_price < signal.stop_loss

    def test_flat_market_holds(self, flat_bars) -> None:
        signal = score(flat_bars, "SOL")
        assert signal.direction == "HOLD"
        assert signal.score == 0
        assert signal.stop_loss == signal.take_profit == signal.entry_price

    def test_sentiment_alone_cannot_clear_threshold(self, flat_bars) -> None:
        """Extreme fear is bullish, but one 8-point indicator scores below 25."""
        signal = score(flat_bars, "SOL", sentiment=0)
        assert signal.bias > 0
        assert signal.score == 10
        assert signal.direction == "HOLD"

    def test_lower_threshold_lets_sentiment_through(self, flat_bars) -> None:
        signal = score(flat_bars, "SOL", sentiment=0, config=ScoringConfig(base_threshold=5.0))
        assert signal.direction == "LONG"

    def test_absent_inputs_contribute_nothing(self, rising_bars) -> None:
        signal = score(rising_bars, "BTC")
        assert signal.breakdown["sentiment"].max == 0.0
        assert signal.breakdown["positioning"].max == 0.0
        assert "fear_greed" not in signal.snapshot

    def test_score_is_bounded_and_deterministic(self, rising_bars) -> None:
        first = score(rising_bars, "BTC")
        second = score(rising_bars, "BTC")
        assert first.to_dict() == second.to_dict()
        for name, category in first.breakdown.items():
            assert category.score <= category.max + 1e-9, name

    def test_timestamp_defaults_to_last_bar(self, rising_bars) -> None:
        assert score(rising_bars, "BTC").timestamp == rising_bars[-1].timestamp
        explicit = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert score(rising_bars, "BTC", timestamp=explicit).timestamp == explicit

    def test_rejects_empty_bars(self) -> None:
        with pytest.raises(InvalidInputError, match="no bars"):
            score([], "BTC")

    def test_rejects_incomplete_weights(self, rising_bars) -> None:
        weights = default_weights()
        del weights["macd"]
        with pytest.raises(InvalidInputError, match="macd"):
            score(rising_bars, "BTC", weights=weights)

    def test_weights_are_renormalized(self, rising_bars) -> None:
        scaled = {name: w * 3 for name, w in default_weights().items()}
        assert score(rising_bars, "BTC", weights=scaled).score == score(rising_bars, "BTC").score

    def test_regime_is_recorded(self, rising_bars) -> None:
        regime = classify_regime(MarketContext(reference_bars=rising_bars))
        signal = score(rising_bars, "BTC", regime=regime)
        assert signal.regime is MarketRegime.BULL_TREND
        # Bull regime pushes the bias further long
        assert signal.bias > score(rising_bars, "BTC").bias


def test_category_multipliers_leave_volume_and_sentiment_alone() -> None:
    multipliers = category_multipliers(RegimeAdjustments(1.3, 0.7, 1.2, 1.3, 0.0))
    assert multipliers == {"momentum": 1.2, "trend": 0.7, "volume": 1.0, "sentiment": 1.0, "positioning": 1.3}


def test_score_categories_scales_by_regime(rising_bars) -> None:
    snapshot = analyze_bars(rising_bars)
    neutral = score_categories(snapshot, default_weights(), RegimeAdjustments())
    trending = score_categories(snapshot, default_weights(), RegimeAdjustments(trend_weight_multiplier=1.2))

    assert set(neutral) == set(CATEGORIES)
    assert neutral["trend"].max == pytest.approx(25.0)
    assert trending["trend"].max == pytest.approx(30.0)
    assert trending["trend"].direction == pytest.approx(neutral["trend"].direction * 1.2)


def test_agreement_factor() -> None:
    breakdown = {
        "momentum": CategoryScore(direction=-5.0, score=5.0, max=35.0),
        "trend": CategoryScore(direction=10.0, score=10.0, max=25.0),
        "volume": CategoryScore(direction=8.0, score=8.0, max=16.0),
        "sentiment": CategoryScore(direction=0.0, score=0.0, max=0.0),
    }
    assert agreement_factor(breakdown, bias=13.0) == pytest.approx(2 / 3)
    assert agreement_factor(breakdown, bias=-13.0) == pytest.approx(1 / 3)
    assert agreement_factor({}, bias=0.0) == 1.0


def test_generate_filter_and_sort(rising_bars, falling_bars, flat_bars) -> None:
    signals = generate_signals({"BTC": rising_bars, "ETH": falling_bars, "SOL": flat_bars, "DOGE": []})
    assert [s.coin for s in signals] == ["BTC", "ETH", "SOL"]

    actionable = filter_signals(signals)
    assert {s.coin for s in actionable} == {"BTC", "ETH"}
    assert filter_signals(signals, min_score=101) == []
    assert [s.coin for s in filter_signals(signals, directions=("HOLD",))] == ["SOL"]

    ordered = sort_signals_by_score(signals)
    assert ordered[-1].coin == "SOL"
    assert ordered[0].score >= ordered[1].score


def test_explain_signal(rising_bars) -> None:
    text = explain_signal(score(rising_bars, "BTC"))
    assert text.startswith("BTC: LONG")
    assert "trend" in text
    assert "sentiment" not in text
    assert "Agreement" in text
