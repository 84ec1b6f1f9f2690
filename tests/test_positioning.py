"""Tests for derivatives positioning signals (funding, basis, open interest, venue volume)."""

from __future__ import annotations

import pytest

from signal_engine.indicators.positioning import (
    basis_premium_signal,
    funding_rate_signal,
    funding_velocity_boost,
    hl_volume_signal,
    oi_change_signal,
    positioning_signals,
)
from signal_engine.types import IndicatorKind, PositioningContext


class TestFundingRate:
    def test_neutral_band(self) -> None:
        result = funding_rate_signal(0.05)
        assert result.signal == "neutral"
        assert result.value == pytest.approx(5.0)

    def test_crowded_longs_are_bearish(self) -> None:
        result = funding_rate_signal(0.40)
        assert result.signal == "bearish"
        assert result.strength == pytest.approx(0.2)

    def test_mild_positive_funding(self) -> None:
        result = funding_rate_signal(0.21)
        assert result.signal == "bearish"
        assert result.strength == pytest.approx(0.2)

    def test_crowded_shorts_are_bullish(self) -> None:
        result = funding_rate_signal(-0.20)
        assert result.signal == "bullish"
        assert result.strength == pytest.approx(0.5)

    def test_boost_scales_and_caps_strength(self) -> None:
        assert funding_rate_signal(0.40, boost=1.5).strength == pytest.approx(0.3)
        assert funding_rate_signal(1.50, boost=1.5).strength == 1.0


class TestFundingVelocity:
    def test_no_history_is_neutral(self) -> None:
        assert funding_velocity_boost(0.30, None) == 1.0
        assert funding_velocity_boost(0.30, 0.0) == 1.0

    def test_fast_move_boosts(self) -> None:
        assert funding_velocity_boost(0.40, 0.10) == pytest.approx(1.5)
        assert funding_velocity_boost(0.27, 0.15) == pytest.approx(1.24)

    def test_fast_move_in_either_direction(self) -> None:
        """Acceleration is the size of the shift, not its sign."""
        assert funding_velocity_boost(0.10, 0.40) == pytest.approx(1.5)

    def test_stale_mild_funding_dampens(self) -> None:
        assert funding_velocity_boost(0.05, 0.04) == pytest.approx(0.8)

    def test_stale_extreme_funding_unchanged(self) -> None:
        assert funding_velocity_boost(0.35, 0.34) == 1.0


def test_basis_premium_signal() -> None:
    assert basis_premium_signal(0.003).signal == "bearish"
    assert basis_premium_signal(0.003).strength == pytest.approx(0.6)
    assert basis_premium_signal(-0.002).signal == "bullish"
    assert basis_premium_signal(-0.002).strength == pytest.approx(0.4)
    assert basis_premium_signal(0.0005).signal == "neutral"


class TestOpenInterest:
    def test_new_longs(self) -> None:
        result = oi_change_signal(1_100.0, 1_000.0, price_change_pct=2.0)
        assert result.signal == "bullish"
        assert result.value == pytest.approx(10.0)
        assert result.strength == pytest.approx(0.5)

    def test_new_shorts(self) -> None:
        assert oi_change_signal(1_100.0, 1_000.0, price_change_pct=-2.0).signal == "bearish"

    def test_short_squeeze_is_capped(self) -> None:
        result = oi_change_signal(700.0, 1_000.0, price_change_pct=3.0)
        assert result.signal == "bullish"
        assert result.strength == pytest.approx(0.6)

    def test_long_liquidation(self) -> None:
        assert oi_change_signal(900.0, 1_000.0, price_change_pct=-3.0).signal == "bearish"

    def test_small_moves_are_neutral(self) -> None:
        assert oi_change_signal(1_020.0, 1_000.0, price_change_pct=5.0).signal == "neutral"
        assert oi_change_signal(1_200.0, 1_000.0, price_change_pct=0.5).signal == "neutral"

    def test_missing_reference_is_neutral(self) -> None:
        result = oi_change_signal(1_000.0, None, price_change_pct=5.0)
        assert result.signal == "neutral"
        assert result.value == 0.0


class TestVenueVolume:
    def test_surge_confirms_move(self) -> None:
        result = hl_volume_signal(2_000.0, 1_000.0, price_change_pct=3.0)
        assert result.signal == "bullish"
        assert result.strength == pytest.approx(0.5)
        assert hl_volume_signal(2_000.0, 1_000.0, price_change_pct=-3.0).signal == "bearish"

    def test_drought_fades_move(self) -> None:
        result = hl_volume_signal(400.0, 1_000.0, price_change_pct=3.0)
        assert result.signal == "bearish"
        assert result.strength == pytest.approx(0.5)

    def test_small_move_is_neutral(self) -> None:
        assert hl_volume_signal(3_000.0, 1_000.0, price_change_pct=0.5).signal == "neutral"

    def test_unknown_average_is_neutral(self) -> None:
        assert hl_volume_signal(3_000.0, None, price_change_pct=5.0).value == 1.0


def test_positioning_signals_includes_reference_based_kinds_when_known() -> None:
    ctx = PositioningContext(
        funding_rate=0.40,
        open_interest=1_100.0,
        volume_24h=2_000.0,
        premium=0.003,
        previous_open_interest=1_000.0,
        average_volume=1_000.0,
        previous_funding_rate=0.10,
        price_change_pct=3.0,
    )
    results = positioning_signals(ctx)

    assert set(results) == {
        IndicatorKind.FUNDING_RATE,
        IndicatorKind.BASIS_PREMIUM,
        IndicatorKind.OI_CHANGE,
        IndicatorKind.HL_VOLUME,
    }
    # Funding strength 0.2 boosted by 1.5 for the fast shift
    assert results[IndicatorKind.FUNDING_RATE].strength == pytest.approx(0.3)
