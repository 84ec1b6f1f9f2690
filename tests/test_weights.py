"""Tests for indicator weights and renormalization."""

from __future__ import annotations

import logging

import pytest

from signal_engine.errors import InvalidInputError
from signal_engine.signals.weights import (
    DEFAULT_WEIGHTS,
    INDICATOR_CATEGORIES,
    default_weight,
    default_weights,
    normalize_weights,
)
from signal_engine.types import CATEGORIES, IndicatorKind


def test_every_indicator_has_weight_and_category() -> None:
    assert set(DEFAULT_WEIGHTS) == set(IndicatorKind)
    assert set(INDICATOR_CATEGORIES) == set(IndicatorKind)
    assert set(INDICATOR_CATEGORIES.values()) == set(CATEGORIES)


def test_default_weights_sum_to_100_within_bounds() -> None:
    assert sum(DEFAULT_WEIGHTS.values()) == pytest.approx(100.0)
    for kind, weight in DEFAULT_WEIGHTS.items():
        assert 1.0 <= weight <= 20.0, f"{kind.value} weight out of bounds"


def test_default_weights_returns_fresh_copy() -> None:
    weights = default_weights()
    weights["rsi"] = 99.0
    assert default_weights()["rsi"] == 6.0
    assert default_weight("z_score") == 10.0


def test_normalize_defaults_is_identity() -> None:
    normalized = normalize_weights(default_weights())
    for name, weight in default_weights().items():
        assert normalized[name] == pytest.approx(weight, abs=1e-6)


def test_normalize_rescales_to_total() -> None:
    doubled = {name: w * 2 for name, w in default_weights().items()}
    normalized = normalize_weights(doubled)
    assert sum(normalized.values()) == pytest.approx(100.0)
    assert normalized["obv_trend"] == pytest.approx(10.0, abs=1e-6)


def test_normalize_caps_and_floors() -> None:
    weights = default_weights()
    weights["z_score"] = 80.0
    weights["hl_volume"] = 0.0
    normalized = normalize_weights(weights)

    assert normalized["z_score"] == pytest.approx(20.0)
    assert normalized["hl_volume"] == pytest.approx(1.0)
    assert sum(normalized.values()) == pytest.approx(100.0, abs=0.01)
    assert all(1.0 <= w <= 20.0 for w in normalized.values())


def test_normalize_preserves_order_between_free_weights() -> None:
    weights = default_weights()
    weights["rsi"] *= 0.85
    normalized = normalize_weights(weights)
    assert normalized["rsi"] < 6.0
    assert normalized["macd"] > 6.0
    assert normalized["macd"] / normalized["stoch_rsi"] == pytest.approx(6.0 / 5.0)


def test_normalize_requires_every_indicator() -> None:
    weights = default_weights()
    del weights["adx"]
    with pytest.raises(InvalidInputError, match="adx"):
        normalize_weights(weights)


def test_normalize_rejects_negative_weight() -> None:
    weights = default_weights()
    weights["cci"] = -1.0
    with pytest.raises(InvalidInputError, match=">= 0"):
        normalize_weights(weights)


def test_normalize_rejects_zero_total() -> None:
    with pytest.raises(ValueError, match="total must be > 0"):
        normalize_weights({kind.value: 0.0 for kind in IndicatorKind})


def test_normalize_drops_unknown_names(caplog) -> None:
    weights = default_weights()
    weights["astrology"] = 5.0
    with caplog.at_level(logging.WARNING):
        normalized = normalize_weights(weights)
    assert "astrology" not in normalized
    assert "astrology" in caplog.text
