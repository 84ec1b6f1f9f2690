"""Tests for the async signal service using an in-process fake provider."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Sequence

import pytest

from signal_engine.errors import ProviderUnavailableError
from signal_engine.signals import SignalService
from signal_engine.signals.weights import default_weights
from signal_engine.types import Bar, MarketRegime, PositioningContext


class FakeProvider:
    """Serves the same bars for every interval; coins listed in `failing` raise."""

    def __init__(self, bars: dict[str, list[Bar]], *, sentiment=None, positioning=None, failing=()) -> None:
        self.bars = bars
        self.sentiment = sentiment
        self.positioning = positioning or {}
        self.failing = set(failing)
        self.bar_requests: list[tuple[str, str]] = []
        self.positioning_requests: list[str] = []

    async def fetch_bars(self, coin: str, interval: str, count: int) -> Sequence[Bar]:
        self.bar_requests.append((coin, interval))
        if coin in self.failing:
            raise ConnectionError(f"{coin} feed down")
        return self.bars.get(coin, [])[-count:]

    async def fetch_sentiment_index(self) -> Optional[int]:
        if isinstance(self.sentiment, Exception):
            raise self.sentiment
        return self.sentiment

    async def fetch_positioning_context(self, coin: str) -> Optional[PositioningContext]:
        self.positioning_requests.append(coin)
        return self.positioning.get(coin)


# ========== Scoring ==========


class TestScoreCoin:
    @pytest.mark.asyncio
    async def test_scores_with_all_inputs(self, rising_bars, memory_store) -> None:
        positioning = PositioningContext(funding_rate=-0.15, open_interest=1000.0, volume_24h=1e6, premium=0.0)
        provider = FakeProvider({"BTC": rising_bars}, sentiment=20, positioning={"BTC": positioning})

        signal = await SignalService(provider, memory_store).score_coin("BTC")

        assert signal.coin == "BTC"
        assert signal.direction == "LONG"
        assert signal.snapshot["fear_greed"] == 20
        assert "funding_rate" in signal.snapshot
        assert signal.entry_price == pytest.approx(rising_bars[-1].close)

    @pytest.mark.asyncio
    async def test_sentiment_failure_is_tolerated(self, rising_bars, memory_store) -> None:
        provider = FakeProvider({"BTC": rising_bars}, sentiment=TimeoutError("sentiment api down"))

        signal = await SignalService(provider, memory_store).score_coin("BTC")

        assert "fear_greed" not in signal.snapshot
        assert signal.breakdown["sentiment"].max == 0

    @pytest.mark.asyncio
    async def test_malformed_optional_inputs_are_ignored(self, rising_bars, memory_store, caplog) -> None:
        provider = FakeProvider({"BTC": rising_bars}, sentiment=250, positioning={"BTC": {"funding_rate": 0.1}})

        signal = await SignalService(provider, memory_store).score_coin("BTC")

        assert "fear_greed" not in signal.snapshot
        assert "funding_rate" not in signal.snapshot
        assert "out-of-range sentiment" in caplog.text

    @pytest.mark.asyncio
    async def test_bars_failure_raises(self, memory_store) -> None:
        provider = FakeProvider({}, failing=["BTC"])
        with pytest.raises(ProviderUnavailableError, match="BTC feed down"):
            await SignalService(provider, memory_store).score_coin("BTC")

    @pytest.mark.asyncio
    async def test_empty_bars_raise(self, memory_store) -> None:
        with pytest.raises(ProviderUnavailableError, match="no bars returned"):
            await SignalService(FakeProvider({}), memory_store).score_coin("BTC")

    @pytest.mark.asyncio
    async def test_uses_stored_weights(self, rising_bars, memory_store) -> None:
        weights = default_weights()
        weights["obv_trend"] = 1.0
        weights["z_score"] = 19.0
        memory_store.set_weights(weights=weights)

        signal = await SignalService(FakeProvider({"BTC": rising_bars}), memory_store).score_coin("BTC")

        assert signal.breakdown["volume"].max == pytest.approx(7.0)


# ========== Regime ==========


@pytest.mark.asyncio
async def test_detect_regime_skips_failing_peers(rising_bars, make_bars, memory_store) -> None:
    strong = make_bars([100.0 * 1.03**i for i in range(100)])
    provider = FakeProvider({"BTC": rising_bars, "SOL": strong}, failing=["ETH"])

    analysis = await SignalService(provider, memory_store).detect_regime("BTC", peers=["ETH", "SOL"])

    assert analysis.regime is MarketRegime.BULL_TREND
    assert analysis.market_bias == "BULLISH"
    assert analysis.confidence == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_detect_regime_measures_breadth_over_a_day(rising_bars, make_bars, memory_store) -> None:
    """Peers creeping up 0.5% per hour are up about 12.7% over 24h."""
    creeping = make_bars([100.0 * 1.005**i for i in range(100)])
    provider = FakeProvider({"BTC": rising_bars, "ETH": creeping, "SOL": creeping})

    analysis = await SignalService(provider, memory_store).detect_regime("BTC", peers=["ETH", "SOL"])

    assert analysis.market_bias == "BULLISH"
    assert analysis.avg_peer_change == pytest.approx((1.005**24 - 1) * 100.0)


@pytest.mark.asyncio
async def test_detect_regime_uses_positioning(rising_bars, make_bars, memory_store) -> None:
    creeping = make_bars([100.0 * 1.005**i for i in range(100)])
    unwinding = PositioningContext(
        funding_rate=0.05, open_interest=900.0, volume_24h=1e6, premium=0.0, previous_open_interest=1000.0
    )
    provider = FakeProvider(
        {"BTC": rising_bars, "ETH": creeping, "SOL": creeping},
        positioning={"BTC": unwinding, "ETH": unwinding, "SOL": unwinding},
    )

    analysis = await SignalService(provider, memory_store).detect_regime("BTC", peers=["ETH", "SOL"])

    assert sorted(provider.positioning_requests) == ["BTC", "ETH", "SOL"]
    assert analysis.regime is MarketRegime.DISTRIBUTION


# ========== Scan and monitor ==========


class TestScanAndMonitor:
    @pytest.mark.asyncio
    async def test_scan_records_pending_signals(self, rising_bars, make_bars, memory_store) -> None:
        flat = make_bars([50.0] * 100, spread=0.0)
        provider = FakeProvider({"BTC": rising_bars, "DOGE": flat}, failing=["ETH"])
        service = SignalService(provider, memory_store)

        created = await service.scan(["BTC", "ETH", "DOGE"])

        assert [r.coin for r in created] == ["BTC"]
        assert created[0].outcome == "PENDING"
        assert created[0].direction == "LONG"
        assert list(memory_store.list_pending_signals()) == created

    @pytest.mark.asyncio
    async def test_scan_skips_coins_with_open_signal(self, rising_bars, memory_store) -> None:
        provider = FakeProvider({"BTC": rising_bars})
        service = SignalService(provider, memory_store)

        assert len(await service.scan(["BTC"])) == 1
        provider.bar_requests.clear()

        assert await service.scan(["BTC"]) == []
        assert provider.bar_requests == []

    @pytest.mark.asyncio
    async def test_monitor_without_pending(self, memory_store) -> None:
        provider = FakeProvider({})
        assert await SignalService(provider, memory_store).monitor() == []
        assert provider.bar_requests == []

    @pytest.mark.asyncio
    async def test_monitor_closes_on_stop_loss(self, rising_bars, make_bars, memory_store) -> None:
        provider = FakeProvider({"BTC": rising_bars})
        service = SignalService(provider, memory_store)
        (record,) = await service.scan(["BTC"])

        entry = record.signal.entry_price
        provider.bars["BTC"] = make_bars([entry * 0.8 * 0.99**i for i in range(60)])
        now = rising_bars[-1].timestamp + timedelta(hours=2)

        transitions = await service.monitor(now=now)

        assert [(t.signal_id, t.outcome, t.exit_reason) for t in transitions] == [(record.id, "LOST", "STOP_LOSS")]
        assert transitions[0].closed_at == now
        assert memory_store.list_pending_signals() == []
        (closed,) = memory_store.list_closed_signals_chronological()
        assert closed.outcome == "LOST"
        assert await service.monitor(now=now + timedelta(hours=1)) == []

    @pytest.mark.asyncio
    async def test_monitor_keeps_pending_when_price_unavailable(self, rising_bars, memory_store) -> None:
        provider = FakeProvider({"BTC": rising_bars})
        service = SignalService(provider, memory_store)
        await service.scan(["BTC"])
        provider.failing.add("BTC")

        assert await service.monitor(now=rising_bars[-1].timestamp + timedelta(hours=2)) == []
        assert len(memory_store.list_pending_signals()) == 1
