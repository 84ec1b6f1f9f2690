"""Async orchestration of scoring and outcome tracking.

The service is the only place that talks to the market-data provider. It
fetches inputs concurrently, degrades gracefully when optional inputs
(sentiment, positioning, momentum) are unavailable, and persists signals
and outcomes through the record store.

Usage:
    service = SignalService(provider, store)
    regime = await service.detect_regime("BTC", peers=["ETH", "SOL"])
    new_records = await service.scan(["BTC", "ETH", "SOL"], regime=regime)
    transitions = await service.monitor()
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from signal_engine.config import RiskConfig, ScoringConfig, TrackerConfig
from signal_engine.errors import ProviderUnavailableError
from signal_engine.indicators.volume import compute_window_change
from signal_engine.persistence.interfaces import MarketDataProvider, RecordStore
from signal_engine.regime.classifier import MarketContext, aggregate_positioning, classify_regime
from signal_engine.signals.scoring import score
from signal_engine.tracking.momentum import DualTimeframeMomentum, momentum_reading
from signal_engine.tracking.outcomes import check_outcomes
from signal_engine.types import (
    Bar,
    OutcomeTransition,
    PositioningContext,
    RegimeAnalysis,
    SignalOutput,
    SignalRecord,
)

logger = logging.getLogger(__name__)


class SignalService:
    def __init__(
        self,
        provider: MarketDataProvider,
        store: RecordStore,
        *,
        interval: str = "1h",
        bar_count: int = 100,
        momentum_intervals: tuple[str, str] = ("1h", "4h"),
        scoring_config: ScoringConfig | None = None,
        risk_config: RiskConfig | None = None,
        tracker_config: TrackerConfig | None = None,
    ) -> None:
        self._provider = provider
        self._store = store
        self._interval = interval
        self._bar_count = bar_count
        self._momentum_intervals = momentum_intervals
        self._scoring_config = scoring_config
        self._risk_config = risk_config
        self._tracker_config = tracker_config

    async def _fetch_bars(self, coin: str, interval: str) -> list[Bar]:
        try:
            bars = list(await self._provider.fetch_bars(coin, interval, self._bar_count))
        except ProviderUnavailableError:
            raise
        except Exception as e:
            raise ProviderUnavailableError("bars", coin, str(e)) from e
        if not bars:
            raise ProviderUnavailableError("bars", coin, "no bars returned")
        return bars

    @staticmethod
    def _optional(result: Any, source: str, coin: Optional[str], expected: type | tuple[type, ...]) -> Any:
        """Unwrap a gathered optional input; failures and malformed values become None."""
        if isinstance(result, Exception):
            logger.warning(f"{source} unavailable for {coin or 'market'}: {result}")
            return None
        if result is not None and not isinstance(result, expected):
            logger.warning(f"{source} for {coin or 'market'} has unexpected type {type(result).__name__}")
            return None
        return result

    def _current_weights(self) -> Optional[dict[str, float]]:
        weights = self._store.get_weights()
        return dict(weights) if weights is not None else None

    async def score_coin(self, coin: str, regime: Optional[RegimeAnalysis] = None) -> SignalOutput:
        """Fetch bars, sentiment and positioning concurrently and score one coin.

        Raises:
            ProviderUnavailableError: If bars cannot be fetched
        """
        bars_result, sentiment_result, positioning_result = await asyncio.gather(
            self._fetch_bars(coin, self._interval),
            self._provider.fetch_sentiment_index(),
            self._provider.fetch_positioning_context(coin),
            return_exceptions=True,
        )
        if isinstance(bars_result, BaseException):
            raise bars_result

        sentiment = self._optional(sentiment_result, "sentiment", None, (int, float))
        if sentiment is not None and not 0 <= sentiment <= 100:
            logger.warning(f"Ignoring out-of-range sentiment index {sentiment}")
            sentiment = None
        positioning = self._optional(positioning_result, "positioning", coin, PositioningContext)

        return score(
            bars_result,
            coin,
            sentiment=sentiment,
            weights=self._current_weights(),
            regime=regime,
            positioning=positioning,
            config=self._scoring_config,
            risk_config=self._risk_config,
        )

    async def detect_regime(self, reference_coin: str, peers: Sequence[str] = ()) -> RegimeAnalysis:
        """Classify the market from a reference coin, the 24h change of its peers and their positioning.

        Peers whose bars are unavailable are left out of the breadth reading;
        coins without positioning are left out of the funding and OI averages.
        """
        coins = [reference_coin, *peers]
        reference, bar_results, positioning_results = await asyncio.gather(
            self._fetch_bars(reference_coin, self._interval),
            asyncio.gather(*(self._fetch_bars(p, self._interval) for p in peers), return_exceptions=True),
            asyncio.gather(*(self._provider.fetch_positioning_context(c) for c in coins), return_exceptions=True),
        )

        changes = []
        for peer, result in zip(peers, bar_results):
            if isinstance(result, Exception):
                logger.warning(f"Skipping {peer} in market breadth: {result}")
                continue
            changes.append(compute_window_change(result))

        contexts = []
        for coin, result in zip(coins, positioning_results):
            context = self._optional(result, "positioning", coin, PositioningContext)
            if context is not None:
                contexts.append(context)
        avg_funding, avg_oi_change = aggregate_positioning(contexts)

        analysis = classify_regime(
            MarketContext(
                reference_bars=reference,
                peer_changes=tuple(changes),
                avg_funding=avg_funding,
                avg_oi_change=avg_oi_change,
            )
        )
        logger.info(f"Market regime {analysis.regime.value} (confidence {analysis.confidence:.2f})")
        return analysis

    async def scan(self, coins: Sequence[str], regime: Optional[RegimeAnalysis] = None) -> list[SignalRecord]:
        """Score coins without an open signal and record every LONG/SHORT result as PENDING."""
        open_coins = {r.coin for r in self._store.list_pending_signals()}
        candidates = [c for c in coins if c not in open_coins]
        for coin in coins:
            if coin in open_coins:
                logger.debug(f"Skipping {coin}: signal already pending")

        results = await asyncio.gather(*(self.score_coin(c, regime) for c in candidates), return_exceptions=True)

        created = []
        for coin, result in zip(candidates, results):
            if isinstance(result, ProviderUnavailableError):
                logger.warning(f"Skipping {coin}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            if result.direction == "HOLD":
                logger.debug(f"{coin}: HOLD (score {result.score})")
                continue
            record = SignalRecord(id=uuid.uuid4().hex, signal=result)
            self._store.add_signal(record=record)
            logger.info(
                f"New signal {record.id}: {coin} {result.direction} score={result.score} "
                f"entry={result.entry_price:.6g} SL={result.stop_loss:.6g} TP={result.take_profit:.6g}"
            )
            created.append(record)
        return created

    async def _observe(self, coin: str) -> tuple[Optional[float], DualTimeframeMomentum]:
        """Current price (last primary close) and momentum on both timeframes."""

        async def fetch(interval: str) -> Optional[list[Bar]]:
            try:
                return await self._fetch_bars(coin, interval)
            except ProviderUnavailableError as e:
                logger.warning(f"{interval} bars unavailable: {e}")
                return None

        primary, secondary = await asyncio.gather(*(fetch(i) for i in self._momentum_intervals))
        price = primary[-1].close if primary else None
        momentum = DualTimeframeMomentum(
            primary=momentum_reading(primary) if primary else None,
            secondary=momentum_reading(secondary) if secondary else None,
        )
        return price, momentum

    async def monitor(self, now: Optional[datetime] = None) -> list[OutcomeTransition]:
        """Check every PENDING record against current prices and persist terminal transitions."""
        pending = list(self._store.list_pending_signals())
        if not pending:
            return []

        coins = sorted({r.coin for r in pending})
        observations = await asyncio.gather(*(self._observe(c) for c in coins))
        prices = {c: price for c, (price, _) in zip(coins, observations) if price is not None}
        momentum = {c: reading for c, (_, reading) in zip(coins, observations)}

        transitions = check_outcomes(
            pending,
            prices,
            momentum=momentum,
            now=now or datetime.now(timezone.utc),
            config=self._tracker_config,
        )

        applied = []
        for t in transitions:
            updated = self._store.update_signal_terminal(
                signal_id=t.signal_id,
                outcome=t.outcome,
                exit_price=t.exit_price,
                exit_reason=t.exit_reason,
                profit_pct=t.profit_pct,
                closed_at=t.closed_at,
            )
            if updated:
                applied.append(t)
        return applied
