"""Adaptive indicator weight learning.

The learner reads closed signals in close-time order, looks for streaks of
losses or wins that have not been processed yet, and nudges the weights of
the indicators that argued for those trades:

    - loss streak: indicators that confidently backed the losing direction
      in at least half of the analyzed losses lose up to 15% weight
    - win streak: indicators that backed the winning direction in at least
      60% of the analyzed wins gain up to 10% weight
    - recovery: an indicator below its default that has not appeared in a
      loss for 20 trades drifts 5% of the way back toward the default

Every change is renormalized to sum 100 with each weight in [1, 20], and is
committed together with the advanced streak cursor and the cycle record
under an optimistic version check. A streak is therefore acted on at most
once, even with several learners sharing one store.

Usage:
    from signal_engine.learning import WeightLearner
    from signal_engine.storage import InMemoryRecordStore

    learner = WeightLearner(InMemoryRecordStore())
    summary = learner.run_all()
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Literal, Optional, Sequence

from signal_engine.config import LearningConfig
from signal_engine.errors import ConcurrentUpdateError, InvalidInputError
from signal_engine.learning.rules import supports_direction
from signal_engine.learning.streaks import find_unprocessed_streak
from signal_engine.persistence.interfaces import RecordStore
from signal_engine.signals.weights import DEFAULT_WEIGHTS, normalize_weights, validate_weights
from signal_engine.tracking.stats import trailing_win_rate
from signal_engine.types import (
    IndicatorKind,
    LearningCycle,
    LearningTrigger,
    SignalRecord,
    WeightAdjustment,
    WeightState,
)

logger = logging.getLogger(__name__)

StreakKind = Literal["loss", "win"]


@dataclass(frozen=True)
class _Plan:
    """A computed state change waiting to be committed."""

    weights: dict[str, float]
    loss_cursor: Optional[datetime]
    win_cursor: Optional[datetime]
    cycle: LearningCycle


@dataclass(frozen=True)
class TrailingPerformance:
    win_rate: Optional[float]
    sample_size: int
    below_threshold: bool


@dataclass(frozen=True)
class LearningRunSummary:
    recovery: list[WeightAdjustment] = field(default_factory=list)
    cycles: list[LearningCycle] = field(default_factory=list)
    trailing: Optional[TrailingPerformance] = None


def _change_percent(old: float, new: float) -> float:
    return round((new - old) / old * 100.0, 2) if old else 0.0


class WeightLearner:
    """Streak-driven weight learner over a RecordStore.

    Cycles are serialized by an in-process lock; cross-process safety comes
    from the store's versioned commit, which is retried after a conflict
    with freshly loaded state.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        config: LearningConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._config = config or LearningConfig()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()

    @property
    def config(self) -> LearningConfig:
        return self._config

    # -- commit loop ----------------------------------------------------

    def _commit(self, planner: Callable[[WeightState, Sequence[SignalRecord]], Optional[_Plan]]) -> Optional[_Plan]:
        retries = self._config.max_commit_retries
        for attempt in range(1, retries + 1):
            state = self._store.load_weight_state()
            validate_weights(state.weights)
            records = self._store.list_closed_signals_chronological()
            plan = planner(state, records)
            if plan is None:
                return None
            try:
                self._store.commit_weight_state(
                    expected_version=state.version,
                    weights=plan.weights,
                    loss_cursor=plan.loss_cursor,
                    win_cursor=plan.win_cursor,
                    cycle=plan.cycle,
                )
                return plan
            except ConcurrentUpdateError as e:
                if attempt == retries:
                    logger.error(f"Giving up on learning commit after {retries} attempts: {e}")
                    raise
                logger.warning(f"Weight state changed underneath learning cycle (attempt {attempt}): {e}")
        return None

    def _normalize(self, weights: dict[str, float]) -> dict[str, float]:
        cfg = self._config
        return normalize_weights(weights, total=cfg.weight_total, min_weight=cfg.min_weight, max_weight=cfg.max_weight)

    # -- analysis -------------------------------------------------------

    def _penalize(self, weights: dict[str, float], losses: Sequence[SignalRecord]) -> list[WeightAdjustment]:
        cfg = self._config
        adjustments = []
        for kind in IndicatorKind:
            name = kind.value
            wrong = sum(1 for r in losses if supports_direction(kind, r.signal.snapshot, r.direction))
            ratio = wrong / len(losses)
            if ratio < cfg.loss_ratio_threshold:
                continue
            reduction = min(cfg.max_weight_reduction_pct, ratio * cfg.max_weight_reduction_pct)
            old = weights[name]
            new = max(cfg.min_weight, old * (1.0 - reduction / 100.0))
            if old - new <= cfg.min_weight_change:
                continue
            weights[name] = new
            adjustments.append(
                WeightAdjustment(
                    indicator=name,
                    old_weight=old,
                    new_weight=new,
                    change_percent=_change_percent(old, new),
                    reason=f"wrong in {wrong}/{len(losses)} losses ({ratio:.0%})",
                )
            )
        return adjustments

    def _reward(self, weights: dict[str, float], wins: Sequence[SignalRecord]) -> list[WeightAdjustment]:
        cfg = self._config
        adjustments = []
        for kind in IndicatorKind:
            name = kind.value
            correct = sum(1 for r in wins if supports_direction(kind, r.signal.snapshot, r.direction))
            ratio = correct / len(wins)
            if ratio < cfg.win_ratio_threshold:
                continue
            boost = min(cfg.max_weight_boost_pct, ratio * cfg.max_weight_boost_pct)
            old = weights[name]
            new = min(cfg.max_weight, old * (1.0 + boost / 100.0))
            if new - old <= cfg.min_weight_change:
                continue
            weights[name] = new
            adjustments.append(
                WeightAdjustment(
                    indicator=name,
                    old_weight=old,
                    new_weight=new,
                    change_percent=_change_percent(old, new),
                    reason=f"correct in {correct}/{len(wins)} wins ({ratio:.0%})",
                )
            )
        return adjustments

    def _cycle(
        self,
        trigger: LearningTrigger,
        analyzed: int,
        adjustments: Sequence[WeightAdjustment],
        weights: dict[str, float],
        streak_length: int = 0,
    ) -> LearningCycle:
        return LearningCycle(
            timestamp=self._clock(),
            triggered_by=trigger,
            signals_analyzed=analyzed,
            adjustments=tuple(adjustments),
            weights_snapshot=dict(weights),
            streak_length=streak_length,
        )

    # -- operations -----------------------------------------------------

    def run_learning_cycle(self, direction: StreakKind) -> Optional[LearningCycle]:
        """Process the earliest unprocessed loss or win streak.

        Returns:
            The committed LearningCycle, or None when no streak is pending

        Raises:
            InvalidInputError: If direction is not "loss" or "win"
            ConcurrentUpdateError: If every commit attempt lost a version race
        """
        if direction not in ("loss", "win"):
            raise InvalidInputError(f"direction must be 'loss' or 'win', got {direction!r}")
        kind = direction

        cfg = self._config
        outcome = "LOST" if kind == "loss" else "WON"

        def plan(state: WeightState, records: Sequence[SignalRecord]) -> Optional[_Plan]:
            cursor = state.loss_cursor if kind == "loss" else state.win_cursor
            streak = find_unprocessed_streak(records, outcome, cursor, cfg.streak_length)
            if streak is None:
                return None

            sample = [r for r in records[: streak.end_index + 1] if r.outcome == outcome][-cfg.analysis_window :]
            weights = dict(state.weights)
            if kind == "loss":
                adjustments = self._penalize(weights, sample)
            else:
                adjustments = self._reward(weights, sample)
            weights = self._normalize(weights)

            trigger: LearningTrigger = "consecutive_losses" if kind == "loss" else "consecutive_wins"
            cycle = self._cycle(trigger, len(sample), adjustments, weights, streak.count)
            end = streak.ends_at
            return _Plan(
                weights=weights,
                loss_cursor=end if kind == "loss" else state.loss_cursor,
                win_cursor=end if kind == "win" else state.win_cursor,
                cycle=cycle,
            )

        with self._lock:
            committed = self._commit(plan)

        if committed is None:
            logger.debug(f"No unprocessed {kind} streak")
            return None
        cycle = committed.cycle
        logger.info(
            f"Learning cycle ({cycle.triggered_by}): streak of {cycle.streak_length}, "
            f"{cycle.signals_analyzed} signals analyzed, {len(cycle.adjustments)} weights adjusted"
        )
        return cycle

    def run_manual_cycle(self) -> Optional[LearningCycle]:
        """Analyze the most recent losses without moving any cursor. None when there are no losses."""
        cfg = self._config

        def plan(state: WeightState, records: Sequence[SignalRecord]) -> Optional[_Plan]:
            losses = [r for r in records if r.outcome == "LOST"][-cfg.analysis_window :]
            if not losses:
                return None
            weights = dict(state.weights)
            adjustments = self._penalize(weights, losses)
            weights = self._normalize(weights)
            return _Plan(
                weights=weights,
                loss_cursor=state.loss_cursor,
                win_cursor=state.win_cursor,
                cycle=self._cycle("manual", len(losses), adjustments, weights),
            )

        with self._lock:
            committed = self._commit(plan)

        if committed is None:
            logger.info("Manual learning cycle skipped: no losses recorded")
            return None
        logger.info(f"Manual learning cycle: {len(committed.cycle.adjustments)} weights adjusted")
        return committed.cycle

    def recover_weights(self) -> list[WeightAdjustment]:
        """Move suppressed weights back toward their defaults.

        An indicator qualifies when it sits below its default and at least
        `recovery_trade_threshold` closed trades have happened since the last
        loss whose snapshot contained it.
        """
        cfg = self._config

        def trades_since_loss(records: Sequence[SignalRecord], name: str) -> int:
            for offset, record in enumerate(reversed(records)):
                if record.outcome == "LOST" and name in record.signal.snapshot:
                    return offset
            return len(records)

        def plan(state: WeightState, records: Sequence[SignalRecord]) -> Optional[_Plan]:
            weights = dict(state.weights)
            adjustments = []
            for kind, default in DEFAULT_WEIGHTS.items():
                name = kind.value
                current = weights[name]
                if current >= default:
                    continue
                since = trades_since_loss(records, name)
                if since < cfg.recovery_trade_threshold:
                    continue
                step = (default - current) * cfg.recovery_rate
                if step <= cfg.min_weight_change:
                    continue
                weights[name] = current + step
                adjustments.append(
                    WeightAdjustment(
                        indicator=name,
                        old_weight=current,
                        new_weight=current + step,
                        change_percent=_change_percent(current, current + step),
                        reason=f"recovering toward default {default:g} after {since} trades without a loss",
                    )
                )
            if not adjustments:
                return None
            weights = self._normalize(weights)
            return _Plan(
                weights=weights,
                loss_cursor=state.loss_cursor,
                win_cursor=state.win_cursor,
                cycle=self._cycle("recovery", len(records), adjustments, weights),
            )

        with self._lock:
            committed = self._commit(plan)

        if committed is None:
            return []
        logger.info(f"Weight recovery: {len(committed.cycle.adjustments)} indicators moved toward defaults")
        return list(committed.cycle.adjustments)

    def check_trailing_performance(self) -> TrailingPerformance:
        """Win rate over the most recent closed trades; warns when it falls below threshold."""
        cfg = self._config
        records = self._store.list_closed_signals_chronological()
        rate, sample = trailing_win_rate(records, cfg.trailing_window)
        below = rate is not None and sample >= cfg.trailing_min_trades and rate < cfg.trailing_win_rate_threshold
        if below:
            logger.warning(
                f"Trailing win rate {rate:.1f}% over last {sample} trades is below "
                f"{cfg.trailing_win_rate_threshold:g}%"
            )
        return TrailingPerformance(win_rate=rate, sample_size=sample, below_threshold=below)

    def run_all(self, *, proactive: bool = True) -> LearningRunSummary:
        """Recovery, then every pending loss streak, then every pending win streak.

        With `proactive`, a weak trailing win rate triggers a manual cycle
        when no loss streak was processed in this run.
        """
        cfg = self._config
        recovery = self.recover_weights()
        cycles: list[LearningCycle] = []
        loss_cycles = 0

        for kind in ("loss", "win"):
            for _ in range(cfg.max_iterations):
                cycle = self.run_learning_cycle(kind)
                if cycle is None:
                    break
                cycles.append(cycle)
                if kind == "loss":
                    loss_cycles += 1
            else:
                logger.warning(f"Stopped after {cfg.max_iterations} {kind} cycles; remaining streaks wait for next run")

        trailing = None
        if proactive:
            trailing = self.check_trailing_performance()
            if trailing.below_threshold and loss_cycles == 0:
                manual = self.run_manual_cycle()
                if manual is not None:
                    cycles.append(manual)

        return LearningRunSummary(recovery=recovery, cycles=cycles, trailing=trailing)
