#!/usr/bin/env python3
"""Run the weight learner against the configured database.

Runs weight recovery, every pending loss and win streak, and the trailing
performance check, then prints what changed.

Usage:
    python -m scripts.run_learning [--manual] [--no-proactive]

Environment:
    DATABASE_URL - SQLAlchemy URL (default: sqlite:///signal_engine.db)
    SIGNAL_ENGINE_* - learning parameters, see signal_engine.config
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure imports work when invoked as a script (e.g., from cron).
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from signal_engine.config import LearningConfig, StoreConfig  # noqa: E402
from signal_engine.learning.learner import WeightLearner  # noqa: E402
from signal_engine.storage.sql import SqlRecordStore  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Adjust indicator weights from signal outcomes")
    parser.add_argument("--manual", action="store_true", help="Only run a manual loss analysis")
    parser.add_argument("--no-proactive", action="store_true", help="Skip the trailing win-rate check")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    store = SqlRecordStore(config=StoreConfig.from_env())
    store.ensure_schema()
    learner = WeightLearner(store, config=LearningConfig.from_env())

    if args.manual:
        cycle = learner.run_manual_cycle()
        cycles = [cycle] if cycle is not None else []
    else:
        summary = learner.run_all(proactive=not args.no_proactive)
        cycles = summary.cycles
        for adj in summary.recovery:
            print(f"  ↑ {adj.indicator}: {adj.old_weight:.2f} -> {adj.new_weight:.2f} ({adj.reason})")

    for cycle in cycles:
        print(f"🧠 {cycle.triggered_by}: {cycle.signals_analyzed} signals, {len(cycle.adjustments)} adjustments")
        for adj in cycle.adjustments:
            print(f"  • {adj.indicator}: {adj.old_weight:.2f} -> {adj.new_weight:.2f} ({adj.change_percent:+.1f}%)")

    if not cycles:
        print("✅ No learning needed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
