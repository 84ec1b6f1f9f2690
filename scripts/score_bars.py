#!/usr/bin/env python3
"""Score a coin from an OHLCV file and print the signal.

The file must have open/high/low/close/volume columns (and optionally
timestamp), oldest first. CSV and JSON (records orientation) are supported.

Usage:
    python -m scripts.score_bars data/btc_1h.csv --coin BTC [--sentiment 62] [--json]

Environment:
    DATABASE_URL - optional; when set, the learned weights stored there are used
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

import pandas as pd

# Ensure imports work when invoked as a script.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from signal_engine.config import StoreConfig  # noqa: E402
from signal_engine.errors import SignalEngineError  # noqa: E402
from signal_engine.indicators.analysis import bars_from_frame  # noqa: E402
from signal_engine.signals.scoring import explain_signal, score  # noqa: E402
from signal_engine.storage.sql import SqlRecordStore  # noqa: E402


def load_frame(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == ".json":
        return pd.read_json(path, orient="records")
    return pd.read_csv(path)


def main() -> int:
    parser = argparse.ArgumentParser(description="Score a coin from an OHLCV file")
    parser.add_argument("path", type=Path, help="CSV or JSON file with OHLCV bars")
    parser.add_argument("--coin", required=True, help="Asset symbol, e.g. BTC")
    parser.add_argument("--sentiment", type=float, help="Fear & Greed index (0-100)")
    parser.add_argument("--json", action="store_true", help="Print the signal as JSON")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    weights = None
    if os.environ.get("DATABASE_URL"):
        store = SqlRecordStore(config=StoreConfig.from_env())
        store.ensure_schema()
        weights = store.get_weights()

    try:
        bars = bars_from_frame(load_frame(args.path))
        signal = score(bars, args.coin, sentiment=args.sentiment, weights=weights)
    except (OSError, SignalEngineError) as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(signal.to_dict(), indent=2))
    else:
        print(explain_signal(signal))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
