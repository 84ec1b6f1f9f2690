"""Streak detection over closed signals.

A streak is a maximal contiguous run of equal outcomes in chronological
order. Records closed at or before the cursor were already processed and are
not part of any new streak.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from signal_engine.types import Outcome, SignalRecord


@dataclass(frozen=True)
class Streak:
    outcome: Outcome
    records: tuple[SignalRecord, ...]
    start_index: int  # index into the chronological list
    end_index: int  # inclusive

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def ends_at(self) -> Optional[datetime]:
        return self.records[-1].closed_at


def _is_processed(record: SignalRecord, cursor: Optional[datetime]) -> bool:
    return cursor is not None and record.closed_at is not None and record.closed_at <= cursor


def find_unprocessed_streak(
    records: Sequence[SignalRecord],
    outcome: Outcome,
    cursor: Optional[datetime] = None,
    min_length: int = 3,
) -> Optional[Streak]:
    """Earliest maximal run of at least `min_length` `outcome` records after `cursor`.

    Args:
        records: Closed records, oldest first
        outcome: "LOST" or "WON"
        cursor: Close time of the last record already processed
        min_length: Minimum run length

    Returns:
        The streak, or None when no unprocessed run is long enough
    """
    if min_length < 1:
        raise ValueError(f"min_length must be >= 1, got {min_length}")

    def build(start: int, end: int) -> Streak:
        return Streak(outcome=outcome, records=tuple(records[start : end + 1]), start_index=start, end_index=end)

    run_start: Optional[int] = None
    for i, record in enumerate(records):
        if record.outcome == outcome and not _is_processed(record, cursor):
            if run_start is None:
                run_start = i
            continue
        if run_start is not None and i - run_start >= min_length:
            return build(run_start, i - 1)
        run_start = None

    if run_start is not None and len(records) - run_start >= min_length:
        return build(run_start, len(records) - 1)
    return None
