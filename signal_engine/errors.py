"""Exception hierarchy for the signal engine.

Only genuinely invalid inputs are raised to callers. Short histories, missing
provider data and out-of-range weights are handled where they occur.
"""

from __future__ import annotations


class SignalEngineError(Exception):
    """Base class for all signal engine errors."""


class InvalidInputError(SignalEngineError, ValueError):
    """Input that would corrupt scoring or the weight invariant (negative prices, missing weights)."""


class ProviderUnavailableError(SignalEngineError):
    """A market-data collaborator failed or returned malformed data."""

    def __init__(self, source: str, coin: str | None = None, detail: str = "") -> None:
        self.source = source
        self.coin = coin
        self.detail = detail
        target = f" for {coin}" if coin else ""
        suffix = f": {detail}" if detail else ""
        super().__init__(f"{source} unavailable{target}{suffix}")


class ConcurrentUpdateError(SignalEngineError):
    """The persisted weight state changed between load and commit."""

    def __init__(self, expected_version: int, actual_version: int | None = None) -> None:
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"weight state version mismatch: expected {expected_version}, found {actual_version}"
        )
