"""Scoring engine: indicator weights, signal scoring and the async service."""

from .scoring import (
    agreement_factor,
    category_multipliers,
    explain_signal,
    filter_signals,
    generate_signals,
    score,
    score_categories,
    sort_signals_by_score,
)
from .service import SignalService
from .weights import (
    DEFAULT_WEIGHTS,
    INDICATOR_CATEGORIES,
    default_weight,
    default_weights,
    normalize_weights,
    validate_weights,
)

__all__ = [
    # Weights
    "DEFAULT_WEIGHTS",
    "INDICATOR_CATEGORIES",
    "default_weight",
    "default_weights",
    "normalize_weights",
    "validate_weights",
    # Scoring
    "agreement_factor",
    "category_multipliers",
    "explain_signal",
    "filter_signals",
    "generate_signals",
    "score",
    "score_categories",
    "sort_signals_by_score",
    # Service
    "SignalService",
]
