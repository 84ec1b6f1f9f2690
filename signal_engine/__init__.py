"""Quantitative signal-scoring engine.

Subpackages, leaves first:

- indicators: pure technical, sentiment and positioning indicators
- risk: ATR stop/target levels with support/resistance clamping, sizing
- regime: market-wide regime classification and scoring multipliers
- signals: weighted aggregation into LONG/SHORT/HOLD calls, async service
- tracking: PENDING -> WON/LOST outcome state machine and statistics
- learning: streak-driven weight learning with recovery
- persistence: collaborator interfaces (market data, record store)
- storage: in-memory and SQLAlchemy record stores
"""
