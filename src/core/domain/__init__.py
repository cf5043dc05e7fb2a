"""
Domain models and value objects.

Contains the pool snapshot and the executed trade record.
"""

from src.core.domain.pool import (
    DEFAULT_INITIAL_CASH,
    DEFAULT_INITIAL_SHARES,
    DEFAULT_MIN_RESERVE_SHARES,
    Pool,
)
from src.core.domain.trade import TradeRecord, TradeSide

__all__ = [
    # Pool model
    "DEFAULT_INITIAL_CASH",
    "DEFAULT_INITIAL_SHARES",
    "DEFAULT_MIN_RESERVE_SHARES",
    "Pool",
    # Trade model
    "TradeRecord",
    "TradeSide",
]
