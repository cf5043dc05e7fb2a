"""Pricing — ценообразование на bonding curve x·y = k.

- PricingEngine: price / simulate_buy / simulate_sell / verify_invariant / market_cap
- Settlement: построение следующего снимка пула после сделки
"""

from .engine import (
    DEFAULT_PRICE_CAP,
    BuyQuote,
    PricingConfig,
    PricingEngine,
    SellQuote,
    TradeQuote,
    TradeRejected,
    TradeRejection,
    market_cap,
    price,
    simulate_buy,
    simulate_sell,
    verify_invariant,
)
from .settlement import (
    InvariantViolation,
    TradeExecution,
    apply_buy,
    apply_sell,
    max_buy_quantity,
)

__all__ = [
    "DEFAULT_PRICE_CAP",
    "BuyQuote",
    "PricingConfig",
    "PricingEngine",
    "SellQuote",
    "TradeQuote",
    "TradeRejected",
    "TradeRejection",
    "market_cap",
    "price",
    "simulate_buy",
    "simulate_sell",
    "verify_invariant",
    "InvariantViolation",
    "TradeExecution",
    "apply_buy",
    "apply_sell",
    "max_buy_quantity",
]
