"""Settlement — построение следующего снимка пула после сделки

Вызывающий слой (транзакции, хранение) решает, сохранять ли результат;
здесь только вычисляется следующий Pool по тем же формулам, что и в
PricingEngine, и проверяется инвариант перед фиксацией.

Следующее состояние строится как pool.at_shares(new_shares): cash
выводится из k, а не накапливается приращениями cost/payout.

Конкурентные сделки против одного пула должны сериализоваться
вызывающим слоем: TradeExecution.pool_before есть состояние, которое
должно совпасть с сохранённым в момент фиксации (compare-and-swap).
"""

import logging
import math
from dataclasses import dataclass
from typing import Final

from src.core.domain.pool import Pool
from src.core.domain.trade import TradeRecord, TradeSide
from src.core.math.constant_product import shares_for_budget
from src.core.math.numerical_safeguards import relative_deviation, validate_non_negative
from src.pricing.engine import BuyQuote, PricingEngine, SellQuote, TradeQuote

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================


class InvariantViolation(Exception):
    """
    Следующий снимок пула не проходит проверку shares × cash ≈ k.

    Для вызывающего слоя это сигнал отменить фиксацию сделки.
    """

    pass


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class TradeExecution:
    """Результат применения сделки к снимку пула."""

    pool_before: Pool
    pool_after: Pool
    quote: BuyQuote | SellQuote

    # None для сделки нулевого объёма (пул не меняется)
    trade: TradeRecord | None


# =============================================================================
# APPLY
# =============================================================================


def apply_buy(pool: Pool, quantity: float, engine: PricingEngine | None = None) -> TradeExecution:
    """
    Применение покупки: следующий Pool с shares_in_pool - quantity.

    Raises:
        TradeRejected: Если движок отклонил сделку
        InvariantViolation: Если следующий снимок не проходит проверку инварианта
    """
    engine = engine or PricingEngine()
    quote = engine.simulate_buy(pool, quantity)
    quote.raise_for_rejection()
    return _settle(engine, pool, quote, TradeSide.BUY)


def apply_sell(pool: Pool, quantity: float, engine: PricingEngine | None = None) -> TradeExecution:
    """
    Применение продажи: следующий Pool с shares_in_pool + quantity.

    Владение продаваемыми shares здесь не проверяется.

    Raises:
        TradeRejected: Если движок отклонил сделку
        InvariantViolation: Если следующий снимок не проходит проверку инварианта
    """
    engine = engine or PricingEngine()
    quote = engine.simulate_sell(pool, quantity)
    quote.raise_for_rejection()
    return _settle(engine, pool, quote, TradeSide.SELL)


def _settle(
    engine: PricingEngine,
    pool: Pool,
    quote: TradeQuote,
    side: TradeSide,
) -> TradeExecution:
    if quote.quantity == 0:
        return TradeExecution(pool_before=pool, pool_after=pool, quote=quote, trade=None)

    try:
        pool_after = pool.at_shares(quote.shares_after)
    except ValueError as e:
        logger.warning("%s of %s shares yields an invalid pool snapshot: %s", side.value, quote.quantity, e)
        raise InvariantViolation(f"{side.value} of {quote.quantity} shares: {e}") from e

    if not engine.verify_pool(pool_after):
        deviation = relative_deviation(pool_after.product(), pool_after.k_constant)
        logger.warning(
            "invariant violated after %s of %s shares: relative deviation %.3e",
            side.value,
            quote.quantity,
            deviation,
        )
        raise InvariantViolation(
            f"shares * cash deviates from k by {deviation:.3e} "
            f"(tolerance {engine.config.invariant_rel_tol:.0e})"
        )

    amount = quote.amount if side == TradeSide.BUY else -quote.amount
    trade = TradeRecord(
        side=side,
        shares=quote.quantity,
        amount=amount,
        price_per_share=quote.average_price,
        resulting_price=quote.resulting_price,
    )
    logger.debug(
        "%s %s shares for %.6f, price %.6f -> %.6f",
        side.value,
        quote.quantity,
        quote.amount,
        quote.spot_price,
        quote.resulting_price,
    )
    return TradeExecution(pool_before=pool, pool_after=pool_after, quote=quote, trade=trade)


# =============================================================================
# MAX AFFORDABLE BUY
# =============================================================================

# Начальный шаг уменьшения дробного количества при коррекции округления (относительный)
_FRACTIONAL_BACKOFF_REL: Final[float] = 1e-12


def max_buy_quantity(
    pool: Pool,
    budget: float,
    whole_units: bool = True,
    engine: PricingEngine | None = None,
) -> float:
    """
    Максимальное количество shares, которое можно купить на budget.

    Точное обращение формулы стоимости q = shares - k / (cash + budget),
    ограниченное reserve floor. Результат проверяется через simulate_buy и
    уменьшается, если округление дало cost > budget. Шаг уменьшения не
    меньше ulp(q) и удваивается после каждой неудачной проверки, поэтому
    число итераций ограничено и для пулов с shares выше 2**53.

    Args:
        pool: снимок пула
        budget: доступный cash (>= 0)
        whole_units: округлять вниз до целого числа shares
        engine: движок (default: конфигурация по умолчанию)

    Returns:
        Количество shares (0.0, если не хватает даже на одну единицу)

    Raises:
        ValueError: Если budget < 0 или NaN/Inf
    """
    validate_non_negative(budget, "budget")
    engine = engine or PricingEngine()

    cash = engine.effective_cash(pool)
    by_budget = shares_for_budget(pool.shares_in_pool, cash, pool.k_constant, budget)
    by_reserve = pool.shares_in_pool - pool.min_reserve_shares
    quantity = max(0.0, min(by_budget, by_reserve))
    if whole_units:
        quantity = float(math.floor(quantity))
        step = 1.0
    else:
        step = quantity * _FRACTIONAL_BACKOFF_REL

    while quantity > 0:
        quote = engine.simulate_buy(pool, quantity)
        if quote.accepted and quote.cost <= budget:
            return quantity
        quantity -= max(step, math.ulp(quantity))
        step *= 2.0

    return 0.0
