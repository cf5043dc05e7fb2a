"""PricingEngine — ценообразование на кривой постоянного произведения

Чистые функции над неизменяемым снимком Pool:
- price: spot price cash / shares с cap
- simulate_buy: стоимость покупки quantity shares (интеграл цены), reserve floor
- simulate_sell: выручка продажи quantity shares (интеграл цены)
- verify_invariant: shares × cash ≈ k с относительной толерантностью
- market_cap: price × shares в обращении

Движок не имеет состояния (кроме frozen config), не делает I/O и не
мутирует вход. Сериализацию конкурентных сделок против одного пула
(per-pool lock или optimistic version check) обеспечивает вызывающий
слой, так как стоимость каждой сделки зависит от точного состояния до неё.

Отказы симулятора возвращаются значением (quote.accepted = False,
quote.rejection = TradeRejection.*), а не исключением.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Final

from src.core.domain.pool import DEFAULT_INITIAL_SHARES, Pool
from src.core.math.constant_product import (
    INVARIANT_REL_TOL,
    buy_cost,
    cash_on_curve,
    sell_payout,
    spot_price,
    verify_invariant as _verify_product,
)
from src.core.math.numerical_safeguards import (
    add_round_down,
    clamp,
    is_valid_number,
    sub_round_down,
    validate_in_range,
    validate_positive,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Верхняя граница отображаемой цены (защита от патологических пулов с shares → 0)
DEFAULT_PRICE_CAP: Final[float] = 100.0


# =============================================================================
# ERRORS
# =============================================================================


class TradeRejection(str, Enum):
    """Причина отказа в сделке. Состояние пула при отказе не меняется."""

    INVALID_QUANTITY = "invalid_quantity"  # q < 0, NaN/Inf или не число
    MINIMUM_RESERVE_VIOLATION = "minimum_reserve_violation"  # shares - q < min_reserve
    POOL_DEPLETED = "pool_depleted"  # shares - q <= 0


class TradeRejected(Exception):
    """
    Сделка отклонена движком.

    Бросается только при явной конвертации отказа в исключение
    (quote.raise_for_rejection(), settlement.apply_*). Сам симулятор
    возвращает отказ значением.
    """

    def __init__(self, rejection: TradeRejection, message: str):
        super().__init__(message)
        self.rejection = rejection


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class TradeQuote:
    """Общая часть результата симуляции сделки.

    amount: cash сделки без знака (cost для покупки, payout для продажи);
    BuyQuote/SellQuote дают ему имя своей стороны.
    """

    accepted: bool
    rejection: TradeRejection | None
    quantity: float

    # Цены (с cap)
    spot_price: float  # до сделки
    resulting_price: float  # после сделки (гипотетический пул)

    # shares в пуле после сделки (округлены вниз); при отказе без изменений
    shares_after: float

    amount: float
    details: str = ""

    @property
    def average_price(self) -> float:
        """Средняя цена исполнения amount / quantity (spot price для q = 0 и отказа)"""
        if not self.accepted or self.quantity == 0:
            return self.spot_price
        return self.amount / self.quantity

    @property
    def slippage(self) -> float:
        """Относительное отклонение средней цены исполнения от spot price"""
        if self.spot_price == 0:
            return 0.0
        return abs(self.average_price - self.spot_price) / self.spot_price

    def raise_for_rejection(self) -> None:
        """
        Raises:
            TradeRejected: Если сделка отклонена
        """
        if not self.accepted:
            raise TradeRejected(self.rejection, self.details)


@dataclass(frozen=True)
class BuyQuote(TradeQuote):
    """Результат simulate_buy."""

    @property
    def cost(self) -> float:
        """Cash, уплачиваемый в пул (округлён вверх)"""
        return self.amount


@dataclass(frozen=True)
class SellQuote(TradeQuote):
    """Результат simulate_sell."""

    @property
    def payout(self) -> float:
        """Cash, выплачиваемый из пула (округлён вниз)"""
        return self.amount


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class PricingConfig:
    """Конфигурация PricingEngine."""

    # Cap spot price, применяется безусловно
    price_cap: float = DEFAULT_PRICE_CAP

    # Относительная толерантность инварианта shares × cash ≈ k
    invariant_rel_tol: float = INVARIANT_REL_TOL

    def __post_init__(self) -> None:
        validate_positive(self.price_cap, "price_cap")
        validate_positive(self.invariant_rel_tol, "invariant_rel_tol")
        validate_in_range(self.invariant_rel_tol, "invariant_rel_tol", max_value=1.0)


# =============================================================================
# PRICING ENGINE
# =============================================================================


class PricingEngine:
    """Pricing Engine для bonding curve x·y = k.

    Порядок проверок покупки:
    1. quantity конечное и >= 0 (иначе INVALID_QUANTITY, без вычислений)
    2. shares - quantity > 0 (иначе POOL_DEPLETED)
    3. shares - quantity >= min_reserve_shares (иначе MINIMUM_RESERVE_VIOLATION)

    Продажа проверяет только quantity: она уводит пул от истощения, а
    владение продаваемыми shares проверяет внешний слой.

    Округление в пользу пула на каждом шаге:
    - cash до сделки берётся как min(cash_in_pool, k / shares_in_pool)
    - shares после сделки округляются вниз
    - cost округляется вверх, payout вниз на один ulp
    Поэтому покупка q > 0 и немедленная продажа тех же q из пула, построенного
    через Pool.at_shares, всегда дают payout < cost.
    """

    def __init__(self, config: PricingConfig | None = None):
        self.config = config or PricingConfig()

    # -------------------------------------------------------------------------
    # Price Function
    # -------------------------------------------------------------------------

    def price(self, pool: Pool) -> float:
        """
        Spot price пула с cap: min(cash / shares, price_cap).

        Не бросает исключений для валидного Pool.
        """
        return self._capped_price(pool.shares_in_pool, pool.cash_in_pool)

    def _capped_price(self, shares: float, cash: float) -> float:
        return clamp(spot_price(shares, cash), 0.0, self.config.price_cap)

    def effective_cash(self, pool: Pool) -> float:
        """
        Cash пула, от которого считаются cost и payout.

        Сохранённый cash_in_pool может отличаться от k / shares_in_pool на
        round-off (в пределах толерантности инварианта); берётся меньшее из
        двух значений.
        """
        return min(pool.cash_in_pool, cash_on_curve(pool.k_constant, pool.shares_in_pool))

    # -------------------------------------------------------------------------
    # Trade Simulator
    # -------------------------------------------------------------------------

    def simulate_buy(self, pool: Pool, quantity: float) -> BuyQuote:
        """
        Симуляция покупки quantity shares из пула.

        cost = k / (shares - quantity) - cash
        resulting_price = price(shares - quantity, cash + cost)

        Args:
            pool: снимок пула до сделки (не мутируется)
            quantity: количество покупаемых shares

        Returns:
            BuyQuote; при отказе accepted=False, cost=0, resulting_price = spot
        """
        spot = self.price(pool)

        if not is_valid_number(quantity) or quantity < 0:
            return self._reject_buy(
                pool,
                spot,
                TradeRejection.INVALID_QUANTITY,
                f"quantity must be a finite number >= 0, got {quantity!r}",
            )

        quantity = float(quantity)
        if quantity == 0:
            return BuyQuote(
                accepted=True,
                rejection=None,
                quantity=0.0,
                spot_price=spot,
                resulting_price=spot,
                shares_after=pool.shares_in_pool,
                amount=0.0,
            )

        # округление вниз: сравнения с 0 и min_reserve совпадают с точными
        new_shares = sub_round_down(pool.shares_in_pool, quantity)
        if new_shares <= 0:
            return self._reject_buy(
                pool,
                spot,
                TradeRejection.POOL_DEPLETED,
                f"cannot buy {quantity} shares: pool holds only {pool.shares_in_pool}",
                quantity,
            )
        if new_shares < pool.min_reserve_shares:
            return self._reject_buy(
                pool,
                spot,
                TradeRejection.MINIMUM_RESERVE_VIOLATION,
                f"cannot buy {quantity} shares: would deplete pool below "
                f"minimum reserve of {pool.min_reserve_shares}",
                quantity,
            )

        cash = self.effective_cash(pool)
        raw_cost = buy_cost(pool.shares_in_pool, cash, pool.k_constant, quantity)
        cost = math.nextafter(raw_cost, math.inf)
        resulting = self._capped_price(new_shares, cash + cost)

        return BuyQuote(
            accepted=True,
            rejection=None,
            quantity=quantity,
            spot_price=spot,
            resulting_price=resulting,
            shares_after=new_shares,
            amount=cost,
        )

    def simulate_sell(self, pool: Pool, quantity: float) -> SellQuote:
        """
        Симуляция продажи quantity shares в пул.

        payout = cash - k / (shares + quantity)
        resulting_price = price(shares + quantity, cash - payout)

        Количество, многократно превышающее пул, принимается арифметически.

        Args:
            pool: снимок пула до сделки (не мутируется)
            quantity: количество продаваемых shares

        Returns:
            SellQuote; при отказе accepted=False, payout=0, resulting_price = spot
        """
        spot = self.price(pool)

        if not is_valid_number(quantity) or quantity < 0:
            details = f"quantity must be a finite number >= 0, got {quantity!r}"
            logger.debug("sell rejected: %s (%s)", TradeRejection.INVALID_QUANTITY.value, details)
            return SellQuote(
                accepted=False,
                rejection=TradeRejection.INVALID_QUANTITY,
                quantity=0.0,
                spot_price=spot,
                resulting_price=spot,
                shares_after=pool.shares_in_pool,
                amount=0.0,
                details=details,
            )

        quantity = float(quantity)
        if quantity == 0:
            return SellQuote(
                accepted=True,
                rejection=None,
                quantity=0.0,
                spot_price=spot,
                resulting_price=spot,
                shares_after=pool.shares_in_pool,
                amount=0.0,
            )

        new_shares = add_round_down(pool.shares_in_pool, quantity)
        cash = self.effective_cash(pool)
        raw_payout = sell_payout(pool.shares_in_pool, cash, pool.k_constant, quantity)
        payout = max(math.nextafter(raw_payout, -math.inf), 0.0)
        resulting = self._capped_price(new_shares, cash - payout)

        return SellQuote(
            accepted=True,
            rejection=None,
            quantity=quantity,
            spot_price=spot,
            resulting_price=resulting,
            shares_after=new_shares,
            amount=payout,
        )

    def _reject_buy(
        self,
        pool: Pool,
        spot: float,
        rejection: TradeRejection,
        details: str,
        quantity: float = 0.0,
    ) -> BuyQuote:
        logger.debug("buy rejected: %s (%s)", rejection.value, details)
        return BuyQuote(
            accepted=False,
            rejection=rejection,
            quantity=quantity,
            spot_price=spot,
            resulting_price=spot,
            shares_after=pool.shares_in_pool,
            amount=0.0,
            details=details,
        )

    # -------------------------------------------------------------------------
    # Invariant Checker
    # -------------------------------------------------------------------------

    def verify_invariant(self, shares: float, cash: float, k: float) -> bool:
        """|shares × cash - k| <= invariant_rel_tol × |k|; невалидные входы дают False"""
        return _verify_product(shares, cash, k, rel_tol=self.config.invariant_rel_tol)

    def verify_pool(self, pool: Pool) -> bool:
        """verify_invariant для снимка пула (толерантность из config)"""
        return self.verify_invariant(pool.shares_in_pool, pool.cash_in_pool, pool.k_constant)

    # -------------------------------------------------------------------------
    # Market Cap Function
    # -------------------------------------------------------------------------

    def market_cap(self, pool: Pool, initial_shares: float = DEFAULT_INITIAL_SHARES) -> float:
        """
        Рыночная капитализация: price(pool) × (initial_shares - shares_in_pool).

        Согласованность initial_shares (>= shares_in_pool) обеспечивает
        вызывающий код; при нарушении результат вычисляется, но не имеет смысла.
        """
        shares_issued = initial_shares - pool.shares_in_pool
        return self.price(pool) * shares_issued


# =============================================================================
# MODULE-LEVEL API
# =============================================================================

# Движок с конфигурацией по умолчанию
_DEFAULT_ENGINE = PricingEngine()


def price(pool: Pool) -> float:
    """Spot price пула с cap по умолчанию (100.0)."""
    return _DEFAULT_ENGINE.price(pool)


def simulate_buy(pool: Pool, quantity: float) -> BuyQuote:
    """Симуляция покупки с конфигурацией по умолчанию."""
    return _DEFAULT_ENGINE.simulate_buy(pool, quantity)


def simulate_sell(pool: Pool, quantity: float) -> SellQuote:
    """Симуляция продажи с конфигурацией по умолчанию."""
    return _DEFAULT_ENGINE.simulate_sell(pool, quantity)


def verify_invariant(
    shares: float,
    cash: float,
    k: float,
    rel_tol: float = INVARIANT_REL_TOL,
) -> bool:
    """Проверка инварианта shares × cash ≈ k."""
    return _verify_product(shares, cash, k, rel_tol=rel_tol)


def market_cap(pool: Pool, initial_shares: float = DEFAULT_INITIAL_SHARES) -> float:
    """Рыночная капитализация с конфигурацией по умолчанию."""
    return _DEFAULT_ENGINE.market_cap(pool, initial_shares)
