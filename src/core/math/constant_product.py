"""
ConstantProduct — математика кривой x·y = k

Чистые функции над точкой гиперболы shares × cash = k:
- spot price (производная кривой в текущей точке)
- стоимость покупки / выручка продажи как интеграл цены вдоль кривой
- обратная задача: сколько shares можно купить на заданный бюджет
- проверка инварианта shares × cash ≈ k с относительной толерантностью

ФОРМУЛЫ:
    price(s, c)          = c / s
    cash_on_curve(k, s)  = k / s
    buy_cost(q)          = k / (s - q) - c      (s - q округляется вниз)
    sell_payout(q)       = c - k / (s + q)      (s + q округляется вниз)
    shares_for_budget(b) = s - k / (c + b)

Функции не валидируют торговые ограничения (reserve floor, знак
количества): это ответственность PricingEngine. Здесь только арифметика.
"""

from typing import Final

from src.core.math.numerical_safeguards import (
    add_round_down,
    is_valid_float,
    is_within_rel_tol,
    sub_round_down,
    validate_positive,
)

# =============================================================================
# ПАРАМЕТРЫ ИНВАРИАНТА
# =============================================================================

# Относительная толерантность проверки shares × cash ≈ k (0.01%).
# Масштабируется по |k|: k встречается от единиц до 1e11 и выше.
INVARIANT_REL_TOL: Final[float] = 1e-4


# =============================================================================
# ТОЧКА НА КРИВОЙ
# =============================================================================


def spot_price(shares: float, cash: float) -> float:
    """
    Мгновенная (маржинальная) цена в точке кривой, без cap.

    Args:
        shares: Количество shares в пуле (> 0)
        cash: Количество cash в пуле

    Returns:
        cash / shares
    """
    return cash / shares


def cash_on_curve(k: float, shares: float) -> float:
    """
    Cash, соответствующий shares на кривой с константой k.

    Используется для построения следующего состояния пула: cash всегда
    выводится из k заново, а не накапливается приращениями cost/payout.

    Raises:
        ValueError: Если shares <= 0 или NaN/Inf
    """
    validate_positive(shares, "shares")
    return k / shares


def buy_cost(shares: float, cash: float, k: float, quantity: float) -> float:
    """
    Стоимость покупки quantity shares из пула.

    Точный интеграл цены вдоль кривой от s до s - q (а не price × q):
    цена непрерывно растёт по мере исполнения сделки.

    shares - quantity округляется вниз: пул отдаёт не меньше quantity, и
    cash на кривой после сделки не занижается.

    Args:
        shares: shares в пуле до сделки
        cash: cash в пуле до сделки
        k: константа кривой
        quantity: количество покупаемых shares (0 <= q < shares)

    Returns:
        k / (shares - quantity) - cash
    """
    return k / sub_round_down(shares, quantity) - cash


def sell_payout(shares: float, cash: float, k: float, quantity: float) -> float:
    """
    Выручка продажи quantity shares в пул (симметрично buy_cost).

    shares + quantity округляется вниз: пул не засчитывает больше
    полученных shares, чем пришло.

    Returns:
        cash - k / (shares + quantity)
    """
    return cash - k / add_round_down(shares, quantity)


def shares_for_budget(shares: float, cash: float, k: float, budget: float) -> float:
    """
    Обратная задача к buy_cost: сколько shares покупается ровно на budget.

    Из k / (s - q) - c = b следует q = s - k / (c + b).
    Ограничения reserve floor здесь не учитываются.

    Returns:
        Количество shares (может быть < 0, если пул смещён с кривой)
    """
    return shares - k / (cash + budget)


# =============================================================================
# ИНВАРИАНТ
# =============================================================================


def verify_invariant(
    shares: float,
    cash: float,
    k: float,
    rel_tol: float = INVARIANT_REL_TOL,
) -> bool:
    """
    Проверка инварианта постоянного произведения.

    True тогда и только тогда, когда |shares × cash - k| <= rel_tol × |k|.
    Никогда не бросает исключение: NaN/Inf на входе дают False.

    Args:
        shares: shares в пуле
        cash: cash в пуле
        k: эталонная константа, зафиксированная при создании пула
        rel_tol: относительная толерантность (default: INVARIANT_REL_TOL)

    Returns:
        True если инвариант выполнен

    Examples:
        >>> verify_invariant(100_000.0, 1_000_000.0, 1e11)
        True
        >>> verify_invariant(100_000.0, 1_001_000.0, 1e11)
        False
    """
    if not (is_valid_float(shares) and is_valid_float(cash) and is_valid_float(k)):
        return False
    return is_within_rel_tol(shares * cash, k, rel_tol)
