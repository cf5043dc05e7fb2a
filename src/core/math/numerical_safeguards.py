"""
Numerical Safeguards — Safe Math Primitives

Примитивы численной устойчивости для расчётов на кривой x·y = k:
- Проверка конечности входов (NaN/Inf никогда не попадают в формулы)
- Относительные сравнения float, масштабируемые по величине ожидаемого значения
- Сложение и вычитание с округлением вниз (в пользу пула)
- Ограничение значения диапазоном (price cap)
- Валидация параметров с понятными сообщениями об ошибках

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. NaN/Inf никогда не пропагируют (проверка до вычисления)
2. Сравнения с k всегда относительные, а не абсолютные
3. Все операции детерминированы и воспроизводимы
"""

import math
from fractions import Fraction
from numbers import Real

# =============================================================================
# NaN/Inf ПРОВЕРКИ
# =============================================================================


def is_valid_float(value: float) -> bool:
    """
    Проверка, является ли float валидным (не NaN, не Inf).

    Args:
        value: Проверяемое значение

    Returns:
        True если значение конечное, False если NaN или Inf
    """
    return math.isfinite(value)


def is_valid_number(value: object) -> bool:
    """
    Проверка, что значение: конечное вещественное число.

    bool формально является int, но количеством сделки быть не может,
    поэтому отвергается явно.

    Examples:
        >>> is_valid_number(10)
        True
        >>> is_valid_number(float("nan"))
        False
        >>> is_valid_number(True)
        False
        >>> is_valid_number("10")
        False
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)


# =============================================================================
# EPSILON-СРАВНЕНИЯ FLOAT
# =============================================================================


def relative_deviation(actual: float, expected: float) -> float:
    """
    Относительное отклонение |actual - expected| / |expected|.

    Args:
        actual: Фактическое значение
        expected: Эталонное значение

    Returns:
        Относительное отклонение; 0.0 если оба значения равны нулю,
        inf если expected == 0, а actual нет
    """
    diff = abs(actual - expected)
    scale = abs(expected)
    if scale == 0.0:
        return 0.0 if diff == 0.0 else math.inf
    return diff / scale


def is_within_rel_tol(actual: float, expected: float, rel_tol: float) -> bool:
    """
    Проверка |actual - expected| <= rel_tol * |expected|.

    Толерантность масштабируется по |expected|: одно и то же rel_tol
    работает и для k порядка единицы, и для k порядка 1e11.
    Невалидные (NaN/Inf) входы дают False, исключение не бросается.

    Examples:
        >>> is_within_rel_tol(1e11 + 1.0, 1e11, 1e-4)
        True
        >>> is_within_rel_tol(1.1, 1.0, 1e-4)
        False
        >>> is_within_rel_tol(float("nan"), 1.0, 1e-4)
        False
    """
    if not (is_valid_float(actual) and is_valid_float(expected)):
        return False
    return abs(actual - expected) <= rel_tol * abs(expected)


# =============================================================================
# НАПРАВЛЕННОЕ ОКРУГЛЕНИЕ
# =============================================================================


def add_round_down(x: float, y: float) -> float:
    """
    x + y, округлённое вниз (наибольший float <= точной суммы).

    Точная сумма сравнивается через Fraction; при переполнении
    результат возвращается как есть.

    Examples:
        >>> add_round_down(1.0, 2.0)
        3.0
        >>> add_round_down(1.0, -1e-17)
        0.9999999999999999
    """
    result = x + y
    if is_valid_float(result) and Fraction(result) > Fraction(x) + Fraction(y):
        result = math.nextafter(result, -math.inf)
    return result


def sub_round_down(x: float, y: float) -> float:
    """
    x - y, округлённое вниз (наибольший float <= точной разности).

    Examples:
        >>> sub_round_down(3.0, 1.0)
        2.0
        >>> sub_round_down(1.0, 1e-17) < 1.0
        True
    """
    return add_round_down(x, -y)


# =============================================================================
# УТИЛИТЫ
# =============================================================================


def clamp(
    value: float,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    """
    Ограничение значения в заданном диапазоне.

    Examples:
        >>> clamp(5.0, 0.0, 10.0)
        5.0
        >>> clamp(200.0, max_value=100.0)
        100.0
    """
    result = value

    if min_value is not None:
        result = max(result, min_value)

    if max_value is not None:
        result = min(result, max_value)

    return result


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_positive(value: float, name: str, eps: float = 0.0) -> None:
    """
    Валидация, что значение положительное.

    Raises:
        ValueError: Если value <= eps или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")

    if value <= eps:
        raise ValueError(f"{name} must be positive (> {eps}), got {value}")


def validate_non_negative(value: float, name: str) -> None:
    """
    Валидация, что значение неотрицательное.

    Raises:
        ValueError: Если value < 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_in_range(
    value: float,
    name: str,
    min_value: float | None = None,
    max_value: float | None = None,
) -> None:
    """
    Валидация, что значение в заданном диапазоне (границы включительно).

    Raises:
        ValueError: Если value вне диапазона или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")

    if min_value is not None and value < min_value:
        raise ValueError(f"{name} must be >= {min_value}, got {value}")

    if max_value is not None and value > max_value:
        raise ValueError(f"{name} must be <= {max_value}, got {value}")
