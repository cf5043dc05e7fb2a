"""
Pool — Модель торгового пула bonding curve

Immutable Pydantic модель снимка состояния пула (один пул на торгуемую сущность).
PricingEngine только читает Pool и вычисляет, каким было бы следующее
состояние; сохранение нового снимка: ответственность внешнего слоя.
"""

from typing import Any, Final, Mapping

from pydantic import BaseModel, Field, model_validator

from src.core.contracts.validators import validate_pool_snapshot
from src.core.math.constant_product import (
    INVARIANT_REL_TOL,
    cash_on_curve,
    verify_invariant,
)


# =============================================================================
# ПАРАМЕТРЫ СОЗДАНИЯ ПУЛА ПО УМОЛЧАНИЮ
# =============================================================================

# Начальное количество shares в пуле
DEFAULT_INITIAL_SHARES: Final[float] = 100_000.0

# Начальное количество cash в пуле (spot price = 10.0)
DEFAULT_INITIAL_CASH: Final[float] = 1_000_000.0

# Минимальный резерв shares после покупки
DEFAULT_MIN_RESERVE_SHARES: Final[float] = 1_000.0


# =============================================================================
# POOL MODEL
# =============================================================================


class Pool(BaseModel):
    """
    Снимок состояния пула.

    k_constant фиксируется при создании пула (shares × cash) и никогда не
    пересчитывается из живого состояния: это эталон, с которым сверяется
    каждый следующий снимок.

    Immutable модель (frozen=True). Лишние поля снимка (id, timestamps и т.п.)
    принадлежат внешнему слою и игнорируются.
    """

    shares_in_pool: float = Field(..., gt=0, description="Shares в резерве пула (не в обращении)")
    cash_in_pool: float = Field(..., gt=0, description="Quote currency в пуле")
    k_constant: float = Field(..., gt=0, description="Константа кривой shares × cash")
    min_reserve_shares: float = Field(
        DEFAULT_MIN_RESERVE_SHARES,
        ge=0,
        description="Нижняя граница shares_in_pool после покупки",
    )

    model_config = {"frozen": True, "allow_inf_nan": False, "extra": "ignore"}

    @model_validator(mode="after")
    def validate_constant_product(self) -> "Pool":
        """Проверка shares × cash ≈ k (только round-off, k сделкой не меняется)"""
        if not verify_invariant(self.shares_in_pool, self.cash_in_pool, self.k_constant):
            raise ValueError(
                f"shares_in_pool * cash_in_pool = "
                f"{self.shares_in_pool * self.cash_in_pool:.6e} deviates from "
                f"k_constant {self.k_constant:.6e} by more than {INVARIANT_REL_TOL:.0e}"
            )
        return self

    # -------------------------------------------------------------------------
    # Конструкторы
    # -------------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        initial_shares: float = DEFAULT_INITIAL_SHARES,
        initial_cash: float = DEFAULT_INITIAL_CASH,
        min_reserve_shares: float = DEFAULT_MIN_RESERVE_SHARES,
    ) -> "Pool":
        """
        Создание нового пула: k_constant = initial_shares × initial_cash.

        Raises:
            ValidationError: Если параметры некорректны
        """
        return cls(
            shares_in_pool=initial_shares,
            cash_in_pool=initial_cash,
            k_constant=initial_shares * initial_cash,
            min_reserve_shares=min_reserve_shares,
        )

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "Pool":
        """
        Загрузка из записи слоя хранения.

        Запись сначала проверяется по контракту pool_snapshot.json (строго по
        типам, без приведения строк к числам), затем моделью. Лишние ключи
        (id, timestamps) игнорируются.

        Raises:
            jsonschema.ValidationError: Если запись не соответствует контракту
            ValidationError: Если снимок не проходит валидацию модели
        """
        record = dict(data)
        validate_pool_snapshot(record)
        return cls.model_validate(record)

    def to_snapshot(self) -> dict[str, float]:
        """Поля, которыми движок обменивается со слоем хранения"""
        return self.model_dump()

    # -------------------------------------------------------------------------
    # Следующее состояние
    # -------------------------------------------------------------------------

    def at_shares(self, shares_in_pool: float) -> "Pool":
        """
        Снимок того же пула в другой точке кривой.

        cash выводится как k / shares, а не накапливается приращениями
        cost/payout: так ошибка округления не растёт с числом сделок.

        Args:
            shares_in_pool: shares в пуле в новой точке

        Returns:
            Новый Pool с тем же k_constant и min_reserve_shares

        Raises:
            ValueError: Если shares_in_pool <= 0
        """
        return Pool(
            shares_in_pool=shares_in_pool,
            cash_in_pool=cash_on_curve(self.k_constant, shares_in_pool),
            k_constant=self.k_constant,
            min_reserve_shares=self.min_reserve_shares,
        )

    def product(self) -> float:
        """Текущее shares × cash (для диагностики дрейфа относительно k)"""
        return self.shares_in_pool * self.cash_in_pool
