"""
Trade — Модель исполненной сделки с пулом

Immutable Pydantic модель, описывающая результат применённой покупки или
продажи. Идентификаторы инвестора/пула и timestamps принадлежат внешнему
слою и здесь не моделируются.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class TradeSide(str, Enum):
    """Сторона сделки относительно инвестора"""

    BUY = "buy"  # shares уходят из пула, cash приходит в пул
    SELL = "sell"  # shares возвращаются в пул, cash уходит из пула


# =============================================================================
# TRADE RECORD
# =============================================================================


class TradeRecord(BaseModel):
    """
    Запись об исполненной сделке.

    amount знаковый: положительный для покупки (cost, уплачено в пул),
    отрицательный для продажи (payout, выплачено из пула).

    Immutable модель (frozen=True).
    """

    side: TradeSide = Field(..., description="Сторона сделки (buy/sell)")
    shares: float = Field(..., gt=0, description="Количество shares")
    amount: float = Field(..., description="Cash: + cost для buy, - payout для sell")
    price_per_share: float = Field(
        ..., ge=0, description="Средняя цена исполнения |amount| / shares"
    )
    resulting_price: float = Field(..., ge=0, description="Spot price пула после сделки (с cap)")

    model_config = {"frozen": True, "allow_inf_nan": False}

    @field_validator("amount")
    @classmethod
    def validate_amount_sign(cls, v: float, info) -> float:
        """Знак amount должен соответствовать стороне сделки"""
        side = info.data.get("side")
        if side == TradeSide.BUY and v < 0:
            raise ValueError(f"buy amount must be non-negative (cost), got {v}")
        if side == TradeSide.SELL and v > 0:
            raise ValueError(f"sell amount must be non-positive (payout), got {v}")
        return v

    def notional(self) -> float:
        """Объём сделки в cash (без знака)"""
        return abs(self.amount)

    def is_buy(self) -> bool:
        return self.side == TradeSide.BUY
