"""
Тесты для доменных моделей: Pool, TradeRecord

Проверяет:
1. Создание и валидацию моделей Pydantic
2. Инвариант shares × cash ≈ k при конструировании снимка
3. Immutability (frozen=True)
4. Обмен со слоем хранения (snapshot dict по контракту, JSON)
5. Граничные случаи и невалидные данные
"""

import json

import jsonschema
import pytest
from pydantic import ValidationError

from src.core.domain import (
    DEFAULT_INITIAL_CASH,
    DEFAULT_INITIAL_SHARES,
    DEFAULT_MIN_RESERVE_SHARES,
    Pool,
    TradeRecord,
    TradeSide,
)


# =============================================================================
# POOL TESTS
# =============================================================================


class TestPool:
    """Тесты для модели Pool"""

    @pytest.fixture
    def pool(self) -> Pool:
        return Pool(
            shares_in_pool=100_000.0,
            cash_in_pool=1_000_000.0,
            k_constant=1e11,
            min_reserve_shares=1_000.0,
        )

    def test_create_valid(self, pool: Pool) -> None:
        assert pool.shares_in_pool == 100_000.0
        assert pool.cash_in_pool == 1_000_000.0
        assert pool.k_constant == 1e11
        assert pool.min_reserve_shares == 1_000.0

    def test_create_defaults(self) -> None:
        """Pool.create() с параметрами по умолчанию: 100k shares, 1M cash, reserve 1000"""
        pool = Pool.create()
        assert pool.shares_in_pool == DEFAULT_INITIAL_SHARES == 100_000.0
        assert pool.cash_in_pool == DEFAULT_INITIAL_CASH == 1_000_000.0
        assert pool.min_reserve_shares == DEFAULT_MIN_RESERVE_SHARES == 1_000.0
        assert pool.k_constant == 1e11

    def test_create_derives_k(self) -> None:
        pool = Pool.create(initial_shares=5_000.0, initial_cash=50_000.0)
        assert pool.k_constant == 2.5e8

    def test_min_reserve_default(self) -> None:
        pool = Pool(shares_in_pool=10.0, cash_in_pool=10.0, k_constant=100.0)
        assert pool.min_reserve_shares == DEFAULT_MIN_RESERVE_SHARES

    def test_immutable(self, pool: Pool) -> None:
        """Pool должен быть immutable (frozen=True)"""
        with pytest.raises(ValidationError):
            pool.shares_in_pool = 1.0  # type: ignore[misc]

    @pytest.mark.parametrize("field", ["shares_in_pool", "cash_in_pool", "k_constant"])
    def test_non_positive_rejected(self, field: str) -> None:
        data = {
            "shares_in_pool": 100.0,
            "cash_in_pool": 100.0,
            "k_constant": 10_000.0,
            field: 0.0,
        }
        with pytest.raises(ValidationError):
            Pool(**data)

    def test_negative_min_reserve_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Pool(shares_in_pool=100.0, cash_in_pool=100.0, k_constant=10_000.0, min_reserve_shares=-1.0)

    @pytest.mark.parametrize("bad", [float("nan"), float("inf")])
    def test_non_finite_rejected(self, bad: float) -> None:
        with pytest.raises(ValidationError):
            Pool(shares_in_pool=bad, cash_in_pool=100.0, k_constant=10_000.0)

    def test_invariant_violation_rejected(self) -> None:
        """Снимок, смещённый с кривой сильнее толерантности, невалиден"""
        with pytest.raises(ValidationError) as exc_info:
            Pool(shares_in_pool=100_000.0, cash_in_pool=1_010_000.0, k_constant=1e11)
        assert "k_constant" in str(exc_info.value)

    def test_round_off_drift_accepted(self) -> None:
        """Ошибка округления в пределах 0.01% допустима"""
        pool = Pool(shares_in_pool=100_000.0, cash_in_pool=1_000_050.0, k_constant=1e11)
        assert pool.product() == pytest.approx(1.00005e11)

    def test_at_shares_derives_cash_from_k(self, pool: Pool) -> None:
        nxt = pool.at_shares(99_000.0)
        assert nxt.shares_in_pool == 99_000.0
        assert nxt.cash_in_pool == 1e11 / 99_000.0
        assert nxt.k_constant == pool.k_constant
        assert nxt.min_reserve_shares == pool.min_reserve_shares
        # исходный снимок не изменился
        assert pool.shares_in_pool == 100_000.0

    def test_at_shares_rejects_non_positive(self, pool: Pool) -> None:
        with pytest.raises(ValueError):
            pool.at_shares(0.0)

    def test_snapshot_roundtrip_ignores_external_fields(self, pool: Pool) -> None:
        record = {
            **pool.to_snapshot(),
            "id": "founder-1",
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-01-02T00:00:00Z",
        }
        loaded = Pool.from_snapshot(record)
        assert loaded == pool
        assert set(loaded.to_snapshot()) == {
            "shares_in_pool",
            "cash_in_pool",
            "k_constant",
            "min_reserve_shares",
        }

    @pytest.mark.parametrize(
        "field,value",
        [
            ("cash_in_pool", "1000000"),  # строка не приводится к числу
            ("shares_in_pool", 0),
            ("k_constant", None),
            ("min_reserve_shares", -1.0),
        ],
    )
    def test_from_snapshot_rejects_contract_violation(self, pool: Pool, field: str, value) -> None:
        record = {**pool.to_snapshot(), field: value}
        with pytest.raises(jsonschema.ValidationError):
            Pool.from_snapshot(record)

    def test_from_snapshot_requires_min_reserve(self, pool: Pool) -> None:
        record = pool.to_snapshot()
        del record["min_reserve_shares"]
        with pytest.raises(jsonschema.ValidationError, match="min_reserve_shares"):
            Pool.from_snapshot(record)

    def test_from_snapshot_checks_invariant_after_contract(self, pool: Pool) -> None:
        """Запись проходит контракт, но смещена с кривой: отказ модели"""
        record = {**pool.to_snapshot(), "cash_in_pool": 2_000_000.0}
        with pytest.raises(ValidationError, match="k_constant"):
            Pool.from_snapshot(record)

    def test_json_roundtrip(self, pool: Pool) -> None:
        restored = Pool.model_validate(json.loads(pool.model_dump_json()))
        assert restored == pool


# =============================================================================
# TRADE RECORD TESTS
# =============================================================================


class TestTradeRecord:
    """Тесты для модели TradeRecord"""

    def test_buy_record(self) -> None:
        trade = TradeRecord(
            side=TradeSide.BUY,
            shares=1_000.0,
            amount=10_101.01,
            price_per_share=10.10101,
            resulting_price=10.203,
        )
        assert trade.is_buy()
        assert trade.notional() == 10_101.01

    def test_sell_record_negative_amount(self) -> None:
        trade = TradeRecord(
            side=TradeSide.SELL,
            shares=1_000.0,
            amount=-9_900.99,
            price_per_share=9.90099,
            resulting_price=9.803,
        )
        assert not trade.is_buy()
        assert trade.notional() == 9_900.99

    def test_buy_with_negative_amount_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            TradeRecord(
                side=TradeSide.BUY,
                shares=1.0,
                amount=-10.0,
                price_per_share=10.0,
                resulting_price=10.0,
            )
        assert "buy amount" in str(exc_info.value)

    def test_sell_with_positive_amount_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            TradeRecord(
                side=TradeSide.SELL,
                shares=1.0,
                amount=10.0,
                price_per_share=10.0,
                resulting_price=10.0,
            )
        assert "sell amount" in str(exc_info.value)

    def test_zero_shares_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TradeRecord(
                side=TradeSide.BUY,
                shares=0.0,
                amount=0.0,
                price_per_share=10.0,
                resulting_price=10.0,
            )

    def test_side_from_string(self) -> None:
        trade = TradeRecord.model_validate(
            {
                "side": "sell",
                "shares": 5.0,
                "amount": -49.0,
                "price_per_share": 9.8,
                "resulting_price": 9.7,
            }
        )
        assert trade.side == TradeSide.SELL

    def test_immutable(self) -> None:
        trade = TradeRecord(
            side=TradeSide.BUY,
            shares=1.0,
            amount=10.0,
            price_per_share=10.0,
            resulting_price=10.0,
        )
        with pytest.raises(ValidationError):
            trade.amount = 0.0  # type: ignore[misc]
