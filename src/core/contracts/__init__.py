"""
Contract Validation Module

Валидация JSON контрактов обмена со слоем хранения.
"""

from .validators import (
    ContractValidator,
    PoolSnapshotValidator,
    SchemaLoader,
    TradeRecordValidator,
    validate_pool_snapshot,
    validate_trade_record,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "PoolSnapshotValidator",
    "TradeRecordValidator",
    # Functions
    "validate_pool_snapshot",
    "validate_trade_record",
]
