"""
Test suite for bonding-curve-engine

Contains:
- tests/unit/          : Unit tests for math primitives, domain models,
                         contracts, pricing engine and settlement
"""
