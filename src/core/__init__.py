"""
Core domain models, mathematical primitives, and contracts.

This module contains the foundational building blocks of the bonding-curve
pricing engine that are independent of persistence and transport layers.
"""
