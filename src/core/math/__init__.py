"""
Core math modules

Математические примитивы кривой постоянного произведения и численные
защиты, на которых построен PricingEngine.
"""

# Numerical Safeguards
from src.core.math.numerical_safeguards import (
    # NaN/Inf checks
    is_valid_float,
    is_valid_number,
    # Relative comparisons
    is_within_rel_tol,
    relative_deviation,
    # Directed rounding
    add_round_down,
    sub_round_down,
    # Utilities
    clamp,
    # Validation
    validate_in_range,
    validate_non_negative,
    validate_positive,
)

# Constant Product curve
from src.core.math.constant_product import (
    INVARIANT_REL_TOL,
    buy_cost,
    cash_on_curve,
    sell_payout,
    shares_for_budget,
    spot_price,
    verify_invariant,
)

__all__ = [
    # Numerical Safeguards: NaN/Inf checks
    "is_valid_float",
    "is_valid_number",
    # Numerical Safeguards: Relative comparisons
    "is_within_rel_tol",
    "relative_deviation",
    # Numerical Safeguards: Directed rounding
    "add_round_down",
    "sub_round_down",
    # Numerical Safeguards: Utilities
    "clamp",
    # Numerical Safeguards: Validation
    "validate_in_range",
    "validate_non_negative",
    "validate_positive",
    # Constant Product: Constants
    "INVARIANT_REL_TOL",
    # Constant Product: Functions
    "buy_cost",
    "cash_on_curve",
    "sell_payout",
    "shares_for_budget",
    "spot_price",
    "verify_invariant",
]
