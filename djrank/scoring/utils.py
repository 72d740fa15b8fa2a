"""
Coercion Utilities
djrank/scoring/utils.py

Turns loosely-typed rubric input into clamped criterion values and flags.
"""

import math
from decimal import ROUND_FLOOR, Decimal
from typing import Any

CRITERION_MIN = 0
CRITERION_MAX = 3

_TRUE_STRINGS = {"true", "1", "yes", "on", "y", "t"}


def clamp(
    value: Decimal,
    min_val: Decimal = Decimal("0"),
    max_val: Decimal = Decimal("3"),
) -> Decimal:
    """Clamp value to range [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def coerce_criterion(value: Any) -> int:
    """
    Coerce a criterion rating to an integer in [0, 3].

    Missing, non-numeric and NaN values become 0. Fractions are floored.
    """
    if value is None:
        return CRITERION_MIN
    if isinstance(value, int):
        # Exact for ints of any size; float() overflows past ~1e308
        number = Decimal(value)
    else:
        try:
            as_float = float(value)
        except (TypeError, ValueError, OverflowError):
            return CRITERION_MIN
        if math.isnan(as_float):
            return CRITERION_MIN
        number = Decimal(as_float)
    bounded = clamp(number, Decimal(CRITERION_MIN), Decimal(CRITERION_MAX))
    return int(bounded.to_integral_value(rounding=ROUND_FLOOR))


def coerce_flag(value: Any) -> bool:
    """Coerce a bonus/penalty flag to bool; strings like "true"/"1" count as set."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)
