"""
Utility functions for the Benefits Eligibility Rules Engine
"""

from .validators import (
    normalize_jurisdiction_code,
    is_valid_jurisdiction_code,
    validate_year,
    validate_household_size
)
from .rounding import round_half_away_from_zero, to_decimal

__all__ = [
    "normalize_jurisdiction_code",
    "is_valid_jurisdiction_code",
    "validate_year",
    "validate_household_size",
    "round_half_away_from_zero",
    "to_decimal"
]
