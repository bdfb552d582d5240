"""
Utility functions for validating and normalizing engine inputs
"""
import re
from typing import Optional

from ..config import settings

JURISDICTION_PATTERN = re.compile(r"^[A-Z]{2}$")
MAX_TABULATED_HOUSEHOLD_SIZE = 8


def normalize_jurisdiction_code(code: Optional[str]) -> str:
    """
    Normalize a jurisdiction code for lookups

    Args:
        code: Raw jurisdiction code (any case, may carry whitespace)

    Returns:
        Upper-case, stripped code ("" for None)
    """
    if code is None:
        return ""
    return code.strip().upper()


def is_valid_jurisdiction_code(code: Optional[str]) -> bool:
    """
    Check that a jurisdiction code is a two-letter region code

    Args:
        code: Jurisdiction code to check

    Returns:
        True if the normalized code has exactly two letters
    """
    return bool(JURISDICTION_PATTERN.match(normalize_jurisdiction_code(code)))


def validate_year(year: int, min_year: int = None, max_year: int = None) -> int:
    """
    Validate an FPL table year

    Raises:
        ValueError: If the year is outside the configured range
    """
    if min_year is None:
        min_year = settings.fpl_min_year
    if max_year is None:
        max_year = settings.fpl_max_year

    if not isinstance(year, int) or year < min_year or year > max_year:
        raise ValueError(f"Year must be between {min_year}-{max_year}")
    return year


def validate_household_size(household_size: int, max_size: Optional[int] = MAX_TABULATED_HOUSEHOLD_SIZE) -> int:
    """
    Validate a household size

    Args:
        household_size: Number of people in the household
        max_size: Largest size allowed (None for no upper bound)

    Raises:
        ValueError: If the size is below 1 or above max_size
    """
    if not isinstance(household_size, int) or household_size < 1:
        raise ValueError("Household size must be at least 1")
    if max_size is not None and household_size > max_size:
        raise ValueError(f"Household size must be 1-{max_size}")
    return household_size
