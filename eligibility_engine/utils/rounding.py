"""
Rounding helpers shared by scoring and threshold calculations
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artifacts"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_half_away_from_zero(value: Number) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)"""
    # ROUND_HALF_UP in the decimal module rounds ties away from zero
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
