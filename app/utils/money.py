"""Integer currency helpers (amounts are whole won)"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal, str]


def to_decimal(value: Number) -> Decimal:
    """
    Convert a rate or amount to Decimal without binary float artefacts.
    Floats go through ``str`` so 0.033 stays 0.033.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_half_up(value: Number) -> int:
    """Round to the nearest whole won, halves away from zero"""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def apply_rate(amount: int, rate: Number) -> int:
    """Multiply an amount by a rate and round immediately (half-up)"""
    return round_half_up(Decimal(amount) * to_decimal(rate))


def clamp(value: int, low: int, high: int) -> int:
    """Clamp ``value`` into ``[low, high]``; idempotent"""
    return max(low, min(value, high))
