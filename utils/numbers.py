"""
utils/numbers.py
----------------
Rounding shared by the stats modules. Halves round up (2.5 -> 3, -2.5 -> -2),
unlike the built-in ``round`` which rounds halves to even.
"""
import math


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_to_tenth(value: float) -> float:
    return round_half_up(value * 10) / 10
