"""
Percentage helpers shared by the progress engine and the renderer.

Halves round up (12.5 -> 13), not to the nearest even number as the
builtin round() does.
"""

import math


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def percent_of(part: int, whole: int) -> int:
    """Whole-number percentage of part in whole (0 when whole is 0)."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)
