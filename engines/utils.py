"""Numeric helpers shared by the simulation engines."""

from __future__ import annotations

import math


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves upwards (``2.5 -> 3``), unlike the built-in :func:`round`."""

    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
