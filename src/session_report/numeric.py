# ABOUTME: Rounding and clamping helpers shared across the report engine.
# ABOUTME: Uses half-up rounding so .5 boundaries resolve the same way every time.

from __future__ import annotations

import math
from typing import Optional

import numpy as np


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percent(numerator: float, denominator: float) -> int:
    """Integer percentage in [0, 100]; 0 when the denominator is empty."""

    if not denominator or denominator <= 0:
        return 0
    return clamp_percent(round_half_up(100.0 * numerator / denominator))


def clamp_percent(value: Optional[float]) -> int:
    if value is None or math.isnan(value):
        return 0
    return int(np.clip(round_half_up(value), 0, 100))


def round_to_half(value: float, low: float = 1.0, high: float = 5.0) -> float:
    clipped = float(np.clip(value, low, high))
    return math.floor(clipped * 2 + 0.5) / 2


def minutes(seconds: float) -> float:
    return round_half_up(seconds / 60.0, 1)
