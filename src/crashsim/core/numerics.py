"""
Small numeric guards shared by the simulation models.

Every continuous value that is stored in simulation state passes through
one of these helpers so NaN/Infinity never leaks into the next tick.
"""

import math


def finite_or(value: float, default: float = 0.0) -> float:
    """Return value as float if finite, otherwise the default."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value to [lower, upper]. Non-finite values collapse to lower bound."""
    value = finite_or(value, lower)
    return max(lower, min(upper, value))


def smoothing_factor(alpha: float, dt: float, reference_dt: float) -> float:
    """
    Rescale a per-tick first-order lag constant to an arbitrary time step.

    At dt == reference_dt the constant is returned unchanged, so the settling
    time stays about 1/alpha reference ticks at any frame rate.
    """
    if dt <= 0.0 or not math.isfinite(dt):
        return 0.0
    return 1.0 - (1.0 - alpha) ** (dt / reference_dt)
