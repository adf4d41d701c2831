"""Exponential smoothing primitives shared by the whole pipeline."""

from __future__ import annotations

import numpy as np


def weighted_average(prev: float, new: float, weight: float) -> float:
    """
    Single-pole exponential moving average step.

    ``weight`` close to 1 adapts slowly; close to 0 follows *new* almost
    immediately.
    """
    return prev * weight + new * (1.0 - weight)


def moving_average(values: np.ndarray, inertia: float) -> np.ndarray:
    """
    Apply :func:`weighted_average` cumulatively along *values*.

    The first output equals the first input, so a trace does not start by
    ramping up from zero.
    """
    values = np.asarray(values, dtype=np.float64)
    out = np.empty_like(values)
    if values.size == 0:
        return out
    avg = values[0]
    for i, v in enumerate(values):
        avg = weighted_average(avg, v, inertia)
        out[i] = avg
    return out
