"""
Per-sample signal conditioning.

Algorithm
---------
1. Detrend: a slow EMA (inertia ≈ 0.99) follows the baseline brightness,
   which drifts with breathing, finger pressure and lighting.  Subtracting it
   leaves the fast cardiac component.
2. Low-pass: a moderate EMA (inertia ≈ 0.7) over the detrended value removes
   sensor shot noise while keeping the pulse waveform shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ppg_pulse.signal_library import weighted_average

logger = logging.getLogger(__name__)


@dataclass
class ConditionerState:
    trendline_avg: float
    low_pass_avg: float


class SignalConditioner:
    """
    Detrending and smoothing filter pair.

    Parameters
    ----------
    trend_inertia:
        EMA weight of the baseline tracker.
    low_pass_inertia:
        EMA weight of the smoothing filter.
    initial_estimate:
        Value both filters start from after construction or :meth:`reset`.
    """

    def __init__(
        self,
        trend_inertia: float = 0.99,
        low_pass_inertia: float = 0.7,
        initial_estimate: float = 128.0,
    ) -> None:
        self.trend_inertia = trend_inertia
        self.low_pass_inertia = low_pass_inertia
        self.initial_estimate = initial_estimate
        self.state = ConditionerState(initial_estimate, initial_estimate)

    def process(self, raw: float) -> float:
        """Feed one raw brightness value and return the conditioned value."""
        state = self.state
        state.trendline_avg = weighted_average(state.trendline_avg, raw, self.trend_inertia)
        detrended = raw - state.trendline_avg
        state.low_pass_avg = weighted_average(state.low_pass_avg, detrended, self.low_pass_inertia)
        return state.low_pass_avg

    def reset(self) -> None:
        logger.debug("Conditioner reset to %.2f", self.initial_estimate)
        self.state = ConditionerState(self.initial_estimate, self.initial_estimate)
