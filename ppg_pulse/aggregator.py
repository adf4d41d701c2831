"""
Aggregation of successive frequency estimates into a reported pulse.

The reported value is the median (or mean) of every estimate since the last
reset.  Its uncertainty is a standard-error style figure with a constant
bias added to the spread, so three agreeing estimates do not already claim
sub-BPM precision::

    error = (deviance_bias + stddev(history)) / sqrt(len(history))
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PulseReport:
    bpm: float
    error: float
    count: int


class PulseAggregator:
    """
    Parameters
    ----------
    min_history:
        Number of estimates required before :meth:`current_report` returns
        anything.
    deviance_bias:
        Constant added to the standard deviation.
    central:
        ``"median"`` (robust to a single bad spectral pick) or ``"mean"``.
    """

    def __init__(
        self,
        min_history: int = 4,
        deviance_bias: float = 10.0,
        central: str = "median",
    ) -> None:
        if central not in ("median", "mean"):
            raise ValueError(f"Unknown central value {central!r}")
        self.min_history = min_history
        self.deviance_bias = deviance_bias
        self.central = central
        self._history: List[float] = []

    def record(self, bpm: float) -> None:
        self._history.append(float(bpm))

    @property
    def history(self) -> List[float]:
        return list(self._history)

    def __len__(self) -> int:
        return len(self._history)

    @property
    def error(self) -> float:
        """Current uncertainty in BPM; infinite while the history is empty."""
        n = len(self._history)
        if n == 0:
            return math.inf
        spread = float(np.std(self._history, ddof=1)) if n > 1 else 0.0
        return (self.deviance_bias + spread) / math.sqrt(n)

    def current_report(self) -> Optional[PulseReport]:
        """Return the aggregate, or *None* while there are too few estimates."""
        n = len(self._history)
        if n < self.min_history:
            return None
        if self.central == "median":
            bpm = float(np.median(self._history))
        else:
            bpm = float(np.mean(self._history))
        return PulseReport(bpm=bpm, error=self.error, count=n)

    def is_settled(self, threshold: float) -> bool:
        """True once a report exists and its error is below *threshold*."""
        report = self.current_report()
        return report is not None and report.error < threshold

    def reset(self) -> None:
        if self._history:
            logger.debug("Dropping %d pulse estimates", len(self._history))
        self._history.clear()
