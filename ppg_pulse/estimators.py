"""
Pulse frequency estimators.

Two interchangeable strategies read the same :class:`SampleBuffer` window:

Spectral
    Remove the DC offset, take the power spectrum, and pick the strongest
    bin inside the physiological band.  Resolution is one bin,
    ``60 / (N * mean_interval)`` BPM.
Trendline
    Fit a least-squares line of brightness against time and count how often
    the signal crosses it.  Every cardiac cycle crosses its mean line twice.
    Handles strong baseline drift well, but noise adds spurious crossings.

Neither strategy raises for missing or degenerate data.  A window that is
not full yet gives a ``NOT_READY`` estimate; a window that cannot be
analysed (no time span, no variation) gives a ``DEGENERATE`` estimate at the
lowest in-band rate with zero confidence.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

import numpy as np
from scipy.stats import linregress

from ppg_pulse.config import PulseConfig
from ppg_pulse.ring_buffer import SampleBuffer

logger = logging.getLogger(__name__)


class EstimateStatus(enum.Enum):
    OK = "ok"
    NOT_READY = "not_ready"
    DEGENERATE = "degenerate"


@dataclass(frozen=True)
class FrequencyEstimate:
    """One estimation cycle's result; ``bpm`` is meaningless when not ready."""

    bpm: float
    confidence: float = 0.0
    status: EstimateStatus = EstimateStatus.OK

    @property
    def ready(self) -> bool:
        return self.status is not EstimateStatus.NOT_READY

    @classmethod
    def not_ready(cls) -> "FrequencyEstimate":
        return cls(bpm=0.0, confidence=0.0, status=EstimateStatus.NOT_READY)

    @classmethod
    def degenerate(cls, bpm: float) -> "FrequencyEstimate":
        return cls(bpm=bpm, confidence=0.0, status=EstimateStatus.DEGENERATE)


class FrequencyEstimator:
    """
    Common estimator contract.

    Parameters
    ----------
    bpm_low, bpm_high:
        Physiological band in beats per minute.
    """

    name = "base"

    def __init__(self, bpm_low: float = 30.0, bpm_high: float = 240.0) -> None:
        self.bpm_low = bpm_low
        self.bpm_high = bpm_high

    def estimate(self, buffer: SampleBuffer) -> FrequencyEstimate:
        raise NotImplementedError()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(bpm_low={self.bpm_low}, bpm_high={self.bpm_high})"


class SpectralEstimator(FrequencyEstimator):
    """FFT peak-picking inside ``[bpm_low, bpm_high]``."""

    name = "spectral"

    def estimate(self, buffer: SampleBuffer) -> FrequencyEstimate:
        if not buffer.is_full():
            logger.debug("Can't compute pulse because the sample buffer has not filled")
            return FrequencyEstimate.not_ready()

        interval = buffer.mean_gap()
        if interval <= 0:
            logger.warning("Sample timestamps do not advance; spectral estimate is degenerate")
            return FrequencyEstimate.degenerate(self.bpm_low)

        signal = buffer.zero_mean_snapshot("mean")
        n = len(signal)
        freqs = np.fft.rfftfreq(n, d=interval)          # Hz
        power = np.abs(np.fft.rfft(signal)) ** 2

        band_mask = (freqs >= self.bpm_low / 60.0) & (freqs <= self.bpm_high / 60.0)
        if not band_mask.any():
            logger.warning(
                "No spectral bin inside %.0f – %.0f BPM (interval %.4fs, N=%d)",
                self.bpm_low, self.bpm_high, interval, n,
            )
            return FrequencyEstimate.degenerate(self.bpm_low)

        band_power = power[band_mask]
        band_freqs = freqs[band_mask]
        total = float(band_power.sum())
        if total <= 0:
            # Flat window: every bin ties, take the lowest in-band frequency.
            return FrequencyEstimate.degenerate(float(band_freqs[0] * 60.0))

        # argmax returns the first maximum, so ties resolve to the lower bin.
        peak_idx = int(np.argmax(band_power))
        bpm = float(band_freqs[peak_idx] * 60.0)
        confidence = float(band_power[peak_idx] / total)
        logger.debug("Freq peak at %.1f BPM (power %.3g, confidence %.2f)",
                     bpm, band_power[peak_idx], confidence)
        return FrequencyEstimate(bpm=bpm, confidence=confidence)


def _crossing_mask(timestamps: np.ndarray, values: np.ndarray) -> np.ndarray:
    """Boolean mask over adjacent pairs where the regression line crosses the signal."""
    fit = linregress(timestamps, values)
    line = fit.intercept + fit.slope * timestamps
    above = line > values
    return above[1:] != above[:-1]


def count_crossings(timestamps: np.ndarray, values: np.ndarray) -> int:
    """
    Count how many adjacent sample pairs straddle the least-squares trendline.

    A pair counts when the line lies above one endpoint and below or on the
    other.
    """
    timestamps = np.asarray(timestamps, dtype=np.float64)
    values = np.asarray(values, dtype=np.float64)
    if timestamps.size < 2 or np.ptp(timestamps) == 0:
        return 0
    return int(np.count_nonzero(_crossing_mask(timestamps, values)))


class TrendlineEstimator(FrequencyEstimator):
    """Rate from the number of signal / trendline crossings."""

    name = "trendline"

    def estimate(self, buffer: SampleBuffer) -> FrequencyEstimate:
        if not buffer.is_full():
            logger.debug("Can't compute pulse because the sample buffer has not filled")
            return FrequencyEstimate.not_ready()

        timestamps, values = buffer.window()
        duration = float(timestamps[-1] - timestamps[0])
        if duration <= 0:
            logger.warning("Window spans no time; trendline estimate is degenerate")
            return FrequencyEstimate.degenerate(self.bpm_low)
        if np.ptp(values) == 0:
            logger.warning("Window has no variation; trendline estimate is degenerate")
            return FrequencyEstimate.degenerate(self.bpm_low)

        mask = _crossing_mask(timestamps, values)
        crossings = int(np.count_nonzero(mask))
        bpm = crossings / 2.0 / (duration / 60.0)

        # Regular crossing spacing means a clean periodic signal.
        confidence = 0.0
        crossing_times = timestamps[1:][mask]
        if crossing_times.size >= 3:
            gaps = np.diff(crossing_times)
            mean_gap = float(gaps.mean())
            if mean_gap > 0:
                confidence = 1.0 / (1.0 + float(gaps.std()) / mean_gap)

        logger.debug("%d trendline crossings over %.2fs -> %.1f BPM", crossings, duration, bpm)
        return FrequencyEstimate(bpm=float(bpm), confidence=confidence)


def make_estimator(config: PulseConfig) -> FrequencyEstimator:
    """Build the estimator named by ``config.estimator``."""
    classes = {cls.name: cls for cls in (SpectralEstimator, TrendlineEstimator)}
    return classes[config.estimator](bpm_low=config.bpm_low, bpm_high=config.bpm_high)
