"""
Session configuration.

Every tunable of the pulse pipeline is fixed when a session is built; there
is no dynamic reconfiguration.  Defaults suit a phone camera at ~30 fps with
the torch on: an ~8 s window, 30 warm-up frames, an estimate every 32
frames and a 30 – 240 BPM band.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

ESTIMATORS = ("spectral", "trendline")
CENTRAL_VALUES = ("median", "mean")


class ConfigError(ValueError):
    """Raised when a :class:`PulseConfig` holds an unusable value."""


@dataclass(frozen=True)
class PulseConfig:
    """
    Parameters
    ----------
    buffer_size:
        Capacity N of the sample history.  Longer windows give finer
        frequency resolution but respond more slowly.
    warmup_samples:
        Samples discarded after the sensor is (re)opened while its
        automatic exposure settles.
    event_trigger:
        Number of samples between two frequency estimates.
    bpm_low, bpm_high:
        Physiological band searched for the pulse, in beats per minute.
    trend_inertia:
        Weight of the detrending EMA (close to 1 = slow baseline).
    low_pass_inertia:
        Weight of the smoothing EMA applied to the detrended signal.
    initial_estimate:
        Expected brightness magnitude used to seed both filters so they
        do not spend the first seconds converging from zero.
    min_history:
        Number of estimates required before a pulse is reported.
    deviance_bias:
        Constant added to the standard deviation of the estimate history
        so the first reports do not claim a spuriously small error.
    estimator:
        ``"spectral"`` (FFT peak) or ``"trendline"`` (crossing count).
    central:
        ``"median"`` or ``"mean"`` of the estimate history.
    auto_pause_error:
        When set, the session pauses itself once the reported error falls
        below this many BPM.
    clear_history_on_pause:
        Drop the estimate history when the session is paused.
    clear_buffer_on_resume:
        Drop buffered samples when the session resumes.
    """

    buffer_size: int = 256
    warmup_samples: int = 30
    event_trigger: int = 32
    bpm_low: float = 30.0
    bpm_high: float = 240.0
    trend_inertia: float = 0.99
    low_pass_inertia: float = 0.7
    initial_estimate: float = 128.0
    min_history: int = 4
    deviance_bias: float = 10.0
    estimator: str = "spectral"
    central: str = "median"
    auto_pause_error: Optional[float] = None
    clear_history_on_pause: bool = True
    clear_buffer_on_resume: bool = True

    def __post_init__(self) -> None:
        if self.buffer_size < 4:
            raise ConfigError(f"buffer_size must be at least 4, got {self.buffer_size}")
        if self.warmup_samples < 0:
            raise ConfigError("warmup_samples must not be negative")
        if self.event_trigger <= 0:
            raise ConfigError("event_trigger must be positive")
        if not 0.0 < self.bpm_low < self.bpm_high:
            raise ConfigError(
                f"Invalid BPM band [{self.bpm_low}, {self.bpm_high}]"
            )
        for name in ("trend_inertia", "low_pass_inertia"):
            value = getattr(self, name)
            if not 0.0 <= value < 1.0:
                raise ConfigError(f"{name} must lie in [0, 1), got {value}")
        if self.min_history < 1:
            raise ConfigError("min_history must be at least 1")
        if self.deviance_bias < 0:
            raise ConfigError("deviance_bias must not be negative")
        if self.estimator not in ESTIMATORS:
            raise ConfigError(
                f"Unknown estimator {self.estimator!r}; choose from {ESTIMATORS}"
            )
        if self.central not in CENTRAL_VALUES:
            raise ConfigError(
                f"Unknown central value {self.central!r}; choose from {CENTRAL_VALUES}"
            )
        if self.auto_pause_error is not None and self.auto_pause_error <= 0:
            raise ConfigError("auto_pause_error must be positive when set")

    @property
    def low_hz(self) -> float:
        return self.bpm_low / 60.0

    @property
    def high_hz(self) -> float:
        return self.bpm_high / 60.0
