"""
PPG Pulse — heart rate from fingertip brightness.
Press a fingertip over a lit camera lens; the brightness of each frame rises
and falls with blood volume, and the pipeline turns that trace into a pulse
estimate with an uncertainty.
"""

from ppg_pulse.aggregator import PulseAggregator, PulseReport
from ppg_pulse.config import ConfigError, PulseConfig
from ppg_pulse.estimators import (
    EstimateStatus,
    FrequencyEstimate,
    FrequencyEstimator,
    SpectralEstimator,
    TrendlineEstimator,
)
from ppg_pulse.listeners import CallbackListener, PulseListener
from ppg_pulse.session import PulseSession, SensorError, SessionError, SessionState

__version__ = "0.1.0"
__author__ = "ppg_pulse"
