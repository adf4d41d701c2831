"""
Pulse measurement session.

A :class:`PulseSession` sits between a sensor collaborator that delivers one
``(timestamp, brightness)`` sample per frame and the listeners interested in
the result.  Per sample, while running:

1. Advance the sample counter.  It starts at ``-warmup_samples`` after every
   (re)open so the first frames, taken while auto-exposure settles, are
   conditioned but neither buffered nor emitted.
2. Condition the sample (detrend + low-pass).  Past warm-up, push it into
   the :class:`SampleBuffer` and emit it as a raw-sample event.
3. Every ``event_trigger`` samples, run the configured estimator, record the
   estimate and emit the aggregate pulse once there is enough history.

The sensor usually drives a light source (a phone torch, a ring lamp) that
must not stay on indefinitely, so :meth:`pause` and
:meth:`stop` always release it.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Optional, Protocol

from ppg_pulse.aggregator import PulseAggregator, PulseReport
from ppg_pulse.conditioner import SignalConditioner
from ppg_pulse.config import PulseConfig
from ppg_pulse.estimators import FrequencyEstimator, make_estimator
from ppg_pulse.listeners import ListenerRegistry, PulseListener
from ppg_pulse.ring_buffer import SampleBuffer

logger = logging.getLogger(__name__)


class SensorError(RuntimeError):
    """Raised by a sensor collaborator that cannot acquire or keep its hardware."""


class SessionError(RuntimeError):
    """Raised for illegal lifecycle transitions or a sensor that failed to open."""


class Sensor(Protocol):
    def open(self) -> None: ...

    def close(self) -> None: ...


class SessionState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class PulseSession:
    """
    Parameters
    ----------
    config:
        Session tunables; defaults to :class:`PulseConfig()`.
    sensor:
        Optional collaborator opened on :meth:`start` / :meth:`resume` and
        closed on :meth:`pause` / :meth:`stop`.  Offline replays pass None.
    estimator:
        Overrides the estimator named in *config*.
    """

    def __init__(
        self,
        config: Optional[PulseConfig] = None,
        sensor: Optional[Sensor] = None,
        estimator: Optional[FrequencyEstimator] = None,
    ) -> None:
        self.config = config or PulseConfig()
        self.sensor = sensor
        self.estimator = estimator or make_estimator(self.config)

        self.buffer = SampleBuffer(self.config.buffer_size)
        self.conditioner = SignalConditioner(
            trend_inertia=self.config.trend_inertia,
            low_pass_inertia=self.config.low_pass_inertia,
            initial_estimate=self.config.initial_estimate,
        )
        self.aggregator = PulseAggregator(
            min_history=self.config.min_history,
            deviance_bias=self.config.deviance_bias,
            central=self.config.central,
        )
        self.listeners = ListenerRegistry()

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._counter = -self.config.warmup_samples
        self._start_time: Optional[float] = None
        self._last_timestamp: Optional[float] = None
        self._current_pulse = 0.0
        self._last_report: Optional[PulseReport] = None
        self.last_error: Optional[BaseException] = None

    # ------------------------------------------------------------------
    # Listener registry
    # ------------------------------------------------------------------

    def subscribe(self, listener: PulseListener) -> bool:
        with self._lock:
            return self.listeners.subscribe(listener)

    def unsubscribe(self, listener: PulseListener) -> bool:
        with self._lock:
            return self.listeners.unsubscribe(listener)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pulse(self) -> float:
        """
        Last reported pulse in BPM (0.0 before the first report).

        Kept across pause and stop, unlike :attr:`pulse_error`, so a caller
        can read the final result after the session has released the sensor.
        """
        return self._current_pulse

    @property
    def pulse_error(self) -> float:
        """Error of the current history; infinite once it has been cleared."""
        return self.aggregator.error

    @property
    def last_report(self) -> Optional[PulseReport]:
        """Most recent emitted report, kept like :attr:`pulse`."""
        return self._last_report

    @property
    def warmup_remaining(self) -> int:
        """Samples still to be discarded before buffering starts."""
        return max(0, -self._counter)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Open the sensor and begin accepting samples."""
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise SessionError(f"Cannot start a session that is {self._state.value}")
            self._open_sensor()
            self._state = SessionState.RUNNING
            logger.info("Pulse session started (estimator=%s)", self.estimator.name)

    def pause(self) -> None:
        """Stop ingesting and release the sensor.  No-op unless running."""
        with self._lock:
            if self._state is not SessionState.RUNNING:
                return
            self._state = SessionState.PAUSED
            self._release_sensor()
            if self.config.clear_history_on_pause:
                self.aggregator.reset()
            logger.info("Pulse session paused")

    def resume(self) -> None:
        """Reopen the sensor and restart the warm-up period."""
        with self._lock:
            if self._state is SessionState.RUNNING:
                return
            if self._state is not SessionState.PAUSED:
                raise SessionError(f"Cannot resume a session that is {self._state.value}")
            self._open_sensor()
            self._counter = -self.config.warmup_samples
            self._last_timestamp = None
            self.conditioner.reset()
            if self.config.clear_buffer_on_resume:
                self.buffer.reset()
                self._start_time = None
            self._state = SessionState.RUNNING
            logger.info("Pulse session resumed")

    def stop(self) -> None:
        """Release the sensor for good.  Idempotent."""
        with self._lock:
            if self._state is SessionState.STOPPED:
                return
            holds_sensor = self._state is SessionState.RUNNING
            self._state = SessionState.STOPPED
            if holds_sensor:
                self._release_sensor()
            self.aggregator.reset()
            logger.info("Pulse session stopped")

    def fail(self, exc: BaseException) -> None:
        """Report a collaborator failure: record it and stop cleanly."""
        with self._lock:
            logger.error("Sensor failure, stopping session: %s", exc)
            self.last_error = exc
            self.stop()

    def __enter__(self) -> "PulseSession":
        self.start()
        return self

    def __exit__(self, *_) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Sample ingestion
    # ------------------------------------------------------------------

    def on_sample(self, timestamp: float, value: float) -> bool:
        """
        Ingest one brightness sample.

        Returns False when the sample was ignored (session not running or
        timestamp earlier than the previous one).
        """
        with self._lock:
            if self._state is not SessionState.RUNNING:
                return False
            if self._last_timestamp is not None and timestamp < self._last_timestamp:
                logger.warning(
                    "Dropping out-of-order sample at %.4fs (previous %.4fs)",
                    timestamp, self._last_timestamp,
                )
                return False
            self._last_timestamp = timestamp

            self._counter += 1
            conditioned = self.conditioner.process(value)
            if self._counter <= 0:
                return True

            if self._start_time is None:
                self._start_time = timestamp
            relative = timestamp - self._start_time
            self.buffer.push(conditioned, relative)
            self.listeners.dispatch_raw_sample(relative, conditioned)

            # A listener may have paused or stopped the session.
            if self._state is SessionState.RUNNING and self._counter % self.config.event_trigger == 0:
                self._handle_pulse()
            return True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _handle_pulse(self) -> None:
        estimate = self.estimator.estimate(self.buffer)
        if not estimate.ready:
            return
        logger.debug("Computing pulse... %.1f BPM (%s)", estimate.bpm, estimate.status.value)
        self.aggregator.record(estimate.bpm)
        report = self.aggregator.current_report()
        if report is None:
            return
        self._current_pulse = report.bpm
        self._last_report = report
        self.listeners.dispatch_pulse_estimate(report.bpm, report.error)

        threshold = self.config.auto_pause_error
        if threshold is not None and report.error < threshold and self._state is SessionState.RUNNING:
            logger.info("Pulse settled at %.1f ± %.1f BPM", report.bpm, report.error)
            self.pause()

    def _open_sensor(self) -> None:
        if self.sensor is None:
            return
        try:
            self.sensor.open()
        except SensorError as exc:
            raise SessionError(f"Sensor could not be opened: {exc}") from exc

    def _release_sensor(self) -> None:
        if self.sensor is not None:
            self.sensor.close()

