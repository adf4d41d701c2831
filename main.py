#!/usr/bin/env python3
"""
PPG Pulse – main entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --input PATH          Replay a CSV of ``timestamp,brightness`` rows instead
                          of opening the camera
    --trace PATH          Write the smoothed conditioned trace to a CSV file
    --camera-index INT    OpenCV camera index (default: 0)
    --resolution WxH      Camera resolution (default: 240x120)
    --fps INT             Target frame rate (default: 30)
    --estimator NAME      spectral | trendline (default: spectral)
    --buffer-size INT     Analysis window in samples (default: 256)
    --settle-error FLOAT  Pause once the error is below this many BPM

Stop with Ctrl-C.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Tuple

import numpy as np

from ppg_pulse.camera import CameraSensor
from ppg_pulse.config import ConfigError, PulseConfig
from ppg_pulse.listeners import PulseListener
from ppg_pulse.session import PulseSession, SensorError, SessionError, SessionState
from ppg_pulse.signal_library import moving_average

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("ppg_pulse")

DISPLAY_SMOOTHING = 0.7


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Heart rate from fingertip brightness (PPG)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--input", type=Path, default=None,
                        help="Replay timestamp,brightness rows from this CSV")
    parser.add_argument("--trace", type=Path, default=None,
                        help="Save the smoothed conditioned trace to this CSV")
    parser.add_argument("--camera-index", type=int, default=0,
                        help="OpenCV VideoCapture index")
    parser.add_argument("--resolution", default="240x120",
                        help="Camera resolution, e.g. 240x120")
    parser.add_argument("--fps", type=int, default=30,
                        help="Target capture frame rate")
    parser.add_argument("--estimator", choices=("spectral", "trendline"),
                        default="spectral", help="Frequency estimation strategy")
    parser.add_argument("--buffer-size", type=int, default=256,
                        help="Analysis window in samples")
    parser.add_argument("--warmup", type=int, default=30,
                        help="Samples discarded while exposure settles")
    parser.add_argument("--trigger", type=int, default=32,
                        help="Samples between pulse estimates")
    parser.add_argument("--settle-error", type=float, default=2.0,
                        help="Pause once the pulse error is below this (0 disables)")
    return parser.parse_args(argv)


class LoggingListener(PulseListener):
    """Logs pulse updates and keeps the conditioned trace for --trace."""

    def __init__(self) -> None:
        self.trace: List[Tuple[float, float]] = []

    def on_raw_sample(self, timestamp: float, value: float) -> None:
        self.trace.append((timestamp, value))

    def on_pulse_estimate(self, bpm: float, error: float) -> None:
        print(f"BPM={bpm:.0f} ±{error:.0f}")


def save_trace(path: Path, trace: List[Tuple[float, float]]) -> None:
    if not trace:
        logger.warning("No samples passed warm-up; nothing written to %s", path)
        return
    data = np.asarray(trace, dtype=np.float64)
    smoothed = moving_average(data[:, 1], DISPLAY_SMOOTHING)
    np.savetxt(path, np.column_stack([data[:, 0], smoothed]),
               delimiter=",", header="timestamp,value")
    logger.info("Saved %d trace samples to %s", len(data), path)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def load_recording(path: Path) -> np.ndarray:
    """
    Read ``timestamp,brightness`` rows.  Lines starting with ``#`` are
    skipped, so traces written by --trace replay as they are.
    """
    rows = np.loadtxt(path, delimiter=",", ndmin=2)
    if rows.shape[1] < 2:
        raise ValueError(f"{path}: expected timestamp,brightness columns, got {rows.shape[1]}")
    return rows


def replay(session: PulseSession, rows: np.ndarray) -> None:
    logger.info("Replaying %d samples", len(rows))
    with session:
        for timestamp, value in rows[:, :2]:
            if session.state is not SessionState.RUNNING:
                break
            session.on_sample(float(timestamp), float(value))


def live(session: PulseSession, sensor: CameraSensor) -> None:
    logger.info("Place a fingertip over the lit lens.  Press Ctrl-C to quit.")
    with session:
        try:
            for timestamp, value in sensor.samples():
                session.on_sample(timestamp, value)
        except SensorError as exc:
            session.fail(exc)


def run(args: argparse.Namespace) -> int:
    try:
        res_w, res_h = (int(v) for v in args.resolution.lower().split("x"))
    except ValueError:
        logger.error("Invalid --resolution format.  Use WxH, e.g. 240x120.")
        return 1

    try:
        config = PulseConfig(
            buffer_size=args.buffer_size,
            warmup_samples=args.warmup,
            event_trigger=args.trigger,
            estimator=args.estimator,
            auto_pause_error=args.settle_error or None,
        )
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1

    rows = None
    if args.input is not None:
        try:
            rows = load_recording(args.input)
        except (OSError, ValueError) as exc:
            logger.error("Cannot read recording: %s", exc)
            return 1

    sensor = None
    if rows is None:
        sensor = CameraSensor(
            camera_index=args.camera_index,
            resolution=(res_w, res_h),
            fps=args.fps,
        )
    session = PulseSession(config, sensor=sensor)
    listener = LoggingListener()
    session.subscribe(listener)

    try:
        if sensor is None:
            replay(session, rows)
        else:
            live(session, sensor)
    except SessionError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        session.stop()

    report = session.last_report
    if report is not None:
        print(f"Final pulse: {report.bpm:.0f} ±{report.error:.0f} BPM ({report.count} estimates)")
    else:
        print("Not enough data for a pulse estimate.")

    if args.trace is not None:
        save_trace(args.trace, listener.trace)

    return 1 if session.last_error is not None else 0


def main() -> int:
    return run(parse_args())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
