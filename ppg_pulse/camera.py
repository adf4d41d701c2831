"""
Camera sensor collaborator.

Wraps OpenCV ``VideoCapture`` and reduces each frame to the single
brightness scalar the pulse pipeline consumes: the mean red-channel
intensity of a fingertip pressed against the lens (red light passes through
tissue, so the blood-volume pulse shows up most clearly there).

The capture device is only held between :meth:`CameraSensor.open` and
:meth:`CameraSensor.close`; a :class:`~ppg_pulse.session.PulseSession`
calls these on start/resume and pause/stop so the lamp or torch lighting
the finger is not left on.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Generator, Optional, Tuple

import cv2
import numpy as np

from ppg_pulse.session import SensorError

logger = logging.getLogger(__name__)

CHANNELS = {"blue": 0, "green": 1, "red": 2}


def frame_brightness(frame: np.ndarray, channel: str = "red") -> float:
    """
    Mean intensity of one colour channel of a BGR *frame*.

    Single-channel (grey) frames are averaged as they are.
    """
    if frame.ndim == 2:
        return float(cv2.mean(frame)[0])
    return float(cv2.mean(frame)[CHANNELS[channel]])


class CameraSensor:
    """
    Parameters
    ----------
    camera_index:
        OpenCV ``VideoCapture`` device index.
    resolution:
        (width, height) requested from the device.  Small frames are enough:
        only their mean is used.
    fps:
        Requested frame rate.
    channel:
        Colour channel reduced to brightness.
    capture_factory:
        Callable building the capture object from the index; tests substitute
        a fake.
    clock:
        Monotonic clock used to timestamp frames (seconds).
    """

    def __init__(
        self,
        camera_index: int = 0,
        resolution: Tuple[int, int] = (240, 120),
        fps: int = 30,
        channel: str = "red",
        capture_factory: Callable[[int], "cv2.VideoCapture"] = cv2.VideoCapture,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if channel not in CHANNELS:
            raise ValueError(f"Unknown channel {channel!r}; choose from {tuple(CHANNELS)}")
        self.camera_index = camera_index
        self.resolution = resolution
        self.fps = fps
        self.channel = channel
        self._capture_factory = capture_factory
        self._clock = clock
        self._cam: "cv2.VideoCapture | None" = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._cam is not None

    def open(self) -> None:
        """Acquire the capture device.  Raises :class:`SensorError` on failure."""
        if self._cam is not None:
            return
        cap = self._capture_factory(self.camera_index)
        if not cap.isOpened():
            raise SensorError(
                f"Cannot open video capture device index={self.camera_index}"
            )
        w, h = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        self._cam = cap
        logger.info(
            "Camera opened – index=%d resolution=%s fps=%d",
            self.camera_index, self.resolution, self.fps,
        )

    def close(self) -> None:
        """Release the capture device."""
        if self._cam is None:
            return
        self._cam.release()
        self._cam = None
        logger.info("Camera closed.")

    # ------------------------------------------------------------------
    # Sample acquisition
    # ------------------------------------------------------------------

    def read_sample(self) -> Optional[Tuple[float, float]]:
        """
        Capture one frame and return ``(timestamp, brightness)``, or *None*
        if the device returned no frame.
        """
        if self._cam is None:
            raise SensorError("Camera is not open.  Call open() first.")
        ok, frame = self._cam.read()
        if not ok or frame is None:
            logger.warning("VideoCapture.read() returned False.")
            return None
        return self._clock(), frame_brightness(frame, self.channel)

    def samples(self, max_failures: int = 10) -> Generator[Tuple[float, float], None, None]:
        """
        Yield samples until the camera is closed.

        Raises :class:`SensorError` after *max_failures* consecutive empty
        reads so the caller can stop its session.

        Usage::

            for timestamp, value in sensor.samples():
                session.on_sample(timestamp, value)
        """
        null_streak = 0
        while self._cam is not None:
            sample = self.read_sample()
            if sample is None:
                null_streak += 1
                if null_streak >= max_failures:
                    raise SensorError(
                        f"Camera returned {max_failures} consecutive empty frames"
                    )
                continue
            null_streak = 0
            yield sample
