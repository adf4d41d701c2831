"""
Unit tests for the OpenCV camera sensor (no hardware required).
Run with:  pytest tests/test_camera.py
"""

from __future__ import annotations

import itertools

import numpy as np
import pytest

from ppg_pulse.camera import CameraSensor, frame_brightness
from ppg_pulse.session import SensorError


class FakeCapture:
    """Stands in for cv2.VideoCapture, serving a fixed list of frames."""

    def __init__(self, frames, opened=True):
        self._frames = list(frames)
        self._opened = opened
        self.released = False
        self.props = {}

    def isOpened(self):
        return self._opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def read(self):
        if not self._frames:
            return False, None
        return True, self._frames.pop(0)

    def release(self):
        self.released = True


def bgr_frame(b, g, r, shape=(12, 16)):
    frame = np.zeros(shape + (3,), dtype=np.uint8)
    frame[:, :, 0] = b
    frame[:, :, 1] = g
    frame[:, :, 2] = r
    return frame


def make_sensor(capture, **kwargs):
    ticks = itertools.count()
    return CameraSensor(
        capture_factory=lambda index: capture,
        clock=lambda: next(ticks) / 30.0,
        **kwargs,
    )


class TestFrameBrightness:

    def test_red_channel_mean(self):
        assert frame_brightness(bgr_frame(10, 20, 200)) == pytest.approx(200.0)

    def test_other_channels(self):
        frame = bgr_frame(10, 20, 200)
        assert frame_brightness(frame, "green") == pytest.approx(20.0)
        assert frame_brightness(frame, "blue") == pytest.approx(10.0)

    def test_greyscale_frame(self):
        grey = np.full((8, 8), 77, dtype=np.uint8)
        assert frame_brightness(grey) == pytest.approx(77.0)


class TestCameraSensor:

    def test_open_and_close(self):
        cap = FakeCapture([])
        sensor = make_sensor(cap)
        sensor.open()
        assert sensor.is_open
        sensor.close()
        assert not sensor.is_open
        assert cap.released

    def test_open_failure_raises_sensor_error(self):
        sensor = make_sensor(FakeCapture([], opened=False))
        with pytest.raises(SensorError):
            sensor.open()
        assert not sensor.is_open

    def test_read_before_open(self):
        with pytest.raises(SensorError):
            make_sensor(FakeCapture([])).read_sample()

    def test_samples_are_timestamped_brightness(self):
        frames = [bgr_frame(0, 0, r) for r in (100, 110, 120)]
        sensor = make_sensor(FakeCapture(frames))
        sensor.open()
        samples = list(itertools.islice(sensor.samples(), 3))
        assert [v for _, v in samples] == pytest.approx([100.0, 110.0, 120.0])
        assert [t for t, _ in samples] == pytest.approx([0.0, 1 / 30.0, 2 / 30.0])

    def test_consecutive_empty_frames_abort(self):
        sensor = make_sensor(FakeCapture([bgr_frame(0, 0, 90)]))
        sensor.open()
        gen = sensor.samples(max_failures=3)
        assert next(gen)[1] == pytest.approx(90.0)
        with pytest.raises(SensorError):
            next(gen)

    def test_unknown_channel_rejected(self):
        with pytest.raises(ValueError):
            CameraSensor(channel="infrared")
