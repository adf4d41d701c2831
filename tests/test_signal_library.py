"""
Unit tests for the EMA primitives and SignalConditioner.
Run with:  pytest tests/test_signal_library.py
"""

from __future__ import annotations

import numpy as np
import pytest

from ppg_pulse.conditioner import SignalConditioner
from ppg_pulse.signal_library import moving_average, weighted_average


class TestWeightedAverage:

    @pytest.mark.parametrize("weight", [0.0, 0.3, 0.7, 0.99, 1.0])
    def test_constant_input_is_fixed_point(self, weight):
        assert weighted_average(5.0, 5.0, weight) == pytest.approx(5.0)

    def test_weight_extremes(self):
        assert weighted_average(10.0, 20.0, 1.0) == 10.0
        assert weighted_average(10.0, 20.0, 0.0) == 20.0
        assert weighted_average(10.0, 20.0, 0.75) == pytest.approx(12.5)

    def test_moving_average_constant(self):
        out = moving_average(np.full(10, 3.0), 0.7)
        assert np.allclose(out, 3.0)

    def test_moving_average_step_is_monotonic(self):
        step = np.r_[np.zeros(5), np.ones(20)]
        out = moving_average(step, 0.7)
        assert np.all(np.diff(out) >= 0)
        assert 0.9 < out[-1] <= 1.0

    def test_moving_average_empty(self):
        assert moving_average(np.array([]), 0.5).size == 0


class TestSignalConditioner:

    def test_steady_input_decays_to_zero(self):
        sc = SignalConditioner(initial_estimate=128.0)
        out = [sc.process(128.0) for _ in range(60)]
        assert abs(out[-1]) < 1e-6

    def test_pulse_passes_and_baseline_is_removed(self):
        fps = 30.0
        t = np.arange(600) / fps
        raw = 100 + 5 * np.sin(2 * np.pi * 1.2 * t)
        sc = SignalConditioner(trend_inertia=0.99, low_pass_inertia=0.7, initial_estimate=128.0)
        out = np.array([sc.process(v) for v in raw])
        tail = out[-128:]
        assert abs(tail.mean()) < 1.0, f"Baseline not removed: mean={tail.mean():.2f}"
        assert np.ptp(tail) > 4.0, f"Pulse over-smoothed: ptp={np.ptp(tail):.2f}"

    def test_reset_restores_initial_state(self):
        sc = SignalConditioner(initial_estimate=50.0)
        for v in (10.0, 200.0, 30.0):
            sc.process(v)
        sc.reset()
        assert sc.state.trendline_avg == 50.0
        assert sc.state.low_pass_avg == 50.0
