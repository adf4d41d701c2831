"""
Unit tests for RingBuffer and SampleBuffer.
Run with:  pytest tests/test_ring_buffer.py
"""

from __future__ import annotations

import numpy as np
import pytest

from ppg_pulse.ring_buffer import RingBuffer, SampleBuffer


class TestRingBuffer:

    @pytest.mark.parametrize("capacity", [1, 4, 7, 128])
    def test_filled_exactly_after_capacity_pushes(self, capacity):
        rb = RingBuffer(capacity)
        for i in range(capacity - 1):
            rb.push(i)
            assert not rb.filled
        rb.push(capacity)
        assert rb.filled

    def test_unwritten_slots_read_zero(self):
        rb = RingBuffer(4)
        rb.push(5)
        assert len(rb) == 4
        assert rb.to_array().tolist() == [0.0, 0.0, 0.0, 5.0]

    def test_get_zero_is_oldest_of_last_n(self):
        rb = RingBuffer(5)
        for i in range(13):
            rb.push(i)
        assert rb[0] == 8
        assert rb[4] == 12

    @pytest.mark.parametrize("rotation", range(8))
    def test_readback_in_insertion_order(self, rotation):
        rb = RingBuffer(8)
        for _ in range(rotation):
            rb.push(-1)
        values = [3, 1, 4, 1, 5, 9, 2, 6]
        for v in values:
            rb.push(v)
        assert [rb[i] for i in range(8)] == values
        assert list(rb) == values

    def test_index_out_of_range(self):
        rb = RingBuffer(4)
        with pytest.raises(IndexError):
            rb[4]
        with pytest.raises(IndexError):
            rb[-1]

    def test_non_positive_capacity_rejected(self):
        with pytest.raises(ValueError):
            RingBuffer(0)

    def test_reset(self):
        rb = RingBuffer(3)
        for i in range(5):
            rb.push(i + 1)
        rb.reset()
        assert not rb.filled
        assert rb.to_array().tolist() == [0.0, 0.0, 0.0]


class TestSampleBuffer:

    def _filled(self, capacity=64, fps=30.0):
        buf = SampleBuffer(capacity)
        for i in range(capacity):
            buf.push(100.0 + (i % 4), i / fps)
        return buf

    def test_is_full_tracks_pushes(self):
        buf = SampleBuffer(4)
        for i in range(3):
            buf.push(1.0, i * 0.1)
        assert not buf.is_full()
        buf.push(1.0, 0.3)
        assert buf.is_full()

    def test_get_returns_oldest_value(self):
        buf = SampleBuffer(3)
        for i in range(5):
            buf.push(float(i), float(i))
        assert buf.get(0) == 2.0
        with pytest.raises(IndexError):
            buf.get(3)

    def test_mean_gap_matches_sample_interval(self):
        buf = self._filled(fps=30.0)
        assert buf.mean_gap() == pytest.approx(1 / 30.0)

    def test_mean_gap_zero_span(self):
        buf = SampleBuffer(8)
        for _ in range(8):
            buf.push(1.0, 0.0)
        assert buf.mean_gap() == 0.0

    def test_zero_mean_snapshot_removes_offset(self):
        buf = self._filled()
        snap = buf.zero_mean_snapshot()
        assert snap.mean() == pytest.approx(0.0, abs=1e-9)
        # The snapshot is a copy.
        snap[:] = 0
        assert buf.get(0) == 100.0

    def test_minmax_snapshot_bounds(self):
        snap = self._filled().zero_mean_snapshot("minmax")
        assert snap.min() == pytest.approx(-1.0)
        assert snap.max() == pytest.approx(1.0)

    def test_flat_snapshot_is_zero(self):
        buf = SampleBuffer(8)
        for i in range(8):
            buf.push(42.0, i * 0.1)
        assert np.all(buf.zero_mean_snapshot("minmax") == 0)
        assert np.all(buf.zero_mean_snapshot("mean") == 0)

    def test_unknown_snapshot_mode(self):
        with pytest.raises(ValueError):
            SampleBuffer(4).zero_mean_snapshot("median")

    def test_window_oldest_first(self):
        buf = SampleBuffer(4)
        for i in range(6):
            buf.push(float(i), i * 0.5)
        ts, values = buf.window()
        assert ts.tolist() == [1.0, 1.5, 2.0, 2.5]
        assert values.tolist() == [2.0, 3.0, 4.0, 5.0]
