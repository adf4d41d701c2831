"""
Fixed-capacity circular storage for the brightness and timestamp history.

The backing arrays never grow: every push overwrites the oldest slot.  Slots
that have not been written yet read as zero, so anything that analyses the
window must check :attr:`RingBuffer.filled` first.
"""

from __future__ import annotations

from typing import Iterator

import numpy as np


class RingBuffer:
    """
    Circular numpy-backed store of ``capacity`` scalars.

    Index 0 is the oldest retained value, ``capacity - 1`` the newest.

    Parameters
    ----------
    capacity:
        Number of slots.  Powers of two keep the FFT fast.
    dtype:
        numpy dtype of the backing array.
    """

    def __init__(self, capacity: int, dtype: "np.dtype | type" = np.float32) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._backing = np.zeros(capacity, dtype=dtype)
        self._offset = 0
        self._filled = False

    def push(self, value: float) -> None:
        """Overwrite the oldest slot with *value*."""
        self._backing[self._offset] = value
        self._offset += 1
        if self._offset >= self.capacity:
            self._offset = 0
            self._filled = True

    def __getitem__(self, i: int) -> float:
        if not 0 <= i < self.capacity:
            raise IndexError(f"ring index {i} out of range for capacity {self.capacity}")
        return self._backing[(self._offset + i) % self.capacity].item()

    def __len__(self) -> int:
        return self.capacity

    def __iter__(self) -> Iterator[float]:
        return iter(self.to_array().tolist())

    @property
    def filled(self) -> bool:
        """True once ``capacity`` values have been pushed since the last reset."""
        return self._filled

    def to_array(self) -> np.ndarray:
        """Return an oldest-first copy of the contents."""
        return np.roll(self._backing, -self._offset)

    def reset(self) -> None:
        self._backing[:] = 0
        self._offset = 0
        self._filled = False


class SampleBuffer:
    """
    Paired brightness / timestamp history.

    Brightness is kept as float32 and timestamps as float64 seconds so long
    sessions do not lose sub-millisecond resolution.
    """

    def __init__(self, capacity: int) -> None:
        self.values = RingBuffer(capacity, dtype=np.float32)
        self.timestamps = RingBuffer(capacity, dtype=np.float64)

    @property
    def capacity(self) -> int:
        return self.values.capacity

    def push(self, value: float, timestamp: float) -> None:
        self.values.push(value)
        self.timestamps.push(timestamp)

    def get(self, i: int) -> float:
        """Return the *i*-th oldest buffered value."""
        return self.values[i]

    def is_full(self) -> bool:
        return self.timestamps.filled

    def mean_gap(self) -> float:
        """
        Average absolute time between consecutive buffered samples (seconds).

        Returns 0.0 for a window whose timestamps do not advance; callers
        must guard against dividing by it.
        """
        ts = self.timestamps.to_array()
        return float(np.mean(np.abs(np.diff(ts))))

    def zero_mean_snapshot(self, mode: str = "mean") -> np.ndarray:
        """
        Return a copy of the values with their DC offset removed.

        ``mode="mean"`` subtracts the mean; ``mode="minmax"`` rescales the
        window onto [-1, 1].  A flat window comes back as all zeros.

        The estimators use the mean form.  The min-max form is for display
        consumers that plot the current window on a fixed scale.
        """
        arr = self.values.to_array().astype(np.float64)
        if mode == "mean":
            return arr - arr.mean()
        if mode == "minmax":
            lo, hi = float(arr.min()), float(arr.max())
            if hi == lo:
                return np.zeros_like(arr)
            return 2.0 * (arr - lo) / (hi - lo) - 1.0
        raise ValueError(f"Unknown snapshot mode {mode!r}")

    def window(self) -> "tuple[np.ndarray, np.ndarray]":
        """Return ``(timestamps, values)`` oldest-first."""
        return self.timestamps.to_array(), self.values.to_array().astype(np.float64)

    def reset(self) -> None:
        self.values.reset()
        self.timestamps.reset()
