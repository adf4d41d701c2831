"""Subscribers to a pulse session and the registry that dispatches to them."""

from __future__ import annotations

from typing import Callable, List, Optional


class PulseListener:
    """
    Receiver of session events.  Override either hook; both default to no-ops.
    """

    def on_raw_sample(self, timestamp: float, value: float) -> None:
        """Called for every conditioned post-warm-up sample."""

    def on_pulse_estimate(self, bpm: float, error: float) -> None:
        """Called whenever the aggregate pulse is updated."""


class CallbackListener(PulseListener):
    """Adapt plain callables to :class:`PulseListener`."""

    def __init__(
        self,
        on_raw_sample: Optional[Callable[[float, float], None]] = None,
        on_pulse_estimate: Optional[Callable[[float, float], None]] = None,
    ) -> None:
        self._on_raw_sample = on_raw_sample
        self._on_pulse_estimate = on_pulse_estimate

    def on_raw_sample(self, timestamp: float, value: float) -> None:
        if self._on_raw_sample is not None:
            self._on_raw_sample(timestamp, value)

    def on_pulse_estimate(self, bpm: float, error: float) -> None:
        if self._on_pulse_estimate is not None:
            self._on_pulse_estimate(bpm, error)


class ListenerRegistry:
    """
    Ordered set of listeners.

    Dispatch is synchronous and follows registration order.  It iterates
    over a snapshot, so a listener may unsubscribe itself (or others) from
    inside a hook without disturbing the current event.
    """

    def __init__(self) -> None:
        self._listeners: List[PulseListener] = []

    def subscribe(self, listener: PulseListener) -> bool:
        """Register *listener*; False if it was already registered."""
        if any(existing is listener for existing in self._listeners):
            return False
        self._listeners.append(listener)
        return True

    def unsubscribe(self, listener: PulseListener) -> bool:
        """Remove *listener*; False if it was not registered."""
        for i, existing in enumerate(self._listeners):
            if existing is listener:
                del self._listeners[i]
                return True
        return False

    def __len__(self) -> int:
        return len(self._listeners)

    def clear(self) -> None:
        self._listeners.clear()

    def dispatch_raw_sample(self, timestamp: float, value: float) -> None:
        for listener in list(self._listeners):
            listener.on_raw_sample(timestamp, value)

    def dispatch_pulse_estimate(self, bpm: float, error: float) -> None:
        for listener in list(self._listeners):
            listener.on_pulse_estimate(bpm, error)
