"""Time sources for the engine.

All "N seconds since X" checks in the engine go through a :class:`Clock` so
tests can drive time explicitly with :class:`ManualClock` instead of
sleeping. Times are plain floats measured in seconds.
"""

from __future__ import annotations

from time import monotonic
from typing import Protocol

__all__ = ["Clock", "MonotonicClock", "ManualClock", "elapsed"]


class Clock(Protocol):
    """Anything exposing ``now()`` in seconds."""

    def now(self) -> float:
        ...


class MonotonicClock:
    """Wall-clock independent time source backed by :func:`time.monotonic`."""

    def now(self) -> float:
        return monotonic()


class ManualClock:
    """Clock that only moves when told to.

    Example
    -------
    >>> clock = ManualClock()
    >>> clock.advance(2.5)
    >>> clock.now()
    2.5
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._now += seconds

    def set(self, value: float) -> None:
        self._now = float(value)


def elapsed(clock: Clock, since: float) -> float:
    """Return the seconds elapsed on ``clock`` since ``since``."""

    return clock.now() - since
