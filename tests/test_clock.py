"""Tests for the injectable time sources."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from player_piano.clock import ManualClock, MonotonicClock, elapsed  # noqa: E402


def test_manual_clock_moves_only_when_told():
    """Manual time advances explicitly and never backwards."""
    clock = ManualClock(10.0)
    assert clock.now() == 10.0
    clock.advance(2.5)
    assert elapsed(clock, 10.0) == 2.5
    clock.set(100.0)
    assert clock.now() == 100.0
    with pytest.raises(ValueError):
        clock.advance(-1.0)


def test_monotonic_clock_never_decreases():
    """The default clock is monotonic."""
    clock = MonotonicClock()
    first = clock.now()
    assert clock.now() >= first
