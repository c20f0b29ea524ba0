"""Tests for :class:`ParameterBundle` sanitising and copying."""

import math
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from player_piano.parameters import DEFAULT_BUNDLE, ParameterBundle  # noqa: E402


def test_sanitized_orders_and_clamps_octaves():
    """Inverted and out-of-range octaves are repaired."""
    bundle = DEFAULT_BUNDLE.replace(min_octave=9, max_octave=2).sanitized()
    assert bundle.octave_range == (2, 8)


def test_sanitized_repairs_dynamics_and_density():
    """Velocities stay in MIDI range, density in ``[0, 1]`` and NaN is replaced."""
    bundle = ParameterBundle(
        density=math.nan,
        velocity_range=(200, -5),
        duration_range=(-10.0, 0.0),
        sustain_probability=3.0,
        tempo=-20,
    ).sanitized()
    assert bundle.density == 0.7
    assert bundle.velocity_range == (1, 127)
    assert bundle.duration_range == (1.0, 1.0)
    assert bundle.sustain_probability == 1.0
    assert bundle.tempo == 1.0


def test_replace_merges_extras():
    """Extras are merged rather than overwritten."""
    bundle = ParameterBundle(extras={"a": 1}).replace(extras={"b": 2})
    assert dict(bundle.extras) == {"a": 1, "b": 2}
    assert DEFAULT_BUNDLE.extras == {}


def test_to_dict_uses_client_keys():
    """Status payloads expose ranges as lists with camelCase keys."""
    assert DEFAULT_BUNDLE.to_dict() == {
        "tempo": 100.0,
        "density": 0.7,
        "octaveRange": [1, 7],
        "velocityRange": [60, 100],
        "durationRange": [500.0, 2500.0],
        "sustainProbability": 0.05,
    }
