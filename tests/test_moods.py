"""Tests for mood activation and key/scale rotation.

Time is driven with :class:`ManualClock` so mood lifetimes and rotation
intervals can be checked without sleeping."""

import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from player_piano.clock import ManualClock  # noqa: E402
from player_piano.config import EngineConfig  # noqa: E402
from player_piano.moods import ModeMachine, apply_mood_overrides  # noqa: E402
from player_piano.parameters import DEFAULT_BUNDLE  # noqa: E402
from player_piano.scales import CHAOTIC_SCALES, SCALES  # noqa: E402
from player_piano.state import EngineState  # noqa: E402
from player_piano.styles import get_style_profile  # noqa: E402

SILENT_MOODS = {"chaotic": 0.0, "insectBurst": 0.0, "hardcore": 0.0}


def make_machine(**overrides):
    """Return a machine, its clock and a fresh C major state."""
    config = EngineConfig(**overrides)
    clock = ManualClock()
    machine = ModeMachine(config, clock, random.Random(4))
    return machine, clock, EngineState(key=0, scale="major")


def test_overrides_layer_in_fixed_order():
    """Hardcore dynamics win over chaos while chaos keeps its pedal width."""
    bundle = apply_mood_overrides(DEFAULT_BUNDLE, ["hardcore", "chaotic"])
    assert bundle.velocity_range == (90, 127)
    assert bundle.duration_range == (100.0, 800.0)
    assert bundle.density == 0.85
    assert bundle.sustain_probability == 0.2
    assert bundle.tempo == 160


def test_mood_duration_is_drawn_once_and_expires():
    """A mood lasts exactly the duration drawn at activation."""
    machine, clock, state = make_machine(mood_probabilities=dict(SILENT_MOODS))
    assert machine.activate(state, "hardcore")
    duration = state.active_moods["hardcore"].duration
    assert 20.0 <= duration <= 60.0

    clock.advance(duration)
    machine.update_moods(state)
    assert state.is_active("hardcore")
    assert state.active_moods["hardcore"].duration == duration

    clock.advance(0.01)
    machine.update_moods(state)
    assert not state.is_active("hardcore")


def test_unknown_mood_is_rejected():
    """Unknown names are a no-op."""
    machine, _clock, state = make_machine()
    assert not machine.activate(state, "grumpy")
    assert not machine.deactivate(state, "grumpy")
    assert state.active_moods == {}


def test_chaos_switches_to_chaotic_scale():
    """Entering chaos picks a chaotic scale unless the style locks it."""
    machine, _clock, state = make_machine()
    machine.activate(state, "chaotic")
    assert state.scale in CHAOTIC_SCALES

    locked = EngineState(key=0, scale="chromatic")
    machine.activate(locked, "chaotic", get_style_profile("serialist"))
    assert locked.scale == "chromatic"


def test_update_moods_honours_switches():
    """Moods never start when disabled globally or by the style."""
    certain = {"chaotic": 1.0, "insectBurst": 1.0, "hardcore": 1.0}
    machine, _clock, state = make_machine(mood_probabilities=certain)
    machine.update_moods(state, get_style_profile("default"))
    assert state.mood_names() == ["chaotic", "hardcore", "insectBurst"]

    machine, _clock, state = make_machine(mood_probabilities=certain, moods_enabled=False)
    machine.update_moods(state, get_style_profile("default"))
    assert state.active_moods == {}

    machine, _clock, state = make_machine(mood_probabilities=certain)
    machine.update_moods(state, get_style_profile("elevator"))
    assert state.active_moods == {}


def test_rotation_waits_for_interval():
    """No rotation happens before the interval has elapsed."""
    machine, clock, state = make_machine(rotation_probability=1.0)
    clock.advance(180.0)
    assert not machine.maybe_rotate(state)
    clock.advance(0.5)
    assert machine.maybe_rotate(state)
    assert state.last_mode_change == clock.now()
    assert state.scale in SCALES


def test_rotation_uses_shorter_interval_under_chaos():
    """Chaos rotates after thirty seconds instead of three minutes."""
    machine, clock, state = make_machine(chaos_rotation_probability=1.0, rotation_probability=0.0)
    machine.activate(state, "chaotic", duration=1000.0)
    clock.advance(31.0)
    assert machine.maybe_rotate(state)


def test_rotation_respects_style_scales():
    """Locked styles keep their scale; preferred scales bound the pool."""
    machine, clock, state = make_machine(rotation_probability=1.0)
    elevator = get_style_profile("elevator")
    for _ in range(20):
        clock.advance(181.0)
        assert machine.maybe_rotate(state, elevator)
        assert state.scale == "major"

    impressionist = get_style_profile("impressionist")
    state.scale = "lydian"
    for _ in range(20):
        clock.advance(181.0)
        machine.maybe_rotate(state, impressionist)
        assert state.scale in impressionist.preferred_scales


def test_rotation_pool_under_chaos():
    """Scale-only chaos rotations may also fall back to minor or whole tone."""
    machine, _clock, state = make_machine()
    machine.activate(state, "chaotic")
    pool = machine.rotation_pool(state, None, scale_only=True)
    assert set(CHAOTIC_SCALES) | {"minor", "wholeTone"} == set(pool)
    assert set(machine.rotation_pool(state, None, scale_only=False)) == set(CHAOTIC_SCALES)


def test_set_scale_validation():
    """Manual scale changes are validated and respect locks."""
    machine, _clock, state = make_machine()
    assert machine.set_scale(state, "Dorian")
    assert state.scale == "dorian"
    assert not machine.set_scale(state, "bogus")
    assert state.scale == "dorian"

    elevator = get_style_profile("elevator")
    assert not machine.set_scale(state, "minor", elevator)
    assert machine.set_scale(state, "major", elevator)
