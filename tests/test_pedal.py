"""Tests for the pedal controller.

The sustain pedal is occasionally disabled for a cooldown drawn at disable
time. These tests walk the hysteresis with a manual clock and check that the
probability bands only emit pedal types the style allows."""

import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from player_piano.clock import ManualClock  # noqa: E402
from player_piano.config import EngineConfig  # noqa: E402
from player_piano.events import PEDAL_TYPES  # noqa: E402
from player_piano.parameters import ParameterBundle  # noqa: E402
from player_piano.pedal import PedalController  # noqa: E402
from player_piano.state import EngineState  # noqa: E402

NO_BANDS = ParameterBundle(sustain_probability=0.0)
FULL_BANDS = ParameterBundle(sustain_probability=1.0 / 3.0)


def make_controller(disable_probability: float):
    clock = ManualClock(100.0)
    config = EngineConfig(pedal_disable_probability=disable_probability)
    controller = PedalController(config, clock, random.Random(11))
    return controller, clock, EngineState(key=0, scale="major")


def test_cooldown_hysteresis():
    """A disabled pedal stays off for its whole cooldown, then re-enables."""
    controller, clock, state = make_controller(1.0)
    pedal = controller.decide(state, NO_BANDS)
    assert pedal is not None
    assert (pedal.type, pedal.value) == ("sustain", 0.0)
    assert not state.pedal_enabled
    assert 15.0 <= state.pedal_cooldown <= 30.0
    assert state.last_pedal_off == 100.0

    clock.set(100.0 + state.pedal_cooldown - 0.01)
    assert controller.decide(state, FULL_BANDS) is None
    assert not state.pedal_enabled

    clock.advance(0.1)
    controller.decide(state, NO_BANDS)
    assert state.pedal_enabled


def test_zero_width_bands_emit_nothing():
    """With no band width and no disabling, the pedal never moves."""
    controller, _clock, state = make_controller(0.0)
    assert all(controller.decide(state, NO_BANDS) is None for _ in range(200))


def test_full_bands_always_emit():
    """Bands covering the unit interval always produce a legal pedal."""
    controller, _clock, state = make_controller(0.0)
    for _ in range(200):
        pedal = controller.decide(state, FULL_BANDS)
        assert pedal is not None
        assert pedal.type in PEDAL_TYPES
        assert 0.0 <= pedal.value <= 1.0
        if pedal.type == "sustain":
            assert pedal.value >= 0.5
        elif pedal.type == "sostenuto":
            assert pedal.value == 1.0
        else:
            assert pedal.value >= 0.3


def test_disallowed_pedal_types_are_dropped():
    """A band whose pedal type the style forbids emits nothing."""
    controller, _clock, state = make_controller(0.0)
    results = [controller.decide(state, FULL_BANDS, allowed=("soft",)) for _ in range(300)]
    emitted = [pedal for pedal in results if pedal is not None]
    assert emitted
    assert any(pedal is None for pedal in results)
    assert {pedal.type for pedal in emitted} == {"soft"}
