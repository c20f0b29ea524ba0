"""End-to-end tests for :class:`MusicEngine`.

The engine is driven tick by tick on a manual clock. Besides the scenario
checks (cold weather, elevator style) the suite asserts the properties every
event in a stream must satisfy: legal note fields, scale membership of
diatonic events and the register bounds of the active bundle."""

import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from player_piano.clock import ManualClock  # noqa: E402
from player_piano.config import EngineConfig  # noqa: E402
from player_piano.engine import FALLBACK_SILENCE_MS, MusicEngine  # noqa: E402
from player_piano.events import PEDAL_TYPES, SilenceEvent, WeatherReading  # noqa: E402
from player_piano.parameters import ParameterBundle  # noqa: E402
from player_piano.scales import key_to_pitch_class, scale_pitch_classes  # noqa: E402

DIATONIC_TYPES = {"note", "chord", "counterpoint"}
TICK = 0.12


def make_engine(style=None, seed=1, **config):
    clock = ManualClock()
    engine = MusicEngine(EngineConfig(**config), clock=clock, seed=seed, style=style)
    return engine, clock


def run(engine, clock, ticks, weather=None):
    """Generate ``ticks`` events, pairing each with the bundle it used."""
    results = []
    for _ in range(ticks):
        event = engine.generate_event(weather)
        results.append((event, engine.last_bundle))
        clock.advance(TICK)
    return results


def assert_diatonic(event):
    pool = scale_pitch_classes(key_to_pitch_class(event.current_key), event.current_scale)
    for note in event.sounding_notes:
        assert note.midi_number % 12 in pool


@pytest.mark.parametrize("style", ["default", "elevator"])
def test_stream_properties(style):
    """Every event is well formed and diatonic events respect the bundle."""
    engine, clock = make_engine(style, seed=5)
    for event, bundle in run(engine, clock, 400, WeatherReading(18, 3)):
        for note in event.sounding_notes:
            assert 0 <= note.midi_number <= 127
            assert 1 <= note.velocity <= 127
            assert note.duration > 0
        if event.type == "pedal":
            assert event.pedal.type in PEDAL_TYPES
            assert 0.0 <= event.pedal.value <= 1.0
        if event.type in DIATONIC_TYPES and not getattr(event, "cluster", False):
            assert_diatonic(event)
            for note in event.sounding_notes:
                assert bundle.min_octave <= note.octave <= bundle.max_octave


def test_same_seed_same_stream():
    """Streams are reproducible from the seed and the clock."""
    first, first_clock = make_engine(seed=9)
    second, second_clock = make_engine(seed=9)
    a = [event.to_dict() for event, _ in run(first, first_clock, 100)]
    b = [event.to_dict() for event, _ in run(second, second_clock, 100)]
    assert a == b


def test_zero_density_is_silent():
    """A density of zero turns every tick into silence."""
    engine, clock = make_engine(moods_enabled=False)
    engine.style.base_bundle = ParameterBundle(density=0.0)
    events = [event for event, _ in run(engine, clock, 100)]
    assert all(isinstance(event, SilenceEvent) for event in events)
    assert all(100.0 <= event.duration <= 600.0 for event in events)


def test_full_density_is_never_silent():
    """With density one the gate never fires."""
    engine, clock = make_engine(moods_enabled=False)
    engine.style.base_bundle = ParameterBundle(density=1.0)
    assert all(event.type != "silence" for event, _ in run(engine, clock, 200))


def test_density_controls_silence_rate():
    """Higher density means fewer silent ticks."""
    counts = {}
    for density in (0.2, 0.8):
        engine, clock = make_engine(moods_enabled=False, seed=3)
        engine.style.base_bundle = ParameterBundle(density=density)
        counts[density] = sum(event.type == "silence" for event, _ in run(engine, clock, 500))
    assert counts[0.8] < counts[0.2]


def test_cold_clear_weather_scenario():
    """Freezing clear weather slows, lowers and darkens the default style."""
    engine, clock = make_engine(moods_enabled=False, seed=2)
    assert engine.state.scale == "major"
    results = run(engine, clock, 60, WeatherReading(-5, 0))
    bundle = engine.last_bundle
    assert bundle.tempo == 70
    assert bundle.octave_range == (1, 5)
    assert bundle.density == 0.6
    assert engine.state.scale == "minor"
    for event, _ in results:
        if event.type in DIATONIC_TYPES:
            assert all(1 <= note.octave <= 5 for note in event.sounding_notes)


def test_elevator_scenario():
    """Elevator music stays major, polite and mid register in any weather."""
    engine, clock = make_engine("elevator", seed=4)
    assert not engine.enable_mood("chaotic")
    types = set()
    for event, bundle in run(engine, clock, 400, WeatherReading(-10, 95)):
        types.add(event.type)
        assert engine.state.scale == "major"
        assert bundle.octave_range == (3, 5)
        assert bundle.velocity_range == (40, 90)
        if event.type == "pedal":
            assert event.pedal.type in ("sustain", "soft")
        if event.type in ("note", "chord"):
            assert event.current_scale == "major"
            if event.type == "chord":
                assert not event.cluster
            assert_diatonic(event)
            for note in event.sounding_notes:
                assert 3 <= note.octave <= 6
                assert 30 <= note.velocity <= 90
    assert types <= {"note", "chord", "pedal", "silence"}
    assert engine.active_moods() == []


def test_style_switch_applies_on_next_tick():
    """A queued style switch only takes effect when the next tick starts."""
    engine, clock = make_engine()
    assert engine.set_style("serialist")
    assert engine.get_style() == "serialist"
    assert engine.style.name == "default"
    assert engine.snapshot()["pendingStyle"] == "serialist"

    run(engine, clock, 1)
    assert engine.style.name == "serialist"
    assert engine.state.scale == "chromatic"
    assert engine.snapshot()["pendingStyle"] is None
    assert not engine.set_style("polka")
    assert not engine.set_scale("major")


def test_switch_to_moodless_style_clears_moods():
    """Styles without moods drop whatever moods were active."""
    engine, clock = make_engine()
    assert engine.enable_mood("hardcore")
    engine.set_style("haunted")
    run(engine, clock, 1)
    assert engine.active_moods() == []


def test_unknown_initial_style_falls_back():
    """An unknown style name at construction uses the default style."""
    engine, _clock = make_engine("polka")
    assert engine.get_style() == "default"


def test_failing_tick_yields_silence(monkeypatch):
    """An exception inside a tick becomes a fallback silence."""
    engine, clock = make_engine()

    def boom(*_args, **_kwargs):
        raise RuntimeError("synthesizer exploded")

    monkeypatch.setattr(engine.style, "compute_parameters", boom)
    event = engine.generate_event()
    assert event == SilenceEvent(duration=FALLBACK_SILENCE_MS)

    monkeypatch.undo()
    assert engine.generate_event() is not None


def test_weather_mappings_are_accepted():
    """Raw client payloads work and unsupported values are ignored."""
    engine, _clock = make_engine(moods_enabled=False)
    engine.generate_event({"temperature": -5, "weatherCode": 0})
    assert engine.last_bundle.tempo == 70
    engine.generate_event("not weather")
    assert engine.last_bundle.tempo == 100.0


def test_mood_control_surface():
    """Moods can be toggled and expire on their own."""
    engine, clock = make_engine(mood_probabilities={"chaotic": 0, "insectBurst": 0, "hardcore": 0})
    assert not engine.enable_mood("grumpy")
    assert engine.enable_mood("hardcore")
    assert engine.is_mood_active("hardcore")
    assert engine.active_moods() == ["hardcore"]
    assert engine.disable_mood("hardcore")
    assert engine.active_moods() == []

    engine.enable_mood("hardcore")
    clock.advance(61.0)
    engine.generate_event()
    assert not engine.is_mood_active("hardcore")


def test_hardcore_changes_parameters():
    """Hardcore pushes tempo and dynamics up."""
    engine, _clock = make_engine(mood_probabilities={"chaotic": 0, "insectBurst": 0, "hardcore": 0})
    engine.enable_mood("hardcore")
    engine.generate_event()
    assert engine.last_bundle.tempo == 160
    assert engine.last_bundle.velocity_range == (90, 127)


def test_key_and_scale_control():
    """Manual key and scale changes are validated."""
    engine, _clock = make_engine()
    assert engine.set_key("Eb")
    assert engine.snapshot()["key"] == "D#"
    assert not engine.set_key("H")
    assert engine.set_scale("wholetone")
    assert engine.snapshot()["scale"] == "wholeTone"
    assert not engine.set_scale("bogus")


def test_snapshot_and_all_notes_off():
    """Snapshots describe the stream; all-notes-off is always available."""
    engine, clock = make_engine("jungle")
    assert engine.snapshot()["parameters"] is None
    run(engine, clock, 3)
    snapshot = engine.snapshot()
    assert snapshot["style"] == "jungle"
    assert snapshot["tickCount"] == 3
    assert set(snapshot["parameters"]) >= {"tempo", "density", "octaveRange"}
    assert engine.all_notes_off().type == "allNotesOff"
    assert "marbles" in MusicEngine.available_styles()


@pytest.mark.parametrize("style", MusicEngine.available_styles())
def test_every_style_streams(style, caplog):
    """Every registered style produces a stream without failed ticks."""
    caplog.set_level(logging.ERROR)
    engine, clock = make_engine(style, seed=8)
    for event, _ in run(engine, clock, 300, WeatherReading(22, 61)):
        for note in event.sounding_notes:
            assert 0 <= note.midi_number <= 127
            assert 1 <= note.velocity <= 127
    assert not [record for record in caplog.records if record.levelno >= logging.ERROR]


@pytest.mark.parametrize("style", ["haunted", "default"])
def test_sustain_stays_off_during_cooldown(style):
    """No sustain-on follows a sustain-off before the pedal cooldown."""
    shortest = EngineConfig().pedal_cooldown_s[0]
    releases = 0
    for seed in range(3):
        engine, clock = make_engine(style, seed=seed)
        released_at = None
        for _ in range(8000):
            event = engine.generate_event()
            if event.type == "pedal" and event.pedal.type == "sustain":
                if event.pedal.value == 0.0:
                    released_at = clock.now()
                    releases += 1
                elif released_at is not None:
                    assert clock.now() - released_at >= shortest
            clock.advance(TICK)
    assert releases > 0


@pytest.mark.parametrize("bad", [["chaotic"], {"mood": "chaotic"}, None, 3.5])
def test_control_calls_reject_odd_names(bad):
    """Control calls answer ``False`` for names of the wrong type."""
    engine, _clock = make_engine()
    assert engine.enable_mood(bad) is False
    assert engine.disable_mood(bad) is False
    assert engine.is_mood_active(bad) is False
    assert engine.set_style(bad) is False
    assert engine.set_scale(bad) is False
    assert engine.set_key(bad) is False
    assert engine.active_moods() == []


def test_insect_bursts_keep_their_own_register():
    """Cold weather narrows plain notes but insect bursts stay high."""
    engine, clock = make_engine(seed=4, mood_probabilities={"chaotic": 0, "insectBurst": 0, "hardcore": 0})
    assert engine.enable_mood("insectBurst")
    seen = set()
    for event, bundle in run(engine, clock, 40, WeatherReading(-5, 3)):
        assert (bundle.min_octave, bundle.max_octave) == (1, 5)
        seen.add(event.type)
        if event.type == "insectBurst":
            assert all(5 <= note.octave <= 7 for note in event.notes)
        elif event.type in DIATONIC_TYPES:
            assert all(1 <= note.octave <= 5 for note in event.sounding_notes)
    assert "insectBurst" in seen
