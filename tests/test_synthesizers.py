"""Tests for the shared synthesizers.

Each synthesizer is exercised with a seeded random source in C major so the
diatonic and register guarantees can be checked note by note."""

import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from player_piano.clock import ManualClock  # noqa: E402
from player_piano.parameters import DEFAULT_BUNDLE  # noqa: E402
from player_piano.scales import SCALES  # noqa: E402
from player_piano.state import EngineState, MoodActivation  # noqa: E402
from player_piano.synthesizers import (  # noqa: E402
    ArpeggioSynthesizer,
    ChordSynthesizer,
    CounterpointSynthesizer,
    InsectBurstSynthesizer,
    NoteSynthesizer,
    ParallelMotionSynthesizer,
    SynthContext,
    partition_octaves,
)

C_MAJOR = SCALES["major"]


def make_ctx(seed: int = 0, chaotic: bool = False, bundle=DEFAULT_BUNDLE) -> SynthContext:
    state = EngineState(key=0, scale="major")
    if chaotic:
        state.active_moods["chaotic"] = MoodActivation(0.0, 100.0)
    return SynthContext(state, bundle, random.Random(seed), ManualClock())


def degree(note) -> int:
    return C_MAJOR.index(note.midi_number % 12)


def test_note_synthesizer_stays_in_bundle():
    """Single notes honour scale, register, dynamics and duration ranges."""
    ctx = make_ctx()
    synth = NoteSynthesizer()
    for _ in range(200):
        event = synth.synthesize(ctx)
        note = event.note
        assert note.midi_number % 12 in C_MAJOR
        assert 1 <= note.octave <= 7
        assert 60 <= note.velocity <= 100
        assert 500.0 <= note.duration <= 2500.0
        assert (event.current_key, event.current_scale) == ("C", "major")


def test_chords_stack_diatonic_thirds():
    """Consecutive chord tones are two scale degrees apart."""
    ctx = make_ctx(1)
    synth = ChordSynthesizer(sizes=(3, 5))
    for _ in range(100):
        event = synth.synthesize(ctx)
        assert not event.cluster
        assert 3 <= len(event.notes) <= 5
        for lower, upper in zip(event.notes, event.notes[1:]):
            assert (degree(upper) - degree(lower)) % 7 == 2
        assert all(1 <= note.octave <= 7 for note in event.notes)


def test_chaos_clusters_are_flagged():
    """Clusters leave the scale and must say so."""
    ctx = make_ctx(2, chaotic=True)
    event = ChordSynthesizer(sizes=(4, 4), cluster_probability=1.0).synthesize(ctx)
    assert event.cluster
    pitches = [note.midi_number % 12 for note in event.notes]
    for lower, upper in zip(pitches, pitches[1:]):
        assert (upper - lower) % 12 == 1


def test_counterpoint_voices_are_register_separated():
    """Every voice sits in its own octave segment, lowest first."""
    ctx = make_ctx(3)
    synth = CounterpointSynthesizer(voices=(2, 4))
    for _ in range(100):
        event = synth.synthesize(ctx)
        assert 2 <= len(event.notes) <= 4
        octaves = [note.octave for note in event.notes]
        assert octaves == sorted(set(octaves))


def test_partition_octaves():
    """Segments are contiguous, disjoint and capped by the octave count."""
    assert partition_octaves(1, 7, 3) == [(1, 2), (3, 4), (5, 7)]
    assert partition_octaves(3, 4, 5) == [(3, 3), (4, 4)]
    assert partition_octaves(5, 5, 3) == [(5, 5)]
    assert partition_octaves(7, 1, 3) == partition_octaves(1, 7, 3)


def test_arpeggio_fields():
    """Arpeggios report their spacing and direction."""
    ctx = make_ctx(4)
    for _ in range(50):
        event = ArpeggioSynthesizer().synthesize(ctx)
        assert 3 <= len(event.notes) <= 6
        assert 80.0 <= event.step_ms <= 220.0
        assert event.direction in ("up", "down")
        assert all(note.midi_number % 12 in C_MAJOR for note in event.notes)


def test_parallel_motion_pairs_keep_their_interval():
    """Each (lower, upper) pair is ``interval`` scale degrees apart."""
    ctx = make_ctx(5)
    for _ in range(50):
        event = ParallelMotionSynthesizer().synthesize(ctx)
        assert event.interval in (2, 4, 5)
        assert len(event.notes) % 2 == 0
        assert 6 <= len(event.notes) <= 10
        for lower, upper in zip(event.notes[::2], event.notes[1::2]):
            assert (degree(upper) - degree(lower)) % 7 == event.interval


def test_insect_burst_is_short_and_high():
    """Bursts are flurries of brief notes in the upper register."""
    ctx = make_ctx(6)
    for _ in range(50):
        event = InsectBurstSynthesizer().synthesize(ctx)
        assert 3 <= len(event.notes) <= 10
        for note in event.notes:
            assert 5 <= note.octave <= 7
            assert 50.0 <= note.duration <= 150.0
            assert note.midi_number % 12 in C_MAJOR
