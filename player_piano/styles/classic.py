"""Piano styles built only from the shared synthesizers."""

from __future__ import annotations

from ..parameters import ParameterBundle
from ..synthesizers import (
    ArpeggioSynthesizer,
    ChordSynthesizer,
    CounterpointSynthesizer,
    NoteSynthesizer,
    ParallelMotionSynthesizer,
    SynthContext,
    Synthesizer,
)
from .base import StyleProfile

__all__ = ["DefaultStyle", "ElevatorStyle", "ImpressionistStyle"]


class DefaultStyle(StyleProfile):
    """Notes, chords and counterpoint with chaos dependent odds.

    ===========  ======  ======  ============
    mode         note    chord   counterpoint
    ===========  ======  ======  ============
    normal       < 0.5   < 0.8   rest
    chaotic      < 0.3   < 0.6   rest
    ===========  ======  ======  ============
    """

    name = "default"
    description = "Weather driven piano with occasional chaos"

    def __init__(self) -> None:
        super().__init__()
        self.note = NoteSynthesizer()
        self.chord = ChordSynthesizer(sizes=(3, 5))
        self.counterpoint = CounterpointSynthesizer(voices=(2, 4))
        self.chaos_chord = ChordSynthesizer(sizes=(3, 6))
        self.chaos_counterpoint = CounterpointSynthesizer(voices=(3, 6))

    def choose_synthesizer(self, ctx: SynthContext) -> Synthesizer:
        roll = ctx.rng.random()
        if ctx.chaotic:
            if roll < 0.3:
                return self.note
            if roll < 0.6:
                return self.chaos_chord
            return self.chaos_counterpoint
        if roll < 0.5:
            return self.note
        if roll < 0.8:
            return self.chord
        return self.counterpoint


class ElevatorStyle(StyleProfile):
    """Polite lobby music: always major, mid register, never loud."""

    name = "elevator"
    description = "Calm major-key background music"
    start_scale = "major"
    locked_scale = "major"
    moods_enabled = False
    pedal_types = ("sustain", "soft")
    silence_range = (200.0, 800.0)
    envelope = {"octave": (3, 6), "velocity": (30, 90), "duration": (800.0, 3200.0)}
    base_bundle = ParameterBundle(
        tempo=80,
        density=0.6,
        min_octave=3,
        max_octave=6,
        velocity_range=(30, 90),
        duration_range=(800.0, 3200.0),
        sustain_probability=0.06,
    )

    def __init__(self) -> None:
        super().__init__()
        self.note = NoteSynthesizer()
        self.chord = ChordSynthesizer(sizes=(3, 4), cluster_probability=0.0)

    def choose_synthesizer(self, ctx: SynthContext) -> Synthesizer:
        return self.note if ctx.rng.random() < 0.55 else self.chord


class ImpressionistStyle(StyleProfile):
    """Modal colours, arpeggios and parallel motion."""

    name = "impressionist"
    description = "Modal and whole-tone washes with arpeggios"
    start_scale = "lydian"
    preferred_scales = (
        "lydian",
        "dorian",
        "mixolydian",
        "phrygian",
        "wholeTone",
        "pentatonicMajor",
    )
    base_bundle = ParameterBundle(
        tempo=76,
        density=0.65,
        min_octave=2,
        max_octave=6,
        velocity_range=(40, 85),
        duration_range=(800.0, 3000.0),
        sustain_probability=0.1,
    )

    def __init__(self) -> None:
        super().__init__()
        self.note = NoteSynthesizer()
        self.arpeggio = ArpeggioSynthesizer()
        self.parallel = ParallelMotionSynthesizer()
        self.chord = ChordSynthesizer(sizes=(3, 5))

    def choose_synthesizer(self, ctx: SynthContext) -> Synthesizer:
        roll = ctx.rng.random()
        if roll < 0.25:
            return self.note
        if roll < 0.55:
            return self.arpeggio
        if roll < 0.8:
            return self.parallel
        return self.chord
