"""High-energy jungle style with animal calls and percussive clusters.

Creature activity follows the weather: birds sing in clear, warm weather,
frogs come out in the rain and cicadas in the heat. Monkeys are always
around. The weights are recomputed in :meth:`JungleStyle.advance` and stored
in ``state.style_data["activity"]``.
"""

from __future__ import annotations

import random
from typing import Dict, List, Optional

from ..events import AnimalCallEvent, ChordEvent, MidiEvent, Note, WeatherReading
from ..note_utils import make_note
from ..parameters import ParameterBundle
from ..state import EngineState
from ..synthesizers import (
    ChordSynthesizer,
    CounterpointSynthesizer,
    NoteSynthesizer,
    SynthContext,
    Synthesizer,
)
from ..weather import condition_band, temperature_band
from .base import StyleProfile

__all__ = ["JungleStyle", "AnimalCallSynthesizer", "PercussiveBurstSynthesizer", "creature_activity"]

ANIMALS = ("bird", "monkey", "frog", "cicada")

_BASE_ACTIVITY: Dict[str, float] = {"bird": 1.0, "monkey": 1.0, "frog": 0.5, "cicada": 0.5}


def creature_activity(weather: Optional[WeatherReading]) -> Dict[str, float]:
    """Return relative call weights for each animal under ``weather``."""

    activity = dict(_BASE_ACTIVITY)
    if weather is None:
        return activity
    band = temperature_band(weather.temperature)
    condition = condition_band(weather.weather_code)
    if condition == "clear":
        activity["bird"] += 1.0
    if condition in ("rain", "thunderstorm"):
        activity["frog"] += 2.0
        activity["bird"] *= 0.5
    if band in ("warm", "hot"):
        activity["cicada"] += 1.5
    if band in ("cold", "cool"):
        activity["cicada"] *= 0.2
        activity["frog"] *= 0.5
    return activity


class AnimalCallSynthesizer(Synthesizer):
    """Short gestures imitating jungle creatures.

    Birds trill high scale tones, frogs repeat a low croak, monkeys leap
    across registers with chromatic bends and cicadas buzz on two adjacent
    semitones. Calls that leave the scale are flagged ``chromatic``.
    """

    name = "animalCall"

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        activity = ctx.state.style_data.get("activity", _BASE_ACTIVITY)
        weights = [activity.get(animal, 0.0) for animal in ANIMALS]
        animal = ctx.rng.choices(ANIMALS, weights=weights)[0]
        notes, chromatic = getattr(self, f"_{animal}")(ctx)
        return AnimalCallEvent(notes, ctx.key_name, ctx.scale, animal=animal, chromatic=chromatic)

    def _bird(self, ctx: SynthContext):
        pool = ctx.pitch_pool()
        start = ctx.rng.randrange(len(pool))
        octave = ctx.rng.randint(6, 7)
        notes = []
        for step in range(ctx.rng.randint(3, 6)):
            index = start + (step % 2)
            notes.append(
                make_note(
                    pool[index % len(pool)],
                    octave + index // len(pool),
                    ctx.rng.randint(55, 95),
                    ctx.rng.uniform(40.0, 120.0),
                )
            )
        return notes, False

    def _frog(self, ctx: SynthContext):
        pitch = ctx.rng.choice(ctx.pitch_pool())
        octave = ctx.rng.randint(2, 3)
        notes = [
            make_note(pitch, octave, ctx.rng.randint(60, 100), ctx.rng.uniform(100.0, 250.0))
            for _ in range(ctx.rng.randint(2, 4))
        ]
        return notes, False

    def _monkey(self, ctx: SynthContext):
        pool = ctx.pitch_pool()
        notes = []
        bent = False
        for _ in range(ctx.rng.randint(4, 8)):
            pitch = ctx.rng.choice(pool)
            if ctx.rng.random() < 0.3:
                pitch += ctx.rng.choice((-1, 1))
                bent = bent or (pitch % 12) not in pool
            notes.append(
                make_note(pitch, ctx.rng.randint(3, 6), ctx.rng.randint(75, 120), ctx.rng.uniform(60.0, 200.0))
            )
        return notes, bent

    def _cicada(self, ctx: SynthContext):
        pitch = ctx.rng.choice(ctx.pitch_pool())
        octave = ctx.rng.randint(6, 7)
        notes = [
            make_note(pitch + (step % 2), octave, ctx.rng.randint(40, 70), ctx.rng.uniform(30.0, 60.0))
            for step in range(ctx.rng.randint(6, 12))
        ]
        return notes, True


class PercussiveBurstSynthesizer(Synthesizer):
    """Low semitone clusters struck hard and short, like drums."""

    name = "percussion"

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        root = ctx.rng.choice(ctx.pitch_pool())
        octave = ctx.rng.randint(1, 3)
        notes: List[Note] = [
            make_note(root + step, octave + (root + step) // 12, ctx.rng.randint(90, 127), ctx.rng.uniform(40.0, 160.0))
            for step in range(ctx.rng.randint(3, 5))
        ]
        return ChordEvent(notes, ctx.key_name, ctx.scale, cluster=True)


class JungleStyle(StyleProfile):
    name = "jungle"
    description = "Dense, rhythmic jungle with animal calls"
    start_scale = "pentatonicMinor"
    preferred_scales = ("pentatonicMinor", "pentatonicMajor", "dorian", "mixolydian")
    base_bundle = ParameterBundle(
        tempo=140,
        density=0.85,
        min_octave=2,
        max_octave=7,
        velocity_range=(70, 120),
        duration_range=(80.0, 900.0),
        sustain_probability=0.03,
    )

    def __init__(self) -> None:
        super().__init__()
        self.animal = AnimalCallSynthesizer()
        self.percussion = PercussiveBurstSynthesizer()
        self.note = NoteSynthesizer()
        self.chord = ChordSynthesizer(sizes=(3, 4))
        self.counterpoint = CounterpointSynthesizer(voices=(2, 3))

    def reset(self, state: EngineState, now: float, rng: random.Random) -> None:
        super().reset(state, now, rng)
        state.style_data["activity"] = dict(_BASE_ACTIVITY)

    def advance(self, state: EngineState, now: float, rng: random.Random, weather: Optional[WeatherReading] = None) -> None:
        state.style_data["activity"] = creature_activity(weather)

    def choose_synthesizer(self, ctx: SynthContext) -> Synthesizer:
        roll = ctx.rng.random()
        if roll < 0.35:
            return self.animal
        if roll < 0.55:
            return self.percussion
        if roll < 0.75:
            return self.note
        if roll < 0.9:
            return self.chord
        return self.counterpoint
