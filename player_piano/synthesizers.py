"""Event synthesizers shared by the styles.

Every synthesizer is a small strategy object exposing ``synthesize(ctx)``
which turns the active :class:`~player_piano.parameters.ParameterBundle` and
the session's key and scale into exactly one
:class:`~player_piano.events.MidiEvent`.

Pitch selection is always scale constrained: the legal pitch classes are
``(key + interval) % 12`` for every interval of the current scale, the octave
is drawn uniformly from the bundle range and velocity and duration are drawn
independently per note. Notes are built with
:func:`~player_piano.note_utils.make_note` so every field is clamped into its
legal range.

Chord voices stack diatonic thirds by stepping two scale degrees at a time.
Under chaos a chord may instead become a semitone cluster, flagged with
``cluster=True`` because its pitch classes leave the scale.

Counterpoint divides the octave range into contiguous, non-overlapping
segments (see :func:`partition_octaves`) and draws one voice from each,
guaranteeing register separation between simultaneous voices.
"""

# Modification Summary
# ---------------------
# * Chord and arpeggio voices that would climb above the bundle's maximum
#   octave are folded back to it; pitch classes stay diatonic.
# * Counterpoint caps its voice count at the number of available octaves.

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .clock import Clock
from .events import (
    ArpeggioEvent,
    ChordEvent,
    CounterpointEvent,
    InsectBurstEvent,
    MidiEvent,
    Note,
    NoteEvent,
    ParallelMotionEvent,
    WeatherReading,
)
from .note_utils import make_note
from .parameters import ParameterBundle
from .scales import scale_pitch_classes
from .state import EngineState

__all__ = [
    "SynthContext",
    "Synthesizer",
    "NoteSynthesizer",
    "ChordSynthesizer",
    "CounterpointSynthesizer",
    "ArpeggioSynthesizer",
    "ParallelMotionSynthesizer",
    "InsectBurstSynthesizer",
    "partition_octaves",
    "random_note",
]


@dataclass
class SynthContext:
    """Everything a synthesizer may read while building one event."""

    state: EngineState
    bundle: ParameterBundle
    rng: random.Random
    clock: Clock
    weather: Optional[WeatherReading] = None

    @property
    def key(self) -> int:
        return self.state.key

    @property
    def key_name(self) -> str:
        return self.state.key_name

    @property
    def scale(self) -> str:
        return self.state.scale

    @property
    def chaotic(self) -> bool:
        return self.state.chaotic

    def pitch_pool(self) -> List[int]:
        return scale_pitch_classes(self.state.key, self.state.scale)

    def velocity(self) -> int:
        low, high = self.bundle.velocity_range
        return self.rng.randint(int(low), int(high))

    def duration(self) -> float:
        low, high = self.bundle.duration_range
        return self.rng.uniform(low, high)

    def octave(self, octave_range: Optional[Tuple[int, int]] = None) -> int:
        low, high = octave_range or self.bundle.octave_range
        return self.rng.randint(low, high)

    def clamp_octave(self, octave: int) -> int:
        return max(self.bundle.min_octave, min(self.bundle.max_octave, octave))


def random_note(ctx: SynthContext, octave_range: Optional[Tuple[int, int]] = None) -> Note:
    """Draw one scale note; ``octave_range`` overrides the bundle's range."""

    pitch = ctx.rng.choice(ctx.pitch_pool())
    return make_note(pitch, ctx.octave(octave_range), ctx.velocity(), ctx.duration())


def _degree_note(
    ctx: SynthContext, pool: List[int], index: int, base_octave: int, velocity: int, duration: float
) -> Note:
    octave = ctx.clamp_octave(base_octave + index // len(pool))
    return make_note(pool[index % len(pool)], octave, velocity, duration)


def partition_octaves(low: int, high: int, voices: int) -> List[Tuple[int, int]]:
    """Split ``low..high`` into ``voices`` contiguous, non-overlapping ranges.

    The voice count is capped at the number of available octaves, so the
    result may be shorter than requested.

    >>> partition_octaves(1, 7, 3)
    [(1, 2), (3, 4), (5, 7)]
    """

    if high < low:
        low, high = high, low
    span = high - low + 1
    voices = max(1, min(voices, span))
    segments = []
    for index in range(voices):
        start = low + (index * span) // voices
        stop = low + ((index + 1) * span) // voices - 1
        segments.append((start, stop))
    return segments


class Synthesizer:
    """Base strategy; subclasses implement :meth:`synthesize`."""

    name = "synth"

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        raise NotImplementedError


class NoteSynthesizer(Synthesizer):
    name = "note"

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        return NoteEvent(random_note(ctx), ctx.key_name, ctx.scale)


class ChordSynthesizer(Synthesizer):
    """Diatonic chords built from stacked thirds.

    Parameters
    ----------
    sizes:
        Inclusive ``(min, max)`` number of chord tones.
    cluster_probability:
        Chance of a semitone cluster while chaos is active.
    """

    name = "chord"

    def __init__(self, sizes: Tuple[int, int] = (3, 5), cluster_probability: float = 0.4) -> None:
        self.sizes = sizes
        self.cluster_probability = cluster_probability

    def root_octave(self, ctx: SynthContext) -> int:
        # Chords sit low so stacked voices have room above the root.
        return ctx.clamp_octave(ctx.rng.randint(0, 2) + max(2, ctx.bundle.min_octave))

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        size = ctx.rng.randint(*self.sizes)
        pool = ctx.pitch_pool()
        root_index = ctx.rng.randrange(len(pool))
        base_octave = self.root_octave(ctx)
        duration = ctx.duration()

        if ctx.chaotic and ctx.rng.random() < self.cluster_probability:
            root = pool[root_index]
            notes = [
                make_note(
                    root + step,
                    ctx.clamp_octave(base_octave + (root + step) // 12),
                    ctx.velocity(),
                    duration * ctx.rng.uniform(0.7, 1.3),
                )
                for step in range(size)
            ]
            return ChordEvent(notes, ctx.key_name, ctx.scale, cluster=True)

        notes = [
            _degree_note(
                ctx,
                pool,
                root_index + 2 * voice,
                base_octave,
                ctx.velocity(),
                duration * (1.0 if voice == 0 else ctx.rng.uniform(0.8, 1.2)),
            )
            for voice in range(size)
        ]
        return ChordEvent(notes, ctx.key_name, ctx.scale)


class CounterpointSynthesizer(Synthesizer):
    """One voice per octave segment."""

    name = "counterpoint"

    def __init__(self, voices: Tuple[int, int] = (2, 4)) -> None:
        self.voices = voices

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        count = ctx.rng.randint(*self.voices)
        segments = partition_octaves(ctx.bundle.min_octave, ctx.bundle.max_octave, count)
        notes = [random_note(ctx, segment) for segment in segments]
        return CounterpointEvent(notes, ctx.key_name, ctx.scale)


class ArpeggioSynthesizer(Synthesizer):
    """Broken chord played one tone after another."""

    name = "arpeggio"

    def __init__(self, sizes: Tuple[int, int] = (3, 6), step_ms: Tuple[float, float] = (80.0, 220.0)) -> None:
        self.sizes = sizes
        self.step_ms = step_ms

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        pool = ctx.pitch_pool()
        size = ctx.rng.randint(*self.sizes)
        root_index = ctx.rng.randrange(len(pool))
        top = max(ctx.bundle.min_octave, ctx.bundle.max_octave - 1)
        base_octave = ctx.octave((ctx.bundle.min_octave, top))
        velocity = ctx.velocity()
        notes = [
            _degree_note(ctx, pool, root_index + 2 * step, base_octave, velocity, ctx.duration())
            for step in range(size)
        ]
        direction = ctx.rng.choice(("up", "down"))
        if direction == "down":
            notes.reverse()
        return ArpeggioEvent(
            notes,
            ctx.key_name,
            ctx.scale,
            step_ms=round(ctx.rng.uniform(*self.step_ms), 1),
            direction=direction,
        )


class ParallelMotionSynthesizer(Synthesizer):
    """Short scale run doubled at a fixed number of scale degrees.

    Notes are ordered as (lower, upper) pairs for each step of the run.
    """

    name = "parallel-motion"

    def __init__(self, intervals: Tuple[int, ...] = (2, 4, 5), lengths: Tuple[int, int] = (3, 5)) -> None:
        self.intervals = intervals
        self.lengths = lengths

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        pool = ctx.pitch_pool()
        interval = ctx.rng.choice(self.intervals)
        length = ctx.rng.randint(*self.lengths)
        start = ctx.rng.randrange(len(pool))
        base_octave = ctx.octave()
        ascending = ctx.rng.random() < 0.5
        duration = ctx.duration()
        velocity = ctx.velocity()
        notes: List[Note] = []
        for step in range(length):
            # Negative indices floor into the octave below.
            index = start + (step if ascending else -step)
            notes.append(_degree_note(ctx, pool, index, base_octave, velocity, duration))
            notes.append(_degree_note(ctx, pool, index + interval, base_octave, velocity, duration))
        return ParallelMotionEvent(notes, ctx.key_name, ctx.scale, interval=interval)


class InsectBurstSynthesizer(Synthesizer):
    """A flurry of very short, high notes."""

    name = "insectBurst"

    def __init__(
        self,
        counts: Tuple[int, int] = (3, 10),
        octaves: Tuple[int, int] = (5, 7),
        durations: Tuple[float, float] = (50.0, 150.0),
        velocities: Tuple[int, int] = (60, 99),
    ) -> None:
        self.counts = counts
        self.octaves = octaves
        self.durations = durations
        self.velocities = velocities

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        pool = ctx.pitch_pool()
        notes = [
            make_note(
                ctx.rng.choice(pool),
                ctx.rng.randint(*self.octaves),
                ctx.rng.randint(*self.velocities),
                ctx.rng.uniform(*self.durations),
            )
            for _ in range(ctx.rng.randint(*self.counts))
        ]
        return InsectBurstEvent(notes, ctx.key_name, ctx.scale)
