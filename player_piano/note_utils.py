"""Utility functions for building notes and translating MIDI numbers.

This module groups helpers dealing with note representation conversions.
Every synthesizer funnels its output through :func:`make_note` or
:func:`note_from_midi` so that no emitted :class:`~player_piano.events.Note`
can ever carry an out-of-range velocity, a non-positive duration or a MIDI
number outside ``0-127``.

Example
-------
>>> from player_piano.note_utils import make_note
>>> make_note(0, 4, 80, 500.0).midi_number
60
"""

# Modification Summary
# ---------------------
# * ``make_note`` clamps rather than raises; every emitted note is legal.
# * Name parsing lives in ``scales.key_to_pitch_class``; this module only
#   builds notes from pitch classes and absolute MIDI numbers.

from __future__ import annotations

import math

from .events import Note
from .scales import MAX_OCTAVE, MIN_OCTAVE, NOTES

__all__ = [
    "make_note",
    "note_from_midi",
    "clamp_velocity",
    "clamp_duration",
]

# Shortest note the engine will ever emit, in milliseconds.
MIN_DURATION_MS = 1.0


def clamp_velocity(velocity: float) -> int:
    """Return ``velocity`` as an integer inside ``1-127``."""

    if not math.isfinite(velocity):
        return 64
    return max(1, min(127, int(round(velocity))))


def clamp_duration(duration: float) -> float:
    """Return a strictly positive, finite duration in milliseconds."""

    if not math.isfinite(duration):
        return 500.0
    return max(MIN_DURATION_MS, float(duration))


def make_note(pitch_class: int, octave: int, velocity: float, duration: float) -> Note:
    """Build a :class:`Note` from a pitch class and octave.

    ``octave`` is clamped to ``MIN_OCTAVE``-``MAX_OCTAVE`` which keeps the
    resulting MIDI number (``pitch_class + octave * 12 + 12``) inside the
    MIDI range for every pitch class.
    """

    pitch_class %= 12
    octave = max(MIN_OCTAVE, min(MAX_OCTAVE, int(octave)))
    return Note(
        name=NOTES[pitch_class],
        octave=octave,
        midi_number=pitch_class + octave * 12 + 12,
        velocity=clamp_velocity(velocity),
        duration=clamp_duration(duration),
    )


def note_from_midi(midi_number: float, velocity: float, duration: float) -> Note:
    """Build a :class:`Note` from an absolute MIDI number.

    Used by styles that think in absolute pitch (furniture ranges, Doppler
    shifts). Values are rounded and folded by octaves into ``12-119`` so the
    octave numbering stays non-negative.
    """

    midi = int(round(midi_number)) if math.isfinite(midi_number) else 60
    while midi < 12:
        midi += 12
    while midi > 119:
        midi -= 12
    return make_note(midi % 12, midi // 12 - 1, velocity, duration)
