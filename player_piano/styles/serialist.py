"""Twelve-tone serialist style.

A random row of all twelve pitch classes is drawn when the style starts. The
row is stepped through note by note in one of the four classic forms:

``P``  prime, the row as drawn
``R``  retrograde, the row backwards
``I``  inversion, every interval mirrored around the first note
``RI`` retrograde inversion

Each completed pass picks a new form at random. Rows are transposed to the
session key, so key rotations still apply. The scale is locked to chromatic.
"""

from __future__ import annotations

import random
from typing import List, Sequence

from ..events import MidiEvent, ToneRowEvent
from ..note_utils import make_note
from ..parameters import ParameterBundle
from ..state import EngineState
from ..synthesizers import SynthContext, Synthesizer
from .base import StyleProfile

__all__ = ["SerialistStyle", "ToneRowSynthesizer", "row_form", "ROW_FORMS"]

ROW_FORMS = ("P", "R", "I", "RI")


def row_form(row: Sequence[int], form: str) -> List[int]:
    """Return ``row`` rewritten in ``form``.

    >>> row_form([0, 4, 7, 11, 2, 5, 9, 1, 3, 6, 8, 10], "I")[:3]
    [0, 8, 5]
    """

    if form not in ROW_FORMS:
        raise ValueError(f"Unknown row form: {form}")
    if form in ("I", "RI"):
        first = row[0]
        row = [(2 * first - pitch) % 12 for pitch in row]
    else:
        row = list(row)
    if form in ("R", "RI"):
        row = row[::-1]
    return row


class ToneRowSynthesizer(Synthesizer):
    """Emit the next one to three pitches of the current row form."""

    name = "toneRow"

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        data = ctx.state.style_data
        if "row" not in data:
            data.update(row=ctx.rng.sample(range(12), 12), position=0, form="P")
        pitches = row_form(data["row"], data["form"])
        start = data["position"]
        count = ctx.rng.randint(1, 3)
        notes = []
        for offset in range(min(count, 12 - start)):
            pitch = (pitches[start + offset] + ctx.key) % 12
            notes.append(make_note(pitch, ctx.octave(), ctx.velocity(), ctx.duration()))
        event = ToneRowEvent(notes, ctx.key_name, ctx.scale, row_position=start, form=data["form"])

        data["position"] = start + len(notes)
        if data["position"] >= 12:
            data["position"] = 0
            data["form"] = ctx.rng.choice(ROW_FORMS)
        return event


class SerialistStyle(StyleProfile):
    name = "serialist"
    description = "Twelve-tone rows in prime, retrograde and inverted forms"
    start_scale = "chromatic"
    locked_scale = "chromatic"
    base_bundle = ParameterBundle(
        tempo=72,
        density=0.6,
        min_octave=2,
        max_octave=6,
        velocity_range=(35, 95),
        duration_range=(300.0, 2200.0),
        sustain_probability=0.04,
    )

    def __init__(self) -> None:
        super().__init__()
        self.row = ToneRowSynthesizer()

    def reset(self, state: EngineState, now: float, rng: random.Random) -> None:
        super().reset(state, now, rng)
        state.style_data.update(row=rng.sample(range(12), 12), position=0, form="P")

    def choose_synthesizer(self, ctx: SynthContext) -> Synthesizer:
        return self.row
