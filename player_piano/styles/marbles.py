"""Marbles dropped on a piano-shaped floor.

Marbles live in a unit box: ``x`` runs from 0 (left, low notes) to 1 (right,
high notes) and ``y`` is the height above the floor. Gravity pulls them down,
each floor hit loses energy through the coefficient of restitution and the
side walls reflect them. Every floor bounce queues a note whose pitch comes
from the horizontal position and whose velocity comes from the impact speed.
Marbles too tired to bounce are removed and new ones are dropped in from time
to time.
"""

from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

from ..events import MarbleBounceEvent, MidiEvent, WeatherReading
from ..note_utils import make_note
from ..parameters import ParameterBundle
from ..state import EngineState
from ..synthesizers import ChordSynthesizer, NoteSynthesizer, SynthContext, Synthesizer
from .base import StyleProfile

__all__ = ["MarblesStyle", "step_marble", "GRAVITY", "RESTITUTION"]

GRAVITY = 2.5
RESTITUTION = 0.72
REST_SPEED = 0.25
TIME_STEP = 0.01
# Longer gaps between ticks are not simulated in full.
MAX_ADVANCE = 1.0
MAX_MARBLES = 4
MAX_PENDING_BOUNCES = 8
# Impact speed of a marble dropped from the top of the box.
MAX_IMPACT = (2.0 * GRAVITY) ** 0.5
DROP_PROBABILITY = 0.04


def step_marble(marble: Dict[str, Any], dt: float) -> Optional[float]:
    """Integrate ``marble`` by ``dt`` seconds in place.

    Returns the impact speed when the marble hit the floor during the step,
    otherwise ``None``.
    """

    marble["vy"] -= GRAVITY * dt
    marble["x"] += marble["vx"] * dt
    marble["y"] += marble["vy"] * dt
    if marble["x"] < 0.0:
        marble["x"] = -marble["x"]
        marble["vx"] = -marble["vx"]
    elif marble["x"] > 1.0:
        marble["x"] = 2.0 - marble["x"]
        marble["vx"] = -marble["vx"]
    if marble["y"] <= 0.0 and marble["vy"] < 0.0:
        impact = -marble["vy"]
        marble["y"] = 0.0
        marble["vy"] = impact * RESTITUTION
        return impact
    return None


class MarblesStyle(StyleProfile):
    name = "marbles"
    description = "Bouncing marbles mapped across the keyboard"
    start_scale = "pentatonicMajor"
    preferred_scales = ("pentatonicMajor", "major", "lydian", "pentatonicMinor")
    silence_range = (80.0, 300.0)
    base_bundle = ParameterBundle(
        tempo=110,
        density=0.35,
        min_octave=2,
        max_octave=7,
        velocity_range=(30, 110),
        duration_range=(150.0, 900.0),
        sustain_probability=0.05,
    )

    def __init__(self) -> None:
        super().__init__()
        self.note = NoteSynthesizer()
        self.chord = ChordSynthesizer(sizes=(3, 3))

    def reset(self, state: EngineState, now: float, rng: random.Random) -> None:
        super().reset(state, now, rng)
        state.style_data.update(marbles=[], bounces=[], next_marble_id=1, updated_at=now)

    def drop_marble(self, state: EngineState, rng: random.Random) -> Dict[str, Any]:
        marble = {
            "id": state.style_data.get("next_marble_id", 1),
            "x": rng.uniform(0.05, 0.95),
            "y": rng.uniform(0.6, 1.0),
            "vx": rng.choice((-1, 1)) * rng.uniform(0.05, 0.3),
            "vy": 0.0,
        }
        state.style_data["next_marble_id"] = marble["id"] + 1
        state.style_data.setdefault("marbles", []).append(marble)
        return marble

    def advance(self, state: EngineState, now: float, rng: random.Random, weather: Optional[WeatherReading] = None) -> None:
        data = state.style_data
        if "marbles" not in data:
            self.reset(state, now, rng)
        remaining = min(MAX_ADVANCE, max(0.0, now - data.get("updated_at", now)))
        data["updated_at"] = now

        while remaining > 1e-9:
            dt = min(TIME_STEP, remaining)
            remaining -= dt
            for marble in data["marbles"]:
                impact = step_marble(marble, dt)
                if impact is not None:
                    data["bounces"].append(
                        {"id": marble["id"], "x": marble["x"], "impact": impact}
                    )
                    if marble["vy"] < REST_SPEED:
                        marble["resting"] = True
            data["marbles"] = [m for m in data["marbles"] if not m.get("resting")]
        del data["bounces"][:-MAX_PENDING_BOUNCES]

        if not data["marbles"] or (
            len(data["marbles"]) < MAX_MARBLES and rng.random() < DROP_PROBABILITY
        ):
            self.drop_marble(state, rng)

    def bounce_note(self, ctx: SynthContext, bounce: Dict[str, Any]) -> MarbleBounceEvent:
        """Map a floor hit onto a scale note.

        The scale degrees of the whole octave range are laid out left to right
        across the floor.
        """

        pool = ctx.pitch_pool()
        low, high = ctx.bundle.octave_range
        slots = len(pool) * (high - low + 1)
        index = min(slots - 1, int(bounce["x"] * slots))
        octave = low + index // len(pool)
        strength = min(1.0, bounce["impact"] / MAX_IMPACT)
        vel_low, vel_high = ctx.bundle.velocity_range
        velocity = vel_low + (vel_high - vel_low) * strength
        dur_low, dur_high = ctx.bundle.duration_range
        note = make_note(pool[index % len(pool)], octave, velocity, dur_low + (dur_high - dur_low) * strength)
        return MarbleBounceEvent(
            note,
            ctx.key_name,
            ctx.scale,
            marble_id=bounce["id"],
            position=(round(bounce["x"], 4), 0.0),
        )

    def preempt(self, ctx: SynthContext) -> Optional[MidiEvent]:
        bounces: List[Dict[str, Any]] = ctx.state.style_data.get("bounces", [])
        if bounces:
            return self.bounce_note(ctx, bounces.pop(0))
        return super().preempt(ctx)

    def choose_synthesizer(self, ctx: SynthContext) -> Synthesizer:
        return self.note if ctx.rng.random() < 0.8 else self.chord
