"""Ambient street style with Doppler shifted car pass-bys.

Cars are tiny physics objects stored in ``state.style_data["cars"]``. Each
car drives along a line past the listener, who sits at ``x = 0``; positions
are in metres and speeds in metres per second. A car spawns at
``-SPAWN_DISTANCE`` or ``+SPAWN_DISTANCE``, hums while it approaches, emits a
Doppler sweep when it crosses the listener and despawns once it is further
away than ``SPAWN_DISTANCE`` on the other side.

Pitch shifts follow the classic moving-source Doppler formula
``f' = f * c / (c -/+ v)``, expressed in semitones.
"""

from __future__ import annotations

import math
import random
from typing import Any, Dict, List, Optional

from ..events import CarPassEvent, MidiEvent, WeatherReading
from ..note_utils import note_from_midi
from ..parameters import ParameterBundle
from ..state import EngineState
from ..synthesizers import (
    ChordSynthesizer,
    CounterpointSynthesizer,
    NoteSynthesizer,
    SynthContext,
    Synthesizer,
)
from ..weather import condition_band
from .base import StyleProfile

__all__ = ["StreetStyle", "doppler_semitones", "MAX_CARS"]

SPEED_OF_SOUND = 343.0
SPAWN_DISTANCE = 120.0
MAX_CARS = 3
SPAWN_PROBABILITY = 0.03
RAIN_SPAWN_PROBABILITY = 0.05
# Real traffic shifts pitch by about a semitone; exaggerate it so it is
# audible on a piano.
DOPPLER_EXAGGERATION = 4.0


def doppler_semitones(speed: float, approaching: bool) -> float:
    """Return the pitch shift in semitones heard from a moving source.

    >>> round(doppler_semitones(20.0, True), 2)
    1.04
    """

    speed = max(0.0, min(speed, SPEED_OF_SOUND * 0.9))
    if approaching:
        ratio = SPEED_OF_SOUND / (SPEED_OF_SOUND - speed)
    else:
        ratio = SPEED_OF_SOUND / (SPEED_OF_SOUND + speed)
    return 12.0 * math.log2(ratio)


class StreetStyle(StyleProfile):
    name = "street"
    description = "Evening street ambience with passing cars"
    start_scale = "dorian"
    preferred_scales = ("dorian", "minor", "pentatonicMinor", "mixolydian")
    base_bundle = ParameterBundle(
        tempo=90,
        density=0.6,
        min_octave=2,
        max_octave=6,
        velocity_range=(40, 85),
        duration_range=(600.0, 2800.0),
        sustain_probability=0.08,
    )

    def __init__(self) -> None:
        super().__init__()
        self.note = NoteSynthesizer()
        self.chord = ChordSynthesizer(sizes=(3, 4))
        self.counterpoint = CounterpointSynthesizer(voices=(2, 3))
        self.hum = CarHumSynthesizer()

    def reset(self, state: EngineState, now: float, rng: random.Random) -> None:
        super().reset(state, now, rng)
        state.style_data.update(cars=[], passes=[], next_car_id=1, updated_at=now)

    def spawn_car(self, state: EngineState, rng: random.Random) -> Dict[str, Any]:
        side = rng.choice((-1, 1))
        car = {
            "id": state.style_data.get("next_car_id", 1),
            "x": side * SPAWN_DISTANCE,
            "speed": rng.uniform(8.0, 25.0),
            "direction": -side,
            "base_midi": rng.randint(36, 55),
        }
        state.style_data["next_car_id"] = car["id"] + 1
        state.style_data.setdefault("cars", []).append(car)
        return car

    def advance(self, state: EngineState, now: float, rng: random.Random, weather: Optional[WeatherReading] = None) -> None:
        data = state.style_data
        if "cars" not in data:
            self.reset(state, now, rng)
        dt = max(0.0, now - data.get("updated_at", now))
        data["updated_at"] = now

        survivors: List[Dict[str, Any]] = []
        for car in data["cars"]:
            before = car["x"]
            car["x"] = before + car["direction"] * car["speed"] * dt
            if before * car["x"] <= 0 and before != 0:
                data["passes"].append(car["id"])
            if abs(car["x"]) <= SPAWN_DISTANCE:
                survivors.append(car)
        # Cars that crossed and left in the same step still get their sweep.
        data["departed"] = {car["id"]: car for car in data["cars"] if car not in survivors}
        data["cars"] = survivors

        rainy = condition_band(weather.weather_code if weather else None) in ("rain", "thunderstorm")
        probability = RAIN_SPAWN_PROBABILITY if rainy else SPAWN_PROBABILITY
        if len(data["cars"]) < MAX_CARS and rng.random() < probability:
            self.spawn_car(state, rng)

    def _find_car(self, state: EngineState, car_id: int) -> Optional[Dict[str, Any]]:
        for car in state.style_data.get("cars", []):
            if car["id"] == car_id:
                return car
        return state.style_data.get("departed", {}).get(car_id)

    def preempt(self, ctx: SynthContext) -> Optional[MidiEvent]:
        passes = ctx.state.style_data.get("passes", [])
        while passes:
            car = self._find_car(ctx.state, passes.pop(0))
            if car is not None:
                return self.sweep(ctx, car)
        return super().preempt(ctx)

    def sweep(self, ctx: SynthContext, car: Dict[str, Any]) -> CarPassEvent:
        """Glide from the approaching pitch down to the receding pitch."""

        high = car["base_midi"] + DOPPLER_EXAGGERATION * doppler_semitones(car["speed"], True)
        low = car["base_midi"] + DOPPLER_EXAGGERATION * doppler_semitones(car["speed"], False)
        steps = ctx.rng.randint(4, 7)
        notes = []
        for step in range(steps):
            pitch = high + (low - high) * step / (steps - 1)
            # The sweep fades as the car drives off.
            velocity = 85 - 40 * step / (steps - 1)
            notes.append(note_from_midi(pitch, velocity, ctx.rng.uniform(150.0, 400.0)))
        return CarPassEvent(
            notes, ctx.key_name, ctx.scale, car_id=car["id"], approaching=False, chromatic=True
        )

    def choose_synthesizer(self, ctx: SynthContext) -> Synthesizer:
        approaching = [car for car in ctx.state.style_data.get("cars", []) if car["x"] * car["direction"] < 0]
        if approaching and ctx.rng.random() < 0.3:
            return self.hum
        roll = ctx.rng.random()
        if roll < 0.5:
            return self.note
        if roll < 0.75:
            return self.chord
        return self.counterpoint


class CarHumSynthesizer(Synthesizer):
    """Engine drone of the nearest approaching car, louder as it nears."""

    name = "carHum"

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        cars = [car for car in ctx.state.style_data.get("cars", []) if car["x"] * car["direction"] < 0]
        car = min(cars, key=lambda item: abs(item["x"]))
        closeness = 1.0 - min(1.0, abs(car["x"]) / SPAWN_DISTANCE)
        pitch = car["base_midi"] + DOPPLER_EXAGGERATION * doppler_semitones(car["speed"], True)
        note = note_from_midi(pitch, 30 + 60 * closeness, ctx.rng.uniform(400.0, 900.0))
        return CarPassEvent(
            [note], ctx.key_name, ctx.scale, car_id=car["id"], approaching=True, chromatic=True
        )
