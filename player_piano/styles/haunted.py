"""Haunted house style: the furniture talks.

Every session owns its own furniture graph in ``state.style_data``. Pieces
speak in gestures matching their character (morse taps, glissandi, broken
ghost melodies, two-note harmonies) and pair up into short conversations that
either harmonize (thirds and fifths) or argue (tritones and sevenths). Every
10-15 seconds a window slams: a burst of low, loud notes followed by a
moment of total silence. A fog pedal swells in and releases on its own
schedule instead of following the regular pedal bands; each release starts
the regular pedal cooldown.

Furniture
---------
===========  =========  ======  =====  ========  ========
piece        gesture    pitch   tempo  volume    activity
===========  =========  ======  =====  ========  ========
chair        morse      48-72   1.2    60-90     0.7
lamp         morse      60-84   0.8    40-70     0.5
bookshelf    glissando  36-60   0.3    30-80     0.4
cabinet      harmony    40-70   0.6    50-85     0.6
radiator     harmony    30-55   0.4    45-75     0.5
ghostSpoon   melody     72-96   0.7    20-50     0.2
===========  =========  ======  =====  ========  ========

The ghost spoon starts dormant and only occasionally wakes up.
"""

from __future__ import annotations

import copy
import logging
import random
from typing import Any, Dict, List, Optional

from ..events import FurnitureEvent, MidiEvent, Note, Pedal, SilenceEvent, WeatherReading
from ..note_utils import note_from_midi
from ..parameters import ParameterBundle
from ..pedal import PedalController
from ..state import EngineState
from ..synthesizers import SynthContext, Synthesizer
from .base import StyleProfile

__all__ = ["HauntedStyle", "FURNITURE", "GHOST_MELODIES"]

logger = logging.getLogger(__name__)

FURNITURE: Dict[str, Dict[str, Any]] = {
    "chair": {"gesture": "morse", "pitch": (48, 72), "tempo": 1.2, "volume": (60, 90), "activity": 0.7, "state": "active"},
    "lamp": {"gesture": "morse", "pitch": (60, 84), "tempo": 0.8, "volume": (40, 70), "activity": 0.5, "state": "active"},
    "bookshelf": {"gesture": "glissando", "pitch": (36, 60), "tempo": 0.3, "volume": (30, 80), "activity": 0.4, "state": "active"},
    "cabinet": {"gesture": "harmony", "pitch": (40, 70), "tempo": 0.6, "volume": (50, 85), "activity": 0.6, "state": "active"},
    "radiator": {"gesture": "harmony", "pitch": (30, 55), "tempo": 0.4, "volume": (45, 75), "activity": 0.5, "state": "active"},
    "ghostSpoon": {"gesture": "melody", "pitch": (72, 96), "tempo": 0.7, "volume": (20, 50), "activity": 0.2, "state": "dormant"},
}

GHOST_MELODIES = (
    (0, 2, 4, 2, 0),
    (0, -2, 1, -1, 0),
    (0, 5, 4, 2, 0),
    (0, 3, 1, 4, 0),
)

HARMONIZING_INTERVALS = (3, 4, 7)
ARGUING_INTERVALS = (6, 10, 11)

CONVERSATION_SECONDS = 30.0
MAX_CONVERSATIONS = 2
CONVERSATION_PROBABILITY = 0.05
SPOON_WAKE_PROBABILITY = 0.01


class FurnitureSynthesizer(Synthesizer):
    """Let one active piece of furniture speak."""

    name = "furniture"

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        furniture = ctx.state.style_data["furniture"]
        speakers = [
            name
            for name, piece in furniture.items()
            if piece["state"] != "dormant" and ctx.rng.random() < piece["activity"] * piece["tempo"]
        ]
        if not speakers:
            return SilenceEvent(duration=round(ctx.rng.uniform(200.0, 500.0), 1))
        name = ctx.rng.choice(speakers)
        piece = furniture[name]
        gesture = piece["gesture"]
        if gesture == "morse":
            notes = self._morse(ctx, piece)
        elif gesture == "glissando":
            notes = self._glissando(ctx, piece)
        elif gesture == "melody":
            notes = self._melody(ctx, piece)
            if not notes:
                return SilenceEvent(duration=round(ctx.rng.uniform(200.0, 500.0), 1))
            # The spoon dozes off again after singing.
            piece["state"] = "dormant"
        else:
            notes = self._harmony(ctx, piece, piece["state"])
        return FurnitureEvent(notes, ctx.key_name, ctx.scale, furniture=name, gesture=gesture)

    @staticmethod
    def _pitch(ctx: SynthContext, piece: Dict[str, Any]) -> int:
        low, high = piece["pitch"]
        return ctx.rng.randint(low, high)

    @staticmethod
    def _volume(ctx: SynthContext, piece: Dict[str, Any]) -> int:
        return ctx.rng.randint(*piece["volume"])

    def _morse(self, ctx: SynthContext, piece: Dict[str, Any]) -> List[Note]:
        base = self._pitch(ctx, piece)
        if ctx.rng.random() < 0.5:
            notes = []
            for _ in range(ctx.rng.randint(3, 5)):
                wobble = ctx.rng.choice((-1, 1)) if ctx.rng.random() < 0.3 else 0
                notes.append(note_from_midi(base + wobble, self._volume(ctx, piece), ctx.rng.uniform(80.0, 200.0)))
            return notes
        return [note_from_midi(base, self._volume(ctx, piece), ctx.rng.uniform(300.0, 700.0))]

    def _glissando(self, ctx: SynthContext, piece: Dict[str, Any]) -> List[Note]:
        start = self._pitch(ctx, piece)
        direction = ctx.rng.choice((-1, 1))
        return [
            note_from_midi(start + direction * step, self._volume(ctx, piece), ctx.rng.uniform(200.0, 500.0))
            for step in range(ctx.rng.randint(4, 11))
        ]

    def _melody(self, ctx: SynthContext, piece: Dict[str, Any]) -> List[Note]:
        base = self._pitch(ctx, piece)
        fragment = ctx.rng.choice(GHOST_MELODIES)
        return [
            note_from_midi(base + interval, self._volume(ctx, piece), ctx.rng.uniform(400.0, 1000.0))
            for interval in fragment
            if ctx.rng.random() < 0.8
        ]

    def _harmony(self, ctx: SynthContext, piece: Dict[str, Any], relationship: str) -> List[Note]:
        base = self._pitch(ctx, piece)
        intervals = ARGUING_INTERVALS if relationship == "arguing" else HARMONIZING_INTERVALS
        interval = ctx.rng.choice(intervals)
        return [
            note_from_midi(base, self._volume(ctx, piece), ctx.rng.uniform(800.0, 2000.0)),
            note_from_midi(base + interval, self._volume(ctx, piece), ctx.rng.uniform(800.0, 2000.0)),
        ]


class HauntedStyle(StyleProfile):
    name = "haunted"
    description = "Conversing furniture, slamming windows and fog"
    start_scale = "chromatic"
    locked_scale = "chromatic"
    moods_enabled = False
    silence_range = (100.0, 900.0)
    base_bundle = ParameterBundle(
        tempo=60,
        density=0.6,
        min_octave=1,
        max_octave=7,
        velocity_range=(20, 126),
        duration_range=(50.0, 2000.0),
        sustain_probability=0.0,
    )

    def __init__(self) -> None:
        super().__init__()
        self.furniture = FurnitureSynthesizer()

    def reset(self, state: EngineState, now: float, rng: random.Random) -> None:
        super().reset(state, now, rng)
        state.style_data.update(
            furniture=copy.deepcopy(FURNITURE),
            conversations=[],
            last_slam=now,
            slam_interval=rng.uniform(10.0, 15.0),
            silence_until=now,
            fog_on=False,
            fog_since=now,
            fog_hold=0.0,
        )

    # ------------------------------------------------------------------
    # Furniture graph
    # ------------------------------------------------------------------
    def advance(self, state: EngineState, now: float, rng: random.Random, weather: Optional[WeatherReading] = None) -> None:
        data = state.style_data
        if "furniture" not in data:
            self.reset(state, now, rng)
        furniture = data["furniture"]

        ongoing = []
        for pair in data["conversations"]:
            if now - pair["started_at"] < CONVERSATION_SECONDS:
                ongoing.append(pair)
                continue
            for name in pair["members"]:
                piece = furniture[name]
                piece.pop("partner", None)
                # A piece that dozed off mid-conversation stays asleep.
                if piece["state"] in ("harmonizing", "arguing"):
                    piece["state"] = "active"
        data["conversations"] = ongoing

        spoon = furniture["ghostSpoon"]
        if spoon["state"] == "dormant" and rng.random() < SPOON_WAKE_PROBABILITY:
            spoon["state"] = "active"

        if len(ongoing) < MAX_CONVERSATIONS and rng.random() < CONVERSATION_PROBABILITY:
            busy = {name for pair in ongoing for name in pair["members"]}
            available = [
                name for name, piece in furniture.items()
                if name not in busy and piece["state"] != "dormant"
            ]
            if len(available) >= 2:
                first, second = rng.sample(available, 2)
                relationship = "harmonizing" if rng.random() < 0.7 else "arguing"
                ongoing.append({"members": (first, second), "relationship": relationship, "started_at": now})
                furniture[first].update(state=relationship, partner=second)
                furniture[second].update(state=relationship, partner=first)
                logger.debug("%s and %s start %s", first, second, relationship)

    # ------------------------------------------------------------------
    # Tick decisions
    # ------------------------------------------------------------------
    def window_slam(self, ctx: SynthContext) -> FurnitureEvent:
        notes = [
            note_from_midi(ctx.rng.randint(24, 47), ctx.rng.randint(80, 126), ctx.rng.uniform(50.0, 150.0))
            for _ in range(ctx.rng.randint(8, 13))
        ]
        return FurnitureEvent(notes, ctx.key_name, ctx.scale, furniture="window", gesture="slam")

    def preempt(self, ctx: SynthContext) -> Optional[MidiEvent]:
        data = ctx.state.style_data
        now = ctx.clock.now()
        if now < data["silence_until"]:
            return SilenceEvent(duration=round(ctx.rng.uniform(100.0, 300.0), 1))
        if now - data["last_slam"] > data["slam_interval"]:
            data["last_slam"] = now
            data["slam_interval"] = ctx.rng.uniform(10.0, 15.0)
            data["silence_until"] = now + ctx.rng.uniform(0.5, 1.5)
            return self.window_slam(ctx)
        return None

    def decide_pedal(self, ctx: SynthContext, pedals: PedalController) -> Optional[Pedal]:
        """Fog pedal: swell in at random, release after 5-15 seconds.

        A release starts the regular pedal cooldown, so the fog never swells
        back in before that cooldown has passed.
        """

        data = ctx.state.style_data
        now = ctx.clock.now()
        if not data["fog_on"]:
            if not pedals.ready(ctx.state):
                return None
            if ctx.rng.random() < 0.02:
                data.update(fog_on=True, fog_since=now, fog_hold=ctx.rng.uniform(5.0, 15.0))
                return Pedal("sustain", ctx.rng.uniform(0.7, 1.0))
            return None
        if now - data["fog_since"] > data["fog_hold"]:
            data["fog_on"] = False
            return pedals.disable(ctx.state)
        return None

    def choose_synthesizer(self, ctx: SynthContext) -> Synthesizer:
        return self.furniture
