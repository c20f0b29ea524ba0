"""Mood flags and key/scale rotation.

Moods are temporary layers on top of the active style:

``chaotic``
    Wild dynamics and durations, dense output, chaotic scales and cluster
    chords.
``insectBurst``
    Short high-register flurries that preempt normal generation.
``hardcore``
    Fast, loud and dense.

Each tick :class:`ModeMachine` rolls a Bernoulli trial per inactive mood.
When a mood switches on its lifetime is drawn once from the configured range
and stored in :class:`~player_piano.state.MoodActivation`; an elapsed-time
check on later ticks switches it off again. The machine also owns the
occasional key/scale rotation.

Example
-------
>>> import random
>>> from player_piano.clock import ManualClock
>>> from player_piano.config import EngineConfig
>>> from player_piano.state import EngineState
>>> machine = ModeMachine(EngineConfig(), ManualClock(), random.Random(0))
>>> state = EngineState(key=0, scale="major")
>>> machine.activate(state, "hardcore")
True
>>> state.is_active("hardcore")
True
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .clock import Clock, elapsed
from .config import EngineConfig
from .parameters import ParameterBundle
from .scales import CHAOTIC_SCALES, SCALES, canonical_scale
from .state import EngineState, MoodActivation

__all__ = ["MoodSpec", "MOODS", "MOOD_NAMES", "ModeMachine", "apply_mood_overrides"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoodSpec:
    """Static description of a mood and the bundle fields it overrides."""

    name: str
    overrides: Dict[str, Any] = field(default_factory=dict)


MOODS: Dict[str, MoodSpec] = {
    "chaotic": MoodSpec(
        "chaotic",
        {
            "velocity_range": (20, 127),
            "duration_range": (50.0, 4000.0),
            "density": 0.9,
            "sustain_probability": 0.2,
        },
    ),
    "insectBurst": MoodSpec(
        "insectBurst",
        {
            "duration_range": (50.0, 200.0),
            "density": 0.95,
            "velocity_range": (60, 110),
        },
    ),
    "hardcore": MoodSpec(
        "hardcore",
        {
            "tempo": 160,
            "velocity_range": (90, 127),
            "duration_range": (100.0, 800.0),
            "density": 0.85,
        },
    ),
}

# Overrides are layered in this order so hardcore dynamics win over chaos.
MOOD_NAMES: Sequence[str] = ("chaotic", "insectBurst", "hardcore")


def apply_mood_overrides(bundle: ParameterBundle, moods: Iterable[str]) -> ParameterBundle:
    """Layer the overrides of every mood in ``moods`` onto ``bundle``."""

    active = set(moods)
    for name in MOOD_NAMES:
        if name in active:
            bundle = bundle.replace(**MOODS[name].overrides)
    return bundle


class ModeMachine:
    """Mood activation timers and key/scale rotation for one engine.

    The machine holds no per-session data; everything it mutates lives in the
    :class:`EngineState` passed to each call.
    """

    def __init__(self, config: EngineConfig, clock: Clock, rng: random.Random) -> None:
        self.config = config
        self.clock = clock
        self.rng = rng

    # ------------------------------------------------------------------
    # Moods
    # ------------------------------------------------------------------
    def activate(
        self,
        state: EngineState,
        name: str,
        style: Any = None,
        duration: Optional[float] = None,
    ) -> bool:
        """Switch mood ``name`` on; returns ``False`` for unknown moods."""

        if name not in MOODS:
            return False
        if duration is None:
            low, high = self.config.mood_durations.get(name, (30.0, 60.0))
            duration = self.rng.uniform(low, high)
        state.active_moods[name] = MoodActivation(self.clock.now(), duration)
        logger.info("Mood %s on for %.1fs", name, duration)
        if name == "chaotic" and getattr(style, "locked_scale", None) is None:
            state.scale = self.rng.choice(CHAOTIC_SCALES)
            logger.info("Chaos switched scale to %s", state.scale)
        return True

    def deactivate(self, state: EngineState, name: str) -> bool:
        if name not in MOODS:
            return False
        if state.active_moods.pop(name, None) is not None:
            logger.info("Mood %s off", name)
        return True

    def update_moods(self, state: EngineState, style: Any = None) -> None:
        """Expire finished moods and roll activation trials for the others."""

        now = self.clock.now()
        for name in MOOD_NAMES:
            activation = state.active_moods.get(name)
            if activation is not None:
                if activation.expired(now):
                    self.deactivate(state, name)
                continue
            if not self._moods_allowed(style):
                continue
            probability = self.config.mood_probabilities.get(name, 0.0)
            if self.rng.random() < probability:
                self.activate(state, name, style)

    def _moods_allowed(self, style: Any) -> bool:
        return self.config.moods_enabled and getattr(style, "moods_enabled", True)

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------
    def rotation_pool(self, state: EngineState, style: Any, scale_only: bool) -> List[str]:
        """Return the scales a rotation may pick from."""

        preferred = list(getattr(style, "preferred_scales", ()) or ())
        if preferred:
            return preferred
        if state.chaotic:
            pool = list(CHAOTIC_SCALES)
            if scale_only:
                pool += ["minor", "wholeTone"]
            return pool
        return list(SCALES)

    def maybe_rotate(self, state: EngineState, style: Any = None) -> bool:
        """Occasionally change the key, the scale or both.

        Returns ``True`` when a rotation happened.
        """

        if state.chaotic:
            interval = self.config.chaos_rotation_interval_s
            probability = self.config.chaos_rotation_probability
        else:
            interval = self.config.rotation_interval_s
            probability = self.config.rotation_probability

        if elapsed(self.clock, state.last_mode_change) <= interval:
            return False
        if self.rng.random() >= probability:
            return False

        locked = getattr(style, "locked_scale", None)
        change = self.rng.randrange(3)
        if change in (0, 2):
            state.key = self.rng.randrange(12)
        if change in (1, 2):
            if locked is not None:
                state.scale = locked
            else:
                pool = self.rotation_pool(state, style, scale_only=change == 1)
                state.scale = self.rng.choice(pool)
        state.last_mode_change = self.clock.now()
        logger.info("Rotated to %s %s", state.key_name, state.scale)
        return True

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------
    def set_scale(self, state: EngineState, name: object, style: Any = None) -> bool:
        scale = canonical_scale(name)
        if scale is None:
            return False
        locked = getattr(style, "locked_scale", None)
        if locked is not None and scale != locked:
            logger.warning("Style %s locks the scale to %s", getattr(style, "name", "?"), locked)
            return False
        state.scale = scale
        state.last_mode_change = self.clock.now()
        return True

    def advance(self, state: EngineState, style: Any = None) -> None:
        self.update_moods(state, style)
        self.maybe_rotate(state, style)

