"""Base class for style profiles.

A style owns the complete synthesizer set of a stream. Switching styles swaps
the :class:`StyleProfile` instance held by the engine, so no part of the
engine ever branches on a style name.

Parameter precedence
--------------------
Every style computes the tick's bundle in the same order:

1. the style's ``base_bundle``;
2. overrides of the active moods (chaotic, insectBurst, hardcore);
3. weather: temperature bands first, condition bands second;
4. the style's ``envelope``, clamping register, dynamics and note length
   into the ranges that define the style;
5. :meth:`~player_piano.parameters.ParameterBundle.sanitized`.

Weather therefore reshapes the style but can never push it outside its
envelope, and a weather scale suggestion is ignored when the style locks its
scale.
"""

from __future__ import annotations

import random
from typing import Any, Dict, Optional, Sequence, Tuple

from ..events import PEDAL_TYPES, MidiEvent, Pedal, SilenceEvent, WeatherReading
from ..moods import apply_mood_overrides
from ..parameters import DEFAULT_BUNDLE, ParameterBundle
from ..pedal import PedalController
from ..state import EngineState
from ..synthesizers import InsectBurstSynthesizer, SynthContext, Synthesizer
from ..weather import WeatherMapping, map_weather

__all__ = ["StyleProfile", "apply_envelope"]


def _clamp_pair(pair: Tuple[float, float], bounds: Tuple[float, float]) -> Tuple[float, float]:
    low, high = bounds
    first = max(low, min(high, pair[0]))
    second = max(low, min(high, pair[1]))
    return (min(first, second), max(first, second))


def apply_envelope(bundle: ParameterBundle, envelope: Optional[Dict[str, Tuple[float, float]]]) -> ParameterBundle:
    """Clamp ``bundle`` into ``envelope``.

    ``envelope`` may define ``octave``, ``velocity`` and ``duration`` bounds.
    """

    if not envelope:
        return bundle
    changes: Dict[str, Any] = {}
    if "octave" in envelope:
        low, high = _clamp_pair(bundle.octave_range, envelope["octave"])
        changes["min_octave"], changes["max_octave"] = int(low), int(high)
    if "velocity" in envelope:
        low, high = _clamp_pair(bundle.velocity_range, envelope["velocity"])
        changes["velocity_range"] = (int(low), int(high))
    if "duration" in envelope:
        changes["duration_range"] = _clamp_pair(bundle.duration_range, envelope["duration"])
    return bundle.replace(**changes)


class StyleProfile:
    """Strategy object bundling a style's parameters and synthesizers.

    Subclasses override the class attributes and :meth:`choose_synthesizer`;
    styles with sub-physics also override :meth:`advance`, :meth:`preempt`
    and :meth:`reset`.
    """

    name = "base"
    description = ""
    start_scale = "major"
    preferred_scales: Sequence[str] = ()
    locked_scale: Optional[str] = None
    moods_enabled = True
    pedal_types: Sequence[str] = PEDAL_TYPES
    silence_range: Tuple[float, float] = (100.0, 600.0)
    envelope: Optional[Dict[str, Tuple[float, float]]] = None
    base_bundle: ParameterBundle = DEFAULT_BUNDLE
    insect_preempt_probability = 0.6

    def __init__(self) -> None:
        self.insect_burst = InsectBurstSynthesizer()

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------
    def reset(self, state: EngineState, now: float, rng: random.Random) -> None:
        """Drop any auxiliary state left by the previous style."""

        state.style_data = {}

    def advance(
        self,
        state: EngineState,
        now: float,
        rng: random.Random,
        weather: Optional[WeatherReading] = None,
    ) -> None:
        """Step style specific sub-physics. The base style has none."""

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------
    def compute_parameters(
        self,
        state: EngineState,
        weather: Optional[WeatherReading],
        rng: random.Random,
    ) -> WeatherMapping:
        bundle = apply_mood_overrides(self.base_bundle, state.active_moods)
        mapping = map_weather(weather, state.scale, rng, bundle)
        scale = mapping.scale if self.locked_scale is None else self.locked_scale
        bundle = apply_envelope(mapping.bundle, self.envelope).sanitized()
        return WeatherMapping(bundle, scale, scale_changed=scale != state.scale)

    # ------------------------------------------------------------------
    # Event decisions
    # ------------------------------------------------------------------
    def preempt(self, ctx: SynthContext) -> Optional[MidiEvent]:
        """Return an event that bypasses the density gate, if any."""

        if ctx.state.is_active("insectBurst") and ctx.rng.random() < self.insect_preempt_probability:
            return self.insect_burst.synthesize(ctx)
        return None

    def silence(self, ctx: SynthContext) -> SilenceEvent:
        low, high = self.silence_range
        return SilenceEvent(duration=round(ctx.rng.uniform(low, high), 1))

    def decide_pedal(self, ctx: SynthContext, pedals: PedalController) -> Optional[Pedal]:
        return pedals.decide(ctx.state, ctx.bundle, self.pedal_types)

    def choose_synthesizer(self, ctx: SynthContext) -> Synthesizer:
        raise NotImplementedError

    def synthesize(self, ctx: SynthContext) -> MidiEvent:
        return self.choose_synthesizer(ctx).synthesize(ctx)

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "startScale": self.start_scale,
            "lockedScale": self.locked_scale,
            "moodsEnabled": self.moods_enabled,
        }
