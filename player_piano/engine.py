"""Tick driver orchestrating one musical stream.

:class:`MusicEngine` owns the state of a single stream and produces exactly
one :class:`~player_piano.events.MidiEvent` per call to
:meth:`MusicEngine.generate_event`. Each tick runs the same pipeline:

1. apply a pending style switch;
2. advance the mode machine (mood timers, key/scale rotation);
3. advance the style's sub-physics (cars, marbles, furniture);
4. compute the parameter bundle (style, moods, weather, envelope);
5. give the style a chance to preempt normal generation;
6. density gate: a uniform draw above ``density`` yields silence;
7. pedal logic may emit a pedal change;
8. otherwise the style's chosen synthesizer emits the event.

Clock and random source are injected so tests can drive time explicitly and
reproduce a run from a seed. Calls on one engine are serialised by a lock.

Example
-------
>>> engine = MusicEngine(seed=7)
>>> event = engine.generate_event(None)
>>> event.type in {"note", "chord", "counterpoint", "pedal", "silence", "insectBurst"}
True
"""

# Modification Summary
# ---------------------
# * Style switches are queued and applied at the start of the next tick so
#   one tick never mixes two synthesizer sets.
# * Unexpected exceptions inside a tick are logged and converted into a
#   silence event; a stream never dies because of one bad tick.

from __future__ import annotations

import logging
import random
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

from .clock import Clock, MonotonicClock
from .config import EngineConfig
from .events import AllNotesOffEvent, MidiEvent, PedalEvent, SilenceEvent, WeatherReading
from .moods import MOODS, ModeMachine
from .parameters import ParameterBundle
from .pedal import PedalController
from .scales import key_to_pitch_class
from .state import EngineState
from .styles import StyleProfile, UnknownStyleError, get_style_profile
from .styles import available_styles as registered_styles
from .synthesizers import SynthContext

__all__ = ["MusicEngine", "EngineState", "FALLBACK_SILENCE_MS"]

logger = logging.getLogger(__name__)

# Silence emitted when a tick fails.
FALLBACK_SILENCE_MS = 250.0

WeatherInput = Union[WeatherReading, Mapping[str, Any], None]


def _known_mood(name: object) -> bool:
    return isinstance(name, str) and name in MOODS


def _coerce_weather(weather: WeatherInput) -> Optional[WeatherReading]:
    if weather is None or isinstance(weather, WeatherReading):
        return weather
    if isinstance(weather, Mapping):
        return WeatherReading.from_dict(weather)
    logger.debug("Ignoring weather of type %s", type(weather).__name__)
    return None


class MusicEngine:
    """Generate a stream of musical events for one session.

    Parameters
    ----------
    config:
        Engine constants; defaults to :class:`EngineConfig`.
    clock:
        Time source; defaults to :class:`MonotonicClock`.
    rng:
        Random source. When omitted a :class:`random.Random` seeded with
        ``seed`` is created.
    seed:
        Seed for the default random source.
    style:
        Initial style name; falls back to ``config.default_style``.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        style: Optional[str] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.clock = clock or MonotonicClock()
        self.rng = rng or random.Random(seed)
        self._lock = threading.Lock()
        self.modes = ModeMachine(self.config, self.clock, self.rng)
        self.pedals = PedalController(self.config, self.clock, self.rng)

        name = style or self.config.default_style
        try:
            self._style = get_style_profile(name)
        except UnknownStyleError:
            logger.warning("Unknown style %r; using default", name)
            self._style = get_style_profile("default")
        self._pending_style: Optional[StyleProfile] = None

        now = self.clock.now()
        self.state = EngineState(
            key=self.rng.randrange(12),
            scale=self._style.start_scale,
            last_mode_change=now,
            last_pedal_off=now,
        )
        self._style.reset(self.state, now, self.rng)
        self.last_bundle: Optional[ParameterBundle] = None

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    def generate_event(self, weather: WeatherInput = None) -> MidiEvent:
        """Run one tick and return its event.

        ``weather`` may be a :class:`WeatherReading`, a client payload
        mapping or ``None``.
        """

        with self._lock:
            try:
                return self._tick(_coerce_weather(weather))
            except Exception:
                logger.exception("Tick %d failed; emitting silence", self.state.tick_count)
                return SilenceEvent(duration=FALLBACK_SILENCE_MS)

    def _tick(self, weather: Optional[WeatherReading]) -> MidiEvent:
        now = self.clock.now()
        self._apply_pending_style(now)
        state = self.state
        style = self._style
        state.tick_count += 1

        self.modes.advance(state, style)
        style.advance(state, now, self.rng, weather)

        mapping = style.compute_parameters(state, weather, self.rng)
        if mapping.scale_changed:
            logger.info("Weather moved scale from %s to %s", state.scale, mapping.scale)
            state.scale = mapping.scale
        bundle = mapping.bundle
        self.last_bundle = bundle

        ctx = SynthContext(state, bundle, self.rng, self.clock, weather)
        event = style.preempt(ctx)
        if event is not None:
            return event

        if self.rng.random() > bundle.density:
            return style.silence(ctx)

        pedal = style.decide_pedal(ctx, self.pedals)
        if pedal is not None:
            return PedalEvent(pedal)

        return style.synthesize(ctx)

    def _apply_pending_style(self, now: float) -> None:
        if self._pending_style is None:
            return
        style, self._pending_style = self._pending_style, None
        previous = self._style.name
        self._style = style
        style.reset(self.state, now, self.rng)
        self.state.scale = style.start_scale
        if not style.moods_enabled:
            self.state.active_moods.clear()
        logger.info("Style switched from %s to %s", previous, style.name)

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------
    def set_style(self, name: str) -> bool:
        """Queue a switch to style ``name``; applied on the next tick."""

        try:
            style = get_style_profile(name)
        except UnknownStyleError:
            logger.warning("Rejected unknown style %r", name)
            return False
        with self._lock:
            self._pending_style = style
        return True

    def get_style(self) -> str:
        with self._lock:
            style = self._pending_style or self._style
            return style.name

    @property
    def style(self) -> StyleProfile:
        return self._style

    @staticmethod
    def available_styles() -> List[str]:
        return registered_styles()

    def enable_mood(self, name: str) -> bool:
        if not _known_mood(name):
            logger.warning("Rejected unknown mood %r", name)
            return False
        with self._lock:
            if not self._style.moods_enabled:
                logger.warning("Style %s does not use moods", self._style.name)
                return False
            return self.modes.activate(self.state, name, self._style)

    def disable_mood(self, name: str) -> bool:
        if not _known_mood(name):
            logger.warning("Rejected unknown mood %r", name)
            return False
        with self._lock:
            return self.modes.deactivate(self.state, name)

    def is_mood_active(self, name: str) -> bool:
        if not _known_mood(name):
            return False
        with self._lock:
            return self.state.is_active(name)

    def active_moods(self) -> List[str]:
        with self._lock:
            return self.state.mood_names()

    def set_key(self, key: Union[int, str]) -> bool:
        pitch_class = key_to_pitch_class(key)
        if pitch_class is None:
            logger.warning("Rejected key %r", key)
            return False
        with self._lock:
            self.state.key = pitch_class
            self.state.last_mode_change = self.clock.now()
        return True

    def set_scale(self, name: str) -> bool:
        with self._lock:
            accepted = self.modes.set_scale(self.state, name, self._style)
        if not accepted:
            logger.warning("Rejected scale %r", name)
        return accepted

    def all_notes_off(self) -> AllNotesOffEvent:
        """Return the event that silences every sounding note."""

        return AllNotesOffEvent()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            data = self.state.snapshot()
            data["style"] = self._style.name
            data["pendingStyle"] = self._pending_style.name if self._pending_style else None
            data["parameters"] = self.last_bundle.to_dict() if self.last_bundle else None
            return data
