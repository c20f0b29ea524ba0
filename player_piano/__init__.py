"""Procedural piano event engine.

The package turns an internal mood machine and optional live weather into a
stream of abstract musical events (notes, chords, pedal changes, silences),
one per tick. The main entry point is :class:`MusicEngine`; the Flask
transport in :mod:`player_piano.server` and the command line front-end in
:mod:`player_piano.cli` are thin collaborators around it.

Example
-------
>>> from player_piano import MusicEngine, WeatherReading
>>> engine = MusicEngine(seed=42, style="elevator")
>>> event = engine.generate_event(WeatherReading(temperature=-5, weather_code=0))
>>> event.to_dict()["type"] in {"note", "chord", "pedal", "silence"}
True
"""

__version__ = "0.1.0"

from .clock import Clock, ManualClock, MonotonicClock, elapsed  # noqa: E402
from .config import EngineConfig, load_config  # noqa: E402
from .engine import MusicEngine  # noqa: E402
from .events import (  # noqa: E402
    AllNotesOffEvent,
    MidiEvent,
    Note,
    Pedal,
    SilenceEvent,
    WeatherReading,
)
from .parameters import DEFAULT_BUNDLE, ParameterBundle  # noqa: E402
from .session import SessionManager, StreamSession  # noqa: E402
from .state import EngineState  # noqa: E402
from .styles import UnknownStyleError, available_styles, get_style_profile  # noqa: E402
from .weather import describe_weather_code, describe_weather_impact, map_weather  # noqa: E402

__all__ = [
    "__version__",
    "Clock",
    "ManualClock",
    "MonotonicClock",
    "elapsed",
    "EngineConfig",
    "load_config",
    "MusicEngine",
    "EngineState",
    "MidiEvent",
    "Note",
    "Pedal",
    "SilenceEvent",
    "AllNotesOffEvent",
    "WeatherReading",
    "ParameterBundle",
    "DEFAULT_BUNDLE",
    "SessionManager",
    "StreamSession",
    "UnknownStyleError",
    "available_styles",
    "get_style_profile",
    "map_weather",
    "describe_weather_code",
    "describe_weather_impact",
]
