"""Translate weather readings into parameter bundles.

The mapper is a pure function of its inputs: it never mutates engine state.
Temperature bands run first and reshape tempo, register, dynamics and note
length; condition bands (clear, cloudy, fog, rain, snow, thunderstorm) run
afterwards and win wherever both touch the same field. Cold and hot weather
may *suggest* a scale change which is returned alongside the bundle so the
caller decides whether to accept it.

Temperature bands
-----------------
============  ==================  =====  ======  ==========  ========
band          range (C)           tempo  octave  duration    velocity
============  ==================  =====  ======  ==========  ========
cold          t < 0               70     1-5     800-3500    40-80
cool          0 <= t < 10         85     2-6     600-3000    50-90
warm          25 < t <= 30        115    3-7     400-2200    65-105
hot           t > 30              130    3-7     300-1800    70-110
============  ==================  =====  ======  ==========  ========

Temperatures between 10 and 25 degrees leave the bundle untouched.

Example
-------
>>> import random
>>> reading = WeatherReading(temperature=-5, weather_code=0)
>>> map_weather(reading, "minor", random.Random(1)).bundle.tempo
70
"""

# Modification Summary
# ---------------------
# * Malformed readings (NaN temperature, boolean or unknown codes) skip the
#   affected bands and are logged at debug level instead of raising.
# * ``describe_weather_code`` and ``describe_weather_impact`` provide the
#   human readable summaries shown by clients next to the stream.

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from .events import WeatherReading
from .parameters import DEFAULT_BUNDLE, ParameterBundle

__all__ = [
    "WeatherMapping",
    "map_weather",
    "temperature_band",
    "condition_band",
    "describe_weather_code",
    "describe_weather_impact",
    "WEATHER_DESCRIPTIONS",
]

logger = logging.getLogger(__name__)

# Readings outside this window are treated as sensor garbage.
MIN_PLAUSIBLE_TEMPERATURE = -90.0
MAX_PLAUSIBLE_TEMPERATURE = 60.0

CLEAR_CODES: FrozenSet[int] = frozenset({0, 1})
CLOUDY_CODES: FrozenSet[int] = frozenset({2, 3})
FOG_CODES: FrozenSet[int] = frozenset({45, 48})
RAIN_CODES: FrozenSet[int] = frozenset(
    {51, 53, 55, 56, 57, 61, 63, 65, 66, 67, 80, 81, 82}
)
SNOW_CODES: FrozenSet[int] = frozenset({71, 73, 75, 77, 85, 86})
THUNDERSTORM_CODES: FrozenSet[int] = frozenset({95, 96, 99})

WEATHER_DESCRIPTIONS: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    20: "Light wind",
    21: "Moderate wind",
    22: "Strong wind",
    23: "Very strong wind",
    24: "Gusty wind",
    25: "Windy with gusts",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

_TEMPERATURE_IMPACT = {
    "cold": "Slower tempo, lower register",
    "cool": "Minor scales, softer dynamics",
    "warm": "Brighter scales, higher register",
    "hot": "Faster tempo, more activity",
}

_CONDITION_IMPACT = {
    "clear": "Sparse, bright notes",
    "cloudy": "Varied dynamics, moderate activity",
    "fog": "Muted, hazy textures",
    "rain": "More sustain pedal, softer attacks",
    "snow": "Slower, gentler passages",
    "thunderstorm": "Dramatic dynamics, cluster chords",
}


@dataclass(frozen=True)
class WeatherMapping:
    """Result of :func:`map_weather`.

    ``scale`` equals the ``current_scale`` passed in unless a temperature band
    suggested a change.
    """

    bundle: ParameterBundle
    scale: str
    scale_changed: bool = False


def _valid_temperature(value: Optional[float]) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    if not MIN_PLAUSIBLE_TEMPERATURE <= number <= MAX_PLAUSIBLE_TEMPERATURE:
        return None
    return number


def temperature_band(temperature: Optional[float]) -> Optional[str]:
    """Return ``"cold"``, ``"cool"``, ``"warm"``, ``"hot"`` or ``None``."""

    value = _valid_temperature(temperature)
    if value is None:
        return None
    if value < 0:
        return "cold"
    if value < 10:
        return "cool"
    if value > 30:
        return "hot"
    if value > 25:
        return "warm"
    return None


def condition_band(code: Optional[int]) -> Optional[str]:
    """Return the condition family of a WMO ``code`` or ``None``."""

    if code is None or isinstance(code, bool) or not isinstance(code, int):
        return None
    if code in CLEAR_CODES:
        return "clear"
    if code in CLOUDY_CODES:
        return "cloudy"
    if code in FOG_CODES:
        return "fog"
    if code in RAIN_CODES:
        return "rain"
    if code in SNOW_CODES:
        return "snow"
    if code in THUNDERSTORM_CODES:
        return "thunderstorm"
    return None


def _apply_temperature(
    band: str, bundle: ParameterBundle, scale: str, rng: random.Random
) -> Tuple[ParameterBundle, str]:
    roll = rng.random()
    if band == "cold":
        bundle = bundle.replace(
            tempo=70, min_octave=1, max_octave=5,
            duration_range=(800.0, 3500.0), velocity_range=(40, 80),
        )
        if roll < 0.6 and scale == "major":
            scale = "minor"
    elif band == "cool":
        bundle = bundle.replace(
            tempo=85, min_octave=2, max_octave=6,
            duration_range=(600.0, 3000.0), velocity_range=(50, 90),
        )
        if roll < 0.4 and scale == "major":
            scale = "minor"
    elif band == "hot":
        bundle = bundle.replace(
            tempo=130, min_octave=3, max_octave=7,
            duration_range=(300.0, 1800.0), velocity_range=(70, 110),
        )
        if roll < 0.6 and scale == "minor":
            scale = "major"
    elif band == "warm":
        bundle = bundle.replace(
            tempo=115, min_octave=3, max_octave=7,
            duration_range=(400.0, 2200.0), velocity_range=(65, 105),
        )
        if roll < 0.4 and scale == "minor":
            scale = "lydian"
    return bundle, scale


def _apply_condition(band: str, bundle: ParameterBundle) -> ParameterBundle:
    if band == "clear":
        return bundle.replace(density=0.6, sustain_probability=0.03)
    if band == "cloudy":
        return bundle.replace(density=0.7)
    if band == "fog":
        return bundle.replace(
            density=0.5, sustain_probability=0.1, velocity_range=(40, 70)
        )
    if band == "rain":
        return bundle.replace(
            sustain_probability=0.15, duration_range=(200.0, 1500.0), density=0.8
        )
    if band == "snow":
        return bundle.replace(
            tempo=max(70, bundle.tempo - 20),
            velocity_range=(30, 70),
            duration_range=(800.0, 3000.0),
        )
    if band == "thunderstorm":
        return bundle.replace(velocity_range=(40, 127), density=0.9)
    return bundle


def map_weather(
    weather: Optional[WeatherReading],
    current_scale: str,
    rng: random.Random,
    base: Optional[ParameterBundle] = None,
) -> WeatherMapping:
    """Apply the temperature and condition bands of ``weather`` to ``base``.

    Parameters
    ----------
    weather:
        Latest reading or ``None`` when no data is available.
    current_scale:
        Scale in effect before this tick; used for the stochastic scale
        suggestion of the temperature bands.
    rng:
        Random source for the scale suggestion.
    base:
        Bundle to modify. Defaults to :data:`DEFAULT_BUNDLE`.

    Returns
    -------
    WeatherMapping
        The adjusted bundle and the suggested scale. With no weather the
        bundle is ``base`` unchanged.
    """

    bundle = DEFAULT_BUNDLE if base is None else base
    scale = current_scale
    if weather is None:
        return WeatherMapping(bundle, scale, scale_changed=scale != current_scale)

    band = temperature_band(weather.temperature)
    if band is not None:
        bundle, scale = _apply_temperature(band, bundle, scale, rng)
    elif weather.temperature is not None:
        logger.debug("Skipping temperature bands for %r", weather.temperature)

    condition = condition_band(weather.weather_code)
    if condition is not None:
        bundle = _apply_condition(condition, bundle)
    elif weather.weather_code is not None:
        logger.debug("No condition band for weather code %r", weather.weather_code)

    return WeatherMapping(bundle, scale, scale_changed=scale != current_scale)


def describe_weather_code(code: Optional[int]) -> str:
    """Return the human readable name of a WMO weather ``code``."""

    if isinstance(code, bool) or not isinstance(code, int):
        return "Unknown"
    return WEATHER_DESCRIPTIONS.get(code, "Unknown")


def describe_weather_impact(weather: Optional[WeatherReading]) -> List[str]:
    """Summarise how ``weather`` reshapes the music.

    >>> describe_weather_impact(WeatherReading(temperature=30, weather_code=61))
    ['Brighter scales, higher register', 'More sustain pedal, softer attacks']
    """

    if weather is None:
        return []
    impact = []
    band = temperature_band(weather.temperature)
    if band is not None:
        impact.append(_TEMPERATURE_IMPACT[band])
    condition = condition_band(weather.weather_code)
    if condition is not None:
        impact.append(_CONDITION_IMPACT[condition])
    return impact
