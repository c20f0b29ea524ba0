"""Tests for the weather to parameter mapping.

The mapper applies temperature bands first and condition bands second. A
fixed random source lets these tests force or suppress the stochastic scale
suggestions made by the temperature bands."""

import math
import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from player_piano.events import WeatherReading  # noqa: E402
from player_piano.parameters import DEFAULT_BUNDLE  # noqa: E402
from player_piano.weather import (  # noqa: E402
    condition_band,
    describe_weather_code,
    describe_weather_impact,
    map_weather,
    temperature_band,
)


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns ``value``."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.mark.parametrize(
    "temperature,band",
    [
        (-0.1, "cold"),
        (0, "cool"),
        (9.9, "cool"),
        (10, None),
        (25, None),
        (25.5, "warm"),
        (30, "warm"),
        (30.1, "hot"),
        (100, None),
        (math.nan, None),
        (True, None),
        (None, None),
    ],
)
def test_temperature_band_boundaries(temperature, band):
    """Band edges follow the documented strict and inclusive comparisons."""
    assert temperature_band(temperature) == band


def test_condition_band_families():
    """WMO codes group into the six condition families."""
    assert condition_band(0) == "clear"
    assert condition_band(3) == "cloudy"
    assert condition_band(45) == "fog"
    assert condition_band(81) == "rain"
    assert condition_band(75) == "snow"
    assert condition_band(99) == "thunderstorm"
    assert condition_band(42) is None
    assert condition_band(True) is None


def test_cold_weather_slows_and_lowers():
    """Cold readings produce the slow, low bundle and may suggest minor."""
    mapping = map_weather(WeatherReading(-5, None), "major", FixedRandom(0.5))
    assert mapping.bundle.tempo == 70
    assert mapping.bundle.octave_range == (1, 5)
    assert mapping.bundle.duration_range == (800.0, 3500.0)
    assert mapping.bundle.velocity_range == (40, 80)
    assert mapping.scale == "minor"
    assert mapping.scale_changed


def test_scale_suggestion_depends_on_roll():
    """A roll above the band probability keeps the current scale."""
    mapping = map_weather(WeatherReading(-5, None), "major", FixedRandom(0.7))
    assert mapping.scale == "major"
    assert not mapping.scale_changed


def test_cool_and_warm_suggestions():
    """Cool weather darkens major, warm weather brightens minor to lydian."""
    assert map_weather(WeatherReading(5, None), "major", FixedRandom(0.3)).scale == "minor"
    assert map_weather(WeatherReading(5, None), "major", FixedRandom(0.5)).scale == "major"
    assert map_weather(WeatherReading(28, None), "minor", FixedRandom(0.1)).scale == "lydian"
    assert map_weather(WeatherReading(35, None), "minor", FixedRandom(0.1)).scale == "major"
    # Only the named source scale is ever rewritten.
    assert map_weather(WeatherReading(35, None), "dorian", FixedRandom(0.0)).scale == "dorian"


def test_condition_runs_after_temperature():
    """Rain overrides the cold band's durations but keeps its tempo."""
    mapping = map_weather(WeatherReading(-5, 65), "minor", FixedRandom(0.9))
    assert mapping.bundle.tempo == 70
    assert mapping.bundle.duration_range == (200.0, 1500.0)
    assert mapping.bundle.sustain_probability == 0.15
    assert mapping.bundle.density == 0.8


def test_snow_and_thunderstorm():
    """Snow slows the tempo; thunderstorms widen the dynamics."""
    snow = map_weather(WeatherReading(None, 73), "major", FixedRandom(0.9)).bundle
    assert snow.tempo == 80
    assert snow.velocity_range == (30, 70)
    storm = map_weather(WeatherReading(None, 95), "major", FixedRandom(0.9)).bundle
    assert storm.velocity_range == (40, 127)
    assert storm.density == 0.9


def test_no_weather_returns_base_unchanged():
    """Without a reading the base bundle and scale pass straight through."""
    mapping = map_weather(None, "dorian", FixedRandom(0.0))
    assert mapping.bundle is DEFAULT_BUNDLE
    assert mapping.scale == "dorian"
    assert not mapping.scale_changed


def test_malformed_reading_is_ignored():
    """NaN temperatures and unknown codes leave the bundle untouched."""
    mapping = map_weather(WeatherReading(math.nan, 42), "major", FixedRandom(0.0))
    assert mapping.bundle == DEFAULT_BUNDLE
    assert mapping.scale == "major"


def test_describe_weather():
    """Codes and readings have human readable summaries."""
    assert describe_weather_code(61) == "Slight rain"
    assert describe_weather_code(1000) == "Unknown"
    assert describe_weather_code(None) == "Unknown"
    assert describe_weather_impact(WeatherReading(30, 61)) == [
        "Brighter scales, higher register",
        "More sustain pedal, softer attacks",
    ]
    assert describe_weather_impact(None) == []
