"""Per-tick parameter bundle.

A :class:`ParameterBundle` describes the tempo, register, dynamics and
duration ranges in effect for one tick. Bundles are immutable; every layer of
the parameter pipeline (style base, mood overrides, weather, style envelope)
derives a new bundle with :meth:`ParameterBundle.replace`.

Example
-------
>>> bundle = DEFAULT_BUNDLE.replace(min_octave=9, max_octave=2).sanitized()
>>> bundle.octave_range
(2, 8)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Tuple

from .scales import MAX_OCTAVE, MIN_OCTAVE

__all__ = ["ParameterBundle", "DEFAULT_BUNDLE"]


def _finite(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _ordered(pair: Tuple[float, float], low: float, high: float, default: Tuple[float, float]) -> Tuple[float, float]:
    first = _clamp(_finite(pair[0], default[0]), low, high)
    second = _clamp(_finite(pair[1], default[1]), low, high)
    if first > second:
        first, second = second, first
    return first, second


@dataclass(frozen=True)
class ParameterBundle:
    """Tempo, register and dynamics ranges for a single tick.

    Attributes
    ----------
    tempo:
        Beats per minute. Informational for receivers that schedule notes.
    density:
        Probability in ``[0, 1]`` that a tick produces sound.
    min_octave, max_octave:
        Inclusive octave range for pitched notes.
    velocity_range:
        Inclusive ``(low, high)`` MIDI velocity range.
    duration_range:
        ``(low, high)`` note duration in milliseconds.
    sustain_probability:
        Width of each pedal decision band.
    extras:
        Style specific values (chord sizes, silence ranges ...).
    """

    tempo: float = 100.0
    density: float = 0.7
    min_octave: int = 1
    max_octave: int = 7
    velocity_range: Tuple[int, int] = (60, 100)
    duration_range: Tuple[float, float] = (500.0, 2500.0)
    sustain_probability: float = 0.05
    extras: Mapping[str, Any] = field(default_factory=dict)

    @property
    def octave_range(self) -> Tuple[int, int]:
        return (self.min_octave, self.max_octave)

    def replace(self, **changes: Any) -> "ParameterBundle":
        """Return a copy with ``changes`` applied.

        ``extras`` passed here are merged into the existing mapping rather than
        replacing it.
        """

        if "extras" in changes:
            merged: Dict[str, Any] = dict(self.extras)
            merged.update(changes["extras"])
            changes["extras"] = merged
        return replace(self, **changes)

    def sanitized(self) -> "ParameterBundle":
        """Return a copy with every field forced into its legal range.

        NaN or non-numeric values fall back to the defaults, octaves are kept
        inside ``MIN_OCTAVE``-``MAX_OCTAVE`` with ``min <= max``, velocities
        inside ``1-127`` and durations are at least one millisecond.
        """

        low_oct, high_oct = _ordered(
            (self.min_octave, self.max_octave), MIN_OCTAVE, MAX_OCTAVE, (1, 7)
        )
        vel_low, vel_high = _ordered(self.velocity_range, 1, 127, (60, 100))
        dur_low, dur_high = _ordered(
            self.duration_range, 1.0, float("inf"), (500.0, 2500.0)
        )
        return ParameterBundle(
            tempo=max(1.0, _finite(self.tempo, 100.0)),
            density=_clamp(_finite(self.density, 0.7), 0.0, 1.0),
            min_octave=int(low_oct),
            max_octave=int(high_oct),
            velocity_range=(int(round(vel_low)), int(round(vel_high))),
            duration_range=(dur_low, dur_high),
            sustain_probability=_clamp(_finite(self.sustain_probability, 0.05), 0.0, 1.0),
            extras=dict(self.extras),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tempo": self.tempo,
            "density": self.density,
            "octaveRange": [self.min_octave, self.max_octave],
            "velocityRange": list(self.velocity_range),
            "durationRange": list(self.duration_range),
            "sustainProbability": self.sustain_probability,
        }


DEFAULT_BUNDLE = ParameterBundle()
