"""Mutable per-session engine state.

One :class:`EngineState` exists for every stream. It is created when the
stream starts, mutated on every tick by the mode machine, the pedal logic and
the active style, and dropped when the stream ends. Nothing here is shared
between sessions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .scales import NOTES

__all__ = ["MoodActivation", "EngineState"]


@dataclass
class MoodActivation:
    """When a mood switched on and how long it was drawn to last (seconds)."""

    started_at: float
    duration: float

    def expired(self, now: float) -> bool:
        return now - self.started_at > self.duration


@dataclass
class EngineState:
    key: int
    scale: str
    last_mode_change: float = 0.0
    active_moods: Dict[str, MoodActivation] = field(default_factory=dict)
    pedal_enabled: bool = True
    last_pedal_off: float = 0.0
    pedal_cooldown: float = 0.0
    style_data: Dict[str, Any] = field(default_factory=dict)
    tick_count: int = 0

    @property
    def key_name(self) -> str:
        return NOTES[self.key % 12]

    @property
    def chaotic(self) -> bool:
        return "chaotic" in self.active_moods

    def is_active(self, mood: str) -> bool:
        return mood in self.active_moods

    def mood_names(self) -> List[str]:
        return sorted(self.active_moods)

    def snapshot(self) -> Dict[str, Any]:
        """Return a JSON friendly summary for status endpoints."""

        return {
            "key": self.key_name,
            "scale": self.scale,
            "activeMoods": self.mood_names(),
            "pedalEnabled": self.pedal_enabled,
            "tickCount": self.tick_count,
        }
