"""Engine configuration.

:class:`EngineConfig` gathers the tunable constants of the mode machine and
pedal logic. Values can be overridden from a JSON file whose path is given
explicitly or through the ``PLAYER_PIANO_CONFIG`` environment variable.

Example
-------
>>> cfg = load_config()  # defaults when no file is configured
>>> cfg.tick_interval_ms
120
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

__all__ = ["EngineConfig", "load_config", "save_config", "CONFIG_ENV_VAR"]

CONFIG_ENV_VAR = "PLAYER_PIANO_CONFIG"

logger = logging.getLogger(__name__)


def _default_probabilities() -> Dict[str, float]:
    return {"chaotic": 0.005, "insectBurst": 0.01, "hardcore": 0.008}


def _default_durations() -> Dict[str, Tuple[float, float]]:
    return {
        "chaotic": (30.0, 120.0),
        "insectBurst": (5.0, 15.0),
        "hardcore": (20.0, 60.0),
    }


_PROBABILITY_KEYS = ("rotation_probability", "chaos_rotation_probability", "pedal_disable_probability")
_SECONDS_KEYS = ("rotation_interval_s", "chaos_rotation_interval_s", "session_idle_s")


def _number(key: str, value: Any, low: float = 0.0, high: float = math.inf) -> float:
    """Return ``value`` as a float within ``[low, high]`` or raise ``ValueError``."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    number = float(value)
    if math.isnan(number) or not low <= number <= high:
        raise ValueError(f"{key} must be between {low} and {high}, got {value!r}")
    return number


def _span(key: str, value: Any) -> Tuple[float, float]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != 2:
        raise ValueError(f"{key} must be a [min, max] pair, got {value!r}")
    low, high = (_number(key, item) for item in value)
    if low > high:
        raise ValueError(f"{key} minimum exceeds maximum: {value!r}")
    return low, high


def _table(key: str, value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be an object, got {value!r}")
    return value


@dataclass
class EngineConfig:
    """Tunable constants shared by every session an engine serves.

    ``mood_durations`` values are ``(min, max)`` seconds. Durations are drawn
    once when a mood activates. ``session_idle_s`` is how long a streaming
    session may go unused before it is dropped; zero keeps sessions forever.
    """

    tick_interval_ms: int = 120
    moods_enabled: bool = True
    mood_probabilities: Dict[str, float] = field(default_factory=_default_probabilities)
    mood_durations: Dict[str, Tuple[float, float]] = field(default_factory=_default_durations)
    rotation_interval_s: float = 180.0
    chaos_rotation_interval_s: float = 30.0
    rotation_probability: float = 0.01
    chaos_rotation_probability: float = 0.05
    pedal_disable_probability: float = 0.01
    pedal_cooldown_s: Tuple[float, float] = (15.0, 30.0)
    default_style: str = "default"
    session_idle_s: float = 600.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Build a config from ``data`` ignoring unknown keys.

        Mood tables are merged over the defaults so a file may tune a single
        mood without restating the others. Values of the wrong type or out of
        range raise ``ValueError``.
        """

        config = cls()
        known = {item.name for item in fields(cls)}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown config key %r", key)
                continue
            if key == "mood_probabilities":
                config.mood_probabilities.update(
                    {
                        name: _number(f"{key}.{name}", prob, high=1.0)
                        for name, prob in _table(key, value).items()
                    }
                )
            elif key == "mood_durations":
                config.mood_durations.update(
                    {name: _span(f"{key}.{name}", span) for name, span in _table(key, value).items()}
                )
            elif key == "pedal_cooldown_s":
                config.pedal_cooldown_s = _span(key, value)
            elif key == "tick_interval_ms":
                config.tick_interval_ms = int(_number(key, value, low=1.0))
            elif key == "moods_enabled":
                if not isinstance(value, bool):
                    raise ValueError(f"{key} must be true or false, got {value!r}")
                config.moods_enabled = value
            elif key == "default_style":
                if not isinstance(value, str):
                    raise ValueError(f"{key} must be a string, got {value!r}")
                config.default_style = value
            elif key in _PROBABILITY_KEYS:
                setattr(config, key, _number(key, value, high=1.0))
            elif key in _SECONDS_KEYS:
                setattr(config, key, _number(key, value))
        return config

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mood_durations"] = {k: list(v) for k, v in self.mood_durations.items()}
        data["pedal_cooldown_s"] = list(self.pedal_cooldown_s)
        return data


def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """Load an :class:`EngineConfig` from ``path`` or ``PLAYER_PIANO_CONFIG``.

    @param path (str | Path | None): JSON file with overrides.
    @returns EngineConfig: Defaults updated with any readable overrides.
    """

    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return EngineConfig()
        path = env_path

    path = Path(path)
    # Missing or broken files fall back to defaults.
    if not path.is_file():
        logger.error("Config file %s not found; using defaults", path)
        return EngineConfig()
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError("top-level JSON value must be an object")
        return EngineConfig.from_dict(data)
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        logger.error("Could not load config: %s", exc)
        return EngineConfig()


def save_config(config: EngineConfig, path: Union[str, Path]) -> None:
    """Write ``config`` to ``path`` as JSON, logging failures."""

    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(config.to_dict(), fh, indent=2)
    except OSError as exc:
        logger.error("Could not save config: %s", exc)
