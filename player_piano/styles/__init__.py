"""Registry of style profiles.

Styles are looked up by name with :func:`get_style_profile`, which returns a
fresh instance so sessions never share a profile.

Example
-------
>>> get_style_profile("elevator").locked_scale
'major'
"""

from __future__ import annotations

from typing import Dict, List, Type

from .base import StyleProfile, apply_envelope
from .classic import DefaultStyle, ElevatorStyle, ImpressionistStyle
from .haunted import HauntedStyle
from .jungle import JungleStyle
from .marbles import MarblesStyle
from .serialist import SerialistStyle
from .street import StreetStyle

__all__ = [
    "StyleProfile",
    "UnknownStyleError",
    "STYLE_REGISTRY",
    "register_style",
    "get_style_profile",
    "available_styles",
    "apply_envelope",
]


class UnknownStyleError(KeyError):
    """Raised by :func:`get_style_profile` for unregistered names."""


STYLE_REGISTRY: Dict[str, Type[StyleProfile]] = {}


def register_style(cls: Type[StyleProfile]) -> Type[StyleProfile]:
    STYLE_REGISTRY[cls.name] = cls
    return cls


for _style in (
    DefaultStyle,
    ElevatorStyle,
    ImpressionistStyle,
    JungleStyle,
    StreetStyle,
    SerialistStyle,
    HauntedStyle,
    MarblesStyle,
):
    register_style(_style)


def get_style_profile(name: str) -> StyleProfile:
    """Return a new profile instance for ``name``.

    Raises
    ------
    UnknownStyleError
        If ``name`` is not registered.
    """

    try:
        cls = STYLE_REGISTRY[name]
    except (KeyError, TypeError):
        raise UnknownStyleError(name) from None
    return cls()


def available_styles() -> List[str]:
    return list(STYLE_REGISTRY)
