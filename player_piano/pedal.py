"""Pedal decisions with cooldown hysteresis.

The sustain pedal is occasionally switched off for a long stretch so the
texture dries up for a while. Once disabled it only re-enables after a
cooldown drawn once, at disable time, from ``EngineConfig.pedal_cooldown_s``.
While enabled three disjoint probability bands derived from
``sustain_probability`` pick a sustain, sostenuto or soft pedal change.

========================  ===========  ============
band                      pedal        value
========================  ===========  ============
``[0, p)``                sustain      0.5 - 1.0
``[p, 2p)``               sostenuto    1.0
``[2p, 3p)``              soft         0.3 - 1.0
========================  ===========  ============
"""

from __future__ import annotations

import logging
import random
from typing import Iterable, Optional

from .clock import Clock, elapsed
from .config import EngineConfig
from .events import PEDAL_TYPES, Pedal
from .parameters import ParameterBundle
from .state import EngineState

__all__ = ["PedalController"]

logger = logging.getLogger(__name__)


class PedalController:
    def __init__(self, config: EngineConfig, clock: Clock, rng: random.Random) -> None:
        self.config = config
        self.clock = clock
        self.rng = rng

    def disable(self, state: EngineState) -> Pedal:
        """Switch the pedal off and start a freshly drawn cooldown."""

        low, high = self.config.pedal_cooldown_s
        state.pedal_enabled = False
        state.last_pedal_off = self.clock.now()
        state.pedal_cooldown = self.rng.uniform(low, high)
        logger.debug("Pedal disabled for %.1fs", state.pedal_cooldown)
        return Pedal("sustain", 0.0)

    def ready(self, state: EngineState) -> bool:
        """Re-enable the pedal once its cooldown has run out.

        Returns ``False`` while a disabled pedal is still cooling down.
        """

        if state.pedal_enabled:
            return True
        if elapsed(self.clock, state.last_pedal_off) <= state.pedal_cooldown:
            return False
        state.pedal_enabled = True
        logger.debug("Pedal re-enabled")
        return True

    def decide(
        self,
        state: EngineState,
        bundle: ParameterBundle,
        allowed: Iterable[str] = PEDAL_TYPES,
    ) -> Optional[Pedal]:
        """Return the pedal change for this tick or ``None``.

        Parameters
        ----------
        state:
            Session state holding the enable flag and cooldown timers.
        bundle:
            Active bundle; ``sustain_probability`` sets the band width.
        allowed:
            Pedal types the active style permits. A band whose type is not
            allowed produces nothing.
        """

        if not state.pedal_enabled:
            if not self.ready(state):
                return None
        elif self.rng.random() < self.config.pedal_disable_probability:
            return self.disable(state)

        allowed = set(allowed)
        width = bundle.sustain_probability
        roll = self.rng.random()
        if roll < width:
            pedal = Pedal("sustain", self.rng.uniform(0.5, 1.0))
        elif roll < width * 2:
            pedal = Pedal("sostenuto", 1.0)
        elif roll < width * 3:
            pedal = Pedal("soft", self.rng.uniform(0.3, 1.0))
        else:
            return None
        return pedal if pedal.type in allowed else None
