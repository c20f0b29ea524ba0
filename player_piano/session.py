"""Per-client streaming sessions.

Each connected client gets a :class:`StreamSession` wrapping its own
:class:`~player_piano.engine.MusicEngine`, so no musical state is ever shared
between clients. The :class:`SessionManager` keeps the session table behind a
lock because the HTTP transport serves requests from several threads.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from .clock import Clock, MonotonicClock
from .config import EngineConfig
from .engine import MusicEngine
from .events import AllNotesOffEvent, MidiEvent, WeatherReading
from .weather import describe_weather_code, describe_weather_impact

__all__ = ["StreamSession", "SessionManager"]

logger = logging.getLogger(__name__)


class StreamSession:
    """One client's engine, latest weather and running flag."""

    def __init__(self, session_id: str, engine: MusicEngine, clock: Clock) -> None:
        self.id = session_id
        self.engine = engine
        self.clock = clock
        self.created_at = clock.now()
        self.last_seen = self.created_at
        self.weather: Optional[WeatherReading] = None
        self.running = False

    def touch(self) -> None:
        self.last_seen = self.clock.now()

    def idle_for(self) -> float:
        """Seconds since the client last used this session."""

        return self.clock.now() - self.last_seen

    def start(self) -> None:
        self.touch()
        self.running = True
        logger.info("Session %s started", self.id)

    def stop(self) -> AllNotesOffEvent:
        self.running = False
        logger.info("Session %s stopped", self.id)
        return self.engine.all_notes_off()

    def update_weather(self, payload: Mapping[str, Any]) -> WeatherReading:
        reading = WeatherReading.from_dict(payload)
        if not reading.description and reading.weather_code is not None:
            reading = WeatherReading(
                reading.temperature, reading.weather_code, describe_weather_code(reading.weather_code)
            )
        self.weather = reading
        self.touch()
        return reading

    def next_event(self) -> MidiEvent:
        self.touch()
        return self.engine.generate_event(self.weather)

    def stream(
        self,
        limit: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Iterator[MidiEvent]:
        """Yield one event per tick interval while the session is running.

        ``limit`` caps the number of events; ``None`` streams until
        :meth:`stop` is called.
        """

        interval = self.engine.config.tick_interval_ms / 1000.0
        count = 0
        while self.running and (limit is None or count < limit):
            yield self.next_event()
            count += 1
            if limit is None or count < limit:
                sleep(interval)

    def describe(self) -> Dict[str, Any]:
        data = self.engine.snapshot()
        data.update(
            id=self.id,
            running=self.running,
            weather=self.weather.to_dict() if self.weather else None,
            weatherImpact=describe_weather_impact(self.weather),
        )
        return data


class SessionManager:
    """Thread-safe table of active sessions.

    Sessions unused for longer than ``config.session_idle_s`` are dropped the
    next time a session is created or looked up, so clients that vanish
    without deleting their session do not keep its engine alive.

    Parameters
    ----------
    config:
        Configuration handed to every new engine.
    clock_factory:
        Callable returning the clock of a new session.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock_factory: Callable[[], Clock] = MonotonicClock,
    ) -> None:
        self.config = config or EngineConfig()
        self.clock_factory = clock_factory
        self._sessions: Dict[str, StreamSession] = {}
        self._lock = threading.Lock()

    def create(self, style: Optional[str] = None, seed: Optional[int] = None) -> StreamSession:
        clock = self.clock_factory()
        engine = MusicEngine(self.config, clock=clock, seed=seed, style=style)
        session = StreamSession(secrets.token_hex(8), engine, clock)
        with self._lock:
            self._purge_idle()
            self._sessions[session.id] = session
        logger.info("Created session %s (%s)", session.id, engine.get_style())
        return session

    def get(self, session_id: str) -> Optional[StreamSession]:
        with self._lock:
            self._purge_idle()
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.running = False
        logger.info("Removed session %s", session_id)
        return True

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _purge_idle(self) -> None:
        # Caller holds ``self._lock``.
        limit = self.config.session_idle_s
        if limit <= 0:
            return
        stale = [sid for sid, session in self._sessions.items() if session.idle_for() > limit]
        for sid in stale:
            self._sessions.pop(sid).running = False
            logger.info("Expired idle session %s", sid)
