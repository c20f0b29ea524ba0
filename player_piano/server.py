#!/usr/bin/env python3
"""Flask HTTP transport for the event engine.

Clients create a session, push weather readings and receive the session's
events either one at a time (``GET /sessions/<id>/next``) or as a
Server-Sent Events stream (``GET /sessions/<id>/stream``). The stream pushes
one ``midi`` event per tick interval until the session is stopped.

Routes
------
=======  ==============================  =====================================
method   path                            purpose
=======  ==============================  =====================================
GET      ``/``                           service information
GET      ``/styles``                     registered styles
POST     ``/sessions``                   create a session
GET      ``/sessions/<id>``              session status
DELETE   ``/sessions/<id>``              drop a session
POST     ``/sessions/<id>/start``        start streaming
POST     ``/sessions/<id>/stop``         stop; returns ``allNotesOff``
GET      ``/sessions/<id>/next``         generate one event
GET      ``/sessions/<id>/stream``       SSE stream, optional ``limit``
POST     ``/sessions/<id>/weather``      push a weather reading
GET/PUT  ``/sessions/<id>/style``        query or switch the style
PUT      ``/sessions/<id>/moods/<name>`` enable a mood
DELETE   ``/sessions/<id>/moods/<name>`` disable a mood
=======  ==============================  =====================================

Safeguards
----------
* **Request size limiting** - ``MAX_CONTENT_LENGTH`` (from ``MAX_UPLOAD_MB``)
  bounds request bodies; oversized payloads receive HTTP 413.
* **Rate limiting** - an in-memory per-IP throttle driven by
  ``RATE_LIMIT_PER_MINUTE`` answers HTTP 429 with a ``Retry-After`` header.
  The request log is guarded by a lock and purged of stale windows on every
  request.
"""

from __future__ import annotations

import logging
import math
import os
from threading import Lock
from time import monotonic
from typing import Any, Dict, Optional, Tuple

from flask import (
    Flask,
    Response,
    current_app,
    jsonify,
    make_response,
    request,
    stream_with_context,
)

from . import __version__
from .config import EngineConfig, load_config
from .engine import MusicEngine
from .moods import MOOD_NAMES
from .session import SessionManager, StreamSession

__all__ = ["create_app", "rate_limit", "REQUEST_LOG", "RATE_LIMIT_WINDOW"]

logger = logging.getLogger(__name__)

# Maps client IP to ``(window_start, count)`` for the current window.
REQUEST_LOG: Dict[str, Tuple[float, int]] = {}
REQUEST_LOCK = Lock()
RATE_LIMIT_WINDOW = 60.0

# Upper bound for ``limit`` on a single SSE request.
MAX_STREAM_LIMIT = 10000


def rate_limit() -> Optional[Response]:
    """Enforce a naive per-IP request limit.

    Registered as a ``before_request`` hook. Missing, non-numeric or negative
    ``RATE_LIMIT_PER_MINUTE`` values disable throttling; zero disables it
    silently.

    Returns:
        Optional[Response]: ``429`` response when the limit is exceeded,
        otherwise ``None``.
    """

    limit_raw = current_app.config.get("RATE_LIMIT_PER_MINUTE")
    if limit_raw is None:
        return None
    try:
        limit = int(limit_raw)
    except (TypeError, ValueError):
        logger.warning(
            "Invalid RATE_LIMIT_PER_MINUTE %r; disabling rate limiting", limit_raw
        )
        return None
    if limit <= 0:
        if limit < 0:
            logger.warning(
                "RATE_LIMIT_PER_MINUTE must be positive; disabling rate limiting (received %r)",
                limit_raw,
            )
        return None

    now = monotonic()
    ip_addr = request.remote_addr or "unknown"

    with REQUEST_LOCK:
        expired = [
            ip for ip, (start, _) in REQUEST_LOG.items()
            if now - start >= RATE_LIMIT_WINDOW
        ]
        for ip in expired:
            del REQUEST_LOG[ip]

        window_start, count = REQUEST_LOG.get(ip_addr, (now, 0))
        if now - window_start >= RATE_LIMIT_WINDOW:
            REQUEST_LOG[ip_addr] = (now, 1)
            return None

        if count >= limit:
            # Round up so clients are never told to retry immediately.
            remaining = math.ceil(max(0.0, RATE_LIMIT_WINDOW - (now - window_start)))
            response = make_response(jsonify(error="Too many requests"), 429)
            response.headers["Retry-After"] = str(remaining)
            return response

        REQUEST_LOG[ip_addr] = (window_start, count + 1)

    return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _manager() -> SessionManager:
    return current_app.extensions["player_piano"]


def _error(message: str, status: int) -> Response:
    response = jsonify(error=message)
    response.status_code = status
    return response


def _session_or_404(session_id: str) -> Tuple[Optional[StreamSession], Optional[Response]]:
    session = _manager().get(session_id)
    if session is None:
        return None, _error(f"Unknown session: {session_id}", 404)
    return session, None


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def index():
    return jsonify(
        name="player-piano",
        version=__version__,
        styles=MusicEngine.available_styles(),
        moods=list(MOOD_NAMES),
        sessions=len(_manager()),
        tickIntervalMs=_manager().config.tick_interval_ms,
    )


def list_styles():
    return jsonify(styles=MusicEngine.available_styles())


def create_session():
    body = _json_body()
    style = body.get("style")
    if style is not None and style not in MusicEngine.available_styles():
        return _error(f"Unknown style: {style}", 400)
    seed = body.get("seed")
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        return _error("seed must be an integer", 400)
    session = _manager().create(style=style, seed=seed)
    if "weather" in body and isinstance(body["weather"], dict):
        session.update_weather(body["weather"])
    response = jsonify(session.describe())
    response.status_code = 201
    return response


def get_session(session_id: str):
    session, error = _session_or_404(session_id)
    if error is not None:
        return error
    return jsonify(session.describe())


def delete_session(session_id: str):
    if not _manager().remove(session_id):
        return _error(f"Unknown session: {session_id}", 404)
    return "", 204


def start_session(session_id: str):
    session, error = _session_or_404(session_id)
    if error is not None:
        return error
    session.start()
    return jsonify(id=session.id, running=True)


def stop_session(session_id: str):
    session, error = _session_or_404(session_id)
    if error is not None:
        return error
    return jsonify(session.stop().to_dict())


def next_event(session_id: str):
    session, error = _session_or_404(session_id)
    if error is not None:
        return error
    return jsonify(session.next_event().to_dict())


def stream_events(session_id: str):
    session, error = _session_or_404(session_id)
    if error is not None:
        return error
    limit_raw = request.args.get("limit")
    limit: Optional[int] = None
    if limit_raw is not None:
        try:
            limit = int(limit_raw)
        except ValueError:
            return _error("limit must be an integer", 400)
        if not 1 <= limit <= MAX_STREAM_LIMIT:
            return _error(f"limit must be between 1 and {MAX_STREAM_LIMIT}", 400)
    if not session.running:
        session.start()

    def generate():
        for event in session.stream(limit=limit):
            yield f"event: midi\ndata: {event.to_json()}\n\n"

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


def push_weather(session_id: str):
    session, error = _session_or_404(session_id)
    if error is not None:
        return error
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error("Weather payload must be a JSON object", 400)
    reading = session.update_weather(data)
    return jsonify(weather=reading.to_dict(), weatherImpact=session.describe()["weatherImpact"])


def session_style(session_id: str):
    session, error = _session_or_404(session_id)
    if error is not None:
        return error
    if request.method == "PUT":
        name = _json_body().get("style")
        if not isinstance(name, str) or not session.engine.set_style(name):
            return _error(f"Unknown style: {name}", 400)
    return jsonify(style=session.engine.get_style())


def session_mood(session_id: str, name: str):
    session, error = _session_or_404(session_id)
    if error is not None:
        return error
    engine = session.engine
    if name not in MOOD_NAMES:
        return _error(f"Unknown mood: {name}", 400)
    if request.method == "PUT":
        if not engine.enable_mood(name):
            return _error(f"Style {engine.get_style()} does not use moods", 400)
    else:
        engine.disable_mood(name)
    return jsonify(mood=name, active=engine.is_mood_active(name), activeMoods=engine.active_moods())


def create_app(config: Optional[EngineConfig] = None) -> Flask:
    """Build and configure the Flask application instance.

    ``config`` defaults to :func:`~player_piano.config.load_config`, which
    honours ``PLAYER_PIANO_CONFIG``. Request size is bounded by
    ``MAX_UPLOAD_MB`` (default 1 MB) and clients may be throttled through
    ``RATE_LIMIT_PER_MINUTE``.

    Returns:
        Flask: Configured application ready for use by a WSGI server.
    """

    app = Flask(__name__)

    try:
        max_mb = int(os.environ.get("MAX_UPLOAD_MB", "1"))
    except ValueError:
        max_mb = 1
        logger.warning("Invalid MAX_UPLOAD_MB value; defaulting to 1 MB.")
    rate_limit_env = os.environ.get("RATE_LIMIT_PER_MINUTE")
    try:
        rate_limit_per_minute = int(rate_limit_env) if rate_limit_env else None
    except ValueError:
        logger.warning(
            "RATE_LIMIT_PER_MINUTE must be an integer. Disabling rate limiting."
        )
        rate_limit_per_minute = None

    app.config["MAX_CONTENT_LENGTH"] = max_mb * 1024 * 1024
    app.config["RATE_LIMIT_PER_MINUTE"] = rate_limit_per_minute
    app.extensions["player_piano"] = SessionManager(config or load_config())

    app.add_url_rule("/", view_func=index)
    app.add_url_rule("/styles", view_func=list_styles)
    app.add_url_rule("/sessions", view_func=create_session, methods=["POST"])
    app.add_url_rule("/sessions/<session_id>", view_func=get_session, methods=["GET"])
    app.add_url_rule(
        "/sessions/<session_id>", endpoint="delete_session", view_func=delete_session, methods=["DELETE"]
    )
    app.add_url_rule("/sessions/<session_id>/start", view_func=start_session, methods=["POST"])
    app.add_url_rule("/sessions/<session_id>/stop", view_func=stop_session, methods=["POST"])
    app.add_url_rule("/sessions/<session_id>/next", view_func=next_event)
    app.add_url_rule("/sessions/<session_id>/stream", view_func=stream_events)
    app.add_url_rule("/sessions/<session_id>/weather", view_func=push_weather, methods=["POST"])
    app.add_url_rule("/sessions/<session_id>/style", view_func=session_style, methods=["GET", "PUT"])
    app.add_url_rule(
        "/sessions/<session_id>/moods/<name>", view_func=session_mood, methods=["PUT", "DELETE"]
    )

    app.before_request(rate_limit)

    @app.errorhandler(413)
    def handle_request_too_large(_err):
        return _error("Request exceeds configured size limit.", 413)

    return app
