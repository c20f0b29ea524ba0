"""Rate limiter tests for the Flask transport.

Alongside the baseline behaviour, these tests ensure configuration errors do
not inadvertently throttle legitimate requests. When the limit is missing or
malformed, the helper should disable throttling and emit a warning instead of
returning HTTP 429 responses.
"""

import logging
import threading

import pytest

pytest.importorskip("flask")

import test_server as server_tests  # noqa: E402

server = server_tests.server


@pytest.fixture
def app(monkeypatch):
    return server_tests.make_app(monkeypatch)


def setup_function() -> None:
    """Ensure each test runs with a fresh request log."""
    server.REQUEST_LOG.clear()


def test_rate_limit_enforces_limit(app) -> None:
    """Requests beyond the configured threshold should return HTTP 429."""
    app.config["RATE_LIMIT_PER_MINUTE"] = 1
    client = app.test_client()
    first = client.get("/")
    assert first.status_code == 200
    assert "Retry-After" not in first.headers

    second = client.get("/")
    assert second.status_code == 429
    assert int(second.headers["Retry-After"]) >= 1
    assert second.get_json() == {"error": "Too many requests"}


def test_rate_limit_purges_expired_entries(app) -> None:
    """Stale windows are dropped so clients can continue after a minute."""
    app.config["RATE_LIMIT_PER_MINUTE"] = 1
    server.REQUEST_LOG["10.0.0.9"] = (-1000.0, 5)
    server.REQUEST_LOG["127.0.0.1"] = (-1000.0, 5)
    client = app.test_client()
    assert client.get("/").status_code == 200
    assert "10.0.0.9" not in server.REQUEST_LOG


def test_rate_limit_thread_safety(app) -> None:
    """Concurrent requests never exceed the configured limit."""
    app.config["RATE_LIMIT_PER_MINUTE"] = 5
    statuses = []
    lock = threading.Lock()

    def hit() -> None:
        response = app.test_client().get("/")
        with lock:
            statuses.append(response.status_code)

    threads = [threading.Thread(target=hit) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert statuses.count(200) == 5
    assert statuses.count(429) == 5


def test_rate_limit_negative_config_disables(app, caplog) -> None:
    """Negative limits disable throttling and log a warning."""
    app.config["RATE_LIMIT_PER_MINUTE"] = -1
    caplog.set_level(logging.WARNING)
    client = app.test_client()
    assert all(client.get("/").status_code == 200 for _ in range(3))
    assert "disabling rate limiting" in caplog.text


def test_rate_limit_non_numeric_config_disables(app, caplog) -> None:
    """Non-numeric limits disable throttling and log a warning."""
    app.config["RATE_LIMIT_PER_MINUTE"] = "abc"
    caplog.set_level(logging.WARNING)
    client = app.test_client()
    assert all(client.get("/").status_code == 200 for _ in range(3))
    assert "Invalid RATE_LIMIT_PER_MINUTE" in caplog.text


def test_invalid_environment_limit(monkeypatch, caplog) -> None:
    """A malformed environment value leaves throttling off."""
    caplog.set_level(logging.WARNING)
    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "lots")
    app = server.create_app(server_tests.EngineConfig())
    assert app.config["RATE_LIMIT_PER_MINUTE"] is None
    assert "must be an integer" in caplog.text
