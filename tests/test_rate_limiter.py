"""Login rate limiter window semantics."""
import asyncio

import pytest
from starlette.requests import Request

from apps.dashboard.services.rate_limiter import LoginRateLimiter, get_client_ip


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _request(headers: dict) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "POST", "path": "/api/auth/login", "headers": raw})


def test_limit_reached_after_max_attempts():
    rl = LoginRateLimiter(window_seconds=900, max_attempts=10, clock=FakeClock())
    for _ in range(9):
        rl.record_attempt("1.1.1.1")
        assert rl.is_rate_limited("1.1.1.1") is False
    rl.record_attempt("1.1.1.1")
    assert rl.is_rate_limited("1.1.1.1") is True


def test_check_does_not_count_as_attempt():
    rl = LoginRateLimiter(max_attempts=3, clock=FakeClock())
    rl.record_attempt("ip")
    for _ in range(5):
        rl.is_rate_limited("ip")
    assert rl.attempts("ip") == 1


def test_ips_are_independent():
    rl = LoginRateLimiter(max_attempts=2, clock=FakeClock())
    rl.record_attempt("a")
    rl.record_attempt("a")
    assert rl.is_rate_limited("a")
    assert not rl.is_rate_limited("b")


def test_window_resets_after_expiry():
    clock = FakeClock()
    rl = LoginRateLimiter(window_seconds=900, max_attempts=2, clock=clock)
    rl.record_attempt("ip")
    rl.record_attempt("ip")
    assert rl.is_rate_limited("ip")
    clock.now += 900
    # boundary still inside the window
    assert rl.is_rate_limited("ip")
    clock.now += 1
    assert not rl.is_rate_limited("ip")
    assert rl.record_attempt("ip") == 1


def test_record_after_expiry_starts_new_window():
    clock = FakeClock()
    rl = LoginRateLimiter(window_seconds=60, max_attempts=5, clock=clock)
    rl.record_attempt("ip")
    rl.record_attempt("ip")
    clock.now += 61
    assert rl.record_attempt("ip") == 1


def test_sweep_drops_only_stale_entries():
    clock = FakeClock()
    rl = LoginRateLimiter(window_seconds=60, clock=clock)
    rl.record_attempt("old")
    clock.now += 30
    rl.record_attempt("fresh")
    clock.now += 31
    assert rl.sweep() == 1
    assert rl.attempts("old") == 0
    assert rl.attempts("fresh") == 1
    assert len(rl) == 1


@pytest.mark.parametrize(
    "headers,expected",
    [
        ({"x-forwarded-for": "203.0.113.7, 10.0.0.1"}, "203.0.113.7"),
        ({"x-real-ip": "198.51.100.2"}, "198.51.100.2"),
        ({"x-forwarded-for": "203.0.113.7", "x-real-ip": "198.51.100.2"}, "203.0.113.7"),
        ({}, "unknown"),
    ],
)
def test_client_ip_resolution(headers, expected):
    assert get_client_ip(_request(headers)) == expected


@pytest.mark.timeout(10)
def test_sweep_loop_drops_stale_entries():
    clock = FakeClock()
    rl = LoginRateLimiter(window_seconds=10, clock=clock)
    rl.record_attempt("203.0.113.1")
    clock.now += 100

    async def _run():
        await rl.start_sweep_loop(interval=0.01)
        await asyncio.sleep(0.1)
        await rl.stop_sweep_loop()

    asyncio.run(_run())
    assert len(rl) == 0


@pytest.mark.timeout(10)
def test_sweep_loop_restarts_after_stop():
    clock = FakeClock()
    rl = LoginRateLimiter(window_seconds=10, clock=clock)

    async def _run():
        await rl.start_sweep_loop(interval=0.01)
        first = rl._sweep_task
        # second start while running is a no-op
        await rl.start_sweep_loop(interval=0.01)
        assert rl._sweep_task is first
        await rl.stop_sweep_loop()
        assert rl._sweep_task is None

        rl.record_attempt("203.0.113.2")
        clock.now += 100
        await rl.start_sweep_loop(interval=0.01)
        assert rl._sweep_task is not first
        await asyncio.sleep(0.1)
        await rl.stop_sweep_loop()

    asyncio.run(_run())
    assert len(rl) == 0


@pytest.mark.timeout(10)
def test_lifespan_starts_and_stops_sweep(settings_env):
    from fastapi.testclient import TestClient

    from apps.dashboard.main import app

    settings_env(session_purge_enabled="false")
    limiter = app.state.login_rate_limiter
    with TestClient(app):
        assert limiter._sweep_task is not None
        assert not limiter._sweep_task.done()
    assert limiter._sweep_task is None
