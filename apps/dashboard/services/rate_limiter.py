"""In-memory sliding-window limiter for login attempts, keyed by client IP.

State lives in process memory only: it is lost on restart and is not shared
between instances, so a horizontally scaled deployment gets one window per
process.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from starlette.requests import Request

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"


@dataclass
class _Entry:
    count: int
    first_attempt: float


def get_client_ip(request: Request) -> str:
    """First x-forwarded-for hop, then x-real-ip, else "unknown"."""
    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    return real_ip or UNKNOWN_IP


class LoginRateLimiter:
    def __init__(
        self,
        window_seconds: float = 15 * 60,
        max_attempts: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_attempts = max_attempts
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, settings) -> "LoginRateLimiter":
        return cls(
            window_seconds=settings.login_rate_limit_window_seconds,
            max_attempts=settings.login_rate_limit_max_attempts,
        )

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.first_attempt > self.window_seconds

    def is_rate_limited(self, ip: str) -> bool:
        """True once the window already holds max_attempts; does not count as an attempt."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(ip)
            if entry is None:
                return False
            if self._expired(entry, now):
                del self._entries[ip]
                return False
            return entry.count >= self.max_attempts

    def record_attempt(self, ip: str) -> int:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(ip)
            if entry is None or self._expired(entry, now):
                entry = _Entry(count=1, first_attempt=now)
                self._entries[ip] = entry
            else:
                entry.count += 1
            return entry.count

    def attempts(self, ip: str) -> int:
        with self._lock:
            entry = self._entries.get(ip)
            return entry.count if entry else 0

    def sweep(self) -> int:
        """Drop entries whose window has passed. Returns the number removed."""
        now = self._clock()
        with self._lock:
            stale = [ip for ip, entry in self._entries.items() if self._expired(entry, now)]
            for ip in stale:
                del self._entries[ip]
        return len(stale)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def start_sweep_loop(self, interval: float = 300) -> None:
        """Background loop that periodically drops stale entries."""
        if self._sweep_task is not None:
            return

        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    removed = self.sweep()
                    if removed:
                        logger.debug("login rate limiter sweep removed=%s", removed)
                except Exception:
                    logger.exception("login rate limiter sweep failed")

        self._sweep_task = asyncio.create_task(_loop())

    async def stop_sweep_loop(self) -> None:
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
