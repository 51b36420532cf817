"""In-process TTL cache and fixed-window rate limiter.

Both are created once at service startup and passed into the app; neither is
consulted by the normalization code.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional


class TTLCache:
    """Dict-backed cache whose entries expire ``ttl_seconds`` after being set."""

    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry["fetched_at"] > self.ttl_seconds:
                del self._entries[key]
                return None
            return entry["value"]

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        now = self._clock()
        with self._lock:
            self._entries = {
                k: entry
                for k, entry in self._entries.items()
                if now - entry["fetched_at"] <= self.ttl_seconds
            }
            self._entries[key] = {"value": value, "fetched_at": now}

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RateLimiter:
    """Allow at most ``max_requests`` per key in each ``window_seconds`` window."""

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 900,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """Count one request for ``key`` and report whether it is within budget."""
        now = self._clock()
        with self._lock:
            if key not in self._windows:
                self._prune(now)
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            if count >= self.max_requests:
                self._windows[key] = (started, count)
                return False
            self._windows[key] = (started, count + 1)
            return True

    def _prune(self, now: float) -> None:
        """Drop windows that have already closed; callers hold the lock."""
        self._windows = {
            k: window
            for k, window in self._windows.items()
            if now - window[0] < self.window_seconds
        }

    def __len__(self) -> int:
        return len(self._windows)
