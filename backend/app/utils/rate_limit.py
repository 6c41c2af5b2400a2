"""Fixed-window request rate limiter.

In-process only: each uvicorn worker keeps its own counters. A client's window
starts on its first request and restarts on the first request after it ends.
"""

import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Allow ``limit`` requests per ``window_seconds`` per client id."""

    def __init__(
        self,
        limit: int = 60,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limit = limit
        self._window = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def check(self, client_id: str) -> bool:
        """Count a request; return False if the client is over the limit."""
        now = self._clock()
        window = self._windows.get(client_id)
        if window is None or now > window.reset_at:
            self._purge(now)
            self._windows[client_id] = _Window(count=1, reset_at=now + self._window)
            return True
        if window.count >= self._limit:
            return False
        window.count += 1
        return True

    def _purge(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now > w.reset_at]
        for key in expired:
            del self._windows[key]

    def reset(self) -> None:
        self._windows.clear()
