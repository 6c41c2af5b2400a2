"""In-memory TTL cache.

Process-level cache for hot provider data (nearby places). Lives as long as
the uvicorn worker. Expiry is checked on read, so an expired entry is never
returned and overwriting a key always replaces its expiry.
"""

import time
from collections import OrderedDict
from typing import Any, Callable


class TTLCache:
    """TTL-aware LRU cache with per-entry expiry."""

    def __init__(
        self,
        max_size: int = 500,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock

    def get(self, key: str) -> Any | None:
        if key not in self._cache:
            return None
        expires_at, value = self._cache[key]
        if self._clock() >= expires_at:
            del self._cache[key]
            return None
        self._cache.move_to_end(key)
        return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        if key in self._cache:
            self._cache.move_to_end(key)
        self._cache[key] = (self._clock() + ttl, value)
        if len(self._cache) > self._max_size:
            self._cache.popitem(last=False)

    def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
